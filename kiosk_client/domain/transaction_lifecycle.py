"""
Transaction Lifecycle - Manages the payment session cycle.

Creates a payment, polls its status, counts down its expiry and restarts
after every terminal outcome, so an unattended kiosk always returns to
showing a fresh payment code.
"""

from __future__ import annotations

from datetime import timedelta
from enum import Enum, auto
from functools import partial
from typing import Any, Callable, Mapping, Optional

from kiosk_client.configs import DISPLAY_TEXTS
from kiosk_client.core.exceptions import (
    ActuationError,
    PaymentCreationError,
    PaymentStatusError,
)
from kiosk_client.core.interfaces import KioskBackend, Scheduler
from kiosk_client.core.value_objects import (
    GraphicPayload,
    TransactionSession,
    TransactionStatus,
)
from kiosk_client.domain.audio_feedback import AudioFeedback
from kiosk_client.domain.diagnostics import DiagnosticsAggregator
from kiosk_client.domain.graphic_payload import resolve_graphic_payload
from kiosk_client.event_system import EventPublisher, EventType
from kiosk_client.infrastructure.scheduler import TimerSlot
from kiosk_client.infrastructure.settings import LifecycleTimings, PaymentSettings
from kiosk_client.loggers import logger


# =============================================================================
# Transaction Phases
# =============================================================================


class TransactionPhase(Enum):
    """Phases of the transaction lifecycle."""

    IDLE = auto()           # Nothing started yet
    CREATING = auto()       # Creation request in flight
    WAITING = auto()        # Next status poll scheduled
    POLLING = auto()        # Status poll in flight
    SUCCESS = auto()        # Paid, success banner showing
    FAILURE = auto()        # Backend reported failure
    CANCELLED = auto()      # Cancelled by a device command
    CREATE_FAILED = auto()  # Creation failed, retry scheduled


TERMINAL_PHASES = frozenset({
    TransactionPhase.SUCCESS,
    TransactionPhase.FAILURE,
    TransactionPhase.CANCELLED,
    TransactionPhase.CREATE_FAILED,
})


# =============================================================================
# Transaction Lifecycle
# =============================================================================


class TransactionLifecycle:
    """
    State machine for the payment session cycle.

    Owns three timer slots (status poll, expiry countdown, restart) and a
    generation counter. Starting or cancelling a session bumps the
    generation; every response handler checks its generation before
    touching state, so completions from a superseded session are dropped.
    """

    def __init__(
        self,
        backend: KioskBackend,
        scheduler: Scheduler,
        publisher: EventPublisher,
        diagnostics: DiagnosticsAggregator,
        audio: AudioFeedback,
        payment: PaymentSettings,
        timings: LifecycleTimings,
        resolver: Callable[[Mapping[str, Any]], GraphicPayload] = resolve_graphic_payload,
    ) -> None:
        """
        Initialize the lifecycle.

        Args:
            backend: Backend client.
            scheduler: Timer scheduler.
            publisher: Display event publisher.
            diagnostics: Gateway/connectivity health aggregator.
            audio: Feedback cues.
            payment: Amount, currency and success banner settings.
            timings: Poll and restart delays.
            resolver: QR payload resolver.
        """
        self._backend = backend
        self._clock = scheduler.clock
        self._publisher = publisher
        self._diagnostics = diagnostics
        self._audio = audio
        self._payment = payment
        self._timings = timings
        self._resolve = resolver

        self.poll_timer = TimerSlot(scheduler, "status_poll")
        self.expiry_timer = TimerSlot(scheduler, "expiry")
        self.restart_timer = TimerSlot(scheduler, "restart")

        self.session: Optional[TransactionSession] = None
        self.generation = 0
        self.start_count = 0
        self._phase = TransactionPhase.IDLE
        self._polling_generation: Optional[int] = None
        self._cancel_pending = False

    # -------------------------------------------------------------------------
    # State
    # -------------------------------------------------------------------------

    @property
    def phase(self) -> TransactionPhase:
        return self._phase

    @property
    def session_id(self) -> Optional[str]:
        return self.session.id if self.session else None

    def _set_phase(self, phase: TransactionPhase) -> None:
        if phase is not self._phase:
            logger.debug(f"Lifecycle phase: {self._phase.name} -> {phase.name}")
        self._phase = phase

    def _is_current(self, generation: int) -> bool:
        return generation == self.generation

    def _supersede(self) -> int:
        """Invalidate the running session and cancel all of its timers."""
        self.generation += 1
        self.poll_timer.clear()
        self.expiry_timer.clear()
        self.restart_timer.clear()
        return self.generation

    def snapshot(self) -> dict[str, Any]:
        return {
            "phase": self._phase.name.lower(),
            "terminal": self._phase in TERMINAL_PHASES,
            "session": self.session.to_dict() if self.session else None,
            "generation": self.generation,
            "poll_scheduled_ms": self.poll_timer.delay_ms if self.poll_timer.is_armed else None,
            "restart_scheduled_ms": self.restart_timer.delay_ms if self.restart_timer.is_armed else None,
        }

    # -------------------------------------------------------------------------
    # Display
    # -------------------------------------------------------------------------

    def _status(self, key: str, level: str) -> None:
        self._publisher.publish_nowait(
            EventType.STATUS,
            text=DISPLAY_TEXTS[key],
            level=level,
            phase=self._phase.name.lower(),
        )

    def _show_error(self, message: str) -> None:
        self._publisher.publish_nowait(EventType.ERROR, message=message)

    def _clear_error(self) -> None:
        self._publisher.publish_nowait(EventType.ERROR, message=None)

    def _show_banner(self, visible: bool) -> None:
        self._publisher.publish_nowait(
            EventType.SUCCESS_BANNER,
            visible=visible,
            text=DISPLAY_TEXTS["success_banner"] if visible else None,
        )

    def _show_payment_id(self, payment_id: Optional[str]) -> None:
        self._publisher.publish_nowait(EventType.PAYMENT_ID, id=payment_id)

    def _show_expiry(self, remaining: Optional[timedelta]) -> None:
        if remaining is None:
            self._publisher.publish_nowait(
                EventType.EXPIRY,
                remaining_seconds=None,
                text=DISPLAY_TEXTS["expiry_unknown"],
            )
            return
        total = max(0, int(remaining.total_seconds()))
        minutes, seconds = divmod(total, 60)
        self._publisher.publish_nowait(
            EventType.EXPIRY,
            remaining_seconds=total,
            text=DISPLAY_TEXTS["expiry"].format(minutes=minutes, seconds=seconds),
        )

    # -------------------------------------------------------------------------
    # Start
    # -------------------------------------------------------------------------

    async def start(self) -> None:
        """
        Start a new payment session.

        Cancels every timer of the previous session, resets gateway
        diagnostics, creates the payment, renders its QR code, starts the
        expiry countdown and polls the status. A creation failure schedules
        an automatic retry.
        """
        generation = self._supersede()
        self._cancel_pending = False
        self.session = None
        self.start_count += 1
        self._set_phase(TransactionPhase.CREATING)

        self._status("creating", "primary")
        self._show_payment_id(None)
        self._clear_error()
        self._show_banner(False)
        self._publisher.publish_nowait(EventType.QR, kind="loading", text=DISPLAY_TEXTS["loading_qr"])
        self._show_expiry(None)
        self._diagnostics.reset_gateway()

        amount = self._payment.amount_cents
        try:
            data = await self._backend.create_payment(
                amount,
                self._payment.currency,
                self._payment.redirect_url,
            )
        except PaymentCreationError as e:
            if self._is_current(generation):
                self._creation_failed(e.message)
            return

        if not self._is_current(generation):
            logger.debug("Discarding creation response of a superseded session")
            return

        try:
            session = TransactionSession.from_creation_response(data, amount, self._clock.now())
        except (ValueError, OverflowError) as e:
            self._creation_failed(f"Unusable creation response: {e}")
            return
        if session.id is None and session.expires_at is None:
            self._creation_failed("Creation response has neither an id nor an expiry")
            return

        self.session = session
        logger.info(
            f"Payment created: id={session.id}, amount={amount} {self._payment.currency}, "
            f"expires_at={session.expires_at}"
        )

        self._status("created", "primary")
        self._publisher.publish_nowait(EventType.QR, **self._resolve(data).to_dict())

        if session.expires_at is not None:
            self.expiry_timer.arm_every(
                self._timings.expiry_tick_ms,
                self._expiry_tick,
                immediate=True,
            )

        if session.id is None:
            logger.warning("Payment created without id; waiting for expiry")
            self._set_phase(TransactionPhase.WAITING)
            return

        self._show_payment_id(session.id)
        await self.poll_status(session.id)

    def _creation_failed(self, reason: str) -> None:
        logger.error(
            f"Payment creation failed: {reason}. "
            f"Retrying in {self._timings.create_retry_ms} ms"
        )
        self._set_phase(TransactionPhase.CREATE_FAILED)
        self._status("create_failed", "error")
        self._show_error(DISPLAY_TEXTS["error_create"])
        self.restart_timer.arm(self._timings.create_retry_ms, self.start)

    # -------------------------------------------------------------------------
    # Status Polling
    # -------------------------------------------------------------------------

    def _schedule_poll(self, payment_id: str, delay_ms: int) -> None:
        self._set_phase(TransactionPhase.WAITING)
        self.poll_timer.arm(delay_ms, partial(self.poll_status, payment_id))

    async def poll_status(self, payment_id: str) -> None:
        """
        Poll the status of the current payment once.

        Every attempt feeds the gateway diagnostics: any 2xx response is a
        healthy gateway, whatever the payment status says.
        """
        generation = self.generation
        if self.session is None or self.session.id != payment_id:
            return
        if self._polling_generation == generation:
            return

        self.poll_timer.clear()
        self._polling_generation = generation
        self._set_phase(TransactionPhase.POLLING)
        started = self._clock.monotonic_ms()
        at = self._clock.now()
        try:
            data = await self._backend.get_payment_status(payment_id)
        except PaymentStatusError as e:
            if self._is_current(generation):
                latency = self._clock.monotonic_ms() - started if e.reached_backend else None
                self._diagnostics.record_gateway(False, latency, at)
                logger.warning(f"Status check for {payment_id} failed: {e.message}")
                self._show_error(DISPLAY_TEXTS["error_poll"])
                self._status("checking", "warning")
                self._schedule_poll(payment_id, self._timings.transport_retry_ms)
            return
        finally:
            if self._polling_generation == generation:
                self._polling_generation = None

        if not self._is_current(generation):
            logger.debug(f"Discarding status of superseded payment {payment_id}")
            return

        self._diagnostics.record_gateway(True, self._clock.monotonic_ms() - started, at)
        self._clear_error()

        status = TransactionStatus.parse(data.get("status"))
        self.session.status = status

        if status is TransactionStatus.WAITING:
            self._status("waiting", "warning")
            self._schedule_poll(payment_id, self._timings.waiting_poll_ms)
        elif status is TransactionStatus.SUCCESS:
            await self._handle_success(generation)
        elif status is TransactionStatus.FAILURE:
            self._handle_failure()
        else:
            logger.warning(f"Unknown payment status: {data.get('status')!r}")
            self._status("unknown", "warning")
            self._schedule_poll(payment_id, self._timings.unknown_poll_ms)

    # -------------------------------------------------------------------------
    # Outcomes
    # -------------------------------------------------------------------------

    async def _handle_success(self, generation: int) -> None:
        """Show the success banner, confirm dispensing, then restart."""
        self.poll_timer.clear()
        self.expiry_timer.clear()
        self._set_phase(TransactionPhase.SUCCESS)
        logger.info(f"=== PAYMENT {self.session_id} SUCCEEDED ===")

        self._status("success", "success")
        self._show_expiry(None)
        self._show_banner(True)
        self._audio.payment_success()

        display_ms = self._payment.success_overlay_ms
        try:
            result = await self._backend.actuate()
        except ActuationError as e:
            if not self._is_current(generation):
                return
            logger.error(f"Actuator error: {e.message}")
            body_error = e.details.get("body", {}).get("error")
            self._show_error(
                body_error if isinstance(body_error, str) and body_error
                else DISPLAY_TEXTS["error_actuate"]
            )
            display_ms = self._payment.actuation_fallback_ms
        else:
            if not self._is_current(generation):
                return
            total = result.get("total_time_ms")
            if isinstance(total, (int, float)) and not isinstance(total, bool) and total > 0:
                logger.info(f"Actuator completed in {total} ms")
                display_ms = max(display_ms, int(total))

        self.restart_timer.arm(display_ms, self._finish_success)

    async def _finish_success(self) -> None:
        self._show_banner(False)
        self._clear_error()
        await self.start()

    def _handle_failure(self) -> None:
        self.poll_timer.clear()
        self.expiry_timer.clear()
        self._set_phase(TransactionPhase.FAILURE)
        logger.warning(f"Payment {self.session_id} failed")

        self._status("failure", "error")
        self._show_expiry(None)
        self._audio.payment_failure()
        self.restart_timer.arm(self._timings.failure_restart_ms, self.start)

    # -------------------------------------------------------------------------
    # Expiry
    # -------------------------------------------------------------------------

    async def _expiry_tick(self) -> None:
        """Recompute the remaining time from the absolute expiry instant."""
        session = self.session
        if session is None or session.expires_at is None:
            self.expiry_timer.clear()
            return

        remaining = session.remaining(self._clock.now())
        if remaining <= timedelta(0):
            logger.info(f"Payment {session.id} expired")
            self.expiry_timer.clear()
            await self.start()
            return

        self._show_expiry(remaining)

    # -------------------------------------------------------------------------
    # Cancellation
    # -------------------------------------------------------------------------

    def cancel(self) -> bool:
        """
        Cancel the current session after an external cancel command.

        Overlapping calls before the restart fires collapse into one
        restart.

        Returns:
            True if this call scheduled the restart.
        """
        if self._cancel_pending:
            logger.debug("Cancel already pending")
            return False

        self._cancel_pending = True
        self._supersede()
        cancelled_id = self.session_id
        self.session = None
        self._set_phase(TransactionPhase.CANCELLED)
        logger.info(f"Payment {cancelled_id} cancelled")

        self._show_payment_id(None)
        self._show_banner(False)
        self._show_expiry(None)
        self._status("cancelled", "warning")
        self._show_error(DISPLAY_TEXTS["error_cancelled"])
        self.restart_timer.arm(self._timings.cancel_settle_ms, self.start)
        return True
