"""
Device Command Reconciler - overlay for backend-reported device commands.

Polls the command the backend is currently executing and mirrors it as an
overlay. Short gaps in the backend's reporting are smoothed over by holding
a command on screen for a minimum time from its first observation.
"""

from __future__ import annotations

from typing import Any, Callable, Optional

from kiosk_client.configs import (
    CANCEL_COMMAND,
    COMMAND_DISPLAY_TEXTS,
    GENERIC_COMMAND_TEXT,
    MESSAGE_COMMAND,
    MESSAGE_PLACEHOLDER,
)
from kiosk_client.core.exceptions import DeviceStatusError
from kiosk_client.core.interfaces import KioskBackend, Scheduler
from kiosk_client.core.value_objects import DeviceCommandObservation
from kiosk_client.domain.audio_feedback import AudioFeedback
from kiosk_client.event_system import EventPublisher, EventType
from kiosk_client.infrastructure.scheduler import TimerSlot
from kiosk_client.infrastructure.settings import DeviceSettings
from kiosk_client.loggers import logger


def command_display_text(command: str, message: Optional[str] = None) -> str:
    """
    Map a device command to its overlay text.

    Args:
        command: Normalized command name.
        message: Free text sent with a `message` command.

    Returns:
        Text to show on the overlay.
    """
    if command == MESSAGE_COMMAND:
        return message or MESSAGE_PLACEHOLDER
    return COMMAND_DISPLAY_TEXTS.get(command) or GENERIC_COMMAND_TEXT.format(command=command)


class DeviceCommandReconciler:
    """
    Reconciles polled device commands into overlay state.

    A `cancel` command is delegated to the transaction lifecycle instead of
    being shown. Audio cues fire on genuine start/stop transitions only.
    """

    def __init__(
        self,
        backend: KioskBackend,
        scheduler: Scheduler,
        publisher: EventPublisher,
        audio: AudioFeedback,
        on_cancel: Callable[[], Any],
        settings: DeviceSettings,
    ) -> None:
        """
        Initialize the reconciler.

        Args:
            backend: Backend client.
            scheduler: Timer scheduler.
            publisher: Display event publisher.
            audio: Feedback cues.
            on_cancel: Called when the backend reports a cancel command.
            settings: Poll cadence and hold duration.
        """
        self._backend = backend
        self._clock = scheduler.clock
        self._publisher = publisher
        self._audio = audio
        self._on_cancel = on_cancel
        self._settings = settings
        self.poll_timer = TimerSlot(scheduler, "device_poll")
        self._generation = 0
        self._polling_generation: Optional[int] = None

        self.held_command: Optional[str] = None
        self.overlay_text: Optional[str] = None
        self._held_since: float = 0.0
        self._last_observed: Optional[str] = None

    @property
    def overlay_visible(self) -> bool:
        return self.held_command is not None

    def snapshot(self) -> dict[str, Any]:
        return {
            "visible": self.overlay_visible,
            "command": self.held_command,
            "text": self.overlay_text,
        }

    # -------------------------------------------------------------------------
    # Loop
    # -------------------------------------------------------------------------

    def start(self) -> None:
        """Start polling immediately."""
        self._generation += 1
        self.poll_timer.arm(0, self.poll_once)

    def stop(self) -> None:
        self._generation += 1
        self.poll_timer.clear()

    async def poll_once(self) -> None:
        """Poll the device status once and schedule the next poll."""
        generation = self._generation
        if self._polling_generation == generation:
            return
        self._polling_generation = generation
        try:
            data = await self._backend.get_device_status()
        except DeviceStatusError as e:
            if generation == self._generation:
                logger.debug(f"Device status poll failed: {e.message}")
                self.poll_timer.arm(self._settings.failure_poll_ms, self.poll_once)
            return
        finally:
            if self._polling_generation == generation:
                self._polling_generation = None

        if generation != self._generation:
            return

        self.reconcile(
            DeviceCommandObservation.from_payload(data, self._clock.monotonic_ms())
        )
        self.poll_timer.arm(self._settings.poll_ms, self.poll_once)

    # -------------------------------------------------------------------------
    # Reconciliation
    # -------------------------------------------------------------------------

    def reconcile(self, observation: DeviceCommandObservation) -> None:
        """Apply one observation to the overlay state."""
        command = observation.command
        previous, self._last_observed = self._last_observed, command

        if command is None:
            self._release_if_expired(observation.observed_at)
            return

        if command == CANCEL_COMMAND:
            self._hide(play_cue=False)
            # A cancel stays reported for several polls; act on the edge only.
            if previous != CANCEL_COMMAND:
                logger.info("Cancel command observed")
                self._on_cancel()
            return

        text = command_display_text(command, observation.message)

        if command == self.held_command:
            if text != self.overlay_text:
                self.overlay_text = text
                self._publish()
            return

        logger.info(f"Device command started: {command}")
        self.held_command = command
        self.overlay_text = text
        self._held_since = observation.observed_at
        self._publish()
        self._audio.command_start(command)

    def _release_if_expired(self, now_ms: float) -> None:
        if self.held_command is None:
            return
        if now_ms - self._held_since < self._settings.overlay_hold_ms:
            return
        logger.info(f"Device command finished: {self.held_command}")
        self._hide(play_cue=True)

    def _hide(self, play_cue: bool) -> None:
        command = self.held_command
        if command is None:
            return
        self.held_command = None
        self.overlay_text = None
        self._publish()
        if play_cue:
            self._audio.command_success(command)

    def _publish(self) -> None:
        self._publisher.publish_nowait(EventType.OVERLAY, **self.snapshot())
