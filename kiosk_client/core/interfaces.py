"""
Interfaces (Protocols) for the kiosk client.

Defines contracts for the backend, timers, and the audio engine using
Python's Protocol for structural subtyping.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Awaitable, Callable, Protocol, Sequence, runtime_checkable


AsyncCallback = Callable[[], Awaitable[None]]


# =============================================================================
# Time
# =============================================================================


@runtime_checkable
class Clock(Protocol):
    """Source of monotonic and wall-clock time."""

    def monotonic_ms(self) -> float:
        """Monotonic time in milliseconds, for latencies and hold windows."""
        ...

    def now(self) -> datetime:
        """Aware UTC wall-clock time, for expiry and sample timestamps."""
        ...


@runtime_checkable
class TimerHandle(Protocol):
    """Handle to one scheduled callback."""

    @property
    def active(self) -> bool:
        """True until the callback fires or is cancelled."""
        ...

    def cancel(self) -> None:
        """Cancel the callback if it has not fired yet."""
        ...


@runtime_checkable
class Scheduler(Protocol):
    """Schedules async callbacks on the event loop."""

    @property
    def clock(self) -> Clock:
        ...

    def call_later(self, delay_ms: float, callback: AsyncCallback) -> TimerHandle:
        """
        Run `callback` once after `delay_ms` milliseconds.

        Args:
            delay_ms: Delay in milliseconds.
            callback: Coroutine function to run.

        Returns:
            Handle that can cancel the pending call.
        """
        ...


# =============================================================================
# Backend
# =============================================================================


@runtime_checkable
class KioskBackend(Protocol):
    """The backend HTTP surface consumed by the kiosk client."""

    async def create_payment(
        self,
        amount_cents: int,
        currency: str,
        redirect_url: str,
    ) -> dict[str, Any]:
        """Create a payment session. Raises PaymentCreationError."""
        ...

    async def get_payment_status(self, payment_id: str) -> dict[str, Any]:
        """Fetch a payment's status. Raises PaymentStatusError."""
        ...

    async def actuate(self) -> dict[str, Any]:
        """Confirm dispensing after a successful payment. Raises ActuationError."""
        ...

    async def get_device_status(self) -> dict[str, Any]:
        """Fetch the currently executing device command. Raises DeviceStatusError."""
        ...

    async def check_reachability(self, url: str) -> None:
        """GET a third-party URL. Raises ConnectivityProbeError on non-2xx."""
        ...


# =============================================================================
# Audio
# =============================================================================


@runtime_checkable
class ToneEngine(Protocol):
    """Plays a sequence of synthesized tones."""

    def play(self, key: str, tones: Sequence[Any]) -> None:
        """
        Play tones for a cue.

        Args:
            key: Cue key, for diagnostics only.
            tones: Tone definitions to schedule.
        """
        ...
