"""
Cancellable timers on the asyncio event loop.

`AsyncioScheduler` runs async callbacks after a delay. `TimerSlot` holds at
most one pending timer of a given kind and cancels it before arming a new
one, so a component can never end up with two concurrent polls of the same
family.
"""

from __future__ import annotations

import asyncio
import time
from datetime import datetime, timezone
from typing import Optional

from kiosk_client.core.interfaces import AsyncCallback, Clock, Scheduler, TimerHandle
from kiosk_client.loggers import logger


# =============================================================================
# Clock
# =============================================================================


class SystemClock:
    """Clock backed by `time.monotonic()` and the UTC wall clock."""

    def monotonic_ms(self) -> float:
        return time.monotonic() * 1000.0

    def now(self) -> datetime:
        return datetime.now(timezone.utc)


# =============================================================================
# Asyncio Scheduler
# =============================================================================


class ScheduledCall:
    """
    A callback scheduled with `loop.call_later`.

    When the timer fires the callback runs in its own task; exceptions are
    logged so a failing callback cannot kill the loop silently.
    """

    def __init__(self, scheduler: "AsyncioScheduler", callback: AsyncCallback) -> None:
        self._scheduler = scheduler
        self._callback = callback
        self._handle: Optional[asyncio.TimerHandle] = None
        self._fired = False
        self._cancelled = False

    @property
    def active(self) -> bool:
        return not (self._fired or self._cancelled)

    def cancel(self) -> None:
        self._cancelled = True
        if self._handle is not None:
            self._handle.cancel()

    def _arm(self, loop: asyncio.AbstractEventLoop, delay_ms: float) -> None:
        self._handle = loop.call_later(max(0.0, delay_ms) / 1000.0, self._fire)

    def _fire(self) -> None:
        if self._cancelled:
            return
        self._fired = True
        self._scheduler._spawn(self._run())

    async def _run(self) -> None:
        try:
            await self._callback()
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.exception(f"Scheduled callback {self._callback!r} failed: {e}")


class AsyncioScheduler:
    """
    Scheduler for the running asyncio loop.

    Tracks the tasks it spawns so `shutdown()` can cancel in-flight work.
    """

    def __init__(self, clock: Optional[Clock] = None) -> None:
        self._clock = clock or SystemClock()
        self._tasks: set[asyncio.Task] = set()
        self._calls: set[ScheduledCall] = set()

    @property
    def clock(self) -> Clock:
        return self._clock

    def call_later(self, delay_ms: float, callback: AsyncCallback) -> ScheduledCall:
        call = ScheduledCall(self, callback)
        call._arm(asyncio.get_running_loop(), delay_ms)
        self._calls = {c for c in self._calls if c.active}
        self._calls.add(call)
        return call

    def _spawn(self, coro) -> None:
        task = asyncio.get_running_loop().create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def shutdown(self) -> None:
        """Cancel pending timers and running callback tasks."""
        for call in self._calls:
            call.cancel()
        self._calls.clear()
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)


# =============================================================================
# Timer Slot
# =============================================================================


class TimerSlot:
    """
    Holder for at most one pending timer of one kind.

    Every `arm*` call cancels the previous timer first.

    Attributes:
        name: Slot name, used in log messages.
        delay_ms: Delay of the most recently armed timer.
    """

    def __init__(self, scheduler: Scheduler, name: str) -> None:
        self._scheduler = scheduler
        self.name = name
        self.delay_ms: Optional[float] = None
        self._handle: Optional[TimerHandle] = None

    @property
    def is_armed(self) -> bool:
        """Whether a timer is pending in this slot."""
        return self._handle is not None and self._handle.active

    def arm(self, delay_ms: float, callback: AsyncCallback) -> None:
        """Run `callback` once after `delay_ms`, replacing any pending timer."""
        self.clear()
        self.delay_ms = delay_ms
        self._handle = self._scheduler.call_later(delay_ms, callback)

    def arm_every(
        self,
        interval_ms: float,
        callback: AsyncCallback,
        immediate: bool = False,
    ) -> None:
        """
        Run `callback` every `interval_ms`, replacing any pending timer.

        The next tick is armed before the callback runs, so the callback
        may clear the slot to stop the repetition.
        """
        self.clear()

        async def tick() -> None:
            self.delay_ms = interval_ms
            self._handle = self._scheduler.call_later(interval_ms, tick)
            await callback()

        self.delay_ms = 0 if immediate else interval_ms
        self._handle = self._scheduler.call_later(self.delay_ms, tick)

    def clear(self) -> None:
        """Cancel the pending timer, if any."""
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None
