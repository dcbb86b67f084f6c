"""
Pytest configuration for kiosk client tests.

Provides a virtual-time scheduler so timer-driven behavior can be tested
deterministically, plus mocked backend and audio fixtures.
"""

import asyncio
from datetime import datetime, timedelta, timezone
from typing import Any, Optional
from unittest.mock import AsyncMock, MagicMock

import pytest

from kiosk_client.domain.audio_feedback import AudioFeedback
from kiosk_client.domain.diagnostics import DiagnosticsAggregator
from kiosk_client.event_system import EventPublisher
from kiosk_client.infrastructure.settings import AudioSettings, ConnectivitySettings


START_INSTANT = datetime(2026, 1, 1, 12, 0, 0, tzinfo=timezone.utc)


# =============================================================================
# Virtual Time
# =============================================================================


class ManualClock:
    """Clock that only moves when told to."""

    def __init__(self, start: datetime = START_INSTANT) -> None:
        self.elapsed_ms = 0.0
        self._start = start

    def monotonic_ms(self) -> float:
        return self.elapsed_ms

    def now(self) -> datetime:
        return self._start + timedelta(milliseconds=self.elapsed_ms)

    def jump(self, ms: float) -> None:
        """Move time forward without running timers (e.g. a suspended tab)."""
        self.elapsed_ms += ms


class ManualCall:
    def __init__(self, due_ms: float, seq: int, callback) -> None:
        self.due_ms = due_ms
        self.seq = seq
        self.callback = callback
        self.fired = False
        self.cancelled = False

    @property
    def active(self) -> bool:
        return not (self.fired or self.cancelled)

    def cancel(self) -> None:
        self.cancelled = True


class ManualScheduler:
    """
    Scheduler driven by `advance()`.

    Due callbacks run in due-time order and are awaited inline, so every
    effect of a timer is visible as soon as `advance()` returns.
    """

    def __init__(self, clock: Optional[ManualClock] = None) -> None:
        self._clock = clock or ManualClock()
        self._calls: list[ManualCall] = []
        self._seq = 0

    @property
    def clock(self) -> ManualClock:
        return self._clock

    def call_later(self, delay_ms: float, callback) -> ManualCall:
        self._seq += 1
        call = ManualCall(self._clock.elapsed_ms + max(0.0, delay_ms), self._seq, callback)
        self._calls.append(call)
        return call

    @property
    def pending(self) -> list[ManualCall]:
        return [c for c in self._calls if c.active]

    async def advance(self, ms: float) -> None:
        target = self._clock.elapsed_ms + ms
        while True:
            due = [c for c in self._calls if c.active and c.due_ms <= target]
            if not due:
                break
            call = min(due, key=lambda c: (c.due_ms, c.seq))
            self._clock.elapsed_ms = max(self._clock.elapsed_ms, call.due_ms)
            call.fired = True
            await call.callback()
        self._clock.elapsed_ms = max(self._clock.elapsed_ms, target)
        self._calls = [c for c in self._calls if c.active]


def drain(queue: asyncio.Queue) -> list[dict[str, Any]]:
    """Take every queued event without waiting."""
    events = []
    while not queue.empty():
        events.append(queue.get_nowait())
    return events


def events_of(events: list[dict[str, Any]], event_type) -> list[dict[str, Any]]:
    return [e for e in events if e["type"] == event_type]


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def scheduler() -> ManualScheduler:
    return ManualScheduler()


@pytest.fixture
def event_queue() -> asyncio.Queue:
    return asyncio.Queue()


@pytest.fixture
def publisher(event_queue) -> EventPublisher:
    return EventPublisher(event_queue)


@pytest.fixture
def backend() -> MagicMock:
    """Backend with every call succeeding."""
    mock = MagicMock()
    mock.create_payment = AsyncMock(return_value={
        "id": "pay_1",
        "valid_for_minutes": 10,
        "qr_code_svg": "<svg></svg>",
    })
    mock.get_payment_status = AsyncMock(return_value={"status": "waiting"})
    mock.actuate = AsyncMock(return_value={})
    mock.get_device_status = AsyncMock(return_value={"executing_command": None})
    mock.check_reachability = AsyncMock(return_value=None)
    return mock


@pytest.fixture
def tone_engine() -> MagicMock:
    return MagicMock()


@pytest.fixture
def audio(tone_engine, scheduler) -> AudioFeedback:
    """Unlocked audio feedback playing into a mock engine."""
    feedback = AudioFeedback(lambda: tone_engine, scheduler.clock, AudioSettings())
    feedback.unlock()
    return feedback


@pytest.fixture
def diagnostics(backend, scheduler, publisher) -> DiagnosticsAggregator:
    return DiagnosticsAggregator(backend, scheduler, publisher, ConnectivitySettings())


def played_keys(tone_engine: MagicMock) -> list[str]:
    return [c.args[0] for c in tone_engine.play.call_args_list]
