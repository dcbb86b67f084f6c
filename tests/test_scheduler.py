"""
Tests for the asyncio timers.

These run on the real event loop with short delays.
"""

import asyncio

import pytest

from kiosk_client.infrastructure.scheduler import AsyncioScheduler, SystemClock, TimerSlot


class TestAsyncioScheduler:
    """Tests for AsyncioScheduler."""

    @pytest.mark.asyncio
    async def test_call_later_runs_callback(self):
        scheduler = AsyncioScheduler()
        fired = asyncio.Event()

        async def callback():
            fired.set()

        call = scheduler.call_later(5, callback)
        await asyncio.wait_for(fired.wait(), timeout=1)

        assert call.active is False

    @pytest.mark.asyncio
    async def test_cancel_prevents_callback(self):
        scheduler = AsyncioScheduler()
        calls = []

        async def callback():
            calls.append(1)

        call = scheduler.call_later(5, callback)
        call.cancel()
        await asyncio.sleep(0.03)

        assert calls == []
        assert call.active is False

    @pytest.mark.asyncio
    async def test_failing_callback_is_logged(self):
        """Test that an exception in a callback does not escape the loop."""
        scheduler = AsyncioScheduler()
        after = asyncio.Event()

        async def boom():
            raise RuntimeError("boom")

        async def later():
            after.set()

        scheduler.call_later(1, boom)
        scheduler.call_later(10, later)
        await asyncio.wait_for(after.wait(), timeout=1)

    @pytest.mark.asyncio
    async def test_shutdown_cancels_pending(self):
        scheduler = AsyncioScheduler()
        calls = []

        async def callback():
            calls.append(1)

        scheduler.call_later(20, callback)
        await scheduler.shutdown()
        await asyncio.sleep(0.05)

        assert calls == []

    def test_system_clock_is_utc(self):
        clock = SystemClock()
        assert clock.now().tzinfo is not None
        assert clock.monotonic_ms() > 0


class TestTimerSlot:
    """Tests for the one-timer-per-kind slot."""

    @pytest.mark.asyncio
    async def test_rearm_replaces_pending_timer(self):
        slot = TimerSlot(AsyncioScheduler(), "poll")
        calls = []

        async def first():
            calls.append("first")

        async def second():
            calls.append("second")

        slot.arm(10, first)
        slot.arm(10, second)
        await asyncio.sleep(0.05)

        assert calls == ["second"]
        assert slot.is_armed is False

    @pytest.mark.asyncio
    async def test_arm_every_repeats_until_cleared(self):
        slot = TimerSlot(AsyncioScheduler(), "tick")
        ticks = []

        async def tick():
            ticks.append(1)
            if len(ticks) == 3:
                slot.clear()

        slot.arm_every(5, tick, immediate=True)
        await asyncio.sleep(0.1)

        assert len(ticks) == 3
        assert slot.is_armed is False

    @pytest.mark.asyncio
    async def test_delay_recorded(self):
        slot = TimerSlot(AsyncioScheduler(), "restart")

        async def noop():
            pass

        slot.arm(2000, noop)

        assert slot.is_armed is True
        assert slot.delay_ms == 2000
        slot.clear()
        assert slot.is_armed is False
