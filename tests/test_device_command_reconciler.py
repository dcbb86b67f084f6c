"""
Tests for the device command overlay reconciler.
"""

import asyncio
from unittest.mock import MagicMock

import pytest

from conftest import drain, events_of, played_keys
from kiosk_client.configs import COMMAND_DISPLAY_TEXTS, MESSAGE_PLACEHOLDER
from kiosk_client.core.exceptions import DeviceStatusError
from kiosk_client.core.value_objects import DeviceCommandObservation
from kiosk_client.domain.device_command_reconciler import (
    DeviceCommandReconciler,
    command_display_text,
)
from kiosk_client.event_system import EventType
from kiosk_client.infrastructure.settings import DeviceSettings


def observe(command, at, message=None) -> DeviceCommandObservation:
    return DeviceCommandObservation(command=command, message=message, observed_at=at)


@pytest.fixture
def on_cancel() -> MagicMock:
    return MagicMock()


@pytest.fixture
def reconciler(backend, scheduler, publisher, audio, on_cancel) -> DeviceCommandReconciler:
    return DeviceCommandReconciler(
        backend,
        scheduler,
        publisher,
        audio,
        on_cancel,
        DeviceSettings(),
    )


class TestCommandDisplayText:
    """Tests for command to overlay text mapping."""

    def test_known_command(self):
        assert command_display_text("extend") == COMMAND_DISPLAY_TEXTS["extend"]

    def test_message_command_uses_message(self):
        assert command_display_text("message", "Bitte warten") == "Bitte warten"

    def test_message_command_without_text(self):
        assert command_display_text("message") == MESSAGE_PLACEHOLDER

    def test_unknown_command_is_generic(self):
        assert command_display_text("dance") == "Wird ausgeführt: dance"


class TestOverlayHold:
    """Tests for the minimum overlay hold."""

    def test_command_shows_overlay_and_plays_start_cue(self, reconciler, tone_engine):
        """Test that a new command shows the overlay at once."""
        reconciler.reconcile(observe("extend", 0))

        assert reconciler.overlay_visible
        assert reconciler.overlay_text == COMMAND_DISPLAY_TEXTS["extend"]
        assert played_keys(tone_engine) == ["commandStart:extend"]

    def test_overlay_held_for_minimum_duration(self, reconciler, tone_engine):
        """Test that a short reporting gap does not hide the overlay."""
        reconciler.reconcile(observe("extend", 0))
        reconciler.reconcile(observe(None, 500))

        assert reconciler.held_command == "extend"

        reconciler.reconcile(observe(None, 999))
        assert reconciler.overlay_visible

        reconciler.reconcile(observe(None, 1000))
        assert not reconciler.overlay_visible
        assert played_keys(tone_engine) == ["commandStart:extend", "commandSuccess:extend"]

    def test_new_command_replaces_immediately(self, reconciler, tone_engine):
        """Test that a different command is shown without waiting for the hold."""
        reconciler.reconcile(observe("extend", 0))
        reconciler.reconcile(observe("retract", 100))

        assert reconciler.held_command == "retract"
        assert reconciler.overlay_text == COMMAND_DISPLAY_TEXTS["retract"]
        assert played_keys(tone_engine) == ["commandStart:extend", "commandStart:retract"]

    def test_hold_restarts_for_replacement(self, reconciler):
        """Test that the hold is measured from the replacement's first sighting."""
        reconciler.reconcile(observe("extend", 0))
        reconciler.reconcile(observe("retract", 800))
        reconciler.reconcile(observe(None, 1200))

        assert reconciler.held_command == "retract"

    def test_same_command_is_not_a_new_event(self, reconciler, tone_engine, event_queue):
        """Test that repeated observations neither cue nor republish."""
        reconciler.reconcile(observe("extend", 0))
        drain(event_queue)

        reconciler.reconcile(observe("extend", 500))
        reconciler.reconcile(observe("extend", 1500))

        assert played_keys(tone_engine) == ["commandStart:extend"]
        assert drain(event_queue) == []

    def test_message_text_updates_in_place(self, reconciler, tone_engine):
        """Test that a changed message updates the overlay text only."""
        reconciler.reconcile(observe("message", 0, "Erster Text"))
        reconciler.reconcile(observe("message", 200, "Zweiter Text"))

        assert reconciler.overlay_text == "Zweiter Text"
        assert played_keys(tone_engine) == ["commandStart:message"]

    def test_overlay_events_published(self, reconciler, event_queue):
        reconciler.reconcile(observe("extend", 0))
        reconciler.reconcile(observe(None, 1000))

        overlays = events_of(drain(event_queue), EventType.OVERLAY)
        assert [o["visible"] for o in overlays] == [True, False]


class TestCancelCommand:
    """Tests for cancel delegation."""

    def test_cancel_delegates_and_hides(self, reconciler, on_cancel, tone_engine):
        """Test that cancel hides the overlay without a success cue."""
        reconciler.reconcile(observe("extend", 0))
        reconciler.reconcile(observe("cancel", 100))

        on_cancel.assert_called_once()
        assert not reconciler.overlay_visible
        assert "commandSuccess:extend" not in played_keys(tone_engine)

    def test_repeated_cancel_delegates_once(self, reconciler, on_cancel):
        """Test that a cancel reported on consecutive polls is one cancel."""
        reconciler.reconcile(observe("cancel", 0))
        reconciler.reconcile(observe("cancel", 500))
        reconciler.reconcile(observe("cancel", 1000))

        on_cancel.assert_called_once()

    def test_new_cancel_after_idle_delegates_again(self, reconciler, on_cancel):
        reconciler.reconcile(observe("cancel", 0))
        reconciler.reconcile(observe(None, 500))
        reconciler.reconcile(observe("cancel", 1000))

        assert on_cancel.call_count == 2


class TestPolling:
    """Tests for the device status poll loop."""

    @pytest.mark.asyncio
    async def test_poll_cadence(self, reconciler, backend, scheduler):
        """Test that polls run immediately and then every 500 ms."""
        reconciler.start()
        await scheduler.advance(0)

        backend.get_device_status.assert_awaited_once()
        assert reconciler.poll_timer.delay_ms == 500

        await scheduler.advance(500)
        assert backend.get_device_status.await_count == 2

    @pytest.mark.asyncio
    async def test_poll_failure_backs_off(self, reconciler, backend, scheduler):
        """Test that a failed poll is retried after 1000 ms."""
        backend.get_device_status.side_effect = DeviceStatusError("offline")

        reconciler.start()
        await scheduler.advance(0)

        assert reconciler.poll_timer.delay_ms == 1000

    @pytest.mark.asyncio
    async def test_polled_command_reaches_overlay(self, reconciler, backend, scheduler):
        """Test that a polled payload is normalized and reconciled."""
        backend.get_device_status.return_value = {
            "executing_command": {"command": " Extend "},
        }

        reconciler.start()
        await scheduler.advance(0)

        assert reconciler.held_command == "extend"

    @pytest.mark.asyncio
    async def test_stop_cancels_polling(self, reconciler, backend, scheduler):
        reconciler.start()
        await scheduler.advance(0)
        reconciler.stop()

        await scheduler.advance(5000)

        backend.get_device_status.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_poll_in_flight_during_stop_is_discarded(self, reconciler, backend):
        """Test that a device reply arriving after stop changes nothing."""
        gate = asyncio.Event()

        async def device_status():
            await gate.wait()
            return {"executing_command": {"command": "extend"}}

        backend.get_device_status.side_effect = device_status

        task = asyncio.create_task(reconciler.poll_once())
        for _ in range(5):
            await asyncio.sleep(0)
        reconciler.stop()
        gate.set()
        await task

        assert reconciler.held_command is None
        assert not reconciler.poll_timer.is_armed

    @pytest.mark.asyncio
    async def test_restart_is_not_blocked_by_stale_poll(self, reconciler, backend, scheduler):
        """Test that a restarted loop polls even while an old poll is pending."""
        gate = asyncio.Event()
        calls = []

        async def device_status():
            calls.append(1)
            if len(calls) == 1:
                await gate.wait()
                return {"executing_command": {"command": "extend"}}
            return {"executing_command": None}

        backend.get_device_status.side_effect = device_status

        stale = asyncio.create_task(reconciler.poll_once())
        for _ in range(5):
            await asyncio.sleep(0)
        reconciler.stop()
        reconciler.start()
        await scheduler.advance(0)

        assert len(calls) == 2
        assert reconciler.poll_timer.delay_ms == 500

        gate.set()
        await stale

        assert reconciler.held_command is None
        assert reconciler.poll_timer.delay_ms == 500
