"""
API Facade - Unified interface for the kiosk client.

Wires the backend client, timers, display event pipeline and domain
components together, and exposes the operations reachable over the command
channel.
"""

import asyncio
from typing import Any, Optional

from kiosk_client.domain.audio_feedback import AudioFeedback, frontend_engine_factory
from kiosk_client.domain.device_command_reconciler import DeviceCommandReconciler
from kiosk_client.domain.diagnostics import DiagnosticsAggregator
from kiosk_client.domain.transaction_lifecycle import TransactionLifecycle
from kiosk_client.event_system import EventConsumer, EventPublisher, EventType
from kiosk_client.frontend_bridge import FrontendBridge
from kiosk_client.core.interfaces import KioskBackend, Scheduler
from kiosk_client.infrastructure.backend_client import BackendClient
from kiosk_client.infrastructure.scheduler import AsyncioScheduler
from kiosk_client.infrastructure.settings import Settings, get_settings
from kiosk_client.loggers import logger


class KioskClientFacade:
    """
    Facade for the kiosk client.

    Owns one instance of every component; nothing about the running
    session lives at module level.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        backend: Optional[KioskBackend] = None,
        scheduler: Optional[Scheduler] = None,
        bridge: Optional[FrontendBridge] = None,
    ) -> None:
        """
        Initialize the kiosk client facade.

        Args:
            settings: Application settings (default: get_settings()).
            backend: Backend client (default: BackendClient).
            scheduler: Timer scheduler (default: AsyncioScheduler).
            bridge: Frontend bridge (default: FrontendBridge).
        """
        self.settings = settings or get_settings()
        self.backend = backend or BackendClient(self.settings.backend)
        self.scheduler = scheduler or AsyncioScheduler()
        self.bridge = bridge or FrontendBridge(
            self.settings.services.websocket_url,
            open_timeout_s=self.settings.services.ws_open_timeout_s,
            reconnect_delay_s=self.settings.services.ws_reconnect_delay_s,
        )

        # Event system
        self._event_queue: asyncio.Queue = asyncio.Queue()
        self.publisher = EventPublisher(self._event_queue)
        self._event_consumer = EventConsumer(self._event_queue)

        # Components
        self.diagnostics = DiagnosticsAggregator(
            self.backend,
            self.scheduler,
            self.publisher,
            self.settings.connectivity,
        )
        self.audio = AudioFeedback(
            frontend_engine_factory(self.publisher, self.settings.audio),
            self.scheduler.clock,
            self.settings.audio,
        )
        self.lifecycle = TransactionLifecycle(
            self.backend,
            self.scheduler,
            self.publisher,
            self.diagnostics,
            self.audio,
            self.settings.payment,
            self.settings.timings,
        )
        self.reconciler = DeviceCommandReconciler(
            self.backend,
            self.scheduler,
            self.publisher,
            self.audio,
            self.lifecycle.cancel,
            self.settings.device,
        )

        self._is_started = False

    @property
    def is_started(self) -> bool:
        return self._is_started

    # =========================================================================
    # Lifecycle
    # =========================================================================

    def _register_event_handlers(self) -> None:
        """Forward every display event to the frontend."""
        for event_type in EventType:
            self._event_consumer.register_handler(event_type, self.bridge.forward)

    async def start(self) -> dict[str, Any]:
        """
        Start all loops and the first payment session.

        Returns:
            Dictionary indicating success.
        """
        if self._is_started:
            return {"success": False, "message": "Kiosk client already started"}

        self._register_event_handlers()
        await self._event_consumer.start_consuming()
        self._is_started = True

        self.reconciler.start()
        self.diagnostics.start_connectivity_checks()
        await self.lifecycle.start()

        logger.info("Kiosk client started")
        return {"success": True, "message": "Kiosk client started"}

    async def shutdown(self) -> None:
        """Stop all loops and release connections."""
        try:
            self.reconciler.stop()
            self.diagnostics.stop_connectivity_checks()
            self.lifecycle.poll_timer.clear()
            self.lifecycle.expiry_timer.clear()
            self.lifecycle.restart_timer.clear()
            if isinstance(self.scheduler, AsyncioScheduler):
                await self.scheduler.shutdown()
            await self._event_consumer.stop_consuming()
            await self.bridge.close()
            if isinstance(self.backend, BackendClient):
                await self.backend.close()
            self._is_started = False
            logger.info("Kiosk client shut down successfully")
        except Exception as e:
            logger.error(f"Error during shutdown: {e}")

    # =========================================================================
    # Commands
    # =========================================================================

    async def user_interaction(self) -> dict[str, Any]:
        """
        Handle a click/touch reported by the frontend.

        Returns:
            Dictionary with the audio unlock state.
        """
        unlocked = self.audio.unlock()
        return {
            "success": True,
            "message": "Audio unlocked" if unlocked else "Audio unavailable",
            "data": {"audio_unlocked": unlocked},
        }

    async def get_status(self) -> dict[str, Any]:
        """Get a snapshot of every component."""
        return {
            "success": True,
            "data": {
                "started": self._is_started,
                "transaction": self.lifecycle.snapshot(),
                "diagnostics": self.diagnostics.snapshot(),
                "overlay": self.reconciler.snapshot(),
                "audio": {"unlocked": self.audio.is_unlocked},
                "frontend_connected": self.bridge.is_connected,
            },
        }

    async def restart_session(self) -> dict[str, Any]:
        """Abandon the current session and create a new one."""
        if not self._is_started:
            return {"success": False, "message": "Kiosk client not started"}

        logger.info("Session restart requested by operator")
        await self.lifecycle.start()
        return {
            "success": True,
            "message": "Session restarted",
            "data": self.lifecycle.snapshot(),
        }
