"""
WebSocket bridge to the kiosk frontend.

Display events are forwarded as `{"event": ..., "data": ...}` JSON frames
over one persistent connection that is re-opened on demand after errors.
While the frontend is unreachable, frames are dropped until the reconnect
delay has passed so the event queue keeps draining.
"""

import asyncio
import json
import time
from typing import Any, Optional

import websockets
from websockets.exceptions import WebSocketException

from kiosk_client.configs import WS_URL
from kiosk_client.loggers import logger


class FrontendBridge:
    """
    Persistent WebSocket connection to the kiosk frontend.

    Attributes:
        ws_url: WebSocket URL of the frontend.
        open_timeout_s: Handshake timeout for a new connection.
        reconnect_delay_s: Quiet period after a failure before reconnecting.
    """

    def __init__(
        self,
        ws_url: str = WS_URL,
        open_timeout_s: float = 3.0,
        reconnect_delay_s: float = 2.0,
    ) -> None:
        self.ws_url = ws_url
        self.open_timeout_s = open_timeout_s
        self.reconnect_delay_s = reconnect_delay_s
        self._ws: Optional[Any] = None
        self._retry_at = 0.0

    @property
    def is_connected(self) -> bool:
        return self._ws is not None

    async def _connection(self) -> Any:
        if self._ws is None:
            self._ws = await websockets.connect(self.ws_url, open_timeout=self.open_timeout_s)
            logger.info(f"Connected to frontend at {self.ws_url}")
        return self._ws

    async def send(self, event: str, data: Optional[dict[str, Any]] = None) -> bool:
        """
        Send an event to the frontend.

        Args:
            event: Event name.
            data: Optional event payload.

        Returns:
            True if the frame was sent, False if it was dropped.

        Example:
            await bridge.send("status", {"text": "Warten auf Zahlung...", "level": "warning"})
        """
        if self._ws is None and time.monotonic() < self._retry_at:
            logger.debug(f"Frontend unavailable, dropping {event}")
            return False

        message = json.dumps({"event": event, "data": data}, default=str)
        try:
            ws = await self._connection()
            await ws.send(message)
        except (WebSocketException, OSError, asyncio.TimeoutError) as e:
            logger.warning(f"Frontend send failed for {event}: {e}")
            self._retry_at = time.monotonic() + self.reconnect_delay_s
            await self.close()
            return False
        logger.debug(f"Frontend event sent: {event}")
        return True

    async def forward(self, event: dict[str, Any]) -> None:
        """EventConsumer handler: forward a display event as-is."""
        payload = {k: v for k, v in event.items() if k != "type"}
        event_type = event.get("type")
        name = getattr(event_type, "value", event_type)
        await self.send(str(name), payload)

    async def close(self) -> None:
        """Close the connection if open."""
        ws, self._ws = self._ws, None
        if ws is None:
            return
        try:
            await ws.close()
        except (WebSocketException, OSError) as e:
            logger.debug(f"Error closing frontend connection: {e}")
