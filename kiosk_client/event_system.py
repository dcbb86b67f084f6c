"""
Event system for the kiosk client.

This module provides a publish-subscribe event system carrying display
updates (status badge, QR payload, overlay, diagnostics, tones) from the
domain components to whatever renders them.
"""

import asyncio
from enum import Enum
from typing import Any, Callable, Union

from kiosk_client.loggers import logger


class EventType(str, Enum):
    """
    Enumeration of display event types.

    The values double as event names on the frontend bridge.
    """

    STATUS = "status"
    ERROR = "error"
    PAYMENT_ID = "payment_id"
    QR = "qr"
    SUCCESS_BANNER = "success_banner"
    EXPIRY = "expiry"
    DIAGNOSTICS = "diagnostics"
    OVERLAY = "overlay"
    PLAY_TONES = "play_tones"


class EventPublisher:
    """
    Publisher for sending events to the event queue.

    Attributes:
        event_queue: The asyncio queue to publish events to.
    """

    def __init__(self, event_queue: asyncio.Queue) -> None:
        """
        Initialize the event publisher.

        Args:
            event_queue: The asyncio queue for event distribution.
        """
        self.event_queue = event_queue

    def publish_nowait(self, event_type: Union[EventType, str], **data: Any) -> None:
        """
        Publish an event without suspending.

        Used from synchronous call sites; the queue is unbounded.
        """
        self.event_queue.put_nowait({"type": event_type, **data})


class EventConsumer:
    """
    Consumer for processing events from the event queue.

    Handles event dispatch to registered handlers based on event type.

    Attributes:
        event_queue: The asyncio queue to consume events from.
        handlers: Mapping of event types to their handler functions.
        is_consuming: Flag indicating if the consumer is active.
    """

    def __init__(self, event_queue: asyncio.Queue) -> None:
        self.event_queue = event_queue
        self.handlers: dict[Union[EventType, str], list[Callable]] = {}
        self.is_consuming = False
        self._consume_task: asyncio.Task | None = None

    def register_handler(
        self,
        event_type: Union[EventType, str],
        handler: Callable,
    ) -> None:
        """
        Register a handler for an event type.

        Args:
            event_type: The event type to handle.
            handler: The handler function (sync or async).
        """
        self.handlers.setdefault(event_type, []).append(handler)

    async def process_event(self, event: dict[str, Any]) -> None:
        """
        Process a single event by calling all registered handlers in order.

        Handlers run sequentially so the frontend sees events in the order
        they were published.

        Args:
            event: The event dictionary containing type and data.
        """
        for handler in self.handlers.get(event.get("type"), []):
            try:
                result = handler(event)
                if asyncio.iscoroutine(result):
                    await result
            except Exception as e:
                logger.error(f"Event handler {handler!r} failed for {event.get('type')}: {e}")

    async def _consume_loop(self) -> None:
        while self.is_consuming:
            try:
                event = await asyncio.wait_for(self.event_queue.get(), timeout=0.5)
            except asyncio.TimeoutError:
                continue
            await self.process_event(event)
            self.event_queue.task_done()

    async def start_consuming(self) -> None:
        """Start the event consumption loop."""
        if self.is_consuming:
            return

        self.is_consuming = True
        self._consume_task = asyncio.create_task(self._consume_loop())

    async def stop_consuming(self) -> None:
        """Stop the event consumption loop and cancel the consumption task."""
        self.is_consuming = False

        if self._consume_task:
            self._consume_task.cancel()
            try:
                await self._consume_task
            except asyncio.CancelledError:
                pass
            self._consume_task = None
