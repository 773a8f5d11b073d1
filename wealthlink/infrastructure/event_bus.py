"""Event Bus - in-process publish/subscribe fanout over asyncio queues.

Invariants:
    - publish() is synchronous, never awaits and never raises into the caller
    - An event for a channel with no subscribers is dropped (no replay, no backlog)
    - A full subscriber queue drops that subscriber's copy with a warning;
      other subscribers still receive it
    - Every subscriber gets its own bounded queue (slow consumers cannot stall producers)

Design Decisions:
    - Transport-independent: SSE is one consumer of subscribe(); workflows only
      see the EventPublisher protocol (core/repository_protocols.py)
    - Singleton event_bus initialized on startup, like db_manager
"""

import asyncio
import logging
from typing import Any

logger = logging.getLogger(__name__)


class EventBus:
    """Channel -> set of subscriber queues."""

    def __init__(self, queue_size: int = 100):
        self._queue_size = queue_size
        self._subscribers: dict[str, set[asyncio.Queue]] = {}

    def subscribe(self, *channels: str) -> asyncio.Queue:
        """Register one queue on every given channel and return it."""
        queue: asyncio.Queue = asyncio.Queue(maxsize=self._queue_size)
        for channel in channels:
            self._subscribers.setdefault(channel, set()).add(queue)
        logger.debug(f"Subscribed to {channels}")
        return queue

    def unsubscribe(self, queue: asyncio.Queue) -> None:
        for channel in list(self._subscribers):
            queues = self._subscribers[channel]
            queues.discard(queue)
            if not queues:
                del self._subscribers[channel]

    def subscriber_count(self, channel: str) -> int:
        return len(self._subscribers.get(channel, ()))

    def publish(self, channel: str, event_name: str, payload: Any) -> None:
        queues = self._subscribers.get(channel)
        if not queues:
            logger.debug(
                "No subscribers, event dropped",
                extra={"channel": channel, "event_name": event_name},
            )
            return
        event = {"channel": channel, "event": event_name, "data": payload}
        for queue in list(queues):
            try:
                queue.put_nowait(event)
            except asyncio.QueueFull:
                logger.warning(
                    "Subscriber queue full, event dropped",
                    extra={"channel": channel, "event_name": event_name},
                )


# Singleton (initialized on startup)
event_bus: EventBus | None = None


def init_event_bus(queue_size: int = 100) -> EventBus:
    global event_bus
    event_bus = EventBus(queue_size)
    return event_bus


def get_event_bus() -> EventBus:
    """FastAPI dependency for the process-wide fanout."""
    if not event_bus:
        raise RuntimeError("Event bus not initialized")
    return event_bus
