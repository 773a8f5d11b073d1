"""Event Stream - Server-Sent Events bridge from the EventBus to a browser.

Invariants:
    - Members receive user:<id> + broadcast; administrators also receive admin
    - The subscription is removed when the client disconnects
    - A keepalive comment is sent when no event arrives within sse_keepalive_seconds
"""

import asyncio
import json
import logging

from fastapi import APIRouter, Depends
from fastapi.responses import StreamingResponse

from wealthlink.api.dependencies import stream_user
from wealthlink.config import get_settings
from wealthlink.core.domain_types import ADMIN_CHANNEL, BROADCAST_CHANNEL, user_channel
from wealthlink.core.records import UserRecord
from wealthlink.infrastructure.event_bus import EventBus, get_event_bus

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/events", tags=["events"])

# Prevent proxy/browser buffering of streamed events
_SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "X-Accel-Buffering": "no",
    "Connection": "keep-alive",
}


def _sse_line(event: dict) -> str:
    """Format a bus event as a named SSE message."""
    data = json.dumps(event["data"], ensure_ascii=False)
    return f"event: {event['event']}\ndata: {data}\n\n"


def channels_for(user: UserRecord) -> tuple[str, ...]:
    channels = (user_channel(user.id), BROADCAST_CHANNEL)
    return channels + (ADMIN_CHANNEL,) if user.is_admin else channels


@router.get("")
async def stream_events(
    user: UserRecord = Depends(stream_user),
    bus: EventBus = Depends(get_event_bus),
):
    keepalive = get_settings().sse_keepalive_seconds
    queue = bus.subscribe(*channels_for(user))

    async def event_generator():
        try:
            yield ": connected\n\n"
            while True:
                try:
                    event = await asyncio.wait_for(queue.get(), timeout=keepalive)
                except asyncio.TimeoutError:
                    yield ": keepalive\n\n"
                    continue
                yield _sse_line(event)
        except asyncio.CancelledError:
            logger.info("Client disconnected from event stream", extra={"user_id": user.id})
            raise
        finally:
            bus.unsubscribe(queue)

    return StreamingResponse(
        event_generator(),
        media_type="text/event-stream",
        headers=_SSE_HEADERS,
    )
