"""
Storefront — SSE stream of a client's notifications

Architecture:
  - Notifier publishes toasts and cart changes to Redis channel notifications:{client_id}
  - This endpoint subscribes and streams them to the browser EventSource
  - Warnings from background sheet deletes arrive here after their response is gone
"""
import asyncio
import json
import logging
from typing import AsyncGenerator

from fastapi import APIRouter, Depends, Request
from fastapi.responses import StreamingResponse

from app.api.deps import get_client_id
from app.core.config import get_settings
from app.core.redis_client import get_redis
from app.sync.notifications import channel_for

settings = get_settings()
logger = logging.getLogger(__name__)
router = APIRouter(prefix="/notifications", tags=["notifications"])


def format_event(message_data: str) -> str:
    try:
        payload = json.loads(message_data)
    except ValueError:
        payload = {"event": "message", "data": {"raw": message_data}}
    event = payload.get("event", "message") if isinstance(payload, dict) else "message"
    data = payload.get("data", payload) if isinstance(payload, dict) else payload
    return f"event: {event}\ndata: {json.dumps(data)}\n\n"


async def _sse_generator(client_id: str, request: Request) -> AsyncGenerator[str, None]:
    """Subscribe to Redis pub/sub and yield SSE events."""
    channel_name = channel_for(client_id)
    pubsub = get_redis().pubsub()
    await pubsub.subscribe(channel_name)

    try:
        yield f": connected as {client_id}\n\n"
        yield f"retry: {settings.SSE_RETRY_MILLISECONDS}\n\n"

        while True:
            if await request.is_disconnected():
                break

            message = await pubsub.get_message(ignore_subscribe_messages=True, timeout=1.0)
            if message and message["type"] == "message":
                yield format_event(message["data"])
            else:
                yield ": keepalive\n\n"
                await asyncio.sleep(settings.SSE_KEEPALIVE_INTERVAL_SECONDS)
    finally:
        await pubsub.unsubscribe(channel_name)
        await pubsub.aclose()
        logger.debug("SSE stream for %s closed", client_id)


@router.get("/stream")
async def stream_notifications(request: Request, client_id: str = Depends(get_client_id)):
    """
    SSE endpoint. The browser opens an EventSource here once per page load and
    receives `notification` and `cart_changed` events for its client id.
    """
    return StreamingResponse(
        _sse_generator(client_id, request),
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "X-Accel-Buffering": "no",  # Disable Nginx buffering
            "Connection": "keep-alive",
        },
    )
