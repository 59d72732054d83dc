"""Event stream and snapshot routes.

- GET /metadata: Server-Sent Events stream of published events
- GET /active: current talkgroup sessions
- GET /status: decoder supervisor status
"""

import asyncio
import hmac
import json
from typing import Any, AsyncIterator, Awaitable, Callable, Optional

from fastapi import APIRouter, HTTPException, Request
from fastapi.responses import StreamingResponse

from ..broadcaster import END_OF_STREAM, Broadcaster, Subscription
from ..config import SSE_KEEPALIVE_INTERVAL
from ..logging_config import get_logger

logger = get_logger(__name__, namespace='api')

router = APIRouter(tags=["metadata"])

SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",
}


def token_matches(supplied: Optional[str], expected: Optional[str]) -> bool:
    """Check a request token against the configured one.

    No configured token means the stream is open.
    """
    if not expected:
        return True
    if supplied is None:
        return False
    return hmac.compare_digest(supplied.encode(), expected.encode())


def format_sse(data: Any) -> str:
    """Encode one payload as a Server-Sent Events data frame."""
    return f"data: {json.dumps(data)}\n\n"


async def event_stream(
    subscription: Subscription,
    broadcaster: Broadcaster,
    is_disconnected: Optional[Callable[[], Awaitable[bool]]] = None,
    keepalive: float = SSE_KEEPALIVE_INTERVAL,
) -> AsyncIterator[str]:
    """Yield SSE frames for a subscription until it closes or the client leaves."""
    try:
        while True:
            if is_disconnected is not None and await is_disconnected():
                break
            try:
                item = await subscription.get(timeout=keepalive)
            except asyncio.TimeoutError:
                yield ": keep-alive\n\n"
                continue
            if item is END_OF_STREAM:
                break
            yield format_sse(item)
    finally:
        broadcaster.unsubscribe(subscription)


@router.get("/metadata")
async def stream_metadata(request: Request, token: Optional[str] = None):
    """Subscribe to live decoder events.

    Args:
        token: Shared secret, required when the hub is configured with one

    Returns:
        text/event-stream response, one JSON event per frame
    """
    config = request.app.state.config
    if not token_matches(token, config.auth_token):
        logger.warning(f"Rejected /metadata request from {request.client.host if request.client else 'unknown'}")
        raise HTTPException(status_code=401, detail="Unauthorized")

    broadcaster: Broadcaster = request.app.state.pipeline.broadcaster
    subscription = broadcaster.subscribe()

    return StreamingResponse(
        event_stream(subscription, broadcaster, request.is_disconnected),
        media_type="text/event-stream",
        headers=SSE_HEADERS,
    )


@router.get("/active")
def get_active(request: Request):
    """Get all known talkgroup sessions as [talkgroup, session] pairs."""
    return request.app.state.pipeline.tracker.snapshot()


@router.get("/status")
def get_status(request: Request):
    """Get decoder supervisor and pipeline status."""
    pipeline = request.app.state.pipeline
    supervisor = request.app.state.supervisor
    return {
        'decoder': supervisor.status() if supervisor is not None else None,
        'subscribers': pipeline.broadcaster.subscriber_count,
        'rules': len(pipeline.parser.rules),
        'talkgroups': len(pipeline.tracker),
        'active_talkgroups': pipeline.tracker.active_count,
        'lines_seen': pipeline.lines_seen,
        'events_published': pipeline.events_published,
    }
