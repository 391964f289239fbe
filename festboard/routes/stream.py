"""
Live Stream Router

One long-lived text/event-stream connection per display.
"""
import logging

from fastapi import APIRouter, Depends
from fastapi.responses import StreamingResponse
from starlette.types import Receive, Scope, Send

from festboard.config.settings import settings
from festboard.realtime.fanout_bus import FanoutBus, get_fanout_bus
from festboard.realtime.sse import event_stream

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api", tags=["stream"])

STREAM_HEADERS = {
    "Cache-Control": "no-cache, no-transform",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",
}


class EventStreamResponse(StreamingResponse):
    """StreamingResponse that always closes its frame generator on exit."""

    media_type = "text/event-stream"

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        try:
            await super().__call__(scope, receive, send)
        finally:
            # A failed send leaves the generator suspended mid-stream
            await self.body_iterator.aclose()


@router.get("/stream")
async def stream(bus: FanoutBus = Depends(get_fanout_bus)):
    """
    Subscribe to `result`, `result_deleted` and `finalize` events.

    The first frame is a `ping`; a `keepalive` frame follows every quiet
    interval. Disconnecting releases the subscription.
    """
    return EventStreamResponse(
        event_stream(bus, settings.STREAM_KEEPALIVE_SECONDS),
        headers=STREAM_HEADERS,
    )
