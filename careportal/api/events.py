"""Server-sent events for the doctor dashboard's live appointment list."""
import asyncio
import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import StreamingResponse

from careportal.api.deps import require_stream_doctor
from careportal.models import User
from careportal.services.feed import appointment_feed, format_sse

log = logging.getLogger(__name__)

router = APIRouter(prefix="/events", tags=["events"])

KEEPALIVE_SECONDS = 15.0


async def appointment_events(request: Request, doctor_id: int, keepalive: float = KEEPALIVE_SECONDS):
    """
    Yields SSE frames until the client goes away. The subscription lives only
    while the generator runs, so a stream that never starts registers nothing.
    """
    sub = appointment_feed.subscribe(doctor_id)
    try:
        yield format_sse("ready", {"doctor_id": doctor_id})
        while True:
            if await request.is_disconnected():
                break
            try:
                payload = await asyncio.wait_for(sub.queue.get(), timeout=keepalive)
            except asyncio.TimeoutError:
                yield ": keep-alive\n\n"
                continue
            yield format_sse("appointment", payload)
    finally:
        appointment_feed.unsubscribe(sub)


@router.get("/appointments")
async def appointments_stream(request: Request, user: User = Depends(require_stream_doctor)):
    log.info("appointment stream opened doctor_id=%s", user.id)
    return StreamingResponse(
        appointment_events(request, user.id or 0),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache", "X-Accel-Buffering": "no"},
    )
