"""
Appointment change feed.

Doctor dashboards subscribe with their user id and receive an event whenever
one of their appointments is inserted or updated. Publishing happens from sync
route handlers (threadpool), so events are handed to each subscriber's event
loop with call_soon_threadsafe. A full subscriber queue drops the event.
"""
import asyncio
import json
import logging
import threading
from dataclasses import dataclass, field

log = logging.getLogger(__name__)

DEFAULT_QUEUE_SIZE = 100


@dataclass(eq=False)
class Subscription:
    doctor_id: int
    loop: asyncio.AbstractEventLoop
    queue: asyncio.Queue = field(repr=False)
    dropped: int = 0


class AppointmentFeed:
    def __init__(self, queue_size: int = DEFAULT_QUEUE_SIZE):
        self.queue_size = queue_size
        self._subscribers: dict[int, list[Subscription]] = {}
        self._lock = threading.Lock()

    def subscribe(self, doctor_id: int) -> Subscription:
        """Must be called from the event loop that will consume the queue."""
        sub = Subscription(
            doctor_id=doctor_id,
            loop=asyncio.get_running_loop(),
            queue=asyncio.Queue(maxsize=self.queue_size),
        )
        with self._lock:
            self._subscribers.setdefault(doctor_id, []).append(sub)
        log.info("feed subscribe doctor_id=%s listeners=%s", doctor_id, self.listener_count(doctor_id))
        return sub

    def unsubscribe(self, sub: Subscription) -> None:
        with self._lock:
            subs = self._subscribers.get(sub.doctor_id, [])
            if sub in subs:
                subs.remove(sub)
            if not subs:
                self._subscribers.pop(sub.doctor_id, None)
        log.info("feed unsubscribe doctor_id=%s", sub.doctor_id)

    def listener_count(self, doctor_id: int) -> int:
        with self._lock:
            return len(self._subscribers.get(doctor_id, []))

    def publish(self, doctor_id: int, event: str, appointment_id: int, status: str) -> int:
        """Queues the change for every listener of ``doctor_id``; returns how many were notified."""
        payload = {"event": event, "appointment_id": appointment_id, "status": status, "doctor_id": doctor_id}
        with self._lock:
            subs = list(self._subscribers.get(doctor_id, []))
        delivered = 0
        for sub in subs:
            try:
                sub.loop.call_soon_threadsafe(self._offer, sub, payload)
                delivered += 1
            except RuntimeError:
                # loop already closed; the stream is gone
                self.unsubscribe(sub)
        return delivered

    @staticmethod
    def _offer(sub: Subscription, payload: dict) -> None:
        try:
            sub.queue.put_nowait(payload)
        except asyncio.QueueFull:
            sub.dropped += 1
            log.warning("feed queue full doctor_id=%s dropped=%s", sub.doctor_id, sub.dropped)


def format_sse(event: str, data: dict) -> str:
    return f"event: {event}\ndata: {json.dumps(data)}\n\n"


appointment_feed = AppointmentFeed()
