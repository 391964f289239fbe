"""
In-Process Fan-out Bus

Publish/subscribe broadcaster for the live display stream.

Guarantees:
- Deterministic message serialization (sort_keys=True), done once per broadcast
- Every registered subscriber receives every event type; no filtering
- A failed write to one subscriber never affects the others or the publisher
- Single process, in memory: the bus is not shared between workers
"""
import asyncio
import itertools
import logging
from typing import Any, Dict, List, Optional

from festboard.config.settings import settings
from festboard.realtime.sse import PING_FRAME, encode_event

logger = logging.getLogger(__name__)


class TransportError(Exception):
    """Raised when a frame cannot be handed to a subscriber channel."""
    pass


class SubscriberHandle:
    """
    Registration token for one connected display.

    Owns the subscriber's bounded output queue. `release()` removes the
    subscriber from the bus and is safe to call any number of times.
    """

    def __init__(self, bus: "FanoutBus", subscriber_id: int, max_queue_size: int):
        self._bus = bus
        self.id = subscriber_id
        self._queue: asyncio.Queue = asyncio.Queue(maxsize=max_queue_size)
        self._released = False

    @property
    def released(self) -> bool:
        return self._released

    @property
    def pending(self) -> int:
        return self._queue.qsize()

    def deliver(self, frame: str) -> None:
        """
        Queue a frame for this subscriber without blocking.

        Raises:
            TransportError: subscriber already released or too far behind
        """
        if self._released:
            raise TransportError(f"subscriber {self.id} already released")
        try:
            self._queue.put_nowait(frame)
        except asyncio.QueueFull:
            raise TransportError(f"subscriber {self.id} queue full")

    async def next_frame(self, timeout: Optional[float] = None) -> Optional[str]:
        """
        Wait for the next queued frame.

        Returns None when nothing arrived within `timeout` or when the handle
        has been released.
        """
        if self._released and self._queue.empty():
            return None
        try:
            if timeout is None:
                return await self._queue.get()
            return await asyncio.wait_for(self._queue.get(), timeout)
        except asyncio.TimeoutError:
            return None

    def drain(self) -> List[str]:
        """Return every frame queued so far without waiting."""
        frames = []
        while not self._queue.empty():
            frame = self._queue.get_nowait()
            if frame is not None:
                frames.append(frame)
        return frames

    def release(self) -> None:
        if self._released:
            return
        self._released = True
        self._bus._forget(self.id)
        # Wake a stream blocked in next_frame()
        try:
            self._queue.put_nowait(None)
        except asyncio.QueueFull:
            pass


class FanoutBus:
    """
    Registry of connected displays keyed by subscriber id.

    register/unregister and broadcast never await, so within one event loop
    a broadcast always iterates a consistent snapshot of the registry.
    """

    def __init__(self, max_queue_size: int = settings.SUBSCRIBER_QUEUE_SIZE):
        self.max_queue_size = max_queue_size
        self._subscribers: Dict[int, SubscriberHandle] = {}
        self._ids = itertools.count(1)

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    def register(self) -> SubscriberHandle:
        """
        Register a new subscriber and greet it.

        The greeting `ping` frame lets a display tell "stream live" from
        "stalled" before any event has been published.
        """
        handle = SubscriberHandle(self, next(self._ids), self.max_queue_size)
        self._subscribers[handle.id] = handle
        handle.deliver(PING_FRAME)
        logger.info(f"Subscriber {handle.id} registered ({self.subscriber_count} connected)")
        return handle

    def unregister(self, handle: SubscriberHandle) -> None:
        handle.release()

    def _forget(self, subscriber_id: int) -> None:
        if self._subscribers.pop(subscriber_id, None) is not None:
            logger.info(f"Subscriber {subscriber_id} released ({self.subscriber_count} connected)")

    def broadcast(self, event_type: str, payload: Dict[str, Any]) -> int:
        """
        Send one event to every registered subscriber.

        Args:
            event_type: `result`, `result_deleted` or `finalize`
            payload: JSON-serializable event body
        Returns:
            Number of subscribers that accepted the frame
        """
        frame = encode_event(event_type, payload)
        delivered = 0
        # Copy to avoid modification during iteration
        for handle in list(self._subscribers.values()):
            try:
                handle.deliver(frame)
                delivered += 1
            except TransportError as e:
                # The subscriber's own disconnect path unregisters it
                logger.debug(f"Dropped {event_type} frame: {e}")
        logger.info(f"Broadcast {event_type} to {delivered}/{self.subscriber_count} subscribers")
        return delivered

    def close(self) -> None:
        """Release every subscriber (used on shutdown)."""
        for handle in list(self._subscribers.values()):
            handle.release()


# Global bus instance for the process
_fanout_bus: Optional[FanoutBus] = None


def get_fanout_bus() -> FanoutBus:
    """Get the process-wide fan-out bus, creating it on first use."""
    global _fanout_bus
    if _fanout_bus is None:
        _fanout_bus = FanoutBus()
    return _fanout_bus


def set_fanout_bus(bus: Optional[FanoutBus]) -> None:
    """Replace the process-wide fan-out bus."""
    global _fanout_bus
    _fanout_bus = bus
