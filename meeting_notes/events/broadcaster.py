"""
In-process publish/subscribe for session lifecycle events.
"""

import asyncio
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Set

from meeting_notes.core.logging import get_logger
from meeting_notes.domain.models import utcnow

logger = get_logger("events")

GLOBAL_CHANNEL = "*"


class EventKind(str, Enum):
    SESSION_UPDATED = "session_updated"
    SESSION_PROCESSED = "session_processed"
    SESSION_ENDED = "session_ended"


@dataclass(frozen=True)
class SessionEvent:
    kind: EventKind
    session_id: str
    payload: Dict[str, Any] = field(default_factory=dict)
    timestamp: datetime = field(default_factory=utcnow)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind.value,
            "session_id": self.session_id,
            "payload": self.payload,
            "timestamp": self.timestamp.isoformat(),
        }


class Subscription:
    """
    One subscriber's bounded queue.

    Iterate with ``async for``; ``get(timeout)`` returns None when nothing
    arrived in time so transports can send keepalives.
    """

    def __init__(self, broadcaster: "EventBroadcaster", channel: str, queue_size: int):
        self.channel = channel
        self._broadcaster = broadcaster
        # None in the queue marks the end of the stream
        self._queue: "asyncio.Queue[Optional[SessionEvent]]" = asyncio.Queue(maxsize=queue_size)
        self.dropped = 0
        self.closed = False

    def offer(self, event: SessionEvent) -> None:
        """Enqueue without blocking; the oldest event is dropped when full."""
        if self.closed:
            return
        if self._queue.full():
            self._queue.get_nowait()
            self.dropped += 1
        self._queue.put_nowait(event)

    async def get(self, timeout: Optional[float] = None) -> Optional[SessionEvent]:
        """Next event; None on timeout or once the subscription is closed."""
        if self.closed and self._queue.empty():
            return None
        if timeout is None:
            return await self._queue.get()
        try:
            return await asyncio.wait_for(self._queue.get(), timeout)
        except asyncio.TimeoutError:
            return None

    def pending(self) -> int:
        return self._queue.qsize()

    def drain(self) -> List[SessionEvent]:
        """Everything queued right now, without waiting."""
        events = []
        while not self._queue.empty():
            event = self._queue.get_nowait()
            if event is not None:
                events.append(event)
        return events

    def close(self) -> None:
        self._broadcaster.unsubscribe(self)

    def mark_closed(self) -> None:
        """Stop accepting events and wake any reader blocked on the queue."""
        if self.closed:
            return
        self.closed = True
        # a full queue has no blocked reader; it stops once the queue drains
        if not self._queue.full():
            self._queue.put_nowait(None)

    def __aiter__(self) -> "Subscription":
        return self

    async def __anext__(self) -> SessionEvent:
        if self.closed and self._queue.empty():
            raise StopAsyncIteration
        event = await self._queue.get()
        if event is None:
            raise StopAsyncIteration
        return event

    def __enter__(self) -> "Subscription":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()


class EventBroadcaster:
    """
    Fans events out to per-session channels and a global channel.

    ``publish`` never awaits, so a slow or gone subscriber cannot hold up the
    transition that produced the event. Per subscriber, events arrive in
    publish order.
    """

    def __init__(self, queue_size: int = 100):
        self._queue_size = queue_size
        self._channels: Dict[str, Set[Subscription]] = {}

    def subscribe(self, session_id: Optional[str] = None) -> Subscription:
        """Subscribe to one session, or to every session when ``session_id`` is None."""
        channel = session_id or GLOBAL_CHANNEL
        subscription = Subscription(self, channel, self._queue_size)
        self._channels.setdefault(channel, set()).add(subscription)
        logger.debug(f"Subscriber added to channel {channel}")
        return subscription

    def unsubscribe(self, subscription: Subscription) -> None:
        subscription.mark_closed()
        subscribers = self._channels.get(subscription.channel)
        if not subscribers:
            return
        subscribers.discard(subscription)
        if not subscribers:
            del self._channels[subscription.channel]
        logger.debug(f"Subscriber removed from channel {subscription.channel}")

    def publish(self, session_id: str, kind: EventKind, payload: Optional[Dict[str, Any]] = None) -> SessionEvent:
        event = SessionEvent(kind=EventKind(kind), session_id=session_id, payload=payload or {})
        delivered = 0
        for channel in (session_id, GLOBAL_CHANNEL):
            for subscription in list(self._channels.get(channel, ())):
                subscription.offer(event)
                delivered += 1
        logger.debug(f"Published {event.kind.value} for session {session_id} to {delivered} subscriber(s)")
        return event

    def subscriber_count(self, session_id: Optional[str] = None) -> int:
        return len(self._channels.get(session_id or GLOBAL_CHANNEL, ()))
