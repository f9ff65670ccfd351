"""
In-process live change feed for bookmark mutations.

Services record a ChangeEvent on the database session while they work. The
events are held in `session.info` and only handed to the broker from the
session's after_commit hook, so subscribers never observe a change that was
later rolled back. Each event is delivered only to subscribers of the
bookmark's owner.

The broker lives in the API process; running several API workers would need
an external pub/sub transport in its place.
"""
import asyncio
import logging
from collections import defaultdict
from collections.abc import AsyncGenerator, AsyncIterator, Awaitable, Callable
from contextlib import asynccontextmanager

from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import Session

from schemas.change import ChangeEvent

logger = logging.getLogger(__name__)

PENDING_CHANGES_KEY = "pending_changes"
HEARTBEAT_SECONDS = 15.0


class ChangeFeed:
    """Fan-out broker delivering change events to per-owner subscriber queues."""

    def __init__(self, max_queue_size: int = 100) -> None:
        self._max_queue_size = max_queue_size
        self._subscribers: dict[int, set[asyncio.Queue[ChangeEvent]]] = defaultdict(set)

    @asynccontextmanager
    async def subscribe(self, user_id: int) -> AsyncIterator[asyncio.Queue[ChangeEvent]]:
        """Register a queue for the owner's events; unregistered on exit."""
        queue: asyncio.Queue[ChangeEvent] = asyncio.Queue(maxsize=self._max_queue_size)
        self._subscribers[user_id].add(queue)
        logger.debug("Change feed subscriber added for user %s", user_id)
        try:
            yield queue
        finally:
            subscribers = self._subscribers.get(user_id)
            if subscribers is not None:
                subscribers.discard(queue)
                if not subscribers:
                    del self._subscribers[user_id]
            logger.debug("Change feed subscriber removed for user %s", user_id)

    def publish(self, user_id: int, change: ChangeEvent) -> int:
        """
        Deliver an event to every subscriber of the owner.

        Returns the number of queues the event was delivered to. A subscriber
        whose queue is full misses the event rather than blocking the writer.
        """
        delivered = 0
        for queue in list(self._subscribers.get(user_id, ())):
            try:
                queue.put_nowait(change)
                delivered += 1
            except asyncio.QueueFull:
                logger.warning(
                    "Dropping %s event for bookmark %s: subscriber queue full",
                    change.event_type,
                    change.record_id,
                )
        return delivered

    def subscriber_count(self, user_id: int) -> int:
        """Number of live subscriptions for the owner."""
        return len(self._subscribers.get(user_id, ()))


_change_feed = ChangeFeed()


def get_change_feed() -> ChangeFeed:
    """Get the process-wide change feed (FastAPI dependency)."""
    return _change_feed


def set_change_feed(feed: ChangeFeed) -> None:
    """Replace the process-wide change feed (used at startup and in tests)."""
    global _change_feed  # noqa: PLW0603
    _change_feed = feed


def record_change(db: AsyncSession, user_id: int, change: ChangeEvent) -> None:
    """Queue a change for publication once the session's transaction commits."""
    db.info.setdefault(PENDING_CHANGES_KEY, []).append((user_id, change))


@event.listens_for(Session, "after_commit")
def _publish_pending_changes(session: Session) -> None:
    pending = session.info.pop(PENDING_CHANGES_KEY, None)
    if not pending:
        return
    feed = get_change_feed()
    for user_id, change in pending:
        feed.publish(user_id, change)


@event.listens_for(Session, "after_rollback")
def _discard_pending_changes(session: Session) -> None:
    session.info.pop(PENDING_CHANGES_KEY, None)


async def stream_changes(
    feed: ChangeFeed,
    user_id: int,
    is_disconnected: Callable[[], Awaitable[bool]],
    heartbeat_seconds: float = HEARTBEAT_SECONDS,
) -> AsyncGenerator[str]:
    """
    Yield the owner's change events as newline-delimited JSON.

    While idle, a blank line is sent every `heartbeat_seconds` so dead
    connections are noticed; the stream ends once the client disconnects.
    """
    async with feed.subscribe(user_id) as queue:
        while True:
            try:
                change = await asyncio.wait_for(queue.get(), timeout=heartbeat_seconds)
            except TimeoutError:
                if await is_disconnected():
                    break
                yield "\n"
                continue
            yield change.model_dump_json() + "\n"
            if await is_disconnected():
                break
