"""
Session broadcaster - fans out team deltas to subscribed connections.

Publishing happens from request worker threads while the team lock is held,
so deltas of one team reach every subscriber in mutation order.
"""
import asyncio
from threading import Lock
from typing import Any, Protocol

from loguru import logger

from teamplanner.schemas import Notification


class Subscriber(Protocol):
    def deliver(self, message: dict[str, Any]) -> None:
        ...


class QueueSubscriber:
    """Hands messages to an asyncio queue owned by a connection's event loop."""

    def __init__(self, loop: asyncio.AbstractEventLoop):
        self.loop = loop
        self.queue: asyncio.Queue = asyncio.Queue()

    def deliver(self, message: dict[str, Any]) -> None:
        # Raises RuntimeError once the loop is closed
        self.loop.call_soon_threadsafe(self.queue.put_nowait, message)

    async def next_message(self) -> dict[str, Any]:
        return await self.queue.get()


class SessionBroadcaster:
    def __init__(self):
        self._lock = Lock()
        self._subscribers: dict[str, set[Subscriber]] = {}

    def subscribe(self, team_id: str, subscriber: Subscriber) -> None:
        with self._lock:
            self._subscribers.setdefault(team_id, set()).add(subscriber)
        logger.debug(f"Session subscribed to team {team_id}")

    def unsubscribe(self, team_id: str, subscriber: Subscriber) -> None:
        with self._lock:
            subscribers = self._subscribers.get(team_id)
            if subscribers is None:
                return
            subscribers.discard(subscriber)
            if not subscribers:
                del self._subscribers[team_id]
        logger.debug(f"Session unsubscribed from team {team_id}")

    def subscriber_count(self, team_id: str) -> int:
        with self._lock:
            return len(self._subscribers.get(team_id, ()))

    def publish(self, team_id: str, notification: Notification) -> int:
        """Deliver a notification to every current subscriber of a team."""
        with self._lock:
            subscribers = list(self._subscribers.get(team_id, ()))

        message = notification.to_message()
        delivered = 0
        for subscriber in subscribers:
            try:
                subscriber.deliver(message)
            except Exception as e:
                logger.warning(f"Dropping subscriber of team {team_id}: {e}")
                self.unsubscribe(team_id, subscriber)
                continue
            delivered += 1
        return delivered


broadcaster = SessionBroadcaster()
