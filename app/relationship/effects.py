"""
Side-effect collaborators: notification delivery and friend counters.
"""

import asyncio
from abc import ABC, abstractmethod
from collections import defaultdict
from typing import Any, Dict, List, Tuple

from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.core.logging import get_logger
from app.infra.queue import JobQueue
from app.models.user import User

logger = get_logger(__name__)

DELIVER_NOTIFICATION_JOB = "app.worker.notifications.deliver_notification"


class Notifier(ABC):
    @abstractmethod
    async def notify(self, recipient_id: str, event_type: str, payload: Dict[str, Any]) -> None:
        """Fire-and-forget, at-least-once"""

    async def close(self) -> None:
        """Release the delivery channel"""


class FriendCounter(ABC):
    @abstractmethod
    async def increment_friend_count(self, user_id: str, delta: int) -> None:
        """Atomic delta on the user's friend_count"""


class QueueNotifier(Notifier):
    """Hands notifications to the RQ worker"""

    def __init__(self, queue: JobQueue):
        self.queue = queue

    async def notify(self, recipient_id: str, event_type: str, payload: Dict[str, Any]) -> None:
        await asyncio.to_thread(
            self.queue.enqueue,
            DELIVER_NOTIFICATION_JOB,
            args=(recipient_id, event_type, payload),
        )

    async def close(self) -> None:
        await asyncio.to_thread(self.queue.redis.close)


class InMemoryNotifier(Notifier):
    def __init__(self):
        self.sent: List[Tuple[str, str, Dict[str, Any]]] = []

    async def notify(self, recipient_id: str, event_type: str, payload: Dict[str, Any]) -> None:
        self.sent.append((recipient_id, event_type, dict(payload)))


class SqlFriendCounter(FriendCounter):
    """Server-side increment, never read-modify-write"""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory

    async def increment_friend_count(self, user_id: str, delta: int) -> None:
        async with self.session_factory() as session:
            async with session.begin():
                result = await session.execute(
                    update(User)
                    .where(User.id == user_id)
                    .values(friend_count=User.friend_count + delta)
                )
                updated = result.rowcount
        if updated == 0:
            logger.warning("counter.user_missing", user_id=user_id, delta=delta)


class InMemoryFriendCounter(FriendCounter):
    def __init__(self):
        self.counts: Dict[str, int] = defaultdict(int)

    async def increment_friend_count(self, user_id: str, delta: int) -> None:
        self.counts[user_id] += delta
