"""
Dependency Injection

Builds the relationship engine from settings and exposes it to routes.
"""

from typing import Annotated

from fastapi import Depends, Request

from app.core.config import settings
from app.infra.db import AsyncSessionLocal
from app.infra.queue import JobQueue
from app.infra.redis import get_redis, get_sync_redis
from app.relationship.coordinator import TransitionCoordinator
from app.relationship.dispatcher import SideEffectDispatcher
from app.relationship.effects import (
    FriendCounter,
    InMemoryFriendCounter,
    InMemoryNotifier,
    Notifier,
    QueueNotifier,
    SqlFriendCounter,
)
from app.relationship.projector import QueryProjector
from app.relationship.rate_limit import FriendRequestRateLimiter
from app.relationship.service import RelationshipService
from app.relationship.sql_store import SqlEdgeStore
from app.relationship.store import EdgeStore, InMemoryEdgeStore


def build_relationship_service() -> RelationshipService:
    store: EdgeStore
    counter: FriendCounter
    notifier: Notifier

    if settings.use_memory_store:
        store = InMemoryEdgeStore()
        counter = InMemoryFriendCounter()
    else:
        store = SqlEdgeStore(AsyncSessionLocal)
        counter = SqlFriendCounter(AsyncSessionLocal)

    if settings.use_memory_notifications:
        notifier = InMemoryNotifier()
    else:
        queue = JobQueue(
            get_sync_redis(),
            settings.notification_queue_name,
            max_retries=settings.notification_max_retries,
            retry_intervals=settings.notification_retry_intervals,
        )
        notifier = QueueNotifier(queue)

    coordinator = TransitionCoordinator(
        store,
        SideEffectDispatcher(notifier, counter),
        max_attempts=settings.relationship_max_attempts,
        timeout=settings.request_timeout,
        auto_accept_mutual=settings.auto_accept_mutual_requests,
    )
    projector = QueryProjector(
        store,
        default_limit=settings.page_size_default,
        max_limit=settings.page_size_max,
    )

    rate_limiter = None
    if settings.rate_limit_enabled and settings.friend_request_daily_limit > 0:
        rate_limiter = FriendRequestRateLimiter(get_redis, settings.friend_request_daily_limit)

    return RelationshipService(coordinator, projector, rate_limiter)


def get_relationship_service(request: Request) -> RelationshipService:
    return request.app.state.relationship_service


RelationshipServiceDep = Annotated[RelationshipService, Depends(get_relationship_service)]
