"""
Public relationship API consumed by the HTTP layer.

Every mutating call returns the actor's new viewer label or raises a typed
RelationshipError; list calls return pages of (user_id, label, since).
"""

from typing import Optional

from app.relationship.coordinator import TransitionCoordinator
from app.relationship.errors import RateLimitedError
from app.relationship.projector import QueryProjector
from app.relationship.rate_limit import FriendRequestRateLimiter
from app.relationship.types import Action, Page, ViewerLabel


class RelationshipService:
    def __init__(
        self,
        coordinator: TransitionCoordinator,
        projector: QueryProjector,
        rate_limiter: Optional[FriendRequestRateLimiter] = None,
    ):
        self.coordinator = coordinator
        self.projector = projector
        self.rate_limiter = rate_limiter

    async def perform(self, actor: str, other: str, action: Action) -> ViewerLabel:
        action = Action(action)
        if action is Action.SEND and self.rate_limiter is not None and actor != other:
            result = await self.rate_limiter.hit(actor)
            if not result.allowed:
                raise RateLimitedError(
                    await self.projector.status(actor, other),
                    details={"retry_after": result.retry_after, "limit": self.rate_limiter.limit},
                )
        return await self.coordinator.execute(actor, other, action)

    async def send(self, actor: str, other: str) -> ViewerLabel:
        return await self.perform(actor, other, Action.SEND)

    async def accept(self, actor: str, other: str) -> ViewerLabel:
        return await self.perform(actor, other, Action.ACCEPT)

    async def reject(self, actor: str, other: str) -> ViewerLabel:
        return await self.perform(actor, other, Action.REJECT)

    async def cancel(self, actor: str, other: str) -> ViewerLabel:
        return await self.perform(actor, other, Action.CANCEL)

    async def remove(self, actor: str, other: str) -> ViewerLabel:
        return await self.perform(actor, other, Action.REMOVE)

    async def block(self, actor: str, other: str) -> ViewerLabel:
        return await self.perform(actor, other, Action.BLOCK)

    async def unblock(self, actor: str, other: str) -> ViewerLabel:
        return await self.perform(actor, other, Action.UNBLOCK)

    async def status(self, actor: str, other: str) -> ViewerLabel:
        return await self.projector.status(actor, other)

    async def are_friends(self, first: str, second: str) -> bool:
        return await self.projector.status(first, second) is ViewerLabel.FRIENDS

    async def list_friends(self, viewer: str, cursor: Optional[str] = None, limit: Optional[int] = None) -> Page:
        return await self.projector.list_friends(viewer, cursor, limit)

    async def list_pending_sent(self, viewer: str, cursor: Optional[str] = None, limit: Optional[int] = None) -> Page:
        return await self.projector.list_pending_sent(viewer, cursor, limit)

    async def list_pending_received(
        self, viewer: str, cursor: Optional[str] = None, limit: Optional[int] = None
    ) -> Page:
        return await self.projector.list_pending_received(viewer, cursor, limit)

    async def list_blocked(self, viewer: str, cursor: Optional[str] = None, limit: Optional[int] = None) -> Page:
        return await self.projector.list_blocked(viewer, cursor, limit)
