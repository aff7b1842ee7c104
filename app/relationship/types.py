"""
Core value types of the relationship engine.

A pair of users shares exactly one `RelationshipEdge`, addressed by a canonical
pair key. Edges are immutable; every transition produces a replacement with a
bumped version.
"""

from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple, Union

PAIR_KEY_SEPARATOR = "#"
USER_ID_MAX_LENGTH = 64


class EdgeState(str, Enum):
    NONE = "none"
    PENDING = "pending"
    FRIENDS = "friends"
    BLOCKED = "blocked"


class Action(str, Enum):
    SEND = "send"
    ACCEPT = "accept"
    REJECT = "reject"
    CANCEL = "cancel"
    REMOVE = "remove"
    BLOCK = "block"
    UNBLOCK = "unblock"


class ViewerLabel(str, Enum):
    NONE = "none"
    PENDING_SENT = "pending_sent"
    PENDING_RECEIVED = "pending_received"
    FRIENDS = "friends"
    BLOCKED = "blocked"
    BLOCKED_BY = "blocked_by"


class RejectReason(str, Enum):
    ALREADY_FRIENDS = "already_friends"
    ALREADY_PENDING = "already_pending"
    BLOCKED = "blocked"
    NOT_FOUND = "not_found"
    SELF_ACTION = "self_action"
    INVALID_TRANSITION = "invalid_transition"


class NotificationType(str, Enum):
    FRIEND_REQUEST = "friend_request"
    FRIEND_ACCEPTED = "friend_accepted"


def canonical_pair(first: str, second: str) -> Tuple[str, str]:
    """Order two user IDs the same way regardless of who is acting."""
    if first == second:
        raise ValueError("a relationship needs two distinct users")
    return (first, second) if first < second else (second, first)


def pair_key(first: str, second: str) -> str:
    user_a, user_b = canonical_pair(first, second)
    return f"{user_a}{PAIR_KEY_SEPARATOR}{user_b}"


def is_valid_user_id(user_id: Any) -> bool:
    return (
        isinstance(user_id, str)
        and 0 < len(user_id) <= USER_ID_MAX_LENGTH
        and PAIR_KEY_SEPARATOR not in user_id
    )


@dataclass(frozen=True)
class RelationshipEdge:
    """The single source of truth for one unordered user pair."""

    pair_key: str
    user_a: str
    user_b: str
    state: EdgeState
    requested_by: Optional[str] = None
    blocked_by: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    version: int = 0

    @classmethod
    def empty(cls, first: str, second: str) -> "RelationshipEdge":
        """An unsaved NONE edge, equivalent to a missing record."""
        user_a, user_b = canonical_pair(first, second)
        return cls(
            pair_key=pair_key(user_a, user_b),
            user_a=user_a,
            user_b=user_b,
            state=EdgeState.NONE,
        )

    def involves(self, user_id: str) -> bool:
        return user_id in (self.user_a, self.user_b)

    def other(self, user_id: str) -> str:
        if user_id == self.user_a:
            return self.user_b
        if user_id == self.user_b:
            return self.user_a
        raise ValueError(f"user {user_id!r} is not part of edge {self.pair_key!r}")

    def advance(self, apply: "Apply", now: datetime) -> "RelationshipEdge":
        """Build the successor edge for a committed decision."""
        return replace(
            self,
            state=apply.state,
            requested_by=apply.requested_by,
            blocked_by=apply.blocked_by,
            created_at=self.created_at or now,
            updated_at=now,
            version=self.version + 1,
        )


@dataclass(frozen=True)
class Notify:
    recipient_id: str
    event_type: NotificationType
    payload: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class FriendCountDelta:
    user_id: str
    delta: int


SideEffect = Union[Notify, FriendCountDelta]


@dataclass(frozen=True)
class Apply:
    state: EdgeState
    requested_by: Optional[str] = None
    blocked_by: Optional[str] = None
    side_effects: Tuple[SideEffect, ...] = ()


@dataclass(frozen=True)
class Reject:
    reason: RejectReason


Decision = Union[Apply, Reject]


@dataclass(frozen=True)
class RelationshipEntry:
    """One row of a listing, seen from the viewer's side."""

    user_id: str
    label: ViewerLabel
    since: Optional[datetime]


@dataclass(frozen=True)
class Page:
    items: List[Any]
    next_cursor: Optional[str] = None
