"""
Relationship errors

Every error carries the stable reason code and the actor's current viewer
label, so clients can reconcile without a second read.
"""

from typing import Any, Dict, Optional

from fastapi import status

from app.core.errors import AppError
from app.relationship.types import RejectReason, ViewerLabel


class RelationshipError(AppError):
    """Base class for errors raised by relationship actions"""

    reason: str = "relationship_error"
    default_message: str = "Relationship action failed"
    http_status: int = status.HTTP_409_CONFLICT

    def __init__(
        self,
        label: ViewerLabel = ViewerLabel.NONE,
        message: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        self.label = ViewerLabel(label)
        merged = {"reason": self.reason, "label": self.label.value}
        merged.update(details or {})
        super().__init__(
            message=message or self.default_message,
            status_code=self.http_status,
            code=self.reason.upper(),
            details=merged,
        )


class SelfActionError(RelationshipError):
    reason = RejectReason.SELF_ACTION.value
    default_message = "You cannot act on a relationship with yourself"
    http_status = status.HTTP_400_BAD_REQUEST


class InvalidTransitionError(RelationshipError):
    reason = RejectReason.INVALID_TRANSITION.value
    default_message = "This action is not valid for the current relationship"


class AlreadyFriendsError(RelationshipError):
    reason = RejectReason.ALREADY_FRIENDS.value
    default_message = "You are already friends with this user"


class AlreadyPendingError(RelationshipError):
    reason = RejectReason.ALREADY_PENDING.value
    default_message = "A friend request is already pending between you"


class RelationshipNotFoundError(RelationshipError):
    reason = RejectReason.NOT_FOUND.value
    default_message = "No matching relationship found"
    http_status = status.HTTP_404_NOT_FOUND


class BlockedError(RelationshipError):
    reason = RejectReason.BLOCKED.value
    default_message = "This user has blocked you"
    http_status = status.HTTP_403_FORBIDDEN


class ContentionError(RelationshipError):
    reason = "contention"
    default_message = "The relationship is changing too quickly, try again"


class StoreUnavailableError(RelationshipError):
    reason = "store_unavailable"
    default_message = "Relationship storage is unavailable"
    http_status = status.HTTP_503_SERVICE_UNAVAILABLE


class RelationshipTimeoutError(RelationshipError):
    reason = "timeout"
    default_message = "The relationship action timed out"
    http_status = status.HTTP_504_GATEWAY_TIMEOUT


class RateLimitedError(RelationshipError):
    reason = "rate_limited"
    default_message = "Too many friend requests, try again later"
    http_status = status.HTTP_429_TOO_MANY_REQUESTS


class InvalidUserIdError(RelationshipError):
    reason = "invalid_user_id"
    default_message = "User IDs must be 1-64 characters and must not contain '#'"
    http_status = status.HTTP_422_UNPROCESSABLE_ENTITY


class InvalidCursorError(RelationshipError):
    reason = "invalid_cursor"
    default_message = "Malformed pagination cursor"
    http_status = status.HTTP_422_UNPROCESSABLE_ENTITY


REJECTION_ERRORS = {
    RejectReason.SELF_ACTION: SelfActionError,
    RejectReason.INVALID_TRANSITION: InvalidTransitionError,
    RejectReason.ALREADY_FRIENDS: AlreadyFriendsError,
    RejectReason.ALREADY_PENDING: AlreadyPendingError,
    RejectReason.NOT_FOUND: RelationshipNotFoundError,
    RejectReason.BLOCKED: BlockedError,
}


def error_for(reason: RejectReason, label: ViewerLabel) -> RelationshipError:
    return REJECTION_ERRORS[reason](label)
