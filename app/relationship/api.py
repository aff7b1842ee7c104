"""
API router for relationship actions and lists.
"""

from typing import Optional

from fastapi import APIRouter, Path, Query

from app.core.config import settings
from app.core.deps import RelationshipServiceDep
from app.core.token import CurrentUserDep
from app.relationship.schemas import (
    RelationshipActionResponse,
    RelationshipPageResponse,
    RelationshipStatusResponse,
)
from app.relationship.types import Action

router = APIRouter(prefix="/relationships", tags=["relationships"])

CursorQuery = Query(None, description="Opaque cursor from a previous page")
LimitQuery = Query(None, ge=1, le=settings.page_size_max, description="Page size")


# ============ Lists ============

@router.get("/friends", response_model=RelationshipPageResponse)
async def list_friends(
    current_user_id: CurrentUserDep,
    service: RelationshipServiceDep,
    cursor: Optional[str] = CursorQuery,
    limit: Optional[int] = LimitQuery,
):
    page = await service.list_friends(current_user_id, cursor, limit)
    return RelationshipPageResponse.from_page(page)


@router.get("/pending/sent", response_model=RelationshipPageResponse)
async def list_pending_sent(
    current_user_id: CurrentUserDep,
    service: RelationshipServiceDep,
    cursor: Optional[str] = CursorQuery,
    limit: Optional[int] = LimitQuery,
):
    page = await service.list_pending_sent(current_user_id, cursor, limit)
    return RelationshipPageResponse.from_page(page)


@router.get("/pending/received", response_model=RelationshipPageResponse)
async def list_pending_received(
    current_user_id: CurrentUserDep,
    service: RelationshipServiceDep,
    cursor: Optional[str] = CursorQuery,
    limit: Optional[int] = LimitQuery,
):
    page = await service.list_pending_received(current_user_id, cursor, limit)
    return RelationshipPageResponse.from_page(page)


@router.get("/blocked", response_model=RelationshipPageResponse)
async def list_blocked(
    current_user_id: CurrentUserDep,
    service: RelationshipServiceDep,
    cursor: Optional[str] = CursorQuery,
    limit: Optional[int] = LimitQuery,
):
    page = await service.list_blocked(current_user_id, cursor, limit)
    return RelationshipPageResponse.from_page(page)


# ============ Single relationship ============

@router.get("/users/{other_id}", response_model=RelationshipStatusResponse)
async def get_relationship_status(
    current_user_id: CurrentUserDep,
    service: RelationshipServiceDep,
    other_id: str = Path(..., description="The other user's ID"),
):
    label = await service.status(current_user_id, other_id)
    return RelationshipStatusResponse(user_id=other_id, label=label)


@router.post("/users/{other_id}/{action}", response_model=RelationshipActionResponse)
async def perform_relationship_action(
    current_user_id: CurrentUserDep,
    service: RelationshipServiceDep,
    other_id: str = Path(..., description="The other user's ID"),
    action: Action = Path(..., description="send, accept, reject, cancel, remove, block or unblock"),
):
    """
    Apply one action to the relationship with `other_id`.
    Rejections return a stable error code plus the caller's current label.
    """
    label = await service.perform(current_user_id, other_id, action)
    return RelationshipActionResponse(user_id=other_id, action=action, label=label)
