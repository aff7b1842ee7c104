"""
Pydantic schemas for the relationship API.
"""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel

from app.relationship.types import Action, Page, ViewerLabel


class RelationshipStatusResponse(BaseModel):
    """The caller's view of one relationship"""
    user_id: str
    label: ViewerLabel


class RelationshipActionResponse(RelationshipStatusResponse):
    action: Action


class RelationshipEntryResponse(BaseModel):
    user_id: str
    label: ViewerLabel
    since: Optional[datetime] = None

    class Config:
        from_attributes = True


class RelationshipPageResponse(BaseModel):
    items: List[RelationshipEntryResponse]
    next_cursor: Optional[str] = None

    @classmethod
    def from_page(cls, page: Page) -> "RelationshipPageResponse":
        return cls(
            items=[RelationshipEntryResponse.model_validate(entry) for entry in page.items],
            next_cursor=page.next_cursor,
        )
