"""
Query projector: per-viewer labels and list views.

Labels are computed at read time from the single shared edge and never
stored, so the two participants cannot disagree about the underlying state.
"""

import base64
import binascii
from typing import Optional

from app.relationship.errors import InvalidCursorError, InvalidUserIdError
from app.relationship.store import EdgeStore
from app.relationship.types import (
    EdgeState,
    Page,
    RelationshipEdge,
    RelationshipEntry,
    ViewerLabel,
    is_valid_user_id,
    pair_key,
)


def label_for(viewer: str, edge: Optional[RelationshipEdge]) -> ViewerLabel:
    if edge is None or edge.state is EdgeState.NONE:
        return ViewerLabel.NONE
    if edge.state is EdgeState.FRIENDS:
        return ViewerLabel.FRIENDS
    if edge.state is EdgeState.PENDING:
        return ViewerLabel.PENDING_SENT if edge.requested_by == viewer else ViewerLabel.PENDING_RECEIVED
    if edge.state is EdgeState.BLOCKED:
        return ViewerLabel.BLOCKED if edge.blocked_by == viewer else ViewerLabel.BLOCKED_BY
    return ViewerLabel.NONE


def encode_cursor(key: Optional[str]) -> Optional[str]:
    if key is None:
        return None
    return base64.urlsafe_b64encode(key.encode("utf-8")).decode("ascii")


def decode_cursor(cursor: Optional[str]) -> Optional[str]:
    if not cursor:
        return None
    try:
        key = base64.b64decode(cursor.encode("ascii"), altchars=b"-_", validate=True).decode("utf-8")
    except (binascii.Error, UnicodeError, ValueError) as e:
        raise InvalidCursorError() from e
    if not key:
        raise InvalidCursorError()
    return key


class QueryProjector:
    """
    Read-only list views. Pages are keyset-paginated on the pair key, so an edge
    that does not change between page fetches is returned exactly once.
    """

    def __init__(self, store: EdgeStore, default_limit: int = 20, max_limit: int = 100):
        self.store = store
        self.default_limit = default_limit
        self.max_limit = max_limit

    def _clamp(self, limit: Optional[int]) -> int:
        if limit is None:
            return self.default_limit
        return max(1, min(limit, self.max_limit))

    async def _list(
        self,
        viewer: str,
        state: EdgeState,
        initiated_by_viewer: Optional[bool],
        cursor: Optional[str],
        limit: Optional[int],
    ) -> Page:
        if not is_valid_user_id(viewer):
            raise InvalidUserIdError()

        page = await self.store.query_by_viewer_and_state(
            viewer,
            state,
            initiated_by_viewer=initiated_by_viewer,
            cursor=decode_cursor(cursor),
            limit=self._clamp(limit),
        )
        entries = [
            RelationshipEntry(
                user_id=edge.other(viewer),
                label=label_for(viewer, edge),
                since=edge.updated_at,
            )
            for edge in page.items
        ]
        return Page(items=entries, next_cursor=encode_cursor(page.next_cursor))

    async def status(self, viewer: str, other: str) -> ViewerLabel:
        """The viewer's label toward `other`; looking at yourself is always `none`"""
        if not is_valid_user_id(viewer) or not is_valid_user_id(other):
            raise InvalidUserIdError()
        if viewer == other:
            return ViewerLabel.NONE
        edge = await self.store.get_edge(pair_key(viewer, other))
        return label_for(viewer, edge)

    async def list_friends(self, viewer: str, cursor: Optional[str] = None, limit: Optional[int] = None) -> Page:
        return await self._list(viewer, EdgeState.FRIENDS, None, cursor, limit)

    async def list_pending_sent(self, viewer: str, cursor: Optional[str] = None, limit: Optional[int] = None) -> Page:
        return await self._list(viewer, EdgeState.PENDING, True, cursor, limit)

    async def list_pending_received(
        self, viewer: str, cursor: Optional[str] = None, limit: Optional[int] = None
    ) -> Page:
        return await self._list(viewer, EdgeState.PENDING, False, cursor, limit)

    async def list_blocked(self, viewer: str, cursor: Optional[str] = None, limit: Optional[int] = None) -> Page:
        """Users the viewer has blocked; users who blocked the viewer are never listed"""
        return await self._list(viewer, EdgeState.BLOCKED, True, cursor, limit)
