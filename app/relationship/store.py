"""
Edge store adapter interface.

The store owns no business logic. It offers keyed reads, a conditional
(compare-and-swap) write and a per-viewer index scan. Swapping the SQL
backend for another keyed store only requires a new subclass.
"""

import asyncio
from abc import ABC, abstractmethod
from typing import Dict, Optional

from app.relationship.types import EdgeState, Page, RelationshipEdge

ASYMMETRIC_STATES = (EdgeState.PENDING, EdgeState.BLOCKED)


def initiator_of(edge: RelationshipEdge) -> Optional[str]:
    """Who put the edge into its current asymmetric state, if anyone."""
    if edge.state is EdgeState.PENDING:
        return edge.requested_by
    if edge.state is EdgeState.BLOCKED:
        return edge.blocked_by
    return None


class EdgeStore(ABC):
    """Durable key-value access to relationship edges"""

    @abstractmethod
    async def get_edge(self, pair_key: str) -> Optional[RelationshipEdge]:
        """Return the stored edge, or None when the pair has no record."""

    @abstractmethod
    async def put_edge_if_version(self, edge: RelationshipEdge, expected_version: int) -> bool:
        """
        Write `edge` only if the stored version still equals `expected_version`.
        An expected version of 0 means the record must not exist yet.
        Returns False on conflict.
        """

    @abstractmethod
    async def query_by_viewer_and_state(
        self,
        viewer: str,
        state: EdgeState,
        initiated_by_viewer: Optional[bool] = None,
        cursor: Optional[str] = None,
        limit: int = 20,
    ) -> Page:
        """
        Edges touching `viewer` in `state`, ordered by pair key and starting after
        `cursor` (a pair key). `initiated_by_viewer` narrows PENDING/BLOCKED edges
        to those whose requester/blocker is (True) or is not (False) the viewer.
        The filter is ignored for other states.
        """

    async def close(self) -> None:
        """Release backend resources"""


class InMemoryEdgeStore(EdgeStore):
    """
    Process-local store with the same contract as the SQL adapter.

    The compare and the swap run without an intervening await, so they are
    atomic on a single event loop. Reads yield to the loop to behave like I/O.
    """

    def __init__(self):
        self._edges: Dict[str, RelationshipEdge] = {}

    async def get_edge(self, pair_key: str) -> Optional[RelationshipEdge]:
        await asyncio.sleep(0)
        return self._edges.get(pair_key)

    async def put_edge_if_version(self, edge: RelationshipEdge, expected_version: int) -> bool:
        await asyncio.sleep(0)
        current = self._edges.get(edge.pair_key)
        current_version = current.version if current is not None else 0
        if current_version != expected_version:
            return False
        self._edges[edge.pair_key] = edge
        return True

    async def query_by_viewer_and_state(
        self,
        viewer: str,
        state: EdgeState,
        initiated_by_viewer: Optional[bool] = None,
        cursor: Optional[str] = None,
        limit: int = 20,
    ) -> Page:
        await asyncio.sleep(0)
        initiator_filter = initiated_by_viewer is not None and state in ASYMMETRIC_STATES
        matches = []
        for key in sorted(self._edges):
            edge = self._edges[key]
            if cursor is not None and key <= cursor:
                continue
            if edge.state is not state or not edge.involves(viewer):
                continue
            if initiator_filter and (initiator_of(edge) == viewer) != initiated_by_viewer:
                continue
            matches.append(edge)
            if len(matches) > limit:
                break

        items = matches[:limit]
        next_cursor = items[-1].pair_key if len(matches) > limit else None
        return Page(items=items, next_cursor=next_cursor)

    def count(self) -> int:
        return len(self._edges)
