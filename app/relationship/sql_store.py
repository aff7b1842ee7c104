"""
SQL-backed edge store.

Each call runs in its own short transaction; nothing is held open between the
coordinator's read and its conditional write.
"""

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import insert, or_, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.core.logging import get_logger
from app.core.time import as_utc
from app.models.relationship import RelationshipEdgeRecord
from app.relationship.errors import StoreUnavailableError
from app.relationship.store import ASYMMETRIC_STATES, EdgeStore
from app.relationship.types import EdgeState, Page, RelationshipEdge

logger = get_logger(__name__)


def _to_naive_utc(value: Optional[datetime]) -> Optional[datetime]:
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def record_to_edge(record: RelationshipEdgeRecord) -> RelationshipEdge:
    return RelationshipEdge(
        pair_key=record.pair_key,
        user_a=record.user_a,
        user_b=record.user_b,
        state=EdgeState(record.state),
        requested_by=record.requested_by,
        blocked_by=record.blocked_by,
        created_at=as_utc(record.created_at),
        updated_at=as_utc(record.updated_at),
        version=record.version,
    )


def edge_to_values(edge: RelationshipEdge) -> dict:
    return {
        "pair_key": edge.pair_key,
        "user_a": edge.user_a,
        "user_b": edge.user_b,
        "state": edge.state.value,
        "requested_by": edge.requested_by,
        "blocked_by": edge.blocked_by,
        "created_at": _to_naive_utc(edge.created_at),
        "updated_at": _to_naive_utc(edge.updated_at),
        "version": edge.version,
    }


class SqlEdgeStore(EdgeStore):
    """Edge store over the `relationship_edges` table"""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory

    async def get_edge(self, pair_key: str) -> Optional[RelationshipEdge]:
        try:
            async with self.session_factory() as session:
                result = await session.execute(
                    select(RelationshipEdgeRecord).where(RelationshipEdgeRecord.pair_key == pair_key)
                )
                record = result.scalar_one_or_none()
        except SQLAlchemyError as e:
            logger.error("store.read_failed", pair_key=pair_key, error=str(e))
            raise StoreUnavailableError() from e

        return record_to_edge(record) if record is not None else None

    async def put_edge_if_version(self, edge: RelationshipEdge, expected_version: int) -> bool:
        values = edge_to_values(edge)
        try:
            async with self.session_factory() as session:
                async with session.begin():
                    if expected_version == 0:
                        await session.execute(insert(RelationshipEdgeRecord).values(**values))
                        return True

                    result = await session.execute(
                        update(RelationshipEdgeRecord)
                        .where(
                            RelationshipEdgeRecord.pair_key == edge.pair_key,
                            RelationshipEdgeRecord.version == expected_version,
                        )
                        .values(**values)
                    )
                    return result.rowcount == 1
        except IntegrityError as e:
            # Only a row left by a concurrent insert counts as a conflict
            if expected_version == 0 and await self.get_edge(edge.pair_key) is not None:
                return False
            logger.error("store.integrity_error", pair_key=edge.pair_key, error=str(e))
            raise StoreUnavailableError() from e
        except SQLAlchemyError as e:
            logger.error("store.write_failed", pair_key=edge.pair_key, error=str(e))
            raise StoreUnavailableError() from e

    async def query_by_viewer_and_state(
        self,
        viewer: str,
        state: EdgeState,
        initiated_by_viewer: Optional[bool] = None,
        cursor: Optional[str] = None,
        limit: int = 20,
    ) -> Page:
        record = RelationshipEdgeRecord
        stmt = select(record).where(
            or_(record.user_a == viewer, record.user_b == viewer),
            record.state == state.value,
        )
        if initiated_by_viewer is not None and state in ASYMMETRIC_STATES:
            column = record.requested_by if state is EdgeState.PENDING else record.blocked_by
            stmt = stmt.where(column == viewer if initiated_by_viewer else column != viewer)
        if cursor is not None:
            stmt = stmt.where(record.pair_key > cursor)
        stmt = stmt.order_by(record.pair_key).limit(limit + 1)

        try:
            async with self.session_factory() as session:
                result = await session.execute(stmt)
                rows = list(result.scalars().all())
        except SQLAlchemyError as e:
            logger.error("store.query_failed", viewer=viewer, state=state.value, error=str(e))
            raise StoreUnavailableError() from e

        items = [record_to_edge(row) for row in rows[:limit]]
        next_cursor = items[-1].pair_key if len(rows) > limit else None
        return Page(items=items, next_cursor=next_cursor)
