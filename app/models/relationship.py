from datetime import datetime
from typing import Optional

from sqlalchemy import CheckConstraint, DateTime, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from app.models.base import Base
from app.models.types import PairKeyType, UserIdType


class RelationshipEdgeRecord(Base):
    __tablename__ = "relationship_edges"

    # "{user_a}#{user_b}" with user_a < user_b
    pair_key: Mapped[str] = mapped_column(PairKeyType, primary_key=True)

    user_a: Mapped[str] = mapped_column(UserIdType, nullable=False)
    user_b: Mapped[str] = mapped_column(UserIdType, nullable=False)

    # status: 'none' | 'pending' | 'friends' | 'blocked'
    state: Mapped[str] = mapped_column(String(16), nullable=False, default="none")
    requested_by: Mapped[Optional[str]] = mapped_column(UserIdType, nullable=True)
    blocked_by: Mapped[Optional[str]] = mapped_column(UserIdType, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False)

    # Optimistic concurrency token, bumped on every transition
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    __table_args__ = (
        CheckConstraint("user_a <> user_b", name="not_self"),
        CheckConstraint(
            "state <> 'pending' OR requested_by IS NOT NULL",
            name="pending_requester",
        ),
        CheckConstraint(
            "state <> 'blocked' OR blocked_by IS NOT NULL",
            name="blocker",
        ),
        Index("idx_relationship_edges_user_a", "user_a", "state", "pair_key"),
        Index("idx_relationship_edges_user_b", "user_b", "state", "pair_key"),
    )
