from sqlalchemy import Integer
from sqlalchemy.orm import Mapped, mapped_column

from app.models.base import Base, TimestampMixin
from app.models.types import UserIdType


class User(Base, TimestampMixin):
    """
    The engine's slice of the users table: identity and profile fields belong
    to the identity service, only the friend counter is written here.
    """

    __tablename__ = "users"

    id: Mapped[str] = mapped_column(UserIdType, primary_key=True)

    # Maintained only through atomic deltas, see SqlFriendCounter
    friend_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
