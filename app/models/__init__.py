from app.models.base import Base
from app.models.relationship import RelationshipEdgeRecord
from app.models.user import User

__all__ = [
    "Base",
    "User",
    "RelationshipEdgeRecord",
]
