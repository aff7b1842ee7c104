from datetime import datetime, timezone
from typing import Optional


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def naive_utcnow() -> datetime:
    # DATETIME columns hold UTC without an offset
    return utcnow().replace(tzinfo=None)


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    # MySQL DATETIME columns come back naive; they are stored as UTC
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)
