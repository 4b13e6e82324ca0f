"""Column types shared by the versioned tables."""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import String
from sqlalchemy.types import TypeDecorator


def utcnow() -> datetime:
    return datetime.now(tz=timezone.utc)


def as_utc(value: datetime) -> datetime:
    """Treat naive datetimes as UTC and convert aware ones to UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class Instant(TypeDecorator):
    """RFC3339 UTC timestamp stored as text with microsecond precision.

    Fixed-width formatting keeps lexicographic order equal to time order,
    which the version queries (MAX(valid_from), valid_to < cutoff) rely on.
    """

    impl = String(32)
    cache_ok = True

    def process_bind_param(self, value: Optional[datetime], dialect) -> Optional[str]:
        if value is None:
            return None
        return as_utc(value).isoformat(timespec="microseconds")

    def process_result_value(self, value: Optional[str], dialect) -> Optional[datetime]:
        if value is None:
            return None
        return as_utc(datetime.fromisoformat(value))
