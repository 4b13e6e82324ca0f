"""
Per-day location, mood and weather.

Each field is set and cleared on its own; clearing the last field keeps
the (empty) context row so its history stays attached to the date.
"""
from __future__ import annotations

from datetime import date
from typing import Optional

from sqlalchemy.orm import Session

from bujo.core.errors import ValidationError
from bujo.db.base import transaction
from bujo.db.types import utcnow
from bujo.domain.day import DayContext
from bujo.repositories.day_contexts import DayContextRepository

FIELDS = ("location", "mood", "weather")


def _set_field(db: Session, day: date, field: str, value: Optional[str]) -> DayContext:
    if field not in FIELDS:
        raise ValidationError(f"Unknown day context field {field!r}.")
    if value is not None:
        value = value.strip()
        if not value:
            raise ValidationError(f"{field} cannot be empty.")
    repo = DayContextRepository(db)
    now = utcnow()
    with transaction(db):
        context = repo.get_by_date(day) or DayContext(day=day)
        if context.row_id is not None and getattr(context, field) == value:
            return context
        setattr(context, field, value)
        repo.upsert(context, now)
    return repo.get_by_date(day)


def set_location(db: Session, day: date, location: str) -> DayContext:
    return _set_field(db, day, "location", location)


def set_mood(db: Session, day: date, mood: str) -> DayContext:
    return _set_field(db, day, "mood", mood)


def set_weather(db: Session, day: date, weather: str) -> DayContext:
    return _set_field(db, day, "weather", weather)


def clear_location(db: Session, day: date) -> Optional[DayContext]:
    return _clear(db, day, "location")


def clear_mood(db: Session, day: date) -> Optional[DayContext]:
    return _clear(db, day, "mood")


def clear_weather(db: Session, day: date) -> Optional[DayContext]:
    return _clear(db, day, "weather")


def _clear(db: Session, day: date, field: str) -> Optional[DayContext]:
    if DayContextRepository(db).get_by_date(day) is None:
        return None
    return _set_field(db, day, field, None)


def get_day_context(db: Session, day: date) -> Optional[DayContext]:
    return DayContextRepository(db).get_by_date(day)


def get_day_contexts(db: Session, start: date, end: date) -> list[DayContext]:
    if end < start:
        raise ValidationError("End date is before start date.")
    return DayContextRepository(db).get_range(start, end)
