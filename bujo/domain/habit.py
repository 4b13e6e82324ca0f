from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Iterable, Optional

from bujo.core.errors import ValidationError
from bujo.domain.identity import Versioned


@dataclass
class Habit(Versioned):
    name: str = ""
    goal_per_day: int = 1
    goal_per_week: Optional[int] = None
    goal_per_month: Optional[int] = None
    created_at: Optional[datetime] = None

    def validate(self) -> None:
        if not self.name.strip():
            raise ValidationError("habit name cannot be empty")
        for label, goal in (
            ("day", self.goal_per_day),
            ("week", self.goal_per_week),
            ("month", self.goal_per_month),
        ):
            if goal is not None and goal < 0:
                raise ValidationError(f"goal per {label} cannot be negative")
        if not (self.goal_per_day or self.goal_per_week or self.goal_per_month):
            raise ValidationError("at least one goal must be set")


@dataclass
class HabitLog(Versioned):
    habit_id: Optional[int] = None
    habit_entity_id: str = ""
    count: int = 1
    logged_at: Optional[datetime] = None

    def validate(self) -> None:
        if not self.habit_entity_id:
            raise ValidationError("habit log must reference a habit")
        if self.count <= 0:
            raise ValidationError("count must be positive")
        if self.logged_at is None:
            raise ValidationError("logged_at is required")


def calculate_streak(logs: Iterable[HabitLog], today: date) -> int:
    """Consecutive logged days ending today, or yesterday if today is still open."""
    days = {log.logged_at.date() for log in logs if log.logged_at is not None}
    if today in days:
        check = today
    elif today - timedelta(days=1) in days:
        check = today - timedelta(days=1)
    else:
        return 0
    streak = 0
    while check in days:
        streak += 1
        check -= timedelta(days=1)
    return streak


def sum_count_for_day(logs: Iterable[HabitLog], day: date) -> int:
    return sum(log.count for log in logs if log.logged_at and log.logged_at.date() == day)
