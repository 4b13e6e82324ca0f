"""
Habits and habit logs.

Logs reference their habit by entity id, so renames and goal changes
(each a new habit version) keep the log history attached.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone
from typing import Optional

from sqlalchemy.orm import Session

from bujo.core.errors import ConflictError, IntegrityError, NotFoundError, ValidationError
from bujo.db.base import transaction
from bujo.db.types import utcnow
from bujo.domain.habit import Habit, HabitLog, calculate_streak, sum_count_for_day
from bujo.repositories.habits import HabitLogRepository, HabitRepository


@dataclass
class HabitStatus:
    habit: Habit
    today_count: int
    streak: int
    total_logs: int


def _clean_name(name: str) -> str:
    name = (name or "").strip()
    if not name:
        raise ValidationError("Habit name cannot be empty.")
    return name


def _require_by_name(db: Session, name: str) -> Habit:
    habit = HabitRepository(db).get_by_name(_clean_name(name))
    if habit is None:
        raise NotFoundError("habit", name)
    return habit


def _require_by_id(db: Session, habit_id: int) -> Habit:
    habit = HabitRepository(db).get_by_id(habit_id)
    if habit is None:
        raise NotFoundError("habit", habit_id)
    return habit


def day_bounds(start: date, end: date) -> tuple[datetime, datetime]:
    lo = datetime.combine(start, time.min, tzinfo=timezone.utc)
    hi = datetime.combine(end + timedelta(days=1), time.min, tzinfo=timezone.utc)
    return lo, hi


# ---------------------------------------------------------------------------
# Habits
# ---------------------------------------------------------------------------

def create_habit(
    db: Session,
    name: str,
    goal_per_day: int = 1,
    goal_per_week: Optional[int] = None,
    goal_per_month: Optional[int] = None,
) -> Habit:
    habit = Habit(
        name=_clean_name(name),
        goal_per_day=goal_per_day,
        goal_per_week=goal_per_week,
        goal_per_month=goal_per_month,
    )
    habit.validate()
    repo = HabitRepository(db)
    with transaction(db):
        if repo.get_by_name(habit.name) is not None:
            raise ConflictError(f"A habit named {habit.name!r} already exists.")
        repo.insert(habit, utcnow())
    return repo.get_by_id(habit.row_id)


def get_habit(db: Session, habit_id: int) -> Habit:
    return _require_by_id(db, habit_id)


def get_habit_by_name(db: Session, name: str) -> Habit:
    return _require_by_name(db, name)


def list_habits(db: Session) -> list[Habit]:
    return HabitRepository(db).get_all()


def rename_habit(db: Session, old_name: str, new_name: str) -> Habit:
    new_name = _clean_name(new_name)
    repo = HabitRepository(db)
    with transaction(db):
        habit = _require_by_name(db, old_name)
        if habit.name == new_name:
            return habit
        if repo.get_by_name(new_name) is not None:
            raise ConflictError(f"A habit named {new_name!r} already exists.")
        habit.name = new_name
        new_id = repo.update(habit, utcnow())
    return repo.get_by_id(new_id)


def set_goals(
    db: Session,
    name: str,
    goal_per_day: Optional[int] = None,
    goal_per_week: Optional[int] = None,
    goal_per_month: Optional[int] = None,
) -> Habit:
    """Change whichever goals are given; the others keep their value."""
    repo = HabitRepository(db)
    with transaction(db):
        habit = _require_by_name(db, name)
        if goal_per_day is not None:
            habit.goal_per_day = goal_per_day
        if goal_per_week is not None:
            habit.goal_per_week = goal_per_week
        if goal_per_month is not None:
            habit.goal_per_month = goal_per_month
        habit.validate()
        new_id = repo.update(habit, utcnow())
    return repo.get_by_id(new_id)


def delete_habit(db: Session, name: str) -> None:
    with transaction(db):
        habit = _require_by_name(db, name)
        HabitRepository(db).delete(habit.row_id, utcnow())


def get_deleted_habits(db: Session) -> list[Habit]:
    return HabitRepository(db).get_deleted()


def restore_habit(db: Session, entity_id: str) -> Habit:
    repo = HabitRepository(db)
    with transaction(db):
        try:
            new_id = repo.restore(entity_id, utcnow())
        except IntegrityError as exc:
            raise ConflictError("A current habit already uses that name.") from exc
    return repo.get_by_id(new_id)


# ---------------------------------------------------------------------------
# Logs
# ---------------------------------------------------------------------------

def _log(db: Session, habit: Habit, count: int, at: Optional[datetime]) -> int:
    entry = HabitLog(
        habit_id=habit.row_id,
        habit_entity_id=habit.entity_id,
        count=count,
        logged_at=at or utcnow(),
    )
    entry.validate()
    return HabitLogRepository(db).insert(entry, utcnow())


def log_habit(db: Session, name: str, count: int = 1, at: Optional[datetime] = None) -> int:
    """Log against `name`, creating the habit (one per day) on first use."""
    name = _clean_name(name)
    repo = HabitRepository(db)
    with transaction(db):
        habit = repo.get_by_name(name)
        if habit is None:
            habit = Habit(name=name, goal_per_day=1)
            repo.insert(habit, utcnow())
        return _log(db, habit, count, at)


def log_habit_by_id(db: Session, habit_id: int, count: int = 1, at: Optional[datetime] = None) -> int:
    with transaction(db):
        return _log(db, _require_by_id(db, habit_id), count, at)


def undo_last_log(db: Session, name: str) -> HabitLog:
    logs = HabitLogRepository(db)
    with transaction(db):
        habit = _require_by_name(db, name)
        latest = logs.get_latest(habit.entity_id)
        if latest is None:
            raise NotFoundError("habit log", name)
        logs.delete(latest.row_id, utcnow())
    return latest


def delete_log(db: Session, log_id: int) -> None:
    logs = HabitLogRepository(db)
    with transaction(db):
        if logs.get_by_id(log_id) is None:
            raise NotFoundError("habit log", log_id)
        logs.delete(log_id, utcnow())


def get_habit_logs(db: Session, name: str, start: date, end: date) -> list[HabitLog]:
    if end < start:
        raise ValidationError("End date is before start date.")
    habit = _require_by_name(db, name)
    lo, hi = day_bounds(start, end)
    return HabitLogRepository(db).get_range(lo, hi, habit.entity_id)


def get_habit_status(db: Session, name: str, today: Optional[date] = None) -> HabitStatus:
    today = today or utcnow().date()
    habit = _require_by_name(db, name)
    logs = HabitLogRepository(db).get_by_habit(habit.entity_id)
    return HabitStatus(
        habit=habit,
        today_count=sum_count_for_day(logs, today),
        streak=calculate_streak(logs, today),
        total_logs=len(logs),
    )
