"""
Journal statistics for a date range.

Task completion counts done and migrated entries as completed, over
every task-shaped entry (task, done, migrated). Productivity averages
are entries per distinct scheduled day of each weekday.
"""
from __future__ import annotations

from collections import Counter, defaultdict
from dataclasses import asdict, dataclass, field
from datetime import date
from typing import Optional

from sqlalchemy.orm import Session

from bujo.core.errors import ValidationError
from bujo.domain.entry import Entry, EntryType
from bujo.domain.habit import Habit, HabitLog, calculate_streak
from bujo.repositories.entries import EntryRepository
from bujo.repositories.habits import HabitLogRepository, HabitRepository
from bujo.services.habits import day_bounds

WEEKDAYS = ("monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday")

_COMPLETED = {EntryType.done, EntryType.migrated}


@dataclass
class TaskCompletion:
    total: int = 0
    completed: int = 0
    rate: float = 0.0


@dataclass
class WeekdayAverage:
    day: str
    average: float


@dataclass
class Productivity:
    entries_by_weekday: dict[str, int] = field(default_factory=dict)
    average_per_day: float = 0.0
    most_productive: Optional[WeekdayAverage] = None
    least_productive: Optional[WeekdayAverage] = None


@dataclass
class HabitStats:
    active: int = 0
    total_logs: int = 0
    most_logged: Optional[str] = None
    most_logged_count: int = 0
    best_streak: Optional[str] = None
    best_streak_days: int = 0


@dataclass
class Stats:
    date_from: date
    date_to: date
    total_days: int
    entry_counts: dict[str, int]
    task_completion: TaskCompletion
    productivity: Productivity
    habits: HabitStats

    def to_dict(self) -> dict:
        return asdict(self)


def count_entries(entries: list[Entry]) -> dict[str, int]:
    counts = Counter(e.type.value for e in entries)
    result = {t.value: counts.get(t.value, 0) for t in EntryType}
    result["total"] = len(entries)
    return result


def task_completion(entries: list[Entry]) -> TaskCompletion:
    total = sum(1 for e in entries if e.type == EntryType.task or e.type in _COMPLETED)
    completed = sum(1 for e in entries if e.type in _COMPLETED)
    rate = completed / total * 100 if total else 0.0
    return TaskCompletion(total=total, completed=completed, rate=rate)


def productivity(entries: list[Entry]) -> Productivity:
    per_weekday: Counter = Counter()
    days_seen: dict[int, set[date]] = defaultdict(set)
    for e in entries:
        if e.scheduled_date is None:
            continue
        weekday = e.scheduled_date.weekday()
        per_weekday[weekday] += 1
        days_seen[weekday].add(e.scheduled_date)

    prod = Productivity(entries_by_weekday={WEEKDAYS[d]: n for d, n in sorted(per_weekday.items())})
    if not per_weekday:
        return prod

    averages = [
        WeekdayAverage(day=WEEKDAYS[d], average=per_weekday[d] / len(days_seen[d]))
        for d in sorted(per_weekday)
    ]
    prod.average_per_day = sum(per_weekday.values()) / sum(len(s) for s in days_seen.values())
    prod.most_productive = max(averages, key=lambda a: a.average)
    prod.least_productive = min(averages, key=lambda a: a.average)
    return prod


def habit_stats(
    habits: list[Habit],
    logs: list[HabitLog],
    all_logs: dict[str, list[HabitLog]],
    today: date,
) -> HabitStats:
    """Totals over `logs`; streaks use each habit's full history in `all_logs`."""
    stats = HabitStats(active=len(habits), total_logs=len(logs))
    totals: Counter = Counter()
    for log in logs:
        totals[log.habit_entity_id] += log.count
    for habit in habits:
        count = totals.get(habit.entity_id, 0)
        if count > stats.most_logged_count:
            stats.most_logged, stats.most_logged_count = habit.name, count
        streak = calculate_streak(all_logs.get(habit.entity_id, []), today)
        if streak > stats.best_streak_days:
            stats.best_streak, stats.best_streak_days = habit.name, streak
    return stats


def get_stats(db: Session, date_from: date, date_to: date) -> Stats:
    if date_to < date_from:
        raise ValidationError("End date is before start date.")
    entries = EntryRepository(db).get_by_date_range(date_from, date_to)
    habits = HabitRepository(db).get_all()
    log_repo = HabitLogRepository(db)
    lo, hi = day_bounds(date_from, date_to)
    logs = log_repo.get_range(lo, hi)
    all_logs = {h.entity_id: log_repo.get_by_habit(h.entity_id) for h in habits}

    return Stats(
        date_from=date_from,
        date_to=date_to,
        total_days=(date_to - date_from).days + 1,
        entry_counts=count_entries(entries),
        task_completion=task_completion(entries),
        productivity=productivity(entries),
        habits=habit_stats(habits, logs, all_logs, date_to),
    )
