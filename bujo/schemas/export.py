"""
Export file format.

    {version, exported_at, entries, habits, habit_logs, day_contexts,
     summaries, lists, list_items, goals}

Every collection is always present. Records carry the current state of
each entity under its stable entity id; history is not exported.
"""
from __future__ import annotations

import enum
from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from bujo.domain.entry import EntryType, Priority
from bujo.domain.goal import GoalStatus
from bujo.domain.lists import ListItemType
from bujo.domain.summary import SummaryHorizon

EXPORT_VERSION = "1"


class ImportMode(str, enum.Enum):
    merge = "merge"
    replace = "replace"


class _Record(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    entity_id: str


class EntryRecord(_Record):
    type: EntryType
    content: str
    priority: Priority = Priority.none
    parent_entity_id: Optional[str] = None
    depth: int = 0
    scheduled_date: Optional[date] = None
    location: Optional[str] = None
    mood: Optional[str] = None
    weather: Optional[str] = None
    created_at: datetime
    completed_at: Optional[datetime] = None
    original_created_at: Optional[datetime] = None
    migration_count: int = 0
    cancelled_from: Optional[EntryType] = None


class HabitRecord(_Record):
    name: str
    goal_per_day: int = 1
    goal_per_week: Optional[int] = None
    goal_per_month: Optional[int] = None
    created_at: datetime


class HabitLogRecord(_Record):
    habit_entity_id: str
    count: int = Field(default=1, gt=0)
    logged_at: datetime


class DayContextRecord(_Record):
    day: date
    location: Optional[str] = None
    mood: Optional[str] = None
    weather: Optional[str] = None


class SummaryRecord(_Record):
    horizon: SummaryHorizon
    content: str
    start_date: date
    end_date: date
    created_at: datetime


class ListRecord(_Record):
    name: str
    created_at: datetime


class ListItemRecord(_Record):
    list_entity_id: str
    type: ListItemType = ListItemType.task
    content: str
    created_at: datetime


class GoalRecord(_Record):
    content: str
    month: str = Field(pattern=r"^\d{4}-(0[1-9]|1[0-2])$")
    status: GoalStatus = GoalStatus.active
    migrated_to: Optional[str] = None
    created_at: datetime


class ExportData(BaseModel):
    version: str = EXPORT_VERSION
    exported_at: datetime
    entries: list[EntryRecord] = Field(default_factory=list)
    habits: list[HabitRecord] = Field(default_factory=list)
    habit_logs: list[HabitLogRecord] = Field(default_factory=list)
    day_contexts: list[DayContextRecord] = Field(default_factory=list)
    summaries: list[SummaryRecord] = Field(default_factory=list)
    lists: list[ListRecord] = Field(default_factory=list)
    list_items: list[ListItemRecord] = Field(default_factory=list)
    goals: list[GoalRecord] = Field(default_factory=list)
