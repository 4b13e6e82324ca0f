"""
Request and response bodies for the HTTP surface.
"""
from __future__ import annotations

from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from bujo.domain.entry import EntryType, Priority


# ---------------------------------------------------------------------------
# POST /api/entries
# ---------------------------------------------------------------------------

class EntryInput(BaseModel):
    """One entry to log. Children are logged beneath it, one level deeper."""
    type: str = Field(..., description="task, note, event or question.", examples=["task"])
    content: str = Field(..., examples=["Follow up: Q1 Planning @john #email"])
    children: list[EntryInput] = Field(default_factory=list)


class CreateEntriesRequest(BaseModel):
    entries: list[EntryInput] = Field(..., min_length=1)
    day: Optional[date] = Field(
        default=None,
        description="ISO date (YYYY-MM-DD) to log on. Defaults to today UTC.",
        examples=["2026-01-06"],
    )


class CreatedEntry(BaseModel):
    id: int
    children: Optional[list[CreatedEntry]] = None


class CreateEntriesResponse(BaseModel):
    success: bool = True
    entries: list[CreatedEntry]


# ---------------------------------------------------------------------------
# Days
# ---------------------------------------------------------------------------

class EntryOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    row_id: int
    entity_id: str
    type: EntryType
    content: str
    priority: Priority
    parent_id: Optional[int] = None
    parent_entity_id: Optional[str] = None
    depth: int
    scheduled_date: Optional[date] = None
    created_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    migration_count: int = 0


class DayContextOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    location: Optional[str] = None
    mood: Optional[str] = None
    weather: Optional[str] = None


class AgendaResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    day: date
    context: Optional[DayContextOut] = None
    entries: list[EntryOut]
    overdue: list[EntryOut]


class ApplyRequest(BaseModel):
    document: str
    pending_deletes: list[str] = Field(
        default_factory=list,
        description="Entity ids the user removed from the document and confirmed deleting.",
    )


class ApplyResponse(BaseModel):
    success: bool = True
    inserted: int
    updated: int
    deleted: int
    migrated: int


class ValidateRequest(BaseModel):
    document: str


class DocumentError(BaseModel):
    line: int
    text: str
    error: Optional[str] = None


class ValidateResponse(BaseModel):
    valid: bool
    errors: list[DocumentError]
