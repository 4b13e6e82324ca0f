"""
Journal entry: types, priorities and the state predicates the entry
service uses to guard transitions.
"""
from __future__ import annotations

import enum
import re
from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional

from bujo.domain.identity import Versioned


class EntryType(str, enum.Enum):
    task = "task"
    note = "note"
    event = "event"
    done = "done"
    migrated = "migrated"
    cancelled = "cancelled"
    question = "question"
    answered = "answered"
    answer = "answer"


class Priority(str, enum.Enum):
    none = "none"
    low = "low"
    medium = "medium"
    high = "high"

    @property
    def marker(self) -> str:
        return PRIORITY_MARKERS[self]

    def cycle(self) -> "Priority":
        order = list(Priority)
        return order[(order.index(self) + 1) % len(order)]


# ---------------------------------------------------------------------------
# Notation
# ---------------------------------------------------------------------------

SYMBOLS: dict[EntryType, str] = {
    EntryType.task: ".",
    EntryType.done: "x",
    EntryType.migrated: ">",
    EntryType.cancelled: "~",
    EntryType.event: "o",
    EntryType.note: "-",
    EntryType.question: "?",
    EntryType.answered: "A",
    EntryType.answer: "a",
}

TYPES_BY_SYMBOL: dict[str, EntryType] = {s: t for t, s in SYMBOLS.items()}

PRIORITY_MARKERS: dict[Priority, str] = {
    Priority.none: "",
    Priority.low: "!",
    Priority.medium: "!!",
    Priority.high: "!!!",
}

PRIORITIES_BY_MARKER: dict[str, Priority] = {
    m: p for p, m in PRIORITY_MARKERS.items() if m
}

PRIORITY_RE = re.compile(r"^(!{1,3})(?=\s|$)")


# ---------------------------------------------------------------------------
# Transition groups
# ---------------------------------------------------------------------------

RETYPEABLE = frozenset({EntryType.task, EntryType.note, EntryType.event})
CANCELLABLE = frozenset({EntryType.task, EntryType.note, EntryType.event, EntryType.answer})
TERMINAL = frozenset({EntryType.done, EntryType.migrated, EntryType.cancelled})
NOT_EDITABLE = frozenset({
    EntryType.cancelled,
    EntryType.done,
    EntryType.migrated,
    EntryType.answered,
    EntryType.answer,
})
# Types a client may create directly (API and text logging).
LOGGABLE = frozenset({
    EntryType.task,
    EntryType.note,
    EntryType.event,
    EntryType.question,
    EntryType.done,
    EntryType.cancelled,
})


def parse_entry_type(value: str) -> Optional[EntryType]:
    try:
        return EntryType(value.strip().lower())
    except ValueError:
        return None


@dataclass
class Entry(Versioned):
    type: EntryType = EntryType.task
    content: str = ""
    priority: Priority = Priority.none
    parent_id: Optional[int] = None
    parent_entity_id: Optional[str] = None
    depth: int = 0
    scheduled_date: Optional[date] = None
    location: Optional[str] = None
    mood: Optional[str] = None
    weather: Optional[str] = None
    created_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    original_created_at: Optional[datetime] = None
    migration_count: int = 0
    cancelled_from: Optional[EntryType] = None

    @property
    def symbol(self) -> str:
        return SYMBOLS[self.type]

    def can_edit(self) -> bool:
        return self.type not in NOT_EDITABLE

    def can_retype(self) -> bool:
        return self.type in RETYPEABLE

    def can_cancel(self) -> bool:
        return self.type in CANCELLABLE

    def can_migrate(self) -> bool:
        return self.type == EntryType.task

    def can_have_children(self) -> bool:
        return self.type != EntryType.question

    def is_overdue(self, today: date) -> bool:
        return (
            self.type == EntryType.task
            and self.scheduled_date is not None
            and self.scheduled_date < today
        )


def clean_content(value: str) -> str:
    """Trimmed, single-line content; line breaks become spaces."""
    return " ".join(part.strip() for part in (value or "").splitlines() if part.strip())


def lift_priority(content: str, priority: Priority = Priority.none) -> tuple[str, Priority]:
    """Move a leading `!`, `!!` or `!!!` out of `content` and into the priority.

    Only applies while `priority` is none: the serializer writes the marker
    before the content, so unprioritised content that starts with one would
    read back as a priority.
    """
    content = clean_content(content)
    if priority != Priority.none:
        return content, priority
    m = PRIORITY_RE.match(content)
    if not m:
        return content, priority
    return content[m.end():].strip(), PRIORITIES_BY_MARKER[m.group(1)]
