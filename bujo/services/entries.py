"""
Entry service: logging, state transitions and hierarchy changes.

Public API
----------
log_entries(db, text, day, parent_id=None, location=None)  -> list[int]
log_items(db, parsed, day=None, ...)                       -> list[int]
log_parsed(db, parsed, day, now, ...)   (flush-only)     -> list[int]
get_entry(db, row_id) / get_entry_history(db, entity_id) / get_entry_ancestors(db, row_id)
get_entries_for_day(db, day) / get_entries_for_range(db, start, end) / get_overdue(db, today)
get_daily_agenda(db, day, today=None)
search_entries(db, opts) / list_tags(db) / list_mentions(db)
mark_done / undo_done / cancel_entry / uncancel_entry / retype_entry
edit_entry / edit_priority / cycle_priority
delete_entry / delete_entry_and_reparent / restore_entry / get_deleted_entries
migrate_entry / move_entry / move_entry_to_list
mark_answered / reopen_question

Public mutations read the clock once and commit once. The flush-only
building blocks (create_entry, save_entry, delete_subtree,
migrate_subtree, shift_descendants, reopen_if_unanswered) never commit,
so the editable-document engine can run several of them in one
transaction.
"""
from __future__ import annotations

import logging
from datetime import date, datetime, timezone
from typing import Iterable, Optional

from sqlalchemy.orm import Session

from bujo.core.errors import ConflictError, NotFoundError, ValidationError
from bujo.db.base import transaction
from bujo.db.types import utcnow
from bujo.domain.day import DailyAgenda
from bujo.domain.entry import (
    LOGGABLE,
    RETYPEABLE,
    Entry,
    EntryType,
    Priority,
    clean_content,
    lift_priority,
)
from bujo.domain.parser import ParsedEntry, TreeParser
from bujo.domain.tags import extract_mentions, extract_tags
from bujo.repositories.day_contexts import DayContextRepository
from bujo.repositories.entries import EntryRepository, SearchOptions
from bujo.repositories.entry_list_mover import EntryListMover
from bujo.repositories.labels import MentionRepository, TagRepository
from bujo.repositories.lists import ListRepository

logger = logging.getLogger(__name__)

MAX_ANSWER_LENGTH = 512


def _today() -> date:
    return datetime.now(tz=timezone.utc).date()


def _require(db: Session, row_id: int) -> Entry:
    entry = EntryRepository(db).get_by_id(row_id)
    if entry is None:
        raise NotFoundError("entry", row_id)
    return entry


def attach_to_parent(entry: Entry, parent: Optional[Entry]) -> None:
    """Point `entry` at `parent` (or make it a root) and fix its depth."""
    if parent is None:
        entry.parent_id = None
        entry.parent_entity_id = None
        entry.depth = 0
    else:
        entry.parent_id = parent.row_id
        entry.parent_entity_id = parent.entity_id
        entry.depth = parent.depth + 1


# ---------------------------------------------------------------------------
# Flush-only building blocks
# ---------------------------------------------------------------------------

def _index_labels(db: Session, row_id: int, content: str) -> None:
    TagRepository(db).insert(row_id, extract_tags(content))
    MentionRepository(db).insert(row_id, extract_mentions(content))


def _drop_labels(db: Session, row_id: int) -> None:
    TagRepository(db).delete_for_entry(row_id)
    MentionRepository(db).delete_for_entry(row_id)


def create_entry(db: Session, entry: Entry, now: datetime) -> int:
    row_id = EntryRepository(db).insert(entry, now)
    _index_labels(db, row_id, entry.content)
    return row_id


def save_entry(db: Session, entry: Entry, now: datetime) -> int:
    """Append a new version of `entry` and move its labels to the new row."""
    repo = EntryRepository(db)
    current = repo.get_by_entity_id(entry.entity_id)
    if current is None:
        raise NotFoundError("entry", entry.entity_id)
    new_id = repo.update(entry, now)
    _drop_labels(db, current.row_id)
    _index_labels(db, new_id, entry.content)
    entry.row_id = new_id
    return new_id


def delete_subtree(db: Session, entry: Entry, now: datetime) -> list[Entry]:
    deleted = EntryRepository(db).delete_with_children(entry.row_id, now)
    for gone in deleted:
        _drop_labels(db, gone.row_id)
    return deleted


def reopen_if_unanswered(db: Session, answer: Entry, now: datetime) -> None:
    """Turn the answer's parent back into a question once no answer remains."""
    if not answer.parent_entity_id:
        return
    repo = EntryRepository(db)
    question = repo.get_by_entity_id(answer.parent_entity_id)
    if question is None or question.type != EntryType.answered:
        return
    remaining = [
        child for child in repo.get_children_by_entity_id(question.entity_id)
        if child.type == EntryType.answer and child.entity_id != answer.entity_id
    ]
    if not remaining:
        question.type = EntryType.question
        save_entry(db, question, now)


def shift_descendants(
    db: Session,
    entry: Entry,
    delta: int,
    now: datetime,
    new_date: Optional[date] = None,
) -> None:
    """Move every descendant by `delta` levels and optionally onto `new_date`."""
    repo = EntryRepository(db)
    for child in repo.get_children_by_entity_id(entry.entity_id):
        changed = False
        if delta:
            child.depth += delta
            changed = True
        if new_date is not None and child.scheduled_date != new_date:
            child.scheduled_date = new_date
            changed = True
        if changed:
            save_entry(db, child, now)
        shift_descendants(db, child, delta, now, new_date)


def migrate_subtree(db: Session, entry: Entry, target: date, now: datetime) -> int:
    """Copy the task and its subtree onto `target`; mark the originals migrated."""
    if entry.type == EntryType.migrated:
        raise ConflictError(f"Entry {entry.row_id} is already migrated.")
    if not entry.can_migrate():
        raise ValidationError(
            f"Only tasks can be migrated; entry {entry.row_id} is a {entry.type.value}."
        )

    repo = EntryRepository(db)
    subtree = repo.get_with_children(entry.row_id)
    if not subtree:
        raise NotFoundError("entry", entry.row_id)
    root = subtree[0]
    copies: dict[str, Entry] = {}

    for old in subtree:
        is_root = old.entity_id == root.entity_id
        copy = Entry(
            type=EntryType.task if is_root else old.type,
            content=old.content,
            priority=old.priority,
            depth=old.depth - root.depth,
            scheduled_date=target,
            location=old.location,
            mood=old.mood,
            weather=old.weather,
            created_at=now,
            completed_at=None if is_root else old.completed_at,
            original_created_at=old.created_at if is_root else old.original_created_at,
            migration_count=old.migration_count + 1 if is_root else old.migration_count,
            cancelled_from=None if is_root else old.cancelled_from,
        )
        if not is_root:
            attach_to_parent(copy, copies[old.parent_entity_id])
        create_entry(db, copy, now)
        copies[old.entity_id] = copy

        old.type = EntryType.migrated
        save_entry(db, old, now)

    new_root = copies[root.entity_id]
    logger.info(
        "migrated entry %s (%d entries) from %s to %s",
        root.entity_id, len(subtree), root.scheduled_date, target,
    )
    return new_root.row_id


# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

def log_parsed(
    db: Session,
    parsed: Iterable[ParsedEntry],
    day: date,
    now: datetime,
    parent: Optional[Entry] = None,
    location: Optional[str] = None,
) -> list[int]:
    created: list[Entry] = []
    for item in parsed:
        if item.type not in LOGGABLE:
            raise ValidationError(f"Entries of type {item.type.value!r} cannot be logged directly.")
        owner = created[item.parent_index] if item.parent_index is not None else parent
        if owner is not None and not owner.can_have_children():
            raise ConflictError("Questions cannot have children; answer the question instead.")
        content, priority = lift_priority(item.content, item.priority)
        if not content:
            raise ValidationError("Entry content cannot be empty.")
        entry = Entry(
            type=item.type,
            content=content,
            priority=priority,
            scheduled_date=day,
            location=location,
            created_at=now,
            completed_at=now if item.type == EntryType.done else None,
        )
        attach_to_parent(entry, owner)
        create_entry(db, entry, now)
        created.append(entry)
    return [e.row_id for e in created]


def log_entries(
    db: Session,
    text: str,
    day: Optional[date] = None,
    parent_id: Optional[int] = None,
    location: Optional[str] = None,
) -> list[int]:
    """Parse `text` and store every entry on `day`. Returns row ids in text order."""
    return log_items(db, TreeParser().parse(text), day, parent_id=parent_id, location=location)


def log_items(
    db: Session,
    parsed: Iterable[ParsedEntry],
    day: Optional[date] = None,
    parent_id: Optional[int] = None,
    location: Optional[str] = None,
) -> list[int]:
    parsed = list(parsed)
    if not parsed:
        raise ValidationError("Nothing to log.")
    now = utcnow()
    with transaction(db):
        parent = _require(db, parent_id) if parent_id is not None else None
        return log_parsed(db, parsed, day or _today(), now, parent=parent, location=location)


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------

def get_entry(db: Session, row_id: int) -> Entry:
    return _require(db, row_id)


def get_entry_history(db: Session, entity_id: str) -> list[Entry]:
    history = EntryRepository(db).get_history(entity_id)
    if not history:
        raise NotFoundError("entry", entity_id)
    return history


def get_entry_ancestors(db: Session, row_id: int) -> list[Entry]:
    _require(db, row_id)
    return EntryRepository(db).get_ancestors(row_id)


def get_entries_for_day(db: Session, day: date) -> list[Entry]:
    return EntryRepository(db).get_by_date(day)


def get_entries_for_range(db: Session, start: date, end: date) -> list[Entry]:
    if end < start:
        raise ValidationError("End date is before start date.")
    return EntryRepository(db).get_by_date_range(start, end)


def get_overdue(db: Session, today: Optional[date] = None) -> list[Entry]:
    return EntryRepository(db).get_overdue(today or _today())


def get_daily_agenda(db: Session, day: date, today: Optional[date] = None) -> DailyAgenda:
    today = today or _today()
    return DailyAgenda(
        day=day,
        context=DayContextRepository(db).get_by_date(day),
        entries=get_entries_for_day(db, day),
        overdue=get_overdue(db, today) if day == today else [],
    )


def search_entries(db: Session, opts: SearchOptions) -> list[Entry]:
    if opts.date_from and opts.date_to and opts.date_to < opts.date_from:
        raise ValidationError("End date is before start date.")
    return EntryRepository(db).search(opts)


def list_tags(db: Session) -> list[str]:
    return TagRepository(db).all_values()


def list_mentions(db: Session) -> list[str]:
    return MentionRepository(db).all_values()


def get_deleted_entries(db: Session) -> list[Entry]:
    return EntryRepository(db).get_deleted()


# ---------------------------------------------------------------------------
# State transitions
# ---------------------------------------------------------------------------

def mark_done(db: Session, row_id: int) -> int:
    now = utcnow()
    with transaction(db):
        entry = _require(db, row_id)
        if entry.type != EntryType.task:
            raise ConflictError(
                f"Only tasks can be marked done; entry {row_id} is a {entry.type.value}."
            )
        entry.type = EntryType.done
        entry.completed_at = now
        return save_entry(db, entry, now)


def undo_done(db: Session, row_id: int) -> int:
    now = utcnow()
    with transaction(db):
        entry = _require(db, row_id)
        if entry.type != EntryType.done:
            raise ValidationError(f"Entry {row_id} is not done.")
        entry.type = EntryType.task
        entry.completed_at = None
        return save_entry(db, entry, now)


def cancel_entry(db: Session, row_id: int) -> int:
    now = utcnow()
    with transaction(db):
        entry = _require(db, row_id)
        if not entry.can_cancel():
            raise ValidationError(f"Entry {row_id} ({entry.type.value}) cannot be cancelled.")
        was_answer = entry.type == EntryType.answer
        entry.cancelled_from = entry.type
        entry.type = EntryType.cancelled
        new_id = save_entry(db, entry, now)
        if was_answer:
            reopen_if_unanswered(db, entry, now)
        return new_id


def uncancel_entry(db: Session, row_id: int) -> int:
    now = utcnow()
    with transaction(db):
        entry = _require(db, row_id)
        if entry.type != EntryType.cancelled:
            raise ValidationError(f"Entry {row_id} is not cancelled.")
        restored = entry.cancelled_from or EntryType.task
        if restored == EntryType.answer:
            question = None
            if entry.parent_entity_id:
                question = EntryRepository(db).get_by_entity_id(entry.parent_entity_id)
            if question is None or question.type not in (EntryType.question, EntryType.answered):
                restored = EntryType.note
            elif question.type == EntryType.question:
                question.type = EntryType.answered
                save_entry(db, question, now)
        entry.type = restored
        entry.cancelled_from = None
        return save_entry(db, entry, now)


def retype_entry(db: Session, row_id: int, new_type: EntryType) -> int:
    now = utcnow()
    with transaction(db):
        entry = _require(db, row_id)
        if new_type not in RETYPEABLE or not entry.can_retype():
            raise ValidationError(
                f"Cannot change entry {row_id} from {entry.type.value} to {new_type.value}."
            )
        if entry.type == new_type:
            return entry.row_id
        children = EntryRepository(db).get_children(entry.row_id)
        if any(child.type == EntryType.answer for child in children):
            raise ValidationError(f"Entry {row_id} has answer children and cannot be retyped.")
        entry.type = new_type
        return save_entry(db, entry, now)


# ---------------------------------------------------------------------------
# Edits
# ---------------------------------------------------------------------------

def _require_editable(db: Session, row_id: int) -> Entry:
    entry = _require(db, row_id)
    if not entry.can_edit():
        raise ValidationError(f"Entry {row_id} is {entry.type.value} and cannot be edited.")
    return entry


def edit_entry(db: Session, row_id: int, content: str) -> int:
    """Replace the content. A leading `!!` sets the priority of an unprioritised entry."""
    if not clean_content(content):
        raise ValidationError("Entry content cannot be empty.")
    now = utcnow()
    with transaction(db):
        entry = _require_editable(db, row_id)
        content, priority = lift_priority(content, entry.priority)
        if not content:
            raise ValidationError("Entry content cannot be empty.")
        if (entry.content, entry.priority) == (content, priority):
            return entry.row_id
        entry.content = content
        entry.priority = priority
        return save_entry(db, entry, now)


def edit_priority(db: Session, row_id: int, priority: Priority) -> int:
    now = utcnow()
    with transaction(db):
        entry = _require_editable(db, row_id)
        if entry.priority == priority:
            return entry.row_id
        entry.priority = priority
        return save_entry(db, entry, now)


def cycle_priority(db: Session, row_id: int) -> int:
    now = utcnow()
    with transaction(db):
        entry = _require_editable(db, row_id)
        entry.priority = entry.priority.cycle()
        return save_entry(db, entry, now)


# ---------------------------------------------------------------------------
# Deletes
# ---------------------------------------------------------------------------

def delete_entry(db: Session, row_id: int) -> int:
    """Soft-delete the entry and its subtree. Returns how many entries went."""
    now = utcnow()
    with transaction(db):
        entry = _require(db, row_id)
        deleted = delete_subtree(db, entry, now)
        if entry.type == EntryType.answer:
            reopen_if_unanswered(db, entry, now)
        return len(deleted)


def delete_entry_and_reparent(db: Session, row_id: int) -> None:
    """Soft-delete one entry and hand its children to its own parent."""
    now = utcnow()
    repo = EntryRepository(db)
    with transaction(db):
        entry = _require(db, row_id)
        children = repo.get_children(entry.row_id)
        parent = repo.get_by_entity_id(entry.parent_entity_id) if entry.parent_entity_id else None

        _drop_labels(db, entry.row_id)
        repo.delete(entry.row_id, now)
        if entry.type == EntryType.answer:
            reopen_if_unanswered(db, entry, now)

        for child in children:
            attach_to_parent(child, parent)
            save_entry(db, child, now)
            shift_descendants(db, child, -1, now)


def restore_entry(db: Session, entity_id: str) -> int:
    now = utcnow()
    repo = EntryRepository(db)
    with transaction(db):
        new_id = repo.restore(entity_id, now)
        entry = repo.get_by_id(new_id)
        _index_labels(db, new_id, entry.content)
        if entry.parent_entity_id and repo.get_by_entity_id(entry.parent_entity_id) is None:
            old_depth = entry.depth
            attach_to_parent(entry, None)
            new_id = save_entry(db, entry, now)
            shift_descendants(db, entry, -old_depth, now)
        return new_id


# ---------------------------------------------------------------------------
# Hierarchy
# ---------------------------------------------------------------------------

def migrate_entry(db: Session, row_id: int, target: date) -> int:
    """Migrate a task and its subtree to `target`. Returns the new root's row id."""
    now = utcnow()
    with transaction(db):
        entry = _require(db, row_id)
        return migrate_subtree(db, entry, target, now)


def move_entry(
    db: Session,
    row_id: int,
    new_parent_id: Optional[int] = None,
    to_root: bool = False,
    new_date: Optional[date] = None,
) -> int:
    now = utcnow()
    repo = EntryRepository(db)
    with transaction(db):
        entry = _require(db, row_id)
        old_depth = entry.depth
        changed = False

        if new_parent_id is not None:
            parent = _require(db, new_parent_id)
            if not parent.can_have_children():
                raise ConflictError("Questions cannot have children.")
            subtree = {e.entity_id for e in repo.get_with_children(entry.row_id)}
            if parent.entity_id in subtree:
                raise ValidationError("An entry cannot be moved under itself or its descendants.")
            attach_to_parent(entry, parent)
            changed = True
        elif to_root and entry.parent_entity_id:
            attach_to_parent(entry, None)
            changed = True

        if new_date is not None and entry.scheduled_date != new_date:
            entry.scheduled_date = new_date
            changed = True

        if not changed:
            return entry.row_id
        new_id = save_entry(db, entry, now)
        shift_descendants(db, entry, entry.depth - old_depth, now, new_date)
        return new_id


def move_entry_to_list(db: Session, row_id: int, list_id: int) -> int:
    """Turn a childless task into an item of list `list_id`. Returns the item's row id."""
    now = utcnow()
    with transaction(db):
        entry = _require(db, row_id)
        target = ListRepository(db).get_by_id(list_id)
        if target is None:
            raise NotFoundError("list", list_id)
        if entry.type != EntryType.task:
            raise ValidationError(f"Only tasks can be moved to a list; entry {row_id} is a {entry.type.value}.")
        if EntryRepository(db).get_children(entry.row_id):
            raise ConflictError(f"Entry {row_id} has children and cannot be moved to a list.")
        item_id = EntryListMover(db).move(entry, target.entity_id, now)
        logger.info("moved entry %s to list %s", entry.entity_id, target.name)
        return item_id


# ---------------------------------------------------------------------------
# Questions
# ---------------------------------------------------------------------------

def mark_answered(db: Session, row_id: int, answer: str) -> int:
    """Answer a question. Returns the row id of the new answer entry."""
    answer, priority = lift_priority(answer)
    if not answer:
        raise ValidationError("Answer text cannot be empty.")
    if len(answer) > MAX_ANSWER_LENGTH:
        raise ValidationError(f"Answer text exceeds {MAX_ANSWER_LENGTH} characters.")
    now = utcnow()
    with transaction(db):
        question = _require(db, row_id)
        if question.type != EntryType.question:
            raise ValidationError(f"Entry {row_id} is not an open question.")
        question.type = EntryType.answered
        save_entry(db, question, now)
        reply = Entry(
            type=EntryType.answer,
            content=answer,
            priority=priority,
            scheduled_date=question.scheduled_date,
            created_at=now,
        )
        attach_to_parent(reply, question)
        return create_entry(db, reply, now)


def reopen_question(db: Session, row_id: int) -> int:
    now = utcnow()
    repo = EntryRepository(db)
    with transaction(db):
        question = _require(db, row_id)
        if question.type != EntryType.answered:
            raise ValidationError(f"Entry {row_id} is not an answered question.")
        for child in repo.get_children(question.row_id):
            if child.type == EntryType.answer:
                delete_subtree(db, child, now)
        question.type = EntryType.question
        return save_entry(db, question, now)
