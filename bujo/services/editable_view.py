"""
Editable day document: render a day as text, validate a user's edit, and
apply the resulting changeset in one transaction.

Public API
----------
get_editable_document(db, day, with_ids=False) -> str
validate_document(text)                        -> list[dict]   (empty when valid)
preview_changes(db, day, text, pending_deletes) -> Changeset
apply_changes(db, day, text, pending_deletes)   -> ApplyResult
"""
from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from datetime import date, datetime
from typing import Iterable, Optional

from sqlalchemy.orm import Session

from bujo.core.errors import ConflictError, NotFoundError, ValidationError
from bujo.db.base import transaction
from bujo.db.types import utcnow
from bujo.domain.diff import (
    Changeset,
    DeleteOp,
    InsertOp,
    MigrateOp,
    ReparentOp,
    UpdateOp,
    compute_diff,
)
from bujo.domain.editable import document_errors, parse_document, serialize
from bujo.domain.entry import LOGGABLE, RETYPEABLE, Entry, EntryType
from bujo.repositories.entries import EntryRepository
from bujo.services import entries as entry_service

logger = logging.getLogger(__name__)

# Type changes a document line may make. A cancelled entry only goes back
# to the type it was cancelled from.
TRANSITIONS: dict[EntryType, frozenset[EntryType]] = {
    EntryType.task: frozenset({EntryType.note, EntryType.event, EntryType.done, EntryType.cancelled}),
    EntryType.note: frozenset({EntryType.task, EntryType.event, EntryType.cancelled}),
    EntryType.event: frozenset({EntryType.task, EntryType.note, EntryType.cancelled}),
    EntryType.done: frozenset({EntryType.task}),
}


@dataclass
class ApplyResult:
    inserted: int = 0
    updated: int = 0
    deleted: int = 0
    migrated: int = 0

    def to_dict(self) -> dict:
        return asdict(self)


def get_editable_document(db: Session, day: date, with_ids: bool = False) -> str:
    return serialize(EntryRepository(db).get_by_date(day), with_ids=with_ids)


def validate_document(text: str) -> list[dict]:
    return document_errors(parse_document(text))


def preview_changes(
    db: Session,
    day: date,
    text: str,
    pending_deletes: Iterable[str] = (),
) -> Changeset:
    originals = EntryRepository(db).get_by_date(day)
    lines = parse_document(text, originals)
    errors = document_errors(lines)
    if errors:
        raise ValidationError("The document has invalid lines.", details={"errors": errors})
    changes = compute_diff(originals, lines, pending_deletes)
    if changes.errors:
        raise ValidationError("The document has invalid lines.", details={"errors": changes.errors})
    return changes


def apply_changes(
    db: Session,
    day: date,
    text: str,
    pending_deletes: Iterable[str] = (),
) -> ApplyResult:
    """Reconcile the stored day with `text`. All or nothing."""
    changes = preview_changes(db, day, text, pending_deletes)
    result = ApplyResult()
    if changes.is_empty:
        return result

    now = utcnow()
    with transaction(db):
        applier = _Applier(db, day, now)
        for op in changes.operations:
            applier.apply(op, result)

    logger.info(
        "applied document for %s: %d inserted, %d updated, %d deleted, %d migrated",
        day, result.inserted, result.updated, result.deleted, result.migrated,
    )
    return result


class _Applier:
    def __init__(self, db: Session, day: date, now: datetime):
        self.db = db
        self.day = day
        self.now = now
        self.repo = EntryRepository(db)
        # entity_id -> entry created earlier in this changeset
        self.created: dict[str, Entry] = {}

    def apply(self, op, result: ApplyResult) -> None:
        if isinstance(op, InsertOp):
            self._insert(op)
            result.inserted += 1
        elif isinstance(op, UpdateOp):
            self._update(op)
            result.updated += 1
        elif isinstance(op, ReparentOp):
            self._reparent(op)
        elif isinstance(op, MigrateOp):
            entry_service.migrate_subtree(self.db, self._current(op.entity_id), op.target, self.now)
            result.migrated += 1
        elif isinstance(op, DeleteOp):
            if self._delete(op):
                result.deleted += 1

    # ------------------------------------------------------------------

    def _current(self, entity_id: str) -> Entry:
        entry = self.repo.get_by_entity_id(entity_id)
        if entry is None:
            raise NotFoundError("entry", entity_id)
        return entry

    def _parent(self, entity_id: Optional[str]) -> Optional[Entry]:
        if entity_id is None:
            return None
        if entity_id in self.created:
            return self.created[entity_id]
        return self._current(entity_id)

    def _accept_child(self, parent: Optional[Entry], child_type: EntryType) -> None:
        if parent is None:
            if child_type == EntryType.answer:
                raise ValidationError("An answer must sit under a question.")
            return
        if child_type == EntryType.answer:
            if parent.type == EntryType.question:
                parent.type = EntryType.answered
                entry_service.save_entry(self.db, parent, self.now)
            elif parent.type != EntryType.answered:
                raise ValidationError("An answer must sit under a question.")
        elif not parent.can_have_children():
            raise ConflictError("Questions cannot have children; answer the question instead.")

    def _insert(self, op: InsertOp) -> None:
        if op.type not in LOGGABLE and op.type != EntryType.answer:
            raise ValidationError(
                f"line {op.line_number}: {op.type.value} entries cannot be created here."
            )
        parent = self._parent(op.parent_entity_id)
        self._accept_child(parent, op.type)
        entry = Entry(
            entity_id=op.entity_id,
            type=op.type,
            content=op.content,
            priority=op.priority,
            scheduled_date=self.day,
            created_at=self.now,
            completed_at=self.now if op.type == EntryType.done else None,
        )
        entry_service.attach_to_parent(entry, parent)
        entry_service.create_entry(self.db, entry, self.now)
        self.created[entry.entity_id] = entry

    def _update(self, op: UpdateOp) -> None:
        entry = self._current(op.entity_id)
        where = f"line {op.line_number}"
        if entry.type == EntryType.migrated:
            raise ValidationError(f"{where}: migrated entries cannot be edited.")
        if op.type != entry.type:
            self._check_transition(entry, op.type, where)
        elif not entry.can_edit():
            raise ValidationError(f"{where}: {entry.type.value} entries cannot be edited.")

        if op.type != entry.type:
            entry.completed_at = self.now if op.type == EntryType.done else None
            entry.cancelled_from = entry.type if op.type == EntryType.cancelled else None
        entry.type = op.type
        entry.content = op.content
        entry.priority = op.priority
        entry_service.save_entry(self.db, entry, self.now)

    def _check_transition(self, entry: Entry, new_type: EntryType, where: str) -> None:
        if new_type == EntryType.done and entry.type != EntryType.task:
            raise ConflictError(f"{where}: only tasks can be marked done.")
        if entry.type == EntryType.cancelled:
            allowed = {entry.cancelled_from or EntryType.task} & RETYPEABLE
        else:
            allowed = TRANSITIONS.get(entry.type, frozenset())
        if new_type not in allowed:
            raise ValidationError(
                f"{where}: cannot change {entry.type.value} to {new_type.value} here.",
                details={"allowed": sorted(t.value for t in allowed)},
            )

    def _reparent(self, op: ReparentOp) -> None:
        entry = self._current(op.entity_id)
        parent = self._parent(op.parent_entity_id)
        if parent is not None:
            subtree = {e.entity_id for e in self.repo.get_with_children(entry.row_id)}
            if parent.entity_id in subtree:
                raise ValidationError(f"line {op.line_number}: an entry cannot sit under itself.")
        self._accept_child(parent, entry.type)
        old_depth = entry.depth
        entry_service.attach_to_parent(entry, parent)
        entry_service.save_entry(self.db, entry, self.now)
        entry_service.shift_descendants(self.db, entry, entry.depth - old_depth, self.now)

    def _delete(self, op: DeleteOp) -> bool:
        entry = self.repo.get_by_entity_id(op.entity_id)
        if entry is None:
            # already removed with an ancestor earlier in this changeset
            return False
        entry_service.delete_subtree(self.db, entry, self.now)
        if entry.type == EntryType.answer:
            entry_service.reopen_if_unanswered(self.db, entry, self.now)
        return True
