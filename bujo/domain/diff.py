"""
Diff between a day's stored entries and a parsed editable document.

Operations are emitted in document order; deletes come last and only
for entries the caller explicitly marked as pending deletion.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import Iterable, Optional, Sequence, Union

from bujo.domain.editable import DocumentLine, document_order
from bujo.domain.entry import Entry, EntryType, Priority
from bujo.domain.identity import new_entity_id


@dataclass
class InsertOp:
    # Fresh entity id; later operations refer to the new entry by it.
    entity_id: str
    type: EntryType
    content: str
    priority: Priority
    parent_entity_id: Optional[str] = None
    line_number: int = 0


@dataclass
class UpdateOp:
    entity_id: str
    type: EntryType
    content: str
    priority: Priority
    line_number: int = 0


@dataclass
class DeleteOp:
    entity_id: str


@dataclass
class ReparentOp:
    entity_id: str
    parent_entity_id: Optional[str] = None
    line_number: int = 0


@dataclass
class MigrateOp:
    entity_id: str
    target: date
    line_number: int = 0


Operation = Union[InsertOp, UpdateOp, DeleteOp, ReparentOp, MigrateOp]


@dataclass
class Changeset:
    operations: list[Operation] = field(default_factory=list)
    errors: list[dict] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.operations

    def of(self, kind: type) -> list:
        return [op for op in self.operations if isinstance(op, kind)]


def compute_diff(
    originals: Sequence[Entry],
    lines: Iterable[DocumentLine],
    pending_deletes: Iterable[str] = (),
) -> Changeset:
    lines = list(lines)
    changes = Changeset()
    by_id = {e.entity_id: e for e in originals}
    # Parent as laid out in the document: None when the parent is not on this day.
    laid_out_parent = {
        e.entity_id: e.parent_entity_id if e.parent_entity_id in by_id else None
        for e, _ in document_order(originals)
    }

    stack: list[str] = []
    for line in lines:
        if not line.is_entry:
            continue
        if not line.valid:
            changes.errors.append({"line": line.line_number, "error": line.error})
            continue
        if line.depth > len(stack):
            changes.errors.append({
                "line": line.line_number,
                "error": f"orphan child: no parent at depth {line.depth - 1}",
            })
            continue
        del stack[line.depth:]
        parent_id = stack[-1] if stack else None

        if line.migrate_to is not None:
            if line.entity_id is None:
                changes.errors.append({
                    "line": line.line_number,
                    "error": "no stored entry matches this migration line",
                })
                continue
            changes.operations.append(MigrateOp(line.entity_id, line.migrate_to, line.line_number))
            stack.append(line.entity_id)
            continue

        if line.entity_id is None:
            entity_id = new_entity_id()
            changes.operations.append(InsertOp(
                entity_id=entity_id,
                type=line.type,
                content=line.content,
                priority=line.priority,
                parent_entity_id=parent_id,
                line_number=line.line_number,
            ))
            stack.append(entity_id)
            continue

        original = by_id[line.entity_id]
        if laid_out_parent.get(line.entity_id) != parent_id:
            changes.operations.append(ReparentOp(line.entity_id, parent_id, line.line_number))
        if (original.type, original.content, original.priority) != (
            line.type, line.content, line.priority
        ):
            changes.operations.append(UpdateOp(
                entity_id=line.entity_id,
                type=line.type,
                content=line.content,
                priority=line.priority,
                line_number=line.line_number,
            ))
        stack.append(line.entity_id)

    present = {line.entity_id for line in lines if line.entity_id}
    pending = set(pending_deletes)
    for entry in originals:
        if entry.entity_id in pending and entry.entity_id not in present:
            changes.operations.append(DeleteOp(entry.entity_id))
    return changes
