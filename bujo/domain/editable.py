"""
Editable day document: serializer and line parser.

    2026-01-06:
    . !! Call dentist
      - ask about Friday
    >[2026-01-07] . Renew passport
    [3f0c...] x Pay rent

A line is blank, a date header (advisory), or an entry line. Entry lines
may carry a migration sigil `>[YYYY-MM-DD]` and an optional `[entity-id]`
prefix naming the stored entry they stand for.

Public API
----------
document_order(entries)                  -> list[(Entry, depth)]
serialize(entries, with_ids=False)       -> str
parse_document(text, originals=())       -> list[DocumentLine]
document_errors(lines)                   -> list[dict]
"""
from __future__ import annotations

import enum
import re
from collections import defaultdict
from dataclasses import dataclass
from datetime import date
from typing import Iterable, Optional, Sequence

from bujo.core.errors import ValidationError
from bujo.domain.entry import Entry, EntryType, Priority
from bujo.domain.parser import parse_body, split_indent

INDENT = "  "

_HEADER_RE = re.compile(r"^(\d{4}-\d{2}-\d{2}):$")
_MIGRATE_RE = re.compile(r"^>\[([^\]]*)\]\s*(.*)$")
_ID_RE = re.compile(r"^\[([A-Za-z0-9-]+)\]\s+(.*)$")
_UUID_RE = re.compile(r"^[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}$")


class LineKind(str, enum.Enum):
    blank = "blank"
    header = "header"
    entry = "entry"


@dataclass
class DocumentLine:
    line_number: int
    raw: str
    kind: LineKind = LineKind.entry
    depth: int = 0
    type: Optional[EntryType] = None
    priority: Priority = Priority.none
    content: str = ""
    header_date: Optional[date] = None
    migrate_to: Optional[date] = None
    explicit_id: Optional[str] = None
    # Set when the line stands for a stored entry.
    entity_id: Optional[str] = None
    valid: bool = True
    error: Optional[str] = None

    @property
    def is_entry(self) -> bool:
        return self.kind == LineKind.entry

    def key(self) -> tuple:
        return (self.type, self.content, self.depth)


# ---------------------------------------------------------------------------
# Serializer
# ---------------------------------------------------------------------------

def document_order(entries: Sequence[Entry]) -> list[tuple[Entry, int]]:
    """Depth-first layout of a day's entries.

    Siblings keep repository order. An entry whose parent is not among
    `entries` is laid out as a root.
    """
    by_id = {e.entity_id: e for e in entries}
    children: dict[str, list[Entry]] = defaultdict(list)
    roots: list[Entry] = []
    for e in entries:
        if e.parent_entity_id in by_id and e.parent_entity_id != e.entity_id:
            children[e.parent_entity_id].append(e)
        else:
            roots.append(e)

    out: list[tuple[Entry, int]] = []
    seen: set[str] = set()

    def walk(entry: Entry, depth: int) -> None:
        if entry.entity_id in seen:
            return
        seen.add(entry.entity_id)
        out.append((entry, depth))
        for child in children[entry.entity_id]:
            walk(child, depth + 1)

    for root in roots:
        walk(root, 0)
    return out


def format_line(entry: Entry, depth: int, with_id: bool = False) -> str:
    parts = [entry.symbol]
    if entry.priority != Priority.none:
        parts.append(entry.priority.marker)
    parts.append(entry.content)
    body = " ".join(parts)
    if with_id:
        body = f"[{entry.entity_id}] {body}"
    return INDENT * depth + body


def serialize(entries: Sequence[Entry], with_ids: bool = False) -> str:
    return "\n".join(format_line(e, d, with_ids) for e, d in document_order(entries))


# ---------------------------------------------------------------------------
# Parser
# ---------------------------------------------------------------------------

def _parse_date(value: str) -> date:
    try:
        return date.fromisoformat(value)
    except ValueError:
        raise ValidationError(f"invalid date {value!r}") from None


def parse_line(number: int, raw: str, known_ids: frozenset[str] = frozenset()) -> DocumentLine:
    line = DocumentLine(line_number=number, raw=raw)
    if not raw.strip():
        line.kind = LineKind.blank
        return line

    header = _HEADER_RE.match(raw.strip())
    if header:
        line.kind = LineKind.header
        try:
            line.header_date = _parse_date(header.group(1))
        except ValidationError as exc:
            line.valid, line.error = False, exc.message
        return line

    try:
        line.depth, rest = split_indent(raw)
        migration = _MIGRATE_RE.match(rest)
        if migration:
            line.migrate_to = _parse_date(migration.group(1))
            rest = migration.group(2)
        explicit = _ID_RE.match(rest)
        if explicit and (explicit.group(1) in known_ids or _UUID_RE.match(explicit.group(1))):
            line.explicit_id = explicit.group(1)
            rest = explicit.group(2)
        line.type, line.priority, line.content = parse_body(rest)
    except ValidationError as exc:
        line.valid, line.error = False, exc.message
    return line


def _check_structure(lines: Iterable[DocumentLine]) -> None:
    levels = 0
    for line in lines:
        if not line.is_entry or not line.valid:
            continue
        if line.depth > levels:
            line.valid = False
            line.error = f"orphan child: no parent at depth {line.depth - 1}"
            continue
        levels = line.depth + 1


def _match(lines: list[DocumentLine], originals: Sequence[Entry]) -> None:
    laid_out = document_order(originals)
    unmatched = {e.entity_id for e, _ in laid_out}

    for line in lines:
        if line.is_entry and line.valid and line.explicit_id in unmatched:
            line.entity_id = line.explicit_id
            unmatched.discard(line.explicit_id)

    for line in lines:
        # A line naming an id it could not claim is new.
        if not line.is_entry or not line.valid or line.explicit_id is not None:
            continue
        for entry, depth in laid_out:
            if entry.entity_id in unmatched and (entry.type, entry.content, depth) == line.key():
                line.entity_id = entry.entity_id
                unmatched.discard(entry.entity_id)
                break


def parse_document(text: str, originals: Sequence[Entry] = ()) -> list[DocumentLine]:
    known = frozenset(e.entity_id for e in originals)
    lines = [
        parse_line(number, raw, known)
        for number, raw in enumerate((text or "").splitlines(), start=1)
    ]
    _check_structure(lines)
    _match(lines, originals)
    return lines


def document_errors(lines: Iterable[DocumentLine]) -> list[dict]:
    return [
        {"line": line.line_number, "text": line.raw, "error": line.error}
        for line in lines
        if not line.valid
    ]
