"""
Entries router.

POST /api/entries   log a tree of entries (used by the mail add-on)
"""
from __future__ import annotations

from typing import Iterable, Optional

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from bujo.core.errors import ValidationError
from bujo.db.base import get_db
from bujo.domain.entry import EntryType, lift_priority, parse_entry_type
from bujo.domain.parser import ParsedEntry
from bujo.schemas.api import CreatedEntry, CreateEntriesRequest, CreateEntriesResponse, EntryInput
from bujo.services.entries import log_items

router = APIRouter(prefix="/api/entries", tags=["entries"])

API_TYPES = frozenset({EntryType.task, EntryType.note, EntryType.event, EntryType.question})


def flatten(items: Iterable[EntryInput]) -> list[ParsedEntry]:
    """Depth-first ParsedEntry list; `parent_index` points into the same list."""
    flat: list[ParsedEntry] = []

    def walk(nodes: Iterable[EntryInput], depth: int, parent_index: Optional[int]) -> None:
        for node in nodes:
            entry_type = parse_entry_type(node.type)
            if entry_type not in API_TYPES:
                raise ValidationError(
                    f"Invalid entry type {node.type!r}.",
                    details={"allowed": sorted(t.value for t in API_TYPES)},
                )
            content, priority = lift_priority(node.content)
            if not content:
                raise ValidationError("Entry content cannot be empty.")
            flat.append(
                ParsedEntry(
                    type=entry_type,
                    content=content,
                    priority=priority,
                    depth=depth,
                    parent_index=parent_index,
                    line_number=len(flat) + 1,
                )
            )
            walk(node.children, depth + 1, len(flat) - 1)

    walk(items, 0, None)
    return flat


def _nest(items: Iterable[EntryInput], ids: Iterable[int]) -> list[CreatedEntry]:
    it = iter(ids)

    def build(nodes: Iterable[EntryInput]) -> list[CreatedEntry]:
        out = []
        for node in nodes:
            created = CreatedEntry(id=next(it))
            if node.children:
                created.children = build(node.children)
            out.append(created)
        return out

    return build(items)


@router.post(
    "",
    response_model=CreateEntriesResponse,
    response_model_exclude_none=True,
    status_code=status.HTTP_201_CREATED,
    summary="Log entries with optional children",
    responses={
        201: {"description": "Entries stored; ids mirror the request tree."},
        422: {"description": "Unknown type, empty content or malformed body."},
    },
)
def create_entries(payload: CreateEntriesRequest, db: Session = Depends(get_db)):
    """
    Store every entry in one transaction on `day` (today UTC by default).
    Children become child entries one level below their parent.
    """
    parsed = flatten(payload.entries)
    ids = log_items(db, parsed, payload.day)
    return CreateEntriesResponse(entries=_nest(payload.entries, ids))
