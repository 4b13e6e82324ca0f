"""
Tag and mention rows for entries.

These tables are not versioned: they describe the current row of an
entry only and are rewritten whenever that row changes.
"""
from __future__ import annotations

from typing import Iterable

from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.orm import Session

from bujo import models
from bujo.domain.identity import OpType


class _LabelRepository:
    model = None
    column = ""

    def __init__(self, db: Session):
        self.db = db

    def insert(self, entry_id: int, values: Iterable[str]) -> None:
        rows = [{"entry_id": entry_id, self.column: v} for v in values]
        if not rows:
            return
        stmt = sqlite_insert(self.model).values(rows).on_conflict_do_nothing()
        self.db.execute(stmt)

    def for_entries(self, entry_ids: Iterable[int]) -> dict[int, list[str]]:
        ids = list(entry_ids)
        result: dict[int, list[str]] = {i: [] for i in ids}
        if not ids:
            return result
        col = getattr(self.model, self.column)
        for entry_id, value in (
            self.db.query(self.model.entry_id, col)
            .filter(self.model.entry_id.in_(ids))
            .order_by(self.model.entry_id, col)
            .all()
        ):
            result[entry_id].append(value)
        return result

    def all_values(self) -> list[str]:
        """Distinct values attached to current entries."""
        col = getattr(self.model, self.column)
        e = models.Entry
        rows = (
            self.db.query(col)
            .join(e, e.row_id == self.model.entry_id)
            .filter(e.valid_to.is_(None), e.op_type != OpType.DELETE)
            .distinct()
            .order_by(col)
            .all()
        )
        return [r[0] for r in rows]

    def delete_for_entry(self, entry_id: int) -> None:
        self.db.query(self.model).filter(self.model.entry_id == entry_id).delete(
            synchronize_session=False
        )

    def delete_all(self) -> int:
        return self.db.query(self.model).delete(synchronize_session=False)


class TagRepository(_LabelRepository):
    model = models.EntryTag
    column = "tag"


class MentionRepository(_LabelRepository):
    model = models.EntryMention
    column = "mention"
