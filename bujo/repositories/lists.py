from __future__ import annotations

from typing import Optional

from sqlalchemy import func

from bujo import models
from bujo.domain.identity import OpType
from bujo.domain.lists import JournalList, ListItem, ListItemType
from bujo.repositories.versioned import VersionedRepository


class ListRepository(VersionedRepository[JournalList]):
    model = models.JournalList
    record = JournalList
    kind = "list"

    def get_by_name(self, name: str) -> Optional[JournalList]:
        row = self._current().filter(self.model.name == name).one_or_none()
        return self._to_record(row) if row is not None else None

    def get_all(self) -> list[JournalList]:
        return self._to_records(self._current().order_by(self.model.name).all())


class ListItemRepository(VersionedRepository[ListItem]):
    model = models.ListItem
    record = ListItem
    kind = "list item"

    def get_by_list(self, list_entity_id: str) -> list[ListItem]:
        m = self.model
        rows = (
            self._current()
            .filter(m.list_entity_id == list_entity_id)
            .order_by(m.created_at, m.row_id)
            .all()
        )
        return self._to_records(rows)

    def count_by_list(self, list_entity_id: str) -> tuple[int, int]:
        """(total, done) for the list's current items."""
        m = self.model
        rows = (
            self.db.query(m.type, func.count(m.row_id))
            .filter(
                m.list_entity_id == list_entity_id,
                m.valid_to.is_(None),
                m.op_type != OpType.DELETE,
            )
            .group_by(m.type)
            .all()
        )
        counts = {t: n for t, n in rows}
        return sum(counts.values()), counts.get(ListItemType.done, 0)
