"""
Entry repository.

Entries keep both the parent's row id at write time (`parent_id`) and the
parent's `entity_id`. Hierarchy queries walk `parent_entity_id`, so a
child stays attached while its parent accumulates versions; on read,
`parent_id` is rewritten to the parent's current row id.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import Iterable, Optional

from sqlalchemy import func, select
from sqlalchemy.orm import Query, aliased

from bujo import models
from bujo.core.config import settings
from bujo.domain.entry import Entry, EntryType
from bujo.domain.identity import OpType
from bujo.repositories.versioned import VersionedRepository


@dataclass
class SearchOptions:
    query: str = ""
    type: Optional[EntryType] = None
    date_from: Optional[date] = None
    date_to: Optional[date] = None
    tags: tuple[str, ...] = ()
    mentions: tuple[str, ...] = ()
    limit: int = 0


class EntryRepository(VersionedRepository[Entry]):
    model = models.Entry
    record = Entry
    kind = "entry"

    # ------------------------------------------------------------------
    # Parent links
    # ------------------------------------------------------------------

    def _values(self, record: Entry) -> dict:
        values = super()._values(record)
        m = self.model
        parent_eid = values.get("parent_entity_id")
        if parent_eid:
            open_row = (
                self._query()
                .filter(m.entity_id == parent_eid, m.valid_to.is_(None))
                .one_or_none()
            )
            values["parent_id"] = open_row.row_id if open_row is not None else None
        elif values.get("parent_id"):
            parent = self.db.get(m, values["parent_id"])
            values["parent_entity_id"] = parent.entity_id if parent is not None else None
            if parent is None:
                values["parent_id"] = None
        return values

    def _to_records(self, rows: Iterable) -> list[Entry]:
        rows = list(rows)
        parent_eids = {r.parent_entity_id for r in rows if r.parent_entity_id}
        current_ids: dict[str, int] = {}
        if parent_eids:
            m = self.model
            for entity_id, row_id in (
                self.db.query(m.entity_id, m.row_id)
                .filter(
                    m.entity_id.in_(parent_eids),
                    m.valid_to.is_(None),
                    m.op_type != OpType.DELETE,
                )
                .all()
            ):
                current_ids[entity_id] = row_id
        records = []
        for row in rows:
            record = super()._to_record(row)
            if row.parent_entity_id:
                record.parent_id = current_ids.get(row.parent_entity_id)
            records.append(record)
        return records

    def _to_record(self, row) -> Entry:
        return self._to_records([row])[0]

    # ------------------------------------------------------------------
    # Day queries
    # ------------------------------------------------------------------

    def _first_row(self):
        """Oldest surviving row id of each entity; breaks created_at ties
        without moving an entry when it gains a version."""
        m = self.model
        first = aliased(m)
        return (
            select(func.min(first.row_id))
            .where(first.entity_id == m.entity_id)
            .correlate(m)
            .scalar_subquery()
        )

    def _ordered(self, query: Query) -> Query:
        return query.order_by(self.model.created_at, self._first_row())

    def get_by_date(self, day: date) -> list[Entry]:
        q = self._current().filter(self.model.scheduled_date == day)
        return self._to_records(self._ordered(q).all())

    def get_by_date_range(self, start: date, end: date) -> list[Entry]:
        m = self.model
        q = self._current().filter(m.scheduled_date >= start, m.scheduled_date <= end)
        q = q.order_by(m.scheduled_date)
        return self._to_records(self._ordered(q).all())

    def get_all(self) -> list[Entry]:
        q = self._current().order_by(self.model.scheduled_date)
        return self._to_records(self._ordered(q).all())

    # ------------------------------------------------------------------
    # Hierarchy
    # ------------------------------------------------------------------

    def _entity_of(self, row_id: int) -> Optional[str]:
        row = self.db.get(self.model, row_id)
        return row.entity_id if row is not None else None

    def _children_rows(self, parent_entity_id: str) -> list:
        q = self._current().filter(self.model.parent_entity_id == parent_entity_id)
        return self._ordered(q).all()

    def get_children(self, parent_row_id: int) -> list[Entry]:
        entity_id = self._entity_of(parent_row_id)
        if entity_id is None:
            return []
        return self._to_records(self._children_rows(entity_id))

    def get_children_by_entity_id(self, parent_entity_id: str) -> list[Entry]:
        return self._to_records(self._children_rows(parent_entity_id))

    def _subtree_rows(self, row_id: int) -> list:
        root = self._resolve_row(row_id)
        if root is None:
            return []
        rows = [root]
        frontier = [root.entity_id]
        seen = {root.entity_id}
        while frontier:
            children = (
                self._current()
                .filter(self.model.parent_entity_id.in_(frontier))
                .all()
            )
            frontier = []
            for child in children:
                if child.entity_id in seen:
                    continue
                seen.add(child.entity_id)
                rows.append(child)
                frontier.append(child.entity_id)
        rows.sort(key=lambda r: (r.depth, r.row_id))
        return rows

    def get_with_children(self, row_id: int) -> list[Entry]:
        """The entry and all current descendants, ordered by (depth, row_id)."""
        return self._to_records(self._subtree_rows(row_id))

    def delete_with_children(self, row_id: int, now: Optional[datetime] = None) -> list[Entry]:
        """Soft-delete the entry and every descendant. Returns what was deleted."""
        rows = self._subtree_rows(row_id)
        deleted = self._to_records(rows)
        for row in reversed(rows):
            self._append(row, OpType.DELETE, self._row_values(row), now)
        return deleted

    def get_ancestors(self, row_id: int) -> list[Entry]:
        """Root first, excluding the entry itself."""
        row = self._resolve_row(row_id)
        chain = []
        seen = set()
        while row is not None and row.parent_entity_id and row.parent_entity_id not in seen:
            seen.add(row.parent_entity_id)
            row = self._current_row(row.parent_entity_id)
            if row is not None:
                chain.append(row)
        chain.reverse()
        return self._to_records(chain)

    # ------------------------------------------------------------------
    # Overdue
    # ------------------------------------------------------------------

    def get_overdue(self, today: date) -> list[Entry]:
        """Open tasks scheduled before `today`, each preceded by its ancestors."""
        m = self.model
        tasks = (
            self._current()
            .filter(
                m.type == EntryType.task,
                m.scheduled_date.is_not(None),
                m.scheduled_date < today,
            )
            .all()
        )
        rows = {r.entity_id: r for r in tasks}
        for task in tasks:
            parent_eid = task.parent_entity_id
            while parent_eid and parent_eid not in rows:
                parent = self._current_row(parent_eid)
                if parent is None:
                    break
                rows[parent.entity_id] = parent
                parent_eid = parent.parent_entity_id
        ordered = sorted(
            rows.values(),
            key=lambda r: (r.scheduled_date or date.min, r.depth, r.created_at, r.row_id),
        )
        return self._to_records(ordered)

    # ------------------------------------------------------------------
    # Search
    # ------------------------------------------------------------------

    def search(self, opts: SearchOptions) -> list[Entry]:
        query = (opts.query or "").strip()
        if not query and not opts.tags and not opts.mentions:
            return []

        m = self.model
        q = self._current()
        if query:
            q = q.filter(m.content.icontains(query, autoescape=True))
        if opts.type is not None:
            q = q.filter(m.type == opts.type)
        if opts.date_from is not None:
            q = q.filter(m.scheduled_date >= opts.date_from)
        if opts.date_to is not None:
            q = q.filter(m.scheduled_date <= opts.date_to)
        for tag in opts.tags:
            tagged = self.db.query(models.EntryTag.entry_id).filter(
                models.EntryTag.tag == tag.lstrip("#").lower()
            )
            q = q.filter(m.row_id.in_(tagged))
        if opts.mentions:
            names = [name.lstrip("@").lower() for name in opts.mentions]
            mentioned = self.db.query(models.EntryMention.entry_id).filter(
                func.lower(models.EntryMention.mention).in_(names)
            )
            q = q.filter(m.row_id.in_(mentioned))

        limit = opts.limit if opts.limit > 0 else settings.SEARCH_DEFAULT_LIMIT
        q = q.order_by(m.scheduled_date.desc(), m.created_at.desc(), m.row_id.desc())
        return self._to_records(q.limit(limit).all())
