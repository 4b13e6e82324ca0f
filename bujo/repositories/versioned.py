"""
Bitemporal repository protocol shared by every versioned table.

Rows are never updated in place except to close them. A change closes
the current row (`valid_to = ts`) and appends the next version; a soft
delete appends a DELETE tombstone carrying the last content; restore
appends an UPDATE row reviving the last non-DELETE version.

Public API (per subclass)
-------------------------
insert(record, now)            -> row_id
get_by_id(row_id)              -> record | None   (older row ids resolve to current)
get_by_entity_id(entity_id)    -> record | None
get_all()                      -> list[record]
update(record, now)            -> new row_id | None   (None when nothing is current)
delete(row_id, now)            -> None   (idempotent)
get_deleted()                  -> list[record]
restore(entity_id, now)        -> row_id
get_history(entity_id)         -> list[record]
get_at_version(entity_id, v)   -> record | None
exists(entity_id)              -> bool
delete_all()                   -> int    (hard delete, replace-mode import only)
count_archivable(cutoff) / delete_archivable(cutoff) -> int
get_last_modified()            -> datetime | None

Writes flush but never commit; the calling service owns the transaction.
"""
from __future__ import annotations

import dataclasses
from datetime import datetime, timedelta
from typing import Any, Generic, Iterable, Optional, TypeVar

from sqlalchemy import func
from sqlalchemy import exc as sa_exc
from sqlalchemy.orm import Query, Session

from bujo.core.errors import IntegrityError, NotFoundError, StoreError, ValidationError
from bujo.db.types import as_utc, utcnow
from bujo.domain.identity import OpType, new_entity_id

T = TypeVar("T")

HEADER_FIELDS = ("row_id", "entity_id", "version", "valid_from", "valid_to", "op_type")


class VersionedRepository(Generic[T]):
    model: Any = None
    record: Any = None
    kind: str = "entity"
    # Columns copied from the current row on update instead of the record.
    preserved: tuple[str, ...] = ("created_at",)

    def __init__(self, db: Session):
        self.db = db

    # ------------------------------------------------------------------
    # Mapping
    # ------------------------------------------------------------------

    @property
    def columns(self) -> tuple[str, ...]:
        return tuple(
            f.name for f in dataclasses.fields(self.record) if f.name not in HEADER_FIELDS
        )

    def _values(self, record: T) -> dict[str, Any]:
        return {name: getattr(record, name) for name in self.columns}

    def _row_values(self, row) -> dict[str, Any]:
        return {name: getattr(row, name) for name in self.columns}

    def _to_record(self, row) -> T:
        values = {name: getattr(row, name) for name in HEADER_FIELDS}
        values.update(self._row_values(row))
        return self.record(**values)

    def _to_records(self, rows: Iterable) -> list[T]:
        return [self._to_record(r) for r in rows]

    # ------------------------------------------------------------------
    # Row queries
    # ------------------------------------------------------------------

    def _query(self) -> Query:
        return self.db.query(self.model)

    def _current(self) -> Query:
        m = self.model
        return self._query().filter(m.valid_to.is_(None), m.op_type != OpType.DELETE)

    def _current_row(self, entity_id: str):
        return self._current().filter(self.model.entity_id == entity_id).one_or_none()

    def _open_row(self, entity_id: str):
        """Row with no valid_to: the current version or a tombstone."""
        m = self.model
        return (
            self._query()
            .filter(m.entity_id == entity_id, m.valid_to.is_(None))
            .one_or_none()
        )

    def _resolve_row(self, row_id: int):
        row = self.db.get(self.model, row_id)
        if row is None:
            return None
        if row.valid_to is None and row.op_type != OpType.DELETE:
            return row
        return self._current_row(row.entity_id)

    def _last_live_row(self, entity_id: str):
        m = self.model
        return (
            self._query()
            .filter(m.entity_id == entity_id, m.op_type != OpType.DELETE)
            .order_by(m.version.desc())
            .first()
        )

    def _max_version(self, entity_id: str) -> int:
        m = self.model
        return self.db.query(func.max(m.version)).filter(m.entity_id == entity_id).scalar() or 0

    # ------------------------------------------------------------------
    # Write protocol
    # ------------------------------------------------------------------

    def _flush(self) -> None:
        try:
            self.db.flush()
        except sa_exc.IntegrityError as exc:
            raise IntegrityError(
                f"{self.kind} write violates a constraint.",
                details={"reason": str(exc.orig)},
            ) from exc
        except sa_exc.SQLAlchemyError as exc:
            raise StoreError(f"{self.kind} write failed.", details={"reason": str(exc)}) from exc

    @staticmethod
    def _stamp(current, now: Optional[datetime]) -> datetime:
        # valid_from stays strictly increasing per entity even when several
        # writes share one wall-clock read.
        ts = as_utc(now or utcnow())
        floor = as_utc(current.valid_from) + timedelta(microseconds=1)
        return max(ts, floor)

    def _append(self, current, op_type: OpType, values: dict[str, Any], now: Optional[datetime]) -> int:
        ts = self._stamp(current, now)
        next_version = self._max_version(current.entity_id) + 1
        current.valid_to = ts
        self._flush()
        row = self.model(
            entity_id=current.entity_id,
            version=next_version,
            valid_from=ts,
            valid_to=None,
            op_type=op_type,
            **values,
        )
        self.db.add(row)
        self._flush()
        return row.row_id

    def insert(self, record: T, now: Optional[datetime] = None) -> int:
        ts = as_utc(now or utcnow())
        values = self._values(record)
        if "created_at" in values and values["created_at"] is None:
            values["created_at"] = ts
        entity_id = getattr(record, "entity_id", "") or new_entity_id()
        row = self.model(
            entity_id=entity_id,
            version=1,
            valid_from=ts,
            valid_to=None,
            op_type=OpType.INSERT,
            **values,
        )
        self.db.add(row)
        self._flush()
        record.row_id = row.row_id
        record.entity_id = entity_id
        return row.row_id

    def update(self, record: T, now: Optional[datetime] = None) -> Optional[int]:
        if getattr(record, "entity_id", ""):
            current = self._current_row(record.entity_id)
        else:
            current = self._resolve_row(record.row_id)
        if current is None:
            return None
        values = self._values(record)
        for name in self.preserved:
            if name in values:
                values[name] = getattr(current, name)
        return self._append(current, OpType.UPDATE, values, now)

    def delete(self, row_id: int, now: Optional[datetime] = None) -> None:
        current = self._resolve_row(row_id)
        if current is None:
            return
        self._append(current, OpType.DELETE, self._row_values(current), now)

    def delete_entity(self, entity_id: str, now: Optional[datetime] = None) -> None:
        current = self._current_row(entity_id)
        if current is None:
            return
        self._append(current, OpType.DELETE, self._row_values(current), now)

    def restore(self, entity_id: str, now: Optional[datetime] = None) -> int:
        tombstone = self._open_row(entity_id)
        if tombstone is None:
            raise NotFoundError(self.kind, entity_id)
        if tombstone.op_type != OpType.DELETE:
            raise ValidationError(f"{self.kind} {entity_id} is not deleted.")
        last = self._last_live_row(entity_id)
        if last is None:
            raise NotFoundError(self.kind, entity_id)
        return self._append(tombstone, OpType.UPDATE, self._row_values(last), now)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_by_id(self, row_id: int) -> Optional[T]:
        row = self._resolve_row(row_id)
        return self._to_record(row) if row is not None else None

    def get_by_entity_id(self, entity_id: str) -> Optional[T]:
        row = self._current_row(entity_id)
        return self._to_record(row) if row is not None else None

    def get_all(self) -> list[T]:
        return self._to_records(self._current().order_by(self.model.row_id).all())

    def get_deleted(self) -> list[T]:
        m = self.model
        tombstones = (
            self._query()
            .filter(m.valid_to.is_(None), m.op_type == OpType.DELETE)
            .order_by(m.valid_from.desc(), m.row_id.desc())
            .all()
        )
        rows = []
        for tombstone in tombstones:
            last = self._last_live_row(tombstone.entity_id)
            if last is not None:
                rows.append(last)
        return self._to_records(rows)

    def get_history(self, entity_id: str) -> list[T]:
        m = self.model
        rows = self._query().filter(m.entity_id == entity_id).order_by(m.version).all()
        return self._to_records(rows)

    def get_at_version(self, entity_id: str, version: int) -> Optional[T]:
        m = self.model
        row = (
            self._query()
            .filter(m.entity_id == entity_id, m.version == version)
            .one_or_none()
        )
        return self._to_record(row) if row is not None else None

    def exists(self, entity_id: str) -> bool:
        """True if any row, current or not, carries `entity_id`."""
        return self._max_version(entity_id) > 0

    def get_last_modified(self) -> Optional[datetime]:
        return self.db.query(func.max(self.model.valid_from)).scalar()

    # ------------------------------------------------------------------
    # Hard deletes
    # ------------------------------------------------------------------

    def delete_all(self) -> int:
        count = self._query().delete(synchronize_session=False)
        self.db.expire_all()
        return count

    def _archivable(self, cutoff: datetime) -> Query:
        m = self.model
        return self._query().filter(m.valid_to.is_not(None), m.valid_to < cutoff)

    def count_archivable(self, cutoff: datetime) -> int:
        return self._archivable(cutoff).count()

    def delete_archivable(self, cutoff: datetime) -> int:
        count = self._archivable(cutoff).delete(synchronize_session=False)
        self.db.expire_all()
        return count
