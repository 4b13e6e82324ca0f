from __future__ import annotations

from datetime import date, datetime
from typing import Optional

from bujo import models
from bujo.domain.day import DayContext
from bujo.repositories.versioned import VersionedRepository


class DayContextRepository(VersionedRepository[DayContext]):
    model = models.DayContext
    record = DayContext
    kind = "day context"

    def get_by_date(self, day: date) -> Optional[DayContext]:
        row = self._current().filter(self.model.day == day).one_or_none()
        return self._to_record(row) if row is not None else None

    def get_range(self, start: date, end: date) -> list[DayContext]:
        m = self.model
        rows = (
            self._current()
            .filter(m.day >= start, m.day <= end)
            .order_by(m.day)
            .all()
        )
        return self._to_records(rows)

    def upsert(self, context: DayContext, now: Optional[datetime] = None) -> int:
        existing = self.get_by_date(context.day)
        if existing is None:
            return self.insert(context, now)
        context.entity_id = existing.entity_id
        return self.update(context, now)
