from __future__ import annotations

from datetime import date
from typing import Optional

from bujo import models
from bujo.domain.summary import Summary, SummaryHorizon
from bujo.repositories.versioned import VersionedRepository


class SummaryRepository(VersionedRepository[Summary]):
    model = models.Summary
    record = Summary
    kind = "summary"

    def get(self, horizon: SummaryHorizon, start: date, end: date) -> Optional[Summary]:
        """Most recent cached summary for the exact range."""
        m = self.model
        row = (
            self._current()
            .filter(m.horizon == horizon, m.start_date == start, m.end_date == end)
            .order_by(m.created_at.desc(), m.row_id.desc())
            .first()
        )
        return self._to_record(row) if row is not None else None

    def get_by_horizon(self, horizon: SummaryHorizon) -> list[Summary]:
        m = self.model
        rows = (
            self._current()
            .filter(m.horizon == horizon)
            .order_by(m.start_date.desc(), m.row_id.desc())
            .all()
        )
        return self._to_records(rows)
