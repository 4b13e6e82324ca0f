from __future__ import annotations

from bujo import models
from bujo.domain.goal import Goal
from bujo.repositories.versioned import VersionedRepository


class GoalRepository(VersionedRepository[Goal]):
    model = models.Goal
    record = Goal
    kind = "goal"

    def get_by_month(self, month: str) -> list[Goal]:
        m = self.model
        rows = (
            self._current()
            .filter(m.month == month)
            .order_by(m.created_at, m.row_id)
            .all()
        )
        return self._to_records(rows)

    def get_all(self) -> list[Goal]:
        m = self.model
        return self._to_records(self._current().order_by(m.month, m.created_at, m.row_id).all())
