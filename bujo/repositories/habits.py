from __future__ import annotations

from datetime import datetime
from typing import Optional

from bujo import models
from bujo.domain.habit import Habit, HabitLog
from bujo.repositories.versioned import VersionedRepository


class HabitRepository(VersionedRepository[Habit]):
    model = models.Habit
    record = Habit
    kind = "habit"

    def get_by_name(self, name: str) -> Optional[Habit]:
        row = self._current().filter(self.model.name == name).one_or_none()
        return self._to_record(row) if row is not None else None

    def get_all(self) -> list[Habit]:
        return self._to_records(self._current().order_by(self.model.name).all())


class HabitLogRepository(VersionedRepository[HabitLog]):
    model = models.HabitLog
    record = HabitLog
    kind = "habit log"

    def _values(self, record: HabitLog) -> dict:
        values = super()._values(record)
        h = models.Habit
        habit_row = (
            self.db.query(h)
            .filter(h.entity_id == record.habit_entity_id, h.valid_to.is_(None))
            .one_or_none()
        )
        values["habit_id"] = habit_row.row_id if habit_row is not None else None
        return values

    def get_by_habit(self, habit_entity_id: str) -> list[HabitLog]:
        m = self.model
        rows = (
            self._current()
            .filter(m.habit_entity_id == habit_entity_id)
            .order_by(m.logged_at, m.row_id)
            .all()
        )
        return self._to_records(rows)

    def get_range(
        self,
        start: datetime,
        end: datetime,
        habit_entity_id: Optional[str] = None,
    ) -> list[HabitLog]:
        """Logs with start <= logged_at < end."""
        m = self.model
        q = self._current().filter(m.logged_at >= start, m.logged_at < end)
        if habit_entity_id is not None:
            q = q.filter(m.habit_entity_id == habit_entity_id)
        return self._to_records(q.order_by(m.logged_at, m.row_id).all())

    def get_latest(self, habit_entity_id: str) -> Optional[HabitLog]:
        m = self.model
        row = (
            self._current()
            .filter(m.habit_entity_id == habit_entity_id)
            .order_by(m.logged_at.desc(), m.row_id.desc())
            .first()
        )
        return self._to_record(row) if row is not None else None
