from datetime import datetime
from typing import Optional

from sqlalchemy import ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from bujo.db.base import Base
from bujo.db.types import Instant
from bujo.models.versioned import VersionedMixin, current_unique, versioned_table_args


class Habit(VersionedMixin, Base):
    __tablename__ = "habits"
    __table_args__ = versioned_table_args("habits", current_unique("habits", "name"))

    name: Mapped[str] = mapped_column(String(128), nullable=False)
    goal_per_day: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    goal_per_week: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    goal_per_month: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    created_at: Mapped[datetime] = mapped_column(Instant, nullable=False)


class HabitLog(VersionedMixin, Base):
    __tablename__ = "habit_logs"
    __table_args__ = versioned_table_args("habit_logs")

    habit_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("habits.row_id", ondelete="SET NULL"), nullable=True
    )
    habit_entity_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    count: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    logged_at: Mapped[datetime] = mapped_column(Instant, nullable=False, index=True)
