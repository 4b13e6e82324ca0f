from datetime import date
from typing import Optional

from sqlalchemy import Date, String
from sqlalchemy.orm import Mapped, mapped_column

from bujo.db.base import Base
from bujo.models.versioned import VersionedMixin, current_unique, versioned_table_args


class DayContext(VersionedMixin, Base):
    __tablename__ = "day_contexts"
    __table_args__ = versioned_table_args("day_contexts", current_unique("day_contexts", "day"))

    day: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    location: Mapped[Optional[str]] = mapped_column(String(256), nullable=True)
    mood: Mapped[Optional[str]] = mapped_column(String(256), nullable=True)
    weather: Mapped[Optional[str]] = mapped_column(String(256), nullable=True)
