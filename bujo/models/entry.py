from datetime import date, datetime
from typing import Optional

from sqlalchemy import Date, Enum, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from bujo.db.base import Base
from bujo.db.types import Instant
from bujo.domain.entry import EntryType, Priority
from bujo.models.versioned import VersionedMixin, versioned_table_args


class Entry(VersionedMixin, Base):
    __tablename__ = "entries"
    __table_args__ = versioned_table_args("entries")

    type: Mapped[EntryType] = mapped_column(
        Enum(EntryType, name="entry_type_enum", native_enum=False), nullable=False
    )
    content: Mapped[str] = mapped_column(Text, nullable=False)
    priority: Mapped[Priority] = mapped_column(
        Enum(Priority, name="priority_enum", native_enum=False),
        nullable=False,
        default=Priority.none,
    )
    # Row id of the parent's version at write time; traversal uses parent_entity_id.
    parent_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("entries.row_id", ondelete="SET NULL"), nullable=True
    )
    parent_entity_id: Mapped[Optional[str]] = mapped_column(String(36), nullable=True, index=True)
    depth: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    scheduled_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True, index=True)
    location: Mapped[Optional[str]] = mapped_column(String(256), nullable=True)
    mood: Mapped[Optional[str]] = mapped_column(String(256), nullable=True)
    weather: Mapped[Optional[str]] = mapped_column(String(256), nullable=True)
    created_at: Mapped[datetime] = mapped_column(Instant, nullable=False)
    completed_at: Mapped[Optional[datetime]] = mapped_column(Instant, nullable=True)
    original_created_at: Mapped[Optional[datetime]] = mapped_column(Instant, nullable=True)
    migration_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    cancelled_from: Mapped[Optional[EntryType]] = mapped_column(
        Enum(EntryType, name="entry_type_enum", native_enum=False), nullable=True
    )
