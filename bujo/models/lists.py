from datetime import datetime

from sqlalchemy import Enum, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from bujo.db.base import Base
from bujo.db.types import Instant
from bujo.domain.lists import ListItemType
from bujo.models.versioned import VersionedMixin, current_unique, versioned_table_args


class JournalList(VersionedMixin, Base):
    __tablename__ = "lists"
    __table_args__ = versioned_table_args("lists", current_unique("lists", "name"))

    name: Mapped[str] = mapped_column(String(128), nullable=False)
    created_at: Mapped[datetime] = mapped_column(Instant, nullable=False)


class ListItem(VersionedMixin, Base):
    __tablename__ = "list_items"
    __table_args__ = versioned_table_args("list_items")

    list_entity_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    type: Mapped[ListItemType] = mapped_column(
        Enum(ListItemType, name="list_item_type_enum", native_enum=False),
        nullable=False,
        default=ListItemType.task,
    )
    content: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(Instant, nullable=False)
