"""Tag and mention tables, keyed by the current row id of an entry."""
from sqlalchemy import ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from bujo.db.base import Base


class EntryTag(Base):
    __tablename__ = "entry_tags"

    entry_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("entries.row_id", ondelete="CASCADE"), primary_key=True
    )
    tag: Mapped[str] = mapped_column(String(128), primary_key=True, index=True)


class EntryMention(Base):
    __tablename__ = "entry_mentions"

    entry_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("entries.row_id", ondelete="CASCADE"), primary_key=True
    )
    mention: Mapped[str] = mapped_column(String(128), primary_key=True, index=True)
