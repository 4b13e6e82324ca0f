"""Version header shared by every bitemporal table."""
from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import Enum, Index, Integer, String, UniqueConstraint, text
from sqlalchemy.orm import Mapped, mapped_column

from bujo.db.types import Instant
from bujo.domain.identity import OpType

CURRENT_ROW_SQL = "valid_to IS NULL AND op_type != 'DELETE'"


class VersionedMixin:
    row_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    entity_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    version: Mapped[int] = mapped_column(Integer, nullable=False)
    valid_from: Mapped[datetime] = mapped_column(Instant, nullable=False)
    valid_to: Mapped[Optional[datetime]] = mapped_column(Instant, nullable=True)
    op_type: Mapped[OpType] = mapped_column(
        Enum(OpType, name="op_type_enum", native_enum=False),
        nullable=False,
    )


def versioned_table_args(table: str, *extra) -> tuple:
    return (
        Index(f"ix_{table}_entity_valid_to", "entity_id", "valid_to"),
        UniqueConstraint("entity_id", "version", name=f"uq_{table}_entity_version"),
        *extra,
    )


def current_unique(table: str, column: str) -> Index:
    """Unique over current rows only; history and tombstones may repeat."""
    return Index(
        f"uq_{table}_current_{column}",
        column,
        unique=True,
        sqlite_where=text(CURRENT_ROW_SQL),
    )
