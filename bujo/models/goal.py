from datetime import datetime
from typing import Optional

from sqlalchemy import Enum, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from bujo.db.base import Base
from bujo.db.types import Instant
from bujo.domain.goal import GoalStatus
from bujo.models.versioned import VersionedMixin, versioned_table_args


class Goal(VersionedMixin, Base):
    __tablename__ = "goals"
    __table_args__ = versioned_table_args("goals")

    content: Mapped[str] = mapped_column(Text, nullable=False)
    month: Mapped[str] = mapped_column(String(7), nullable=False, index=True)
    status: Mapped[GoalStatus] = mapped_column(
        Enum(GoalStatus, name="goal_status_enum", native_enum=False),
        nullable=False,
        default=GoalStatus.active,
    )
    migrated_to: Mapped[Optional[str]] = mapped_column(String(7), nullable=True)
    created_at: Mapped[datetime] = mapped_column(Instant, nullable=False)
