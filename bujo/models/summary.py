from datetime import date, datetime

from sqlalchemy import Date, Enum, Text
from sqlalchemy.orm import Mapped, mapped_column

from bujo.db.base import Base
from bujo.db.types import Instant
from bujo.domain.summary import SummaryHorizon
from bujo.models.versioned import VersionedMixin, versioned_table_args


class Summary(VersionedMixin, Base):
    __tablename__ = "summaries"
    __table_args__ = versioned_table_args("summaries")

    horizon: Mapped[SummaryHorizon] = mapped_column(
        Enum(SummaryHorizon, name="summary_horizon_enum", native_enum=False), nullable=False
    )
    content: Mapped[str] = mapped_column(Text, nullable=False)
    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    end_date: Mapped[date] = mapped_column(Date, nullable=False)
    created_at: Mapped[datetime] = mapped_column(Instant, nullable=False)
