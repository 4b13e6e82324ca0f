from __future__ import annotations

import enum
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Optional

from bujo.core.errors import ValidationError
from bujo.domain.identity import Versioned


class SummaryHorizon(str, enum.Enum):
    daily = "daily"
    weekly = "weekly"
    quarterly = "quarterly"
    annual = "annual"


@dataclass
class Summary(Versioned):
    horizon: SummaryHorizon = SummaryHorizon.daily
    content: str = ""
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    created_at: Optional[datetime] = None

    def validate(self) -> None:
        if not self.content:
            raise ValidationError("summary content cannot be empty")
        if self.start_date is None or self.end_date is None:
            raise ValidationError("summary needs a start and end date")
        if self.end_date < self.start_date:
            raise ValidationError("summary end date is before its start date")


def horizon_range(horizon: SummaryHorizon, ref: date) -> tuple[date, date]:
    if horizon == SummaryHorizon.daily:
        return ref, ref
    if horizon == SummaryHorizon.weekly:
        monday = ref - timedelta(days=ref.weekday())
        return monday, monday + timedelta(days=6)
    if horizon == SummaryHorizon.quarterly:
        first_month = (ref.month - 1) // 3 * 3 + 1
        start = date(ref.year, first_month, 1)
        if first_month == 10:
            end = date(ref.year, 12, 31)
        else:
            end = date(ref.year, first_month + 3, 1) - timedelta(days=1)
        return start, end
    return date(ref.year, 1, 1), date(ref.year, 12, 31)
