from __future__ import annotations

import enum
import re
from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional

from bujo.core.errors import ValidationError
from bujo.domain.identity import Versioned

_MONTH_RE = re.compile(r"^\d{4}-(0[1-9]|1[0-2])$")


class GoalStatus(str, enum.Enum):
    active = "active"
    done = "done"
    migrated = "migrated"


def month_key(day: date) -> str:
    return day.strftime("%Y-%m")


def check_month(value: str) -> str:
    if not _MONTH_RE.match(value or ""):
        raise ValidationError(f"invalid month {value!r}, expected YYYY-MM")
    return value


@dataclass
class Goal(Versioned):
    content: str = ""
    month: str = ""
    status: GoalStatus = GoalStatus.active
    migrated_to: Optional[str] = None
    created_at: Optional[datetime] = None

    def validate(self) -> None:
        if not self.content.strip():
            raise ValidationError("goal content cannot be empty")
        check_month(self.month)
