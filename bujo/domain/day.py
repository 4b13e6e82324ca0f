from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import Optional

from bujo.domain.entry import Entry
from bujo.domain.identity import Versioned


@dataclass
class DayContext(Versioned):
    day: Optional[date] = None
    location: Optional[str] = None
    mood: Optional[str] = None
    weather: Optional[str] = None


@dataclass
class DailyAgenda:
    day: date
    context: Optional[DayContext] = None
    entries: list[Entry] = field(default_factory=list)
    overdue: list[Entry] = field(default_factory=list)
