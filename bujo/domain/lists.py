from __future__ import annotations

import enum
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from bujo.domain.identity import Versioned


class ListItemType(str, enum.Enum):
    task = "task"
    done = "done"
    cancelled = "cancelled"


@dataclass
class JournalList(Versioned):
    name: str = ""
    created_at: Optional[datetime] = None


@dataclass
class ListItem(Versioned):
    # Owning list by entity id, so renaming the list keeps its items.
    list_entity_id: str = ""
    type: ListItemType = ListItemType.task
    content: str = ""
    created_at: Optional[datetime] = None


@dataclass
class ListSummary:
    list: JournalList
    total: int
    done: int
