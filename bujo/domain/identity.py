"""
Identity and version primitives shared by every versioned entity.

Each logical entity keeps one `entity_id` for its whole life; every
change appends a row with the next `version` and its own validity
interval. A row is *current* when `valid_to` is unset and `op_type`
is not DELETE.
"""
from __future__ import annotations

import enum
import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import Optional


class OpType(str, enum.Enum):
    INSERT = "INSERT"
    UPDATE = "UPDATE"
    DELETE = "DELETE"


def new_entity_id() -> str:
    return str(uuid.uuid4())


@dataclass
class Versioned:
    row_id: Optional[int] = None
    entity_id: str = ""
    version: int = 0
    valid_from: Optional[datetime] = None
    valid_to: Optional[datetime] = None
    op_type: OpType = OpType.INSERT

    @property
    def is_current(self) -> bool:
        return self.valid_to is None and self.op_type != OpType.DELETE
