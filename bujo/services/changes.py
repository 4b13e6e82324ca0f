"""Change detection across every versioned table."""
from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session

from bujo.db.types import as_utc
from bujo.services.archive import versioned_repositories


def get_last_modified(db: Session) -> Optional[datetime]:
    """Newest `valid_from` in the store, or None when it is empty."""
    stamps = [
        stamp
        for stamp in (repo.get_last_modified() for repo in versioned_repositories(db).values())
        if stamp is not None
    ]
    return max(stamps) if stamps else None


def has_changes_since(db: Session, since: Optional[datetime]) -> bool:
    last = get_last_modified(db)
    if last is None:
        return False
    if since is None:
        return True
    return last > as_utc(since)
