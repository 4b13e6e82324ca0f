"""
Archive: hard-delete superseded versions older than a cutoff.

Only closed rows (`valid_to` set) are eligible, so current state and
tombstones still awaiting restore are never touched. History before the
cutoff is lost for good.
"""
from __future__ import annotations

import logging
from dataclasses import asdict, dataclass, field
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy.orm import Session

from bujo.core.config import settings
from bujo.db.base import transaction
from bujo.db.types import as_utc, utcnow
from bujo.repositories.day_contexts import DayContextRepository
from bujo.repositories.entries import EntryRepository
from bujo.repositories.goals import GoalRepository
from bujo.repositories.habits import HabitLogRepository, HabitRepository
from bujo.repositories.lists import ListItemRepository, ListRepository
from bujo.repositories.summaries import SummaryRepository
from bujo.repositories.versioned import VersionedRepository

logger = logging.getLogger(__name__)


@dataclass
class ArchiveResult:
    cutoff: datetime
    dry_run: bool
    counts: dict[str, int] = field(default_factory=dict)

    @property
    def total(self) -> int:
        return sum(self.counts.values())

    def to_dict(self) -> dict:
        data = asdict(self)
        data["total"] = self.total
        return data


def versioned_repositories(db: Session) -> dict[str, VersionedRepository]:
    """Every versioned table, keyed by its export collection name."""
    return {
        "entries": EntryRepository(db),
        "habits": HabitRepository(db),
        "habit_logs": HabitLogRepository(db),
        "day_contexts": DayContextRepository(db),
        "summaries": SummaryRepository(db),
        "lists": ListRepository(db),
        "list_items": ListItemRepository(db),
        "goals": GoalRepository(db),
    }


def default_cutoff(now: Optional[datetime] = None) -> datetime:
    return as_utc(now or utcnow()) - timedelta(days=settings.ARCHIVE_RETENTION_DAYS)


def count_archivable(db: Session, cutoff: Optional[datetime] = None) -> ArchiveResult:
    return archive(db, cutoff, dry_run=True)


def archive(db: Session, cutoff: Optional[datetime] = None, dry_run: bool = False) -> ArchiveResult:
    cutoff = as_utc(cutoff) if cutoff is not None else default_cutoff()
    result = ArchiveResult(cutoff=cutoff, dry_run=dry_run)
    repos = versioned_repositories(db)
    if dry_run:
        for name, repo in repos.items():
            result.counts[name] = repo.count_archivable(cutoff)
        return result

    with transaction(db):
        for name, repo in repos.items():
            result.counts[name] = repo.delete_archivable(cutoff)
    logger.info("archived %d superseded versions older than %s", result.total, cutoff.isoformat())
    return result
