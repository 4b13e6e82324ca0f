"""
Cached period summaries.

Generating text is delegated to an optional `SummaryGenerator`. Without
one the service only serves what is cached and never fails a read.
"""
from __future__ import annotations

import logging
from datetime import date
from typing import Optional, Protocol, Sequence

from sqlalchemy.orm import Session

from bujo.db.base import transaction
from bujo.db.types import utcnow
from bujo.domain.entry import Entry
from bujo.domain.summary import Summary, SummaryHorizon, horizon_range
from bujo.repositories.entries import EntryRepository
from bujo.repositories.summaries import SummaryRepository

logger = logging.getLogger(__name__)


class SummaryGenerator(Protocol):
    def __call__(self, entries: Sequence[Entry], horizon: SummaryHorizon) -> str: ...


def get_summary(
    db: Session,
    horizon: SummaryHorizon,
    ref: date,
    generator: Optional[SummaryGenerator] = None,
    refresh: bool = False,
) -> Optional[Summary]:
    start, end = horizon_range(horizon, ref)
    repo = SummaryRepository(db)
    cached = repo.get(horizon, start, end)
    if cached is not None and not refresh:
        return cached
    if generator is None:
        return cached

    entries = EntryRepository(db).get_by_date_range(start, end)
    content = generator(entries, horizon)
    summary = Summary(horizon=horizon, content=content, start_date=start, end_date=end)
    summary.validate()
    with transaction(db):
        repo.insert(summary, utcnow())
    logger.info("stored %s summary for %s..%s", horizon.value, start, end)
    return repo.get_by_id(summary.row_id)


def list_summaries(db: Session, horizon: SummaryHorizon) -> list[Summary]:
    return SummaryRepository(db).get_by_horizon(horizon)
