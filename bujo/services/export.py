"""
Export and import of the whole journal.

Public API
----------
export_data(db, date_from=None, date_to=None) -> ExportData
export_json(db, date_from=None, date_to=None) -> str
load_export(text)                             -> ExportData
import_data(db, data, mode=ImportMode.merge)  -> ImportResult

Merge keeps entity ids. Habits, lists and goals whose entity id is
already known are skipped; entries, habit logs, list items and
summaries that collide get a fresh entity id (references to them are
remapped). Day contexts upsert by date. Replace hard-deletes every
table first. Either way the import is a single transaction.

Imported content is folded onto one line, and an entry whose content
starts with `!`, `!!` or `!!!` gets that priority. Entries and items
left with no content are skipped with a warning.
"""
from __future__ import annotations

import logging
from dataclasses import asdict, dataclass, field
from datetime import date
from typing import Optional

from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.orm import Session

from bujo.core.errors import ValidationError
from bujo.db.base import transaction
from bujo.db.types import utcnow
from bujo.domain.day import DayContext
from bujo.domain.entry import Entry, clean_content, lift_priority
from bujo.domain.goal import Goal
from bujo.domain.habit import Habit, HabitLog
from bujo.domain.identity import new_entity_id
from bujo.domain.lists import JournalList, ListItem
from bujo.domain.summary import Summary
from bujo.repositories.day_contexts import DayContextRepository
from bujo.repositories.entries import EntryRepository
from bujo.repositories.goals import GoalRepository
from bujo.repositories.habits import HabitLogRepository, HabitRepository
from bujo.repositories.labels import MentionRepository, TagRepository
from bujo.repositories.lists import ListItemRepository, ListRepository
from bujo.repositories.summaries import SummaryRepository
from bujo.schemas.export import (
    EXPORT_VERSION,
    DayContextRecord,
    EntryRecord,
    ExportData,
    GoalRecord,
    HabitLogRecord,
    HabitRecord,
    ImportMode,
    ListItemRecord,
    ListRecord,
    SummaryRecord,
)
from bujo.services import entries as entry_service

logger = logging.getLogger(__name__)


@dataclass
class ImportResult:
    mode: ImportMode
    imported: dict[str, int] = field(default_factory=dict)
    skipped: dict[str, int] = field(default_factory=dict)
    remapped: int = 0
    warnings: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return asdict(self)


# ---------------------------------------------------------------------------
# Export
# ---------------------------------------------------------------------------

def export_data(
    db: Session,
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
) -> ExportData:
    """Current state of every entity. A date range limits entries and day contexts."""
    entries = EntryRepository(db)
    contexts = DayContextRepository(db)
    if date_from is not None or date_to is not None:
        start = date_from or date.min
        end = date_to or date.max
        if end < start:
            raise ValidationError("End date is before start date.")
        entry_rows = entries.get_by_date_range(start, end)
        context_rows = contexts.get_range(start, end)
    else:
        entry_rows = entries.get_all()
        context_rows = contexts.get_all()

    return ExportData(
        version=EXPORT_VERSION,
        exported_at=utcnow(),
        entries=[EntryRecord.model_validate(e) for e in entry_rows],
        habits=[HabitRecord.model_validate(h) for h in HabitRepository(db).get_all()],
        habit_logs=[HabitLogRecord.model_validate(log) for log in HabitLogRepository(db).get_all()],
        day_contexts=[DayContextRecord.model_validate(c) for c in context_rows],
        summaries=[SummaryRecord.model_validate(s) for s in SummaryRepository(db).get_all()],
        lists=[ListRecord.model_validate(x) for x in ListRepository(db).get_all()],
        list_items=[ListItemRecord.model_validate(i) for i in ListItemRepository(db).get_all()],
        goals=[GoalRecord.model_validate(g) for g in GoalRepository(db).get_all()],
    )


def export_json(
    db: Session,
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
) -> str:
    return export_data(db, date_from, date_to).model_dump_json(indent=2)


def load_export(text: str) -> ExportData:
    try:
        data = ExportData.model_validate_json(text)
    except PydanticValidationError as exc:
        raise ValidationError(
            "Not a valid export file.",
            details={"errors": exc.errors(include_url=False, include_context=False)},
        ) from exc
    if data.version != EXPORT_VERSION:
        raise ValidationError(
            f"Unsupported export version {data.version!r}.",
            details={"supported": EXPORT_VERSION},
        )
    return data


# ---------------------------------------------------------------------------
# Import
# ---------------------------------------------------------------------------

def import_data(db: Session, data: ExportData, mode: ImportMode = ImportMode.merge) -> ImportResult:
    result = ImportResult(mode=mode)
    with transaction(db):
        if mode == ImportMode.replace:
            _clear_all(db)
        _Importer(db, result).run(data)
    logger.info(
        "imported journal (%s): %s, skipped %s, %d remapped",
        mode.value, result.imported, result.skipped, result.remapped,
    )
    return result


def _clear_all(db: Session) -> None:
    # Children before parents so foreign keys never dangle.
    TagRepository(db).delete_all()
    MentionRepository(db).delete_all()
    for repo in (
        ListItemRepository(db),
        ListRepository(db),
        GoalRepository(db),
        SummaryRepository(db),
        DayContextRepository(db),
        HabitLogRepository(db),
        HabitRepository(db),
        EntryRepository(db),
    ):
        repo.delete_all()


class _Importer:
    def __init__(self, db: Session, result: ImportResult):
        self.db = db
        self.result = result
        self.now = utcnow()
        # imported entity id -> entity id it was stored under
        self.habit_ids: dict[str, str] = {}
        self.list_ids: dict[str, str] = {}
        self.entry_ids: dict[str, str] = {}

    def run(self, data: ExportData) -> None:
        self._habits(data.habits)
        self._habit_logs(data.habit_logs)
        self._lists(data.lists)
        self._list_items(data.list_items)
        self._goals(data.goals)
        self._day_contexts(data.day_contexts)
        self._summaries(data.summaries)
        self._entries(data.entries)

    def _count(self, kind: str) -> None:
        self.result.imported[kind] = self.result.imported.get(kind, 0) + 1

    def _skip(self, kind: str, reason: Optional[str] = None) -> None:
        self.result.skipped[kind] = self.result.skipped.get(kind, 0) + 1
        if reason:
            self.result.warnings.append(reason)
            logger.warning("import skipped %s: %s", kind, reason)

    def _fresh_if_taken(self, repo, entity_id: str) -> str:
        if repo.exists(entity_id):
            self.result.remapped += 1
            return new_entity_id()
        return entity_id

    # ------------------------------------------------------------------

    def _habits(self, records: list[HabitRecord]) -> None:
        repo = HabitRepository(self.db)
        for record in records:
            if repo.exists(record.entity_id):
                self.habit_ids[record.entity_id] = record.entity_id
                self._skip("habits")
                continue
            clash = repo.get_by_name(record.name)
            if clash is not None:
                self.habit_ids[record.entity_id] = clash.entity_id
                self._skip("habits", f"habit {record.name!r} already exists; logs merged into it")
                continue
            habit = Habit(**record.model_dump())
            habit.validate()
            repo.insert(habit, self.now)
            self.habit_ids[record.entity_id] = habit.entity_id
            self._count("habits")

    def _habit_logs(self, records: list[HabitLogRecord]) -> None:
        habits = HabitRepository(self.db)
        repo = HabitLogRepository(self.db)
        for record in records:
            habit_eid = self.habit_ids.get(record.habit_entity_id, record.habit_entity_id)
            if not habits.exists(habit_eid):
                self._skip("habit_logs", f"log {record.entity_id} references unknown habit {habit_eid}")
                continue
            log = HabitLog(**record.model_dump())
            log.entity_id = self._fresh_if_taken(repo, record.entity_id)
            log.habit_entity_id = habit_eid
            current = habits.get_by_entity_id(habit_eid)
            log.habit_id = current.row_id if current is not None else None
            log.validate()
            repo.insert(log, self.now)
            self._count("habit_logs")

    def _lists(self, records: list[ListRecord]) -> None:
        repo = ListRepository(self.db)
        for record in records:
            if repo.exists(record.entity_id):
                self.list_ids[record.entity_id] = record.entity_id
                self._skip("lists")
                continue
            clash = repo.get_by_name(record.name)
            if clash is not None:
                self.list_ids[record.entity_id] = clash.entity_id
                self._skip("lists", f"list {record.name!r} already exists; items merged into it")
                continue
            created = JournalList(**record.model_dump())
            repo.insert(created, self.now)
            self.list_ids[record.entity_id] = created.entity_id
            self._count("lists")

    def _list_items(self, records: list[ListItemRecord]) -> None:
        lists = ListRepository(self.db)
        repo = ListItemRepository(self.db)
        for record in records:
            list_eid = self.list_ids.get(record.list_entity_id, record.list_entity_id)
            if not lists.exists(list_eid):
                self._skip("list_items", f"item {record.entity_id} references unknown list {list_eid}")
                continue
            content = clean_content(record.content)
            if not content:
                self._skip("list_items", f"item {record.entity_id} has no content")
                continue
            item = ListItem(**record.model_dump())
            item.content = content
            item.entity_id = self._fresh_if_taken(repo, record.entity_id)
            item.list_entity_id = list_eid
            repo.insert(item, self.now)
            self._count("list_items")

    def _goals(self, records: list[GoalRecord]) -> None:
        repo = GoalRepository(self.db)
        for record in records:
            if repo.exists(record.entity_id):
                self._skip("goals")
                continue
            goal = Goal(**record.model_dump())
            goal.validate()
            repo.insert(goal, self.now)
            self._count("goals")

    def _day_contexts(self, records: list[DayContextRecord]) -> None:
        repo = DayContextRepository(self.db)
        for record in records:
            context = DayContext(**record.model_dump())
            if repo.get_by_date(record.day) is None:
                context.entity_id = self._fresh_if_taken(repo, record.entity_id)
            repo.upsert(context, self.now)
            self._count("day_contexts")

    def _summaries(self, records: list[SummaryRecord]) -> None:
        repo = SummaryRepository(self.db)
        for record in records:
            summary = Summary(**record.model_dump())
            summary.validate()
            summary.entity_id = self._fresh_if_taken(repo, record.entity_id)
            repo.insert(summary, self.now)
            self._count("summaries")

    def _entries(self, records: list[EntryRecord]) -> None:
        repo = EntryRepository(self.db)
        # Parents first; collisions are remapped before any child is stored.
        ordered = sorted(records, key=lambda r: (r.depth, r.created_at))
        for record in ordered:
            self.entry_ids[record.entity_id] = self._fresh_if_taken(repo, record.entity_id)
        for record in ordered:
            content, priority = lift_priority(record.content, record.priority)
            if not content:
                self._skip("entries", f"entry {record.entity_id} has no content")
                continue
            entry = Entry(**record.model_dump())
            entry.entity_id = self.entry_ids[record.entity_id]
            entry.content = content
            entry.priority = priority
            if record.parent_entity_id:
                parent_eid = self.entry_ids.get(record.parent_entity_id, record.parent_entity_id)
                parent = repo.get_by_entity_id(parent_eid)
                if parent is None:
                    self.result.warnings.append(
                        f"entry {record.entity_id} lost its parent {record.parent_entity_id}"
                    )
                    logger.warning("imported entry %s as a root; parent missing", record.entity_id)
                entry_service.attach_to_parent(entry, parent)
            entry_service.create_entry(self.db, entry, self.now)
            self._count("entries")
