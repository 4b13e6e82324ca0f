"""
Tests for journal export and import.
"""
import json
from datetime import date, datetime, timezone

import pytest

from bujo.core.errors import ValidationError
from bujo.domain.entry import Priority
from bujo.schemas.export import (
    EntryRecord,
    ExportData,
    HabitLogRecord,
    HabitRecord,
    ImportMode,
    ListItemRecord,
    ListRecord,
)
from bujo.services import day_context as ctx
from bujo.services import editable_view
from bujo.services import entries as entry_service
from bujo.services import export as svc
from bujo.services import goals as goal_service
from bujo.services import habits as habit_service
from bujo.services import lists as list_service

D6 = date(2026, 1, 6)
D7 = date(2026, 1, 7)
T0 = datetime(2026, 1, 6, 9, 0, tzinfo=timezone.utc)


def _seed(db):
    entry_service.log_entries(db, ". Parent #work\n  - Child @ana", D6)
    entry_service.log_entries(db, "o Standup", D7)
    habit_service.log_habit(db, "Run", at=T0)
    groceries = list_service.create_list(db, "Groceries")
    list_service.add_item(db, groceries.row_id, "Milk")
    goal_service.create_goal(db, "Read", "2026-01")
    ctx.set_mood(db, D6, "calm")


class TestExport:
    def test_every_collection_present(self, db):
        data = json.loads(svc.export_json(db))
        assert data["version"] == "1"
        for key in (
            "entries", "habits", "habit_logs", "day_contexts",
            "summaries", "lists", "list_items", "goals",
        ):
            assert data[key] == []

    def test_current_state_only(self, db):
        _seed(db)
        habit_service.rename_habit(db, "Run", "Jog")
        data = svc.export_data(db)
        assert len(data.entries) == 3
        assert [h.name for h in data.habits] == ["Jog"]
        assert data.habit_logs[0].habit_entity_id == data.habits[0].entity_id
        assert data.list_items[0].list_entity_id == data.lists[0].entity_id
        assert data.day_contexts[0].mood == "calm"

    def test_child_keeps_parent_entity_id(self, db):
        _seed(db)
        entries = {e.content: e for e in svc.export_data(db).entries}
        assert entries["Child @ana"].parent_entity_id == entries["Parent #work"].entity_id

    def test_date_range_limits_entries(self, db):
        _seed(db)
        data = svc.export_data(db, date_from=D7)
        assert [e.content for e in data.entries] == ["Standup"]
        assert data.day_contexts == []
        assert len(data.habits) == 1

    def test_backwards_range(self, db):
        with pytest.raises(ValidationError):
            svc.export_data(db, D7, D6)


class TestLoadExport:
    def test_invalid_json(self):
        with pytest.raises(ValidationError) as exc:
            svc.load_export("{broken")
        assert exc.value.details["errors"]

    def test_unknown_version(self):
        text = json.dumps({"version": "9", "exported_at": T0.isoformat()})
        with pytest.raises(ValidationError):
            svc.load_export(text)

    def test_missing_collections_default_to_empty(self):
        data = svc.load_export(json.dumps({"version": "1", "exported_at": T0.isoformat()}))
        assert data.entries == [] and data.goals == []


class TestImport:
    def test_replace_restores_exported_state(self, db):
        _seed(db)
        before = svc.load_export(svc.export_json(db))
        entry_service.log_entries(db, ". added after export", D6)

        result = svc.import_data(db, before, ImportMode.replace)

        assert result.imported["entries"] == 3
        after = svc.export_data(db)
        assert sorted(e.entity_id for e in after.entries) == sorted(
            e.entity_id for e in before.entries
        )
        assert [h.entity_id for h in after.habits] == [h.entity_id for h in before.habits]
        tags = entry_service.list_tags(db)
        assert tags == ["work"]

    def test_merge_skips_known_entities_and_remaps_entries(self, db):
        _seed(db)
        data = svc.export_data(db)

        result = svc.import_data(db, data, ImportMode.merge)

        assert result.skipped == {"habits": 1, "lists": 1, "goals": 1}
        assert result.imported["entries"] == 3
        assert result.remapped >= 3
        day = entry_service.get_entries_for_day(db, D6)
        assert len(day) == 4
        children = [e for e in day if e.content == "Child @ana"]
        assert {c.parent_entity_id for c in children} == {
            e.entity_id for e in day if e.content == "Parent #work"
        }

    def test_name_clash_merges_logs_into_existing_habit(self, db):
        existing = habit_service.create_habit(db, "Run")
        data = ExportData(
            exported_at=T0,
            habits=[HabitRecord(entity_id="other-run", name="Run", created_at=T0)],
            habit_logs=[
                HabitLogRecord(entity_id="log-1", habit_entity_id="other-run", count=2, logged_at=T0)
            ],
        )

        result = svc.import_data(db, data)

        assert result.skipped["habits"] == 1
        assert result.warnings
        status = habit_service.get_habit_status(db, "Run", today=D6)
        assert status.habit.entity_id == existing.entity_id
        assert status.today_count == 2

    def test_log_for_unknown_habit_is_skipped(self, db):
        data = ExportData(
            exported_at=T0,
            habit_logs=[HabitLogRecord(entity_id="log-1", habit_entity_id="ghost", logged_at=T0)],
        )
        result = svc.import_data(db, data)
        assert result.skipped == {"habit_logs": 1}
        assert "ghost" in result.warnings[0]

    def test_entry_with_missing_parent_becomes_root(self, db):
        data = ExportData(
            exported_at=T0,
            entries=[
                EntryRecord(
                    entity_id="child",
                    type="note",
                    content="orphan",
                    parent_entity_id="gone",
                    depth=1,
                    scheduled_date=D6,
                    created_at=T0,
                )
            ],
        )
        result = svc.import_data(db, data)
        (entry,) = entry_service.get_entries_for_day(db, D6)
        assert entry.entity_id == "child"
        assert entry.depth == 0
        assert entry.parent_entity_id is None
        assert result.warnings

    def test_failed_import_changes_nothing(self, db):
        _seed(db)
        data = ExportData(
            exported_at=T0,
            habits=[HabitRecord(entity_id="h2", name="Swim", goal_per_day=0, created_at=T0)],
        )
        with pytest.raises(ValidationError):
            svc.import_data(db, data, ImportMode.replace)
        assert len(svc.export_data(db).entries) == 3

    def test_imported_content_survives_the_day_document(self, db):
        def record(entity_id, content):
            return EntryRecord(
                entity_id=entity_id, type="task", content=content, scheduled_date=D6, created_at=T0,
            )

        data = ExportData(
            exported_at=T0,
            entries=[
                record("e1", "line one\nline two"),
                record("e2", "!! urgent call"),
                record("e3", " \n "),
            ],
            lists=[ListRecord(entity_id="l1", name="Groceries", created_at=T0)],
            list_items=[
                ListItemRecord(entity_id="i1", list_entity_id="l1", content="Milk\n2 litres", created_at=T0),
                ListItemRecord(entity_id="i2", list_entity_id="l1", content="", created_at=T0),
            ],
        )

        result = svc.import_data(db, data)

        assert result.imported == {"lists": 1, "list_items": 1, "entries": 2}
        assert result.skipped == {"list_items": 1, "entries": 1}
        entries = {e.entity_id: e for e in entry_service.get_entries_for_day(db, D6)}
        assert entries["e1"].content == "line one line two"
        assert (entries["e2"].priority, entries["e2"].content) == (Priority.medium, "urgent call")
        assert [i.content for i in svc.export_data(db).list_items] == ["Milk 2 litres"]

        text = editable_view.get_editable_document(db, D6)
        assert editable_view.apply_changes(db, D6, text).to_dict() == {
            "inserted": 0, "updated": 0, "deleted": 0, "migrated": 0,
        }
