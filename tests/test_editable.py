"""
Tests for the editable day document: serializer, line parser, diff and apply.
"""
from datetime import date

import pytest

from bujo.core.errors import ConflictError, ValidationError
from bujo.domain.diff import DeleteOp, InsertOp, MigrateOp, ReparentOp, UpdateOp, compute_diff
from bujo.domain.editable import LineKind, parse_document, parse_line, serialize
from bujo.domain.entry import Entry, EntryType, Priority
from bujo.services import editable_view as view
from bujo.services import entries as svc

D6 = date(2026, 1, 6)
D7 = date(2026, 1, 7)


def _entries(*specs):
    """(entity_id, type, content, parent_entity_id, depth) tuples -> Entry list."""
    return [
        Entry(entity_id=eid, type=t, content=c, parent_entity_id=p, depth=d)
        for eid, t, c, p, d in specs
    ]


def _by_content(db, day=D6):
    return {e.content: e for e in svc.get_entries_for_day(db, day)}


class TestSerialize:
    def test_nested_layout(self):
        entries = _entries(
            ("p", EntryType.task, "Parent", None, 0),
            ("a", EntryType.note, "Child A", "p", 1),
            ("b", EntryType.note, "Child B", "p", 1),
        )
        entries[0].priority = Priority.medium
        assert serialize(entries) == ". !! Parent\n  - Child A\n  - Child B"

    def test_orphan_renders_as_root(self):
        entries = _entries(("c", EntryType.note, "Child elsewhere", "missing", 1))
        assert serialize(entries) == "- Child elsewhere"

    def test_with_ids(self):
        entries = _entries(("abc", EntryType.event, "Standup", None, 0))
        assert serialize(entries, with_ids=True) == "[abc] o Standup"


class TestParseLine:
    def test_header(self):
        line = parse_line(1, "2026-01-06:")
        assert line.kind == LineKind.header
        assert line.header_date == D6

    def test_blank(self):
        assert parse_line(1, "   ").kind == LineKind.blank

    def test_migration_sigil(self):
        line = parse_line(3, ">[2026-01-07] . Renew passport")
        assert line.migrate_to == D7
        assert line.type == EntryType.task
        assert line.content == "Renew passport"

    def test_bad_migration_date(self):
        line = parse_line(1, ">[2026-13-40] . nope")
        assert not line.valid
        assert "invalid date" in line.error

    def test_explicit_id_needs_known_or_uuid(self):
        known = parse_line(1, "[abc] . task", frozenset({"abc"}))
        assert known.explicit_id == "abc"
        unknown = parse_line(1, "[abc] . task")
        assert unknown.explicit_id is None
        assert not unknown.valid

    def test_orphan_child_flagged(self):
        lines = parse_document(". root\n    - too deep")
        assert lines[1].valid is False
        assert "orphan child" in lines[1].error


class TestComputeDiff:
    def setup_method(self):
        self.originals = _entries(
            ("p", EntryType.task, "Parent", None, 0),
            ("a", EntryType.note, "Child A", "p", 1),
            ("b", EntryType.note, "Child B", "p", 1),
        )

    def _diff(self, text, pending=()):
        return compute_diff(self.originals, parse_document(text, self.originals), pending)

    def test_unchanged_document(self):
        assert self._diff(serialize(self.originals)).is_empty

    def test_removed_line_without_pending_delete_is_kept(self):
        assert self._diff(". Parent\n  - Child A").is_empty

    def test_pending_delete(self):
        changes = self._diff(". Parent\n  - Child A", pending={"b"})
        assert [type(op) for op in changes.operations] == [DeleteOp]
        assert changes.operations[0].entity_id == "b"

    def test_insert_child_refers_to_new_parent(self):
        changes = self._diff(serialize(self.originals) + "\n. New\n  - New child")
        inserts = changes.of(InsertOp)
        assert [op.content for op in inserts] == ["New", "New child"]
        assert inserts[1].parent_entity_id == inserts[0].entity_id

    def test_type_change_is_update(self):
        changes = self._diff("[p] x Parent\n  - Child A\n  - Child B")
        (op,) = changes.operations
        assert isinstance(op, UpdateOp)
        assert op.entity_id == "p"
        assert op.type == EntryType.done

    def test_edit_with_explicit_id(self):
        changes = self._diff("[p] . Parent renamed\n  - Child A\n  - Child B")
        (op,) = changes.operations
        assert isinstance(op, UpdateOp)
        assert op.content == "Parent renamed"

    def test_outdent_is_reparent(self):
        changes = self._diff(". Parent\n  - Child A\n[b] - Child B")
        (op,) = changes.operations
        assert isinstance(op, ReparentOp)
        assert op.entity_id == "b"
        assert op.parent_entity_id is None

    def test_migration_line(self):
        changes = self._diff(">[2026-01-07] . Parent\n  - Child A\n  - Child B")
        (op,) = changes.of(MigrateOp)
        assert op.entity_id == "p"
        assert op.target == D7

    def test_unmatched_migration_is_error(self):
        changes = self._diff(serialize(self.originals) + "\n>[2026-01-07] . Unknown")
        assert changes.errors
        assert changes.of(MigrateOp) == []

    def test_retyped_line_without_id_is_new(self):
        changes = self._diff("x Parent\n  - Child A\n  - Child B")
        assert [op.content for op in changes.of(InsertOp)] == ["Parent"]
        assert len(changes.of(ReparentOp)) == 2

    def test_deletes_come_last(self):
        changes = self._diff(". Parent\n  - Child A\n. Fresh", pending={"b"})
        assert isinstance(changes.operations[-1], DeleteOp)


class TestApply:
    def test_round_trip_is_a_no_op(self, db):
        svc.log_entries(db, ". !! Parent #x\n  - Child\n    o Grandchild\n? Open question", D6)
        svc.log_entries(db, "- later note", D6)
        text = view.get_editable_document(db, D6)
        result = view.apply_changes(db, D6, text)
        assert result.to_dict() == {"inserted": 0, "updated": 0, "deleted": 0, "migrated": 0}

    def test_delete_one_child(self, db):
        svc.log_entries(db, ". Parent\n  - Child A\n  - Child B", D6)
        entries = _by_content(db)
        parent_row = entries["Parent"].row_id
        text = view.get_editable_document(db, D6)
        assert text == ". Parent\n  - Child A\n  - Child B"

        result = view.apply_changes(
            db, D6, ". Parent\n  - Child A", pending_deletes=[entries["Child B"].entity_id]
        )

        assert result.deleted == 1
        after = _by_content(db)
        assert set(after) == {"Parent", "Child A"}
        assert after["Parent"].row_id == parent_row

    def test_insert_update_and_reparent(self, db):
        svc.log_entries(db, ". Parent\n  - Child", D6)
        ids = {e.content: e.entity_id for e in svc.get_entries_for_day(db, D6)}
        text = f"[{ids['Parent']}] x Parent\n[{ids['Child']}] - Child\n. New\n  - New child"
        result = view.apply_changes(db, D6, text)
        assert (result.inserted, result.updated) == (2, 1)
        after = _by_content(db)
        assert after["Parent"].type == EntryType.done
        assert after["Parent"].completed_at is not None
        assert after["Child"].depth == 0
        assert after["New child"].parent_entity_id == after["New"].entity_id
        assert after["New child"].scheduled_date == D6

    def test_edited_entry_keeps_its_position(self, db):
        svc.log_entries(db, ". one\n. two\n. three", D6)
        text = view.get_editable_document(db, D6, with_ids=True)
        view.apply_changes(db, D6, text.replace(". one", ". one edited"))
        assert view.get_editable_document(db, D6) == ". one edited\n. two\n. three"

    def test_migrate_from_document(self, db):
        svc.log_entries(db, ". Call dentist\n  - ask about Friday", D6)
        result = view.apply_changes(
            db, D6, ">[2026-01-07] . Call dentist\n  - ask about Friday"
        )
        assert result.migrated == 1
        moved = _by_content(db, D7)
        assert moved["Call dentist"].type == EntryType.task
        assert moved["ask about Friday"].depth == 1
        assert _by_content(db)["Call dentist"].type == EntryType.migrated

    def test_answer_line_answers_question(self, db):
        svc.log_entries(db, "? Where", D6)
        view.apply_changes(db, D6, "? Where\n  a The office")
        after = _by_content(db)
        assert after["Where"].type == EntryType.answered
        assert after["The office"].type == EntryType.answer

    def test_child_of_question_is_conflict(self, db):
        svc.log_entries(db, "? Where", D6)
        with pytest.raises(ConflictError):
            view.apply_changes(db, D6, "? Where\n  - a note")

    def test_invalid_document_changes_nothing(self, db):
        svc.log_entries(db, ". keep me", D6)
        with pytest.raises(ValidationError) as exc:
            view.apply_changes(db, D6, ". keep me edited\n* bad line")
        assert exc.value.details["errors"][0]["line"] == 2
        assert view.get_editable_document(db, D6) == ". keep me"

    def test_failing_operation_rolls_back_everything(self, db):
        svc.log_entries(db, ". task\n? question", D6)
        with pytest.raises(ConflictError):
            view.apply_changes(db, D6, ". task\n. inserted first\n? question\n  - not allowed")
        assert view.get_editable_document(db, D6) == ". task\n? question"

    def test_validate_document(self):
        assert view.validate_document(". fine\n  - child") == []
        errors = view.validate_document(". fine\n* nope")
        assert errors == [{"line": 2, "text": "* nope", "error": "unknown entry symbol '*'"}]


def _retyped(db, old_symbol, new_symbol, day=D6):
    """The day's document with ids, with one entry's symbol swapped."""
    text = view.get_editable_document(db, day, with_ids=True)
    assert f"] {old_symbol} " in text
    return text.replace(f"] {old_symbol} ", f"] {new_symbol} ", 1)


class TestRoundTripContent:
    def test_edited_content_with_priority_marker(self, db):
        (rid,) = svc.log_entries(db, ". Call", D6)
        svc.edit_entry(db, rid, "!! urgent call")
        text = view.get_editable_document(db, D6)
        assert text == ". !! urgent call"
        result = view.apply_changes(db, D6, text)
        assert result.to_dict() == {"inserted": 0, "updated": 0, "deleted": 0, "migrated": 0}
        (entry,) = svc.get_entries_for_day(db, D6)
        assert (entry.content, entry.priority) == ("urgent call", Priority.medium)

    def test_answer_with_priority_marker(self, db):
        (rid,) = svc.log_entries(db, "? Where", D6)
        svc.mark_answered(db, rid, "! The office")
        text = view.get_editable_document(db, D6)
        assert text == "A Where\n  a ! The office"
        assert view.apply_changes(db, D6, text).to_dict() == {
            "inserted": 0, "updated": 0, "deleted": 0, "migrated": 0,
        }

    def test_marker_after_priority_stays_content(self, db):
        svc.log_entries(db, ". ! !! loud", D6)
        (entry,) = svc.get_entries_for_day(db, D6)
        assert (entry.priority, entry.content) == (Priority.low, "!! loud")
        text = view.get_editable_document(db, D6)
        assert view.apply_changes(db, D6, text).inserted == 0


class TestDocumentTransitions:
    @pytest.mark.parametrize(
        "logged, old_symbol, new_symbol",
        [
            ("x Pay rent", "x", "-"),
            ("x Pay rent", "x", "o"),
            ("? Why", "?", "."),
            ("? Why", "?", "-"),
            (". Plain", ".", "?"),
            (". Plain", ".", "a"),
            (". Plain", ".", ">"),
        ],
    )
    def test_forbidden_change_is_rejected(self, db, logged, old_symbol, new_symbol):
        svc.log_entries(db, logged, D6)
        before = view.get_editable_document(db, D6)
        with pytest.raises(ValidationError):
            view.apply_changes(db, D6, _retyped(db, old_symbol, new_symbol))
        assert view.get_editable_document(db, D6) == before

    @pytest.mark.parametrize("logged, old_symbol", [("- Idea", "-"), ("o Standup", "o")])
    def test_only_tasks_can_be_done(self, db, logged, old_symbol):
        svc.log_entries(db, logged, D6)
        with pytest.raises(ConflictError):
            view.apply_changes(db, D6, _retyped(db, old_symbol, "x"))

    def test_cancelled_goes_back_only_to_its_original_type(self, db):
        (rid,) = svc.log_entries(db, "- Idea", D6)
        svc.cancel_entry(db, rid)

        with pytest.raises(ValidationError):
            view.apply_changes(db, D6, _retyped(db, "~", "o"))
        with pytest.raises(ValidationError):
            view.apply_changes(db, D6, _retyped(db, "~", "."))

        view.apply_changes(db, D6, _retyped(db, "~", "-"))
        (entry,) = svc.get_entries_for_day(db, D6)
        assert entry.type == EntryType.note
        assert entry.cancelled_from is None

    def test_cancel_records_the_original_type(self, db):
        svc.log_entries(db, "o Standup", D6)
        view.apply_changes(db, D6, _retyped(db, "o", "~"))
        (entry,) = svc.get_entries_for_day(db, D6)
        assert entry.type == EntryType.cancelled
        assert entry.cancelled_from == EntryType.event

    @pytest.mark.parametrize(
        "logged, old_symbol, new_symbol, expected",
        [
            (". Plan", ".", "-", EntryType.note),
            ("- Plan", "-", "o", EntryType.event),
            ("o Plan", "o", ".", EntryType.task),
            ("x Plan", "x", ".", EntryType.task),
        ],
    )
    def test_allowed_change(self, db, logged, old_symbol, new_symbol, expected):
        svc.log_entries(db, logged, D6)
        result = view.apply_changes(db, D6, _retyped(db, old_symbol, new_symbol))
        assert result.updated == 1
        (entry,) = svc.get_entries_for_day(db, D6)
        assert entry.type == expected
        assert entry.completed_at is None
