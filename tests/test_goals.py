"""
Tests for monthly goals.
"""
import pytest

from bujo.core.errors import NotFoundError, ValidationError
from bujo.domain.goal import GoalStatus
from bujo.services import goals as svc


class TestGoals:
    def test_create_and_list_by_month(self, db):
        svc.create_goal(db, "Read two books", "2026-01")
        svc.create_goal(db, "Run 50km", "2026-01")
        svc.create_goal(db, "Plan trip", "2026-02")
        january = svc.get_goals_for_month(db, "2026-01")
        assert [g.content for g in january] == ["Read two books", "Run 50km"]
        assert all(g.status == GoalStatus.active for g in january)
        assert len(svc.get_all_goals(db)) == 3

    def test_invalid_month(self, db):
        with pytest.raises(ValidationError):
            svc.create_goal(db, "Nope", "2026-13")
        with pytest.raises(ValidationError):
            svc.get_goals_for_month(db, "January")

    def test_empty_content(self, db):
        with pytest.raises(ValidationError):
            svc.create_goal(db, "  ", "2026-01")

    def test_done_and_active(self, db):
        goal_id = svc.create_goal(db, "Read", "2026-01")
        svc.mark_done(db, goal_id)
        assert svc.get_goal(db, goal_id).status == GoalStatus.done
        svc.mark_active(db, goal_id)
        assert svc.get_goal(db, goal_id).status == GoalStatus.active

    def test_edit(self, db):
        goal_id = svc.create_goal(db, "Read", "2026-01")
        svc.edit_goal(db, goal_id, "Read three books")
        assert svc.get_goal(db, goal_id).content == "Read three books"

    def test_migrate(self, db):
        goal_id = svc.create_goal(db, "Read", "2026-01")
        new_id = svc.migrate_goal(db, goal_id, "2026-02")

        old = svc.get_goal(db, goal_id)
        assert old.status == GoalStatus.migrated
        assert old.migrated_to == "2026-02"
        carried = svc.get_goal(db, new_id)
        assert carried.month == "2026-02"
        assert carried.status == GoalStatus.active
        assert carried.entity_id != old.entity_id

    def test_migrated_goal_is_frozen(self, db):
        goal_id = svc.create_goal(db, "Read", "2026-01")
        svc.migrate_goal(db, goal_id, "2026-02")
        with pytest.raises(ValidationError):
            svc.mark_done(db, goal_id)
        with pytest.raises(ValidationError):
            svc.migrate_goal(db, goal_id, "2026-03")

    def test_migrate_to_same_month(self, db):
        goal_id = svc.create_goal(db, "Read", "2026-01")
        with pytest.raises(ValidationError):
            svc.migrate_goal(db, goal_id, "2026-01")

    def test_delete(self, db):
        goal_id = svc.create_goal(db, "Read", "2026-01")
        svc.delete_goal(db, goal_id)
        assert svc.get_goals_for_month(db, "2026-01") == []
        with pytest.raises(NotFoundError):
            svc.get_goal(db, goal_id)
