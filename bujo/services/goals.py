"""Monthly goals."""
from __future__ import annotations

import logging

from sqlalchemy.orm import Session

from bujo.core.errors import NotFoundError, ValidationError
from bujo.db.base import transaction
from bujo.db.types import utcnow
from bujo.domain.entry import clean_content
from bujo.domain.goal import Goal, GoalStatus, check_month
from bujo.repositories.goals import GoalRepository

logger = logging.getLogger(__name__)


def _require(db: Session, goal_id: int) -> Goal:
    goal = GoalRepository(db).get_by_id(goal_id)
    if goal is None:
        raise NotFoundError("goal", goal_id)
    return goal


def create_goal(db: Session, content: str, month: str) -> int:
    goal = Goal(content=clean_content(content), month=month)
    goal.validate()
    with transaction(db):
        return GoalRepository(db).insert(goal, utcnow())


def get_goal(db: Session, goal_id: int) -> Goal:
    return _require(db, goal_id)


def get_goals_for_month(db: Session, month: str) -> list[Goal]:
    return GoalRepository(db).get_by_month(check_month(month))


def get_all_goals(db: Session) -> list[Goal]:
    return GoalRepository(db).get_all()


def _set_status(db: Session, goal_id: int, status: GoalStatus) -> int:
    with transaction(db):
        goal = _require(db, goal_id)
        if goal.status == GoalStatus.migrated:
            raise ValidationError(f"Goal {goal_id} was migrated to {goal.migrated_to}.")
        if goal.status == status:
            return goal.row_id
        goal.status = status
        return GoalRepository(db).update(goal, utcnow())


def mark_done(db: Session, goal_id: int) -> int:
    return _set_status(db, goal_id, GoalStatus.done)


def mark_active(db: Session, goal_id: int) -> int:
    return _set_status(db, goal_id, GoalStatus.active)


def edit_goal(db: Session, goal_id: int, content: str) -> int:
    content = clean_content(content)
    if not content:
        raise ValidationError("Goal content cannot be empty.")
    with transaction(db):
        goal = _require(db, goal_id)
        goal.content = content
        return GoalRepository(db).update(goal, utcnow())


def migrate_goal(db: Session, goal_id: int, to_month: str) -> int:
    """Carry an unfinished goal into `to_month`. Returns the new goal's row id."""
    check_month(to_month)
    now = utcnow()
    repo = GoalRepository(db)
    with transaction(db):
        goal = _require(db, goal_id)
        if goal.status != GoalStatus.active:
            raise ValidationError(f"Only active goals can be migrated; goal {goal_id} is {goal.status.value}.")
        if goal.month == to_month:
            raise ValidationError(f"Goal {goal_id} is already in {to_month}.")
        carried = Goal(content=goal.content, month=to_month)
        new_id = repo.insert(carried, now)
        goal.status = GoalStatus.migrated
        goal.migrated_to = to_month
        repo.update(goal, now)
    logger.info("migrated goal %s from %s to %s", goal.entity_id, goal.month, to_month)
    return new_id


def delete_goal(db: Session, goal_id: int) -> None:
    with transaction(db):
        _require(db, goal_id)
        GoalRepository(db).delete(goal_id, utcnow())
