"""
Lists and list items.

Items point at their list by entity id, so renaming a list (which gives
it a new row id) never strands them.
"""
from __future__ import annotations

import logging

from sqlalchemy.orm import Session

from bujo.core.errors import ConflictError, IntegrityError, NotFoundError, ValidationError
from bujo.db.base import transaction
from bujo.db.types import utcnow
from bujo.domain.entry import clean_content
from bujo.domain.lists import JournalList, ListItem, ListItemType, ListSummary
from bujo.repositories.lists import ListItemRepository, ListRepository

logger = logging.getLogger(__name__)


def _clean_name(name: str) -> str:
    name = (name or "").strip()
    if not name:
        raise ValidationError("List name cannot be empty.")
    return name


def _require_list(db: Session, list_id: int) -> JournalList:
    found = ListRepository(db).get_by_id(list_id)
    if found is None:
        raise NotFoundError("list", list_id)
    return found


def _require_item(db: Session, item_id: int) -> ListItem:
    item = ListItemRepository(db).get_by_id(item_id)
    if item is None:
        raise NotFoundError("list item", item_id)
    return item


# ---------------------------------------------------------------------------
# Lists
# ---------------------------------------------------------------------------

def create_list(db: Session, name: str) -> JournalList:
    name = _clean_name(name)
    repo = ListRepository(db)
    with transaction(db):
        if repo.get_by_name(name) is not None:
            raise ConflictError(f"A list named {name!r} already exists.")
        created = JournalList(name=name)
        repo.insert(created, utcnow())
    return repo.get_by_id(created.row_id)


def get_list(db: Session, list_id: int) -> JournalList:
    return _require_list(db, list_id)


def get_list_by_name(db: Session, name: str) -> JournalList:
    found = ListRepository(db).get_by_name(name)
    if found is None:
        raise NotFoundError("list", name)
    return found


def get_list_by_entity_id(db: Session, entity_id: str) -> JournalList:
    found = ListRepository(db).get_by_entity_id(entity_id)
    if found is None:
        raise NotFoundError("list", entity_id)
    return found


def get_lists(db: Session) -> list[ListSummary]:
    items = ListItemRepository(db)
    summaries = []
    for found in ListRepository(db).get_all():
        total, done = items.count_by_list(found.entity_id)
        summaries.append(ListSummary(list=found, total=total, done=done))
    return summaries


def rename_list(db: Session, list_id: int, new_name: str) -> JournalList:
    new_name = _clean_name(new_name)
    repo = ListRepository(db)
    with transaction(db):
        found = _require_list(db, list_id)
        if found.name == new_name:
            return found
        clash = repo.get_by_name(new_name)
        if clash is not None:
            raise ConflictError(f"A list named {new_name!r} already exists.")
        found.name = new_name
        new_id = repo.update(found, utcnow())
    return repo.get_by_id(new_id)


def delete_list(db: Session, list_id: int, force: bool = False) -> None:
    """Soft-delete a list. A list with items needs `force`, which removes them too."""
    now = utcnow()
    items = ListItemRepository(db)
    with transaction(db):
        found = _require_list(db, list_id)
        current_items = items.get_by_list(found.entity_id)
        if current_items and not force:
            raise ConflictError(
                f"List {found.name!r} has {len(current_items)} items; delete with force.",
                details={"items": len(current_items)},
            )
        for item in current_items:
            items.delete(item.row_id, now)
        ListRepository(db).delete(found.row_id, now)


def get_deleted_lists(db: Session) -> list[JournalList]:
    return ListRepository(db).get_deleted()


def restore_list(db: Session, entity_id: str) -> int:
    with transaction(db):
        try:
            return ListRepository(db).restore(entity_id, utcnow())
        except IntegrityError as exc:
            raise ConflictError("A current list already uses that name.") from exc


# ---------------------------------------------------------------------------
# Items
# ---------------------------------------------------------------------------

def get_list_items(db: Session, list_id: int) -> list[ListItem]:
    found = _require_list(db, list_id)
    return ListItemRepository(db).get_by_list(found.entity_id)


def get_items_by_list_entity_id(db: Session, list_entity_id: str) -> list[ListItem]:
    return ListItemRepository(db).get_by_list(list_entity_id)


def add_item(
    db: Session,
    list_id: int,
    content: str,
    item_type: ListItemType = ListItemType.task,
) -> int:
    content = clean_content(content)
    if not content:
        raise ValidationError("Item content cannot be empty.")
    with transaction(db):
        found = _require_list(db, list_id)
        item = ListItem(list_entity_id=found.entity_id, type=item_type, content=content)
        return ListItemRepository(db).insert(item, utcnow())


def _set_item_type(
    db: Session,
    item_id: int,
    new_type: ListItemType,
    allowed_from: tuple[ListItemType, ...],
) -> int:
    with transaction(db):
        item = _require_item(db, item_id)
        if item.type == new_type:
            return item.row_id
        if item.type not in allowed_from:
            raise ValidationError(
                f"Cannot change list item {item_id} from {item.type.value} to {new_type.value}."
            )
        item.type = new_type
        return ListItemRepository(db).update(item, utcnow())


def mark_item_done(db: Session, item_id: int) -> int:
    return _set_item_type(db, item_id, ListItemType.done, (ListItemType.task,))


def mark_item_undone(db: Session, item_id: int) -> int:
    return _set_item_type(db, item_id, ListItemType.task, (ListItemType.done,))


def cancel_item(db: Session, item_id: int) -> int:
    return _set_item_type(db, item_id, ListItemType.cancelled, (ListItemType.task,))


def uncancel_item(db: Session, item_id: int) -> int:
    return _set_item_type(db, item_id, ListItemType.task, (ListItemType.cancelled,))


def edit_item(db: Session, item_id: int, content: str) -> int:
    content = clean_content(content)
    if not content:
        raise ValidationError("Item content cannot be empty.")
    with transaction(db):
        item = _require_item(db, item_id)
        if item.content == content:
            return item.row_id
        item.content = content
        return ListItemRepository(db).update(item, utcnow())


def remove_item(db: Session, item_id: int) -> None:
    with transaction(db):
        _require_item(db, item_id)
        ListItemRepository(db).delete(item_id, utcnow())


def move_item(db: Session, item_id: int, target_list_id: int) -> int:
    with transaction(db):
        item = _require_item(db, item_id)
        target = _require_list(db, target_list_id)
        if item.list_entity_id == target.entity_id:
            return item.row_id
        item.list_entity_id = target.entity_id
        new_id = ListItemRepository(db).update(item, utcnow())
    logger.info("moved list item %s to list %s", item.entity_id, target.name)
    return new_id


def restore_item(db: Session, entity_id: str) -> int:
    with transaction(db):
        return ListItemRepository(db).restore(entity_id, utcnow())


def get_item_history(db: Session, entity_id: str) -> list[ListItem]:
    history = ListItemRepository(db).get_history(entity_id)
    if not history:
        raise NotFoundError("list item", entity_id)
    return history

