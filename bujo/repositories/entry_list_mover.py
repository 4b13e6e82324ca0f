"""Moves a task entry onto a list as a list item, inside the caller's transaction."""
from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session

from bujo.domain.entry import Entry
from bujo.domain.lists import ListItem, ListItemType
from bujo.repositories.entries import EntryRepository
from bujo.repositories.labels import MentionRepository, TagRepository
from bujo.repositories.lists import ListItemRepository


class EntryListMover:
    def __init__(self, db: Session):
        self.entries = EntryRepository(db)
        self.items = ListItemRepository(db)
        self.tags = TagRepository(db)
        self.mentions = MentionRepository(db)

    def move(self, entry: Entry, list_entity_id: str, now: Optional[datetime] = None) -> int:
        item = ListItem(
            list_entity_id=list_entity_id,
            type=ListItemType.task,
            content=entry.content,
        )
        item_id = self.items.insert(item, now)
        self.tags.delete_for_entry(entry.row_id)
        self.mentions.delete_for_entry(entry.row_id)
        self.entries.delete(entry.row_id, now)
        return item_id
