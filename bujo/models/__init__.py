from .entry import Entry
from .labels import EntryTag, EntryMention
from .day_context import DayContext
from .habit import Habit, HabitLog
from .lists import JournalList, ListItem
from .goal import Goal
from .summary import Summary

__all__ = [
    "Entry",
    "EntryTag",
    "EntryMention",
    "DayContext",
    "Habit",
    "HabitLog",
    "JournalList",
    "ListItem",
    "Goal",
    "Summary",
]
