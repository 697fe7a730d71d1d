"""Functional core - pure calendar logic with no I/O."""

from .timeutils import Weekday, parse_date_time, parse_weekdays, parse_zone
from .recurrence import Slot, expand_count, expand_until
from .entry import CalendarEntry, EntryState, RecurringEvent, SingleEvent
from .conflicts import entries_conflict, find_conflicts
from .calendar import Calendar

__all__ = [
    # Time
    "Weekday",
    "parse_date_time",
    "parse_weekdays",
    "parse_zone",
    # Recurrence
    "Slot",
    "expand_count",
    "expand_until",
    # Entries
    "CalendarEntry",
    "EntryState",
    "RecurringEvent",
    "SingleEvent",
    # Conflicts
    "entries_conflict",
    "find_conflicts",
    # Collection
    "Calendar",
]
