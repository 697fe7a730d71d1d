"""Conflict detection across single and recurring entries."""

from itertools import product
from typing import TYPE_CHECKING

from .timeutils import overlaps

if TYPE_CHECKING:
    from .entry import CalendarEntry, SingleEvent


def _single_overlaps(a: "SingleEvent", b: "SingleEvent") -> bool:
    return overlaps(a.start, a.end, b.start, b.end)


def entries_conflict(a: "CalendarEntry", b: "CalendarEntry") -> bool:
    """
    Check whether two entries overlap anywhere.

    A recurring entry conflicts when any one of its occurrences overlaps;
    two recurring entries are checked across every pair of occurrences.
    The result does not depend on argument order.
    """
    from .entry import RecurringEvent, SingleEvent

    match a, b:
        case SingleEvent(), SingleEvent():
            return _single_overlaps(a, b)
        case SingleEvent(), RecurringEvent():
            return any(_single_overlaps(a, occ) for occ in b.occurrences)
        case RecurringEvent(), SingleEvent():
            return any(_single_overlaps(occ, b) for occ in a.occurrences)
        case RecurringEvent(), RecurringEvent():
            return any(
                _single_overlaps(x, y)
                for x, y in product(a.occurrences, b.occurrences)
            )
    raise TypeError(f"Cannot compare {type(a).__name__} with {type(b).__name__}")


def find_conflicts(
    entries: list["CalendarEntry"],
) -> list[tuple["CalendarEntry", "CalendarEntry"]]:
    """
    Find every conflicting pair of entries.

    Returns (earlier, later) tuples in input order.
    """
    conflicts = []
    for i, first in enumerate(entries):
        for second in entries[i + 1 :]:
            if entries_conflict(first, second):
                conflicts.append((first, second))
    return conflicts
