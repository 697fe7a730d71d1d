"""Recurrence expansion - pure functions, no I/O.

A recurrence is a time-of-day window (``start``/``end``) repeated on a fixed
set of weekdays, bounded either by an exclusive ``until`` instant or by an
occurrence count. Counts are turned into an ``until`` bound first, so both
kinds of rule expand through the same walk.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Iterable, Iterator

from datebook.errors import InvalidArgument

from .timeutils import Weekday, compute_until


@dataclass(frozen=True)
class Slot:
    """The interval of one occurrence."""

    start: datetime
    end: datetime


def iter_slots(
    start: datetime,
    end: datetime,
    until: datetime,
    weekdays: Iterable[Weekday],
) -> Iterator[Slot]:
    """
    Yield occurrence intervals in chronological order.

    Walks one calendar day at a time from ``start`` while the walked instant
    is strictly before ``until``. Every day whose weekday is in ``weekdays``
    yields a slot with ``start``'s time of day and the series' wall-clock
    duration, so only the date moves between occurrences.
    """
    days = frozenset(weekdays)
    if not days:
        raise InvalidArgument("Weekdays cannot be empty")
    if end < start:
        raise InvalidArgument("End time must be after start time")

    duration = end - start
    current = start
    while current < until:
        if Weekday.of(current) in days:
            yield Slot(current, current + duration)
        current += timedelta(days=1)


def expand_until(
    start: datetime,
    end: datetime,
    until: datetime,
    weekdays: Iterable[Weekday],
) -> list[Slot]:
    """Every occurrence starting before ``until``."""
    return list(iter_slots(start, end, until, weekdays))


def expand_count(
    start: datetime,
    end: datetime,
    count: int,
    weekdays: Iterable[Weekday],
) -> tuple[list[Slot], datetime]:
    """
    Exactly ``count`` occurrences.

    Returns the slots together with the ``until`` bound they were expanded to.
    """
    days = frozenset(weekdays)
    until = compute_until(start, days, count)
    return expand_until(start, end, until, days), until
