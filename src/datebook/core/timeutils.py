"""Zoned date/time helpers - pure functions, no I/O.

All instants handled here are timezone-aware datetimes whose tzinfo is a
ZoneInfo. Adding a timedelta to one of them moves the wall clock, so
``dt + timedelta(days=1)`` lands on the same local time the next day even
across a DST change.
"""

import re
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, tzinfo
from enum import IntEnum
from typing import Iterable
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from datebook.errors import InvalidArgument

DATE_RE = re.compile(r"^\d{4}-(0[1-9]|1[0-2])-(0[1-9]|[12][0-9]|3[01])$")
DATE_TIME_RE = re.compile(
    r"^\d{4}-(0[1-9]|1[0-2])-(0[1-9]|[12][0-9]|3[01])T([01][0-9]|2[0-3]):[0-5][0-9]$"
)
WEEKDAYS_RE = re.compile(r"^[MTWRFSU]+$")

DATE_TIME_FORMAT = "%Y-%m-%dT%H:%M"
DATE_FORMAT = "%Y-%m-%d"
EXPORT_DATE_FORMAT = "%m/%d/%Y"
EXPORT_TIME_FORMAT = "%I:%M %p"

ALL_DAY_END = time(23, 59)


class Weekday(IntEnum):
    """Day of week, numbered like ``datetime.weekday()``."""

    MONDAY = 0
    TUESDAY = 1
    WEDNESDAY = 2
    THURSDAY = 3
    FRIDAY = 4
    SATURDAY = 5
    SUNDAY = 6

    @property
    def code(self) -> str:
        return _WEEKDAY_CODES[self]

    @classmethod
    def from_code(cls, code: str) -> "Weekday":
        try:
            return _CODE_WEEKDAYS[code]
        except KeyError:
            raise InvalidArgument(f"Invalid weekday code: {code!r}") from None

    @classmethod
    def of(cls, dt: date) -> "Weekday":
        return cls(dt.weekday())


# R is Thursday so it does not collide with T (Tuesday).
_WEEKDAY_CODES = {
    Weekday.MONDAY: "M",
    Weekday.TUESDAY: "T",
    Weekday.WEDNESDAY: "W",
    Weekday.THURSDAY: "R",
    Weekday.FRIDAY: "F",
    Weekday.SATURDAY: "S",
    Weekday.SUNDAY: "U",
}
_CODE_WEEKDAYS = {code: day for day, code in _WEEKDAY_CODES.items()}


@dataclass(frozen=True)
class DateTimeRange:
    """Result of parsing a start/end pair for a new event."""

    start: datetime
    end: datetime
    all_day: bool


def parse_zone(zone: str | tzinfo) -> tzinfo:
    """Resolve an IANA zone identifier."""
    if isinstance(zone, tzinfo):
        return zone
    try:
        return ZoneInfo(zone)
    except (ZoneInfoNotFoundError, ValueError, TypeError):
        raise InvalidArgument(f"Invalid timezone: {zone}") from None


def is_valid_date(value: str) -> bool:
    return bool(DATE_RE.match(value))


def is_valid_date_time(value: str) -> bool:
    return bool(DATE_TIME_RE.match(value))


def is_valid_weekdays(value: str) -> bool:
    """Check a weekday code string such as ``"MWF"``."""
    return bool(WEEKDAYS_RE.match(value))


def parse_date_time(value: str, zone: str | tzinfo) -> datetime:
    """
    Parse ``yyyy-MM-dd`` or ``yyyy-MM-ddTHH:mm`` as a local time in ``zone``.

    A bare date resolves to local midnight.
    """
    tz = parse_zone(zone)
    try:
        if is_valid_date_time(value):
            return datetime.strptime(value, DATE_TIME_FORMAT).replace(tzinfo=tz)
        if is_valid_date(value):
            return datetime.strptime(value, DATE_FORMAT).replace(tzinfo=tz)
    except ValueError:
        # Well-formed but impossible dates such as 2024-02-30
        pass
    raise InvalidArgument(f"Invalid date format: {value!r}")


def format_date_time(dt: datetime, include_time: bool = True) -> str:
    return dt.strftime(DATE_TIME_FORMAT if include_time else DATE_FORMAT)


def parse_weekdays(value: str) -> frozenset[Weekday]:
    """Parse a weekday code string into a set of weekdays."""
    if not value:
        raise InvalidArgument("Weekdays cannot be empty")
    if not is_valid_weekdays(value):
        raise InvalidArgument(f"Invalid weekdays: {value!r}")
    return frozenset(Weekday.from_code(c) for c in value)


def weekdays_to_codes(weekdays: Iterable[Weekday]) -> str:
    """Render weekdays as codes, Monday first."""
    return "".join(day.code for day in sorted(set(weekdays)))


def overlaps(
    start1: datetime,
    end1: datetime,
    start2: datetime,
    end2: datetime,
) -> bool:
    """Half-open overlap: intervals that only touch do not overlap."""
    return start1 < end2 and end1 > start2


def compute_until(
    start: datetime,
    weekdays: Iterable[Weekday],
    count: int,
) -> datetime:
    """
    Exclusive upper bound that leaves exactly ``count`` matching days.

    Walks forward a day at a time from ``start`` counting days whose weekday
    is in ``weekdays``. The bound is the day after the last counted day, at
    ``start``'s time of day.
    """
    days = frozenset(weekdays)
    if not days:
        raise InvalidArgument("Weekdays cannot be empty")
    if count < 1:
        raise InvalidArgument(f"Frequency must be a positive integer, got {count}")

    current = start
    seen = 0
    while True:
        if Weekday.of(current) in days:
            seen += 1
            if seen == count:
                return current + timedelta(days=1)
        current += timedelta(days=1)


def parse_frequency(value: str) -> int:
    """Parse a positive integer occurrence count made of ASCII digits only."""
    if not isinstance(value, str) or not (value.isascii() and value.isdigit()):
        raise InvalidArgument(f"Frequency must be a positive integer, got {value!r}")
    frequency = int(value)
    if frequency < 1:
        raise InvalidArgument(f"Frequency must be a positive integer, got {value!r}")
    return frequency


def parse_bool(value: str) -> bool:
    """Lenient boolean: only ``"true"`` (any case) is true."""
    return str(value).strip().lower() == "true"


def all_day_bounds(start: datetime) -> tuple[datetime, datetime]:
    """Local midnight and 23:59 of ``start``'s date."""
    midnight = datetime.combine(start.date(), time.min, tzinfo=start.tzinfo)
    return midnight, midnight.replace(hour=ALL_DAY_END.hour, minute=ALL_DAY_END.minute)


def check_all_day(start: datetime, end: datetime) -> bool:
    """True when the interval spans exactly midnight to 23:59 of one local day."""
    return (
        start.date() == end.date()
        and start.time() == time.min
        and end.time() == ALL_DAY_END
    )


def with_time_of(day: datetime, clock: datetime) -> datetime:
    """``day``'s date with ``clock``'s hour and minute."""
    return day.replace(hour=clock.hour, minute=clock.minute, second=0, microsecond=0)


def process_event_date_time(
    start: str,
    end: str,
    zone: str | tzinfo,
) -> DateTimeRange:
    """
    Parse the start/end strings of a new event.

    An empty ``end`` makes an all-day event ending at 23:59 of the start date.
    """
    if not start:
        raise InvalidArgument("Start date time cannot be empty")
    all_day = False
    if not end:
        end = start.split("T")[0] + "T23:59"
        all_day = True
    start_dt = parse_date_time(start, zone)
    end_dt = parse_date_time(end, zone)
    if end_dt < start_dt:
        raise InvalidArgument("End time must be after start time")
    return DateTimeRange(start=start_dt, end=end_dt, all_day=all_day)


def offset_days_between(first: date, second: date) -> int:
    """Whole days from ``first`` to ``second``."""
    if isinstance(first, datetime):
        first = first.date()
    if isinstance(second, datetime):
        second = second.date()
    return (second - first).days


def format_export_date(dt: datetime) -> str:
    return dt.strftime(EXPORT_DATE_FORMAT)


def format_export_time(dt: datetime) -> str:
    return dt.strftime(EXPORT_TIME_FORMAT)
