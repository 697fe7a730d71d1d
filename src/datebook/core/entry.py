"""Calendar entries: single events and recurring series.

Pure domain logic - no I/O. Entries are created from already-parsed values
(aware datetimes, weekday sets, counts); only edit property values arrive as
strings, because edits are routed by property name.
"""

from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime, timedelta, tzinfo
from typing import Iterable, Iterator

from datebook.errors import InvalidArgument, InvalidProperty, NotFound, StateViolation

from .recurrence import expand_count, iter_slots
from .timeutils import (
    Weekday,
    all_day_bounds,
    check_all_day,
    compute_until,
    format_date_time,
    format_export_date,
    format_export_time,
    overlaps,
    parse_bool,
    parse_date_time,
    parse_frequency,
    parse_weekdays,
    parse_zone,
    with_time_of,
)

# Properties any single event (or occurrence) can take on its own
SCALAR_PROPERTIES = frozenset(
    {
        "name",
        "description",
        "location",
        "public",
        "private",
        "startDateTime",
        "endDateTime",
        "allDay",
    }
)

# Properties that redefine a series and force regeneration
STRUCTURAL_PROPERTIES = frozenset({"startDateTime", "untilDateTime", "weekDays", "frequency"})

EDIT_PROPERTIES = SCALAR_PROPERTIES | STRUCTURAL_PROPERTIES

# Ignored when a series-wide edit reaches a standalone single event
SERIES_ONLY_PROPERTIES = frozenset(
    {"startDateTime", "endDateTime", "frequency", "untilDateTime", "weekDays"}
)

EventDetails = dict[str, str]


def _flag(value: bool) -> str:
    return "true" if value else "false"


@dataclass(frozen=True)
class EntryState:
    """Everything an entry needs to roll back one edit."""

    name: str
    start: datetime
    end: datetime
    description: str
    location: str
    is_private: bool
    is_all_day: bool
    weekdays: frozenset[Weekday] = frozenset()
    until: datetime | None = None
    frequency: int = 0
    occurrences: tuple["SingleEvent", ...] = ()


@dataclass
class CalendarEntry:
    """Fields and behaviour shared by single events and recurring series."""

    name: str
    start: datetime
    end: datetime
    description: str = ""
    location: str = ""
    is_private: bool = False
    is_all_day: bool = False
    previous_state: EntryState | None = field(default=None, repr=False, compare=False)

    def __post_init__(self):
        if not self.name or not self.name.strip():
            raise InvalidArgument("Name cannot be empty")
        if self.start.tzinfo is None or self.end.tzinfo is None:
            raise InvalidArgument("Start and end must carry a timezone")
        if self.is_all_day:
            self.start, self.end = all_day_bounds(self.start)
        elif self.end < self.start:
            raise StateViolation("End date time cannot be before start date time")

    @property
    def is_recurring(self) -> bool:
        return False

    @property
    def zone(self) -> tzinfo:
        return self.start.tzinfo

    def is_conflict(self, other: "CalendarEntry") -> bool:
        """Check if any part of this entry overlaps any part of ``other``."""
        from .conflicts import entries_conflict

        return entries_conflict(self, other)

    # ============== Undo ==============

    def snapshot(self) -> EntryState:
        return EntryState(
            name=self.name,
            start=self.start,
            end=self.end,
            description=self.description,
            location=self.location,
            is_private=self.is_private,
            is_all_day=self.is_all_day,
        )

    def _restore(self, state: EntryState) -> None:
        self.name = state.name
        self.start = state.start
        self.end = state.end
        self.description = state.description
        self.location = state.location
        self.is_private = state.is_private
        self.is_all_day = state.is_all_day

    def restore(self, state: EntryState, previous_state: EntryState | None) -> None:
        """Put back a snapshot together with the undo level that went with it."""
        self._restore(state)
        self.previous_state = previous_state

    def undo(self) -> bool:
        """
        Roll back the most recent successful edit.

        Returns False (and changes nothing) when there is nothing to undo.
        """
        if self.previous_state is None:
            return False
        self._restore(self.previous_state)
        self.previous_state = None
        return True

    @contextmanager
    def _editing(self) -> Iterator[None]:
        """Apply an edit all-or-nothing and keep the pre-edit state for undo."""
        before = self.snapshot()
        try:
            yield
        except Exception:
            self._restore(before)
            raise
        self.previous_state = before

    # ============== Scalar properties ==============

    def _apply_scalar(self, property_name: str, value: str) -> None:
        match property_name:
            case "name":
                if not value or not value.strip():
                    raise InvalidArgument("Name cannot be empty")
                self.name = value
            case "description":
                self.description = value
            case "location":
                self.location = value
            case "public":
                self.is_private = not parse_bool(value)
            case "private":
                self.is_private = parse_bool(value)
            case "startDateTime":
                new_start = parse_date_time(value, self.zone)
                if new_start > self.end:
                    raise StateViolation("Start date time cannot be after end date time")
                self.start = new_start
                self.is_all_day = check_all_day(self.start, self.end)
            case "endDateTime":
                new_end = parse_date_time(value, self.end.tzinfo)
                if new_end < self.start:
                    raise StateViolation("End date time cannot be before start date time")
                self.end = new_end
                self.is_all_day = check_all_day(self.start, self.end)
            case "allDay":
                if value.strip().lower() == "false":
                    self.is_all_day = False
                else:
                    self.start, self.end = all_day_bounds(self.start)
                    self.is_all_day = True
            case _:
                raise InvalidProperty(property_name)

    def _end_time_value(self, value: str) -> str:
        """Keep this entry's end date but take the time of day from ``value``."""
        clock = parse_date_time(value, self.end.tzinfo)
        return format_date_time(with_time_of(self.end, clock))


@dataclass
class SingleEvent(CalendarEntry):
    """An event that happens once. Also the type of every occurrence."""

    def copy(self) -> "SingleEvent":
        """Value copy without undo history."""
        return SingleEvent(
            name=self.name,
            start=self.start,
            end=self.end,
            description=self.description,
            location=self.location,
            is_private=self.is_private,
            is_all_day=self.is_all_day,
        )

    # ============== Queries ==============

    def detail_record(self, is_recurring: bool = False) -> EventDetails:
        return {
            "Name": self.name,
            "StartDateTime": format_date_time(self.start),
            "EndDateTime": format_date_time(self.end),
            "Description": self.description or "",
            "Location": self.location or "",
            "IsPrivate": _flag(self.is_private),
            "IsAllDay": _flag(self.is_all_day),
            "IsRecurring": _flag(is_recurring),
        }

    def export_record(self) -> EventDetails:
        return {
            "Name": self.name,
            "StartDate": format_export_date(self.start),
            "StartTime": format_export_time(self.start),
            "EndDate": format_export_date(self.end),
            "EndTime": format_export_time(self.end),
            "Description": self.description or "",
            "Location": self.location or "",
            "IsPrivate": _flag(self.is_private),
            "IsAllDay": _flag(self.is_all_day),
        }

    def details_in_range(
        self,
        window_start: datetime,
        window_end: datetime,
        is_recurring: bool = False,
    ) -> list[EventDetails]:
        if not overlaps(self.start, self.end, window_start, window_end):
            return []
        return [self.detail_record(is_recurring)]

    def all_details(self) -> list[EventDetails]:
        return [self.export_record()]

    def occurrences_in_range(self, window_start: datetime, window_end: datetime) -> list["SingleEvent"]:
        if overlaps(self.start, self.end, window_start, window_end):
            return [self.copy()]
        return []

    def match_by_identity(
        self,
        name: str,
        start: datetime,
        end: datetime | None = None,
    ) -> "SingleEvent | None":
        if self.name == name and self.start == start and (end is None or self.end == end):
            return self
        return None

    def match_by_start(self, name: str, start: datetime) -> tuple["SingleEvent", bool] | None:
        """A copy of this event when it has the given name and start."""
        if self.name == name and self.start == start:
            return self.copy(), False
        return None

    def match_series_by_name(
        self,
        name: str,
        at_or_after: datetime | None = None,
    ) -> "SingleEvent | None":
        """A standalone event only joins series-wide edits that are not positional."""
        if at_or_after is None and self.name == name:
            return self
        return None

    # ============== Time moves ==============

    def update_zone(self, zone: str | tzinfo) -> None:
        """Same instants, new wall clock. May change the all-day classification."""
        tz = parse_zone(zone)
        self.start = self.start.astimezone(tz)
        self.end = self.end.astimezone(tz)
        self.is_all_day = check_all_day(self.start, self.end)

    def shift_by_days(self, days: int) -> None:
        self.start += timedelta(days=days)
        self.end += timedelta(days=days)

    def move_to(self, target_start: datetime) -> None:
        """Start at ``target_start``, keeping the duration."""
        duration = self.end - self.start
        self.start = target_start
        self.end = target_start + duration
        self.is_all_day = check_all_day(self.start, self.end)

    # ============== Edits ==============

    def edit_scalar(self, property_name: str, value: str) -> None:
        with self._editing():
            self._apply_scalar(property_name, value)

    def edit_single_occurrence(
        self,
        name: str,
        start: datetime,
        end: datetime,
        property_name: str,
        value: str,
    ) -> None:
        if self.match_by_identity(name, start, end) is None:
            raise NotFound(f"Event not found: {name} at {format_date_time(start)}")
        self.edit_scalar(property_name, value)

    def edit_all_occurrences(self, name: str, property_name: str, value: str) -> None:
        if self.match_series_by_name(name) is None:
            raise NotFound(f"Event not found: {name}")
        if property_name in SERIES_ONLY_PROPERTIES:
            # Silently skipped, but still the latest edit as far as undo goes
            with self._editing():
                return
        self.edit_scalar(property_name, value)

    def edit_following_occurrences(
        self,
        name: str,
        from_instant: datetime,
        property_name: str,
        value: str,
    ) -> None:
        """Positional series edits never match a standalone event."""
        raise NotFound(f"No recurring event named {name} from {format_date_time(from_instant)}")


@dataclass
class RecurringEvent(CalendarEntry):
    """
    A series repeating on fixed weekdays up to an exclusive ``until`` bound.

    The ``occurrences`` list is the source of truth for when the series
    happens. Structural edits cut it at some index and regenerate the rest.
    """

    weekdays: frozenset[Weekday] = frozenset()
    until: datetime | None = None
    occurrences: list[SingleEvent] = field(default_factory=list)
    frequency: int = 0

    def __post_init__(self):
        super().__post_init__()
        self.weekdays = frozenset(self.weekdays)
        if not self.weekdays:
            raise InvalidArgument("Weekdays cannot be empty")
        if self.until is None:
            raise InvalidArgument("A recurring event needs an until bound")

    @classmethod
    def from_until(
        cls,
        name: str,
        start: datetime,
        end: datetime | None,
        weekdays: Iterable[Weekday],
        until: datetime,
        description: str = "",
        location: str = "",
        is_private: bool = False,
        is_all_day: bool = False,
    ) -> "RecurringEvent":
        """Series with every matching day from ``start`` up to ``until``."""
        series = cls(
            name=name,
            start=start,
            end=end if end is not None else start,
            description=description,
            location=location,
            is_private=is_private,
            is_all_day=is_all_day,
            weekdays=frozenset(weekdays),
            until=until,
        )
        if until <= series.start:
            raise InvalidArgument("Until date time must be after start date time")
        series.occurrences = series._generate(series, series.start, series.end, until, series.weekdays)
        series.frequency = len(series.occurrences)
        return series

    @classmethod
    def from_count(
        cls,
        name: str,
        start: datetime,
        end: datetime | None,
        weekdays: Iterable[Weekday],
        count: int,
        description: str = "",
        location: str = "",
        is_private: bool = False,
        is_all_day: bool = False,
    ) -> "RecurringEvent":
        """
        Series with exactly ``count`` occurrences.

        The count is converted to an ``until`` bound once; afterwards the
        series behaves exactly like one built with :meth:`from_until`.
        """
        days = frozenset(weekdays)
        first_start = all_day_bounds(start)[0] if is_all_day else start
        until = compute_until(first_start, days, count)
        return cls.from_until(
            name,
            start,
            end,
            days,
            until,
            description=description,
            location=location,
            is_private=is_private,
            is_all_day=is_all_day,
        )

    @property
    def is_recurring(self) -> bool:
        return True

    def copy(self) -> "RecurringEvent":
        """Deep value copy; occurrences are copied one by one, undo history is not."""
        return RecurringEvent(
            name=self.name,
            start=self.start,
            end=self.end,
            description=self.description,
            location=self.location,
            is_private=self.is_private,
            is_all_day=self.is_all_day,
            weekdays=self.weekdays,
            until=self.until,
            occurrences=[occ.copy() for occ in self.occurrences],
            frequency=self.frequency,
        )

    # ============== Undo ==============

    def snapshot(self) -> EntryState:
        return EntryState(
            name=self.name,
            start=self.start,
            end=self.end,
            description=self.description,
            location=self.location,
            is_private=self.is_private,
            is_all_day=self.is_all_day,
            weekdays=self.weekdays,
            until=self.until,
            frequency=self.frequency,
            occurrences=tuple(occ.copy() for occ in self.occurrences),
        )

    def _restore(self, state: EntryState) -> None:
        super()._restore(state)
        self.weekdays = state.weekdays
        self.until = state.until
        self.frequency = state.frequency
        self.occurrences = [occ.copy() for occ in state.occurrences]

    # ============== Queries ==============

    def details_in_range(self, window_start: datetime, window_end: datetime) -> list[EventDetails]:
        details = []
        for occ in self.occurrences:
            details.extend(occ.details_in_range(window_start, window_end, is_recurring=True))
        return details

    def all_details(self) -> list[EventDetails]:
        details = []
        for occ in self.occurrences:
            details.extend(occ.all_details())
        return details

    def occurrences_in_range(self, window_start: datetime, window_end: datetime) -> list[SingleEvent]:
        return [
            occ.copy()
            for occ in self.occurrences
            if overlaps(occ.start, occ.end, window_start, window_end)
        ]

    def match_by_identity(
        self,
        name: str,
        start: datetime,
        end: datetime | None = None,
    ) -> SingleEvent | None:
        """The matching occurrence, never the series itself."""
        for occ in self.occurrences:
            if occ.match_by_identity(name, start, end) is not None:
                return occ
        return None

    def match_by_start(self, name: str, start: datetime) -> tuple[SingleEvent, bool] | None:
        for occ in self.occurrences:
            if occ.name == name and occ.start == start:
                return occ.copy(), True
        return None

    def match_series_by_name(
        self,
        name: str,
        at_or_after: datetime | None = None,
    ) -> "RecurringEvent | None":
        if at_or_after is None:
            return self if self.name == name else None
        for occ in self.occurrences:
            if occ.name == name and occ.start >= at_or_after:
                return self
        return None

    # ============== Time moves ==============

    def update_zone(self, zone: str | tzinfo) -> None:
        tz = parse_zone(zone)
        self.start = self.start.astimezone(tz)
        self.end = self.end.astimezone(tz)
        self.until = self.until.astimezone(tz)
        self.is_all_day = check_all_day(self.start, self.end)
        for occ in self.occurrences:
            occ.update_zone(tz)

    def shift_by_days(self, days: int) -> None:
        delta = timedelta(days=days)
        self.start += delta
        self.end += delta
        self.until += delta
        for occ in self.occurrences:
            occ.shift_by_days(days)

    def move_to(self, target_start: datetime) -> None:
        """Move the whole series so it starts at ``target_start``."""
        shift = target_start - self.start
        duration = self.end - self.start
        self.start = target_start
        self.end = target_start + duration
        self.until += shift
        for occ in self.occurrences:
            occ.move_to(occ.start + shift)

    # ============== Edits ==============

    def edit_scalar(self, property_name: str, value: str) -> None:
        """Series-level scalar edit: the same as editing every occurrence."""
        if property_name not in SCALAR_PROPERTIES:
            raise InvalidProperty(property_name)
        self.edit_all_occurrences(self.name, property_name, value)

    def edit_single_occurrence(
        self,
        name: str,
        start: datetime,
        end: datetime,
        property_name: str,
        value: str,
    ) -> None:
        """Edit one occurrence; the series and its other occurrences are untouched."""
        target = self.match_by_identity(name, start, end)
        if target is None:
            raise NotFound(f"Event not found: {name} at {format_date_time(start)}")
        if property_name not in SCALAR_PROPERTIES:
            raise InvalidProperty(property_name)
        with self._editing():
            target._apply_scalar(property_name, value)

    def edit_all_occurrences(self, name: str, property_name: str, value: str) -> None:
        self._edit_series(name, None, property_name, value)

    def edit_following_occurrences(
        self,
        name: str,
        from_instant: datetime,
        property_name: str,
        value: str,
    ) -> None:
        self._edit_series(name, from_instant, property_name, value)

    def _edit_series(
        self,
        name: str,
        from_instant: datetime | None,
        property_name: str,
        value: str,
    ) -> None:
        if property_name not in EDIT_PROPERTIES:
            raise InvalidProperty(property_name)

        with self._editing():
            index = self._truncation_index(name, from_instant)
            template = self if from_instant is None else self.occurrences[index]
            update_series = from_instant is None or index == 0

            match property_name:
                case "startDateTime":
                    self._edit_start(index, template, value, update_series)
                case "untilDateTime":
                    self._edit_until(index, template, value)
                case "weekDays":
                    self._edit_weekdays(index, template, value)
                case "frequency":
                    self._edit_frequency(index, template, value)
                case _:
                    self._edit_following_scalars(index, property_name, value)
                    if update_series:
                        if property_name == "endDateTime":
                            value = self._end_time_value(value)
                        self._apply_scalar(property_name, value)

            self.frequency = len(self.occurrences)

    def _truncation_index(self, name: str, from_instant: datetime | None) -> int:
        """Index of the first occurrence a series-wide edit starts from."""
        if from_instant is None and self.name == name:
            return 0
        for i, occ in enumerate(self.occurrences):
            if occ.name == name and (from_instant is None or occ.start >= from_instant):
                return i
        raise NotFound(f"No such calendar entry found: {name}")

    def _edit_following_scalars(self, index: int, property_name: str, value: str) -> None:
        for occ in self.occurrences[index:]:
            occ_value = value
            if property_name == "endDateTime":
                occ_value = occ._end_time_value(value)
            occ._apply_scalar(property_name, occ_value)

    def _edit_start(
        self,
        index: int,
        template: CalendarEntry,
        value: str,
        update_series: bool,
    ) -> None:
        new_start = parse_date_time(value, self.zone)
        new_end = new_start + (template.end - template.start)
        del self.occurrences[index:]
        self.occurrences.extend(
            self._generate(template, new_start, new_end, self.until, self.weekdays)
        )
        if update_series:
            self.start = new_start
            self.end = new_end
            self.is_all_day = check_all_day(new_start, new_end)

    def _edit_until(self, index: int, template: CalendarEntry, value: str) -> None:
        new_until = parse_date_time(value, self.until.tzinfo)
        if new_until <= template.start:
            raise InvalidArgument("Until date time must be after start date time")
        del self.occurrences[index:]
        self.occurrences.extend(
            self._generate(template, template.start, template.end, new_until, self.weekdays)
        )
        self.until = new_until

    def _edit_weekdays(self, index: int, template: CalendarEntry, value: str) -> None:
        if not value:
            raise StateViolation("Weekdays cannot be empty")
        new_weekdays = parse_weekdays(value)
        del self.occurrences[index:]
        if not self.occurrences:
            self.weekdays = new_weekdays
        self.occurrences.extend(
            self._generate(template, template.start, template.end, self.until, new_weekdays)
        )

    def _edit_frequency(self, index: int, template: CalendarEntry, value: str) -> None:
        count = parse_frequency(value)
        slots, new_until = expand_count(template.start, template.end, count, self.weekdays)
        del self.occurrences[index:]
        self.occurrences.extend(self._from_slots(template, slots))
        self.until = new_until

    # ============== Generation ==============

    @classmethod
    def _generate(
        cls,
        template: CalendarEntry,
        start: datetime,
        end: datetime,
        until: datetime,
        weekdays: Iterable[Weekday],
    ) -> list[SingleEvent]:
        return cls._from_slots(template, iter_slots(start, end, until, weekdays))

    @staticmethod
    def _from_slots(template: CalendarEntry, slots) -> list[SingleEvent]:
        """Occurrences carrying the template's scalar fields."""
        occurrences = []
        for slot in slots:
            occurrences.append(
                SingleEvent(
                    name=template.name,
                    start=slot.start,
                    end=slot.end,
                    description=template.description,
                    location=template.location,
                    is_private=template.is_private,
                    is_all_day=template.is_all_day and check_all_day(slot.start, slot.end),
                )
            )
        return occurrences
