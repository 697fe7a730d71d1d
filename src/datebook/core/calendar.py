"""A single calendar: the collection that owns entries in one timezone.

Pure domain logic - no I/O. This is the layer that turns user-facing strings
into parsed values before handing them to the entries.
"""

from datetime import datetime, timedelta, tzinfo
from typing import Callable, Iterable

from datebook.errors import DatebookError, EntryConflict, InvalidArgument, NotFound

from .entry import CalendarEntry, EventDetails, RecurringEvent, SingleEvent
from .timeutils import (
    offset_days_between,
    parse_date_time,
    parse_weekdays,
    parse_zone,
    process_event_date_time,
)

BUSY = "Busy"
AVAILABLE = "Available"


class Calendar:
    """Entries of one calendar plus conflict-aware add and edit operations."""

    def __init__(self, zone: str | tzinfo = "UTC"):
        self.zone = parse_zone(zone)
        self.entries: list[CalendarEntry] = []
        self._last_edited: list[CalendarEntry] = []

    def __len__(self) -> int:
        return len(self.entries)

    def _parse(self, value: str) -> datetime:
        return parse_date_time(value, self.zone)

    def _day_start(self, value: str) -> datetime:
        """Local midnight of the date part of ``value``."""
        return self._parse(value.split("T")[0])

    # ============== Adding ==============

    def add_event(
        self,
        name: str,
        start: str,
        end: str = "",
        description: str = "",
        location: str = "",
        is_private: bool = False,
        auto_decline: bool = True,
    ) -> SingleEvent:
        """Add a single event. An empty ``end`` makes it all-day."""
        parsed = process_event_date_time(start, end, self.zone)
        event = SingleEvent(
            name=name,
            start=parsed.start,
            end=parsed.end,
            description=description,
            location=location,
            is_private=is_private,
            is_all_day=parsed.all_day,
        )
        self.add_entry(event, auto_decline)
        return event

    def add_recurring_event(
        self,
        name: str,
        start: str,
        end: str,
        weekdays: str,
        *,
        until: str | None = None,
        count: int | None = None,
        description: str = "",
        location: str = "",
        is_private: bool = False,
        auto_decline: bool = True,
    ) -> RecurringEvent:
        """Add a series bounded by exactly one of ``until`` or ``count``."""
        if (until is None) == (count is None):
            raise InvalidArgument("Give exactly one of until or count")
        parsed = process_event_date_time(start, end, self.zone)
        days = parse_weekdays(weekdays)
        common = dict(
            description=description,
            location=location,
            is_private=is_private,
            is_all_day=parsed.all_day,
        )
        if until is not None:
            series = RecurringEvent.from_until(
                name, parsed.start, parsed.end, days, self._parse(until), **common
            )
        else:
            series = RecurringEvent.from_count(
                name, parsed.start, parsed.end, days, count, **common
            )
        self.add_entry(series, auto_decline)
        return series

    def add_entry(self, entry: CalendarEntry, auto_decline: bool = True) -> None:
        self.add_entries([entry], auto_decline)

    def add_entries(self, entries: Iterable[CalendarEntry], auto_decline: bool = True) -> None:
        """Add entries all-or-nothing; with auto-decline any conflict rejects the batch."""
        entries = list(entries)
        if auto_decline:
            for entry in entries:
                if self._has_conflict(entry):
                    raise EntryConflict("Conflict detected, no events were added")
        self.entries.extend(entries)

    def _has_conflict(
        self,
        entry: CalendarEntry,
        ignore: Iterable[CalendarEntry] = (),
    ) -> bool:
        skip = {id(entry)} | {id(e) for e in ignore}
        return any(
            entry.is_conflict(other) for other in self.entries if id(other) not in skip
        )

    # ============== Editing ==============

    def edit_event(
        self,
        name: str,
        start: str,
        end: str,
        property_name: str,
        value: str,
        auto_decline: bool = True,
    ) -> None:
        """Edit the one occurrence (or single event) with this exact identity."""
        parsed = process_event_date_time(start, end, self.zone)
        matched = [
            entry
            for entry in self.entries
            if entry.match_by_identity(name, parsed.start, parsed.end) is not None
        ]
        if not matched:
            raise NotFound(f"Event not found: {name}")
        self._apply_edits(
            matched,
            lambda entry: entry.edit_single_occurrence(
                name, parsed.start, parsed.end, property_name, value
            ),
            auto_decline,
        )

    def edit_events_following(
        self,
        name: str,
        start: str,
        property_name: str,
        value: str,
        auto_decline: bool = True,
    ) -> None:
        """Edit every series occurrence named ``name`` starting at or after ``start``."""
        from_instant = self._parse(start)
        matched = [
            entry
            for entry in self.entries
            if entry.match_series_by_name(name, from_instant) is not None
        ]
        if not matched:
            raise NotFound(f"Could not find any recurring event: {name}")
        self._apply_edits(
            matched,
            lambda entry: entry.edit_following_occurrences(
                name, from_instant, property_name, value
            ),
            auto_decline,
        )

    def edit_events_all(
        self,
        name: str,
        property_name: str,
        value: str,
        auto_decline: bool = True,
    ) -> None:
        """Edit every entry named ``name``, series and single events alike."""
        matched = [entry for entry in self.entries if entry.match_series_by_name(name) is not None]
        if not matched:
            raise NotFound(f"Could not find any recurring event: {name}")
        self._apply_edits(
            matched,
            lambda entry: entry.edit_all_occurrences(name, property_name, value),
            auto_decline,
        )

    def _apply_edits(
        self,
        matched: list[CalendarEntry],
        edit: Callable[[CalendarEntry], None],
        auto_decline: bool,
    ) -> None:
        """
        Run ``edit`` on every matched entry, rolling all of them back on failure.

        A rejected call leaves every entry as it was before, undo history
        included, so the previous successful edit can still be undone.
        """
        saved = [(entry, entry.snapshot(), entry.previous_state) for entry in matched]
        try:
            for entry in matched:
                edit(entry)
            if auto_decline and any(self._has_conflict(entry, ignore=matched) for entry in matched):
                raise EntryConflict("Event conflicts with existing event")
        except DatebookError:
            for entry, state, previous_state in saved:
                entry.restore(state, previous_state)
            raise

        self._last_edited = list(matched)

    def undo_last_edit(self) -> bool:
        """Undo the entries touched by the last successful edit call."""
        if not self._last_edited:
            return False
        for entry in self._last_edited:
            entry.undo()
        self._last_edited = []
        return True

    # ============== Queries ==============

    def _details_between(self, window_start: datetime, window_end: datetime) -> list[EventDetails]:
        details = []
        for entry in self.entries:
            details.extend(entry.details_in_range(window_start, window_end))
        # Same zone everywhere, so the formatted strings sort chronologically
        return sorted(details, key=lambda d: d["StartDateTime"])

    def events_in_range(self, start: str, end: str) -> list[EventDetails]:
        """Detail records of every occurrence overlapping ``[start, end)``."""
        if not start or not end:
            raise InvalidArgument("Start and end date time cannot be empty")
        window_start = self._parse(start)
        window_end = self._parse(end)
        if window_end < window_start:
            raise InvalidArgument("End time must be after start time")
        return self._details_between(window_start, window_end)

    def events_on(self, day: str) -> list[EventDetails]:
        """Detail records of every occurrence touching the local day."""
        day_start = self._day_start(day)
        return self._details_between(day_start, day_start + timedelta(days=1))

    def all_events(self) -> list[EventDetails]:
        """Export records for every occurrence of every entry."""
        records = []
        for entry in self.entries:
            records.extend(entry.all_details())
        return records

    def find_event(self, name: str, start: str) -> EventDetails | None:
        """Export record of the event or occurrence starting at ``start``."""
        start_dt = self._parse(start)
        for entry in self.entries:
            match = entry.match_by_start(name, start_dt)
            if match is not None:
                event, is_recurring = match
                record = event.export_record()
                record["IsRecurring"] = "true" if is_recurring else "false"
                return record
        return None

    def status_at(self, when: str) -> str:
        """Busy if anything is scheduled during the minute starting at ``when``."""
        if not when:
            raise InvalidArgument("Start date time cannot be empty")
        probe_start = self._parse(when)
        return self._availability(probe_start, probe_start + timedelta(minutes=1))

    def status_in_range(self, start: str, end: str) -> str:
        if not start:
            raise InvalidArgument("Start date time cannot be empty")
        if not end:
            raise InvalidArgument("End date time cannot be empty")
        window_start = self._parse(start)
        window_end = self._parse(end)
        if window_end < window_start:
            raise InvalidArgument("End time must be after start time")
        return self._availability(window_start, window_end)

    def _availability(self, start: datetime, end: datetime) -> str:
        probe = SingleEvent(name="_probe_", start=start, end=end)
        if any(entry.is_conflict(probe) for entry in self.entries):
            return BUSY
        return AVAILABLE

    # ============== Zones and copies ==============

    def change_timezone(self, zone: str | tzinfo) -> None:
        """Re-express every entry in ``zone``, keeping the instants."""
        self.zone = parse_zone(zone)
        for entry in self.entries:
            entry.update_zone(self.zone)

    def copy_event(self, name: str, start: str, target: "Calendar", target_start: str) -> SingleEvent:
        """Copy one event or occurrence so it starts at ``target_start`` in ``target``."""
        start_dt = self._parse(start)
        for entry in self.entries:
            match = entry.match_by_start(name, start_dt)
            if match is not None:
                event = match[0]
                event.move_to(target._parse(target_start))
                target.add_entry(event)
                return event
        raise NotFound(f"Event not found: {name}")

    def copy_events_between(
        self,
        start_date: str,
        end_date: str,
        target: "Calendar",
        target_date: str,
    ) -> list[SingleEvent]:
        """
        Copy every occurrence touching ``start_date``..``end_date`` (inclusive).

        Copies are converted to the target's zone and moved by whole days so
        the first source day lands on ``target_date``.
        """
        window_start = self._day_start(start_date)
        window_end = self._day_start(end_date) + timedelta(days=1)
        if window_end <= window_start:
            raise InvalidArgument("End date must not be before start date")

        copies: list[SingleEvent] = []
        for entry in self.entries:
            copies.extend(entry.occurrences_in_range(window_start, window_end))

        offset = offset_days_between(window_start, target._day_start(target_date))
        for event in copies:
            event.update_zone(target.zone)
            event.shift_by_days(offset)
        target.add_entries(copies)
        return copies
