"""Tests for zoned date/time helpers."""

from datetime import date, datetime
from zoneinfo import ZoneInfo

import pytest

from datebook.core.timeutils import (
    Weekday,
    all_day_bounds,
    check_all_day,
    compute_until,
    format_date_time,
    format_export_date,
    format_export_time,
    is_valid_weekdays,
    offset_days_between,
    overlaps,
    parse_bool,
    parse_date_time,
    parse_frequency,
    parse_weekdays,
    parse_zone,
    process_event_date_time,
    weekdays_to_codes,
)
from datebook.errors import InvalidArgument

NY = ZoneInfo("America/New_York")
UTC = ZoneInfo("UTC")


class TestParseDateTime:
    def test_date_time(self):
        dt = parse_date_time("2024-06-01T10:30", NY)
        assert dt == datetime(2024, 6, 1, 10, 30, tzinfo=NY)
        assert dt.tzinfo is NY

    def test_bare_date_is_local_midnight(self):
        dt = parse_date_time("2024-06-01", "America/New_York")
        assert (dt.hour, dt.minute) == (0, 0)
        assert dt.date() == date(2024, 6, 1)

    @pytest.mark.parametrize(
        "value",
        ["2024-13-01", "2024-02-30", "2024-06-01 10:30", "2024-06-01T24:00", "", "tomorrow"],
    )
    def test_rejects_malformed(self, value):
        with pytest.raises(InvalidArgument):
            parse_date_time(value, NY)

    def test_rejects_unknown_zone(self):
        with pytest.raises(InvalidArgument, match="Invalid timezone"):
            parse_date_time("2024-06-01T10:30", "Mars/Olympus_Mons")

    def test_format_round_trip(self):
        assert format_date_time(datetime(2024, 6, 1, 9, 5, tzinfo=NY)) == "2024-06-01T09:05"
        assert format_date_time(datetime(2024, 6, 1, 9, 5, tzinfo=NY), include_time=False) == "2024-06-01"


class TestParseZone:
    def test_name(self):
        assert parse_zone("UTC") == UTC

    def test_tzinfo_passes_through(self):
        assert parse_zone(NY) is NY

    def test_invalid(self):
        with pytest.raises(InvalidArgument):
            parse_zone("Not/AZone")


class TestWeekdays:
    def test_codes(self):
        assert parse_weekdays("MWF") == {Weekday.MONDAY, Weekday.WEDNESDAY, Weekday.FRIDAY}

    def test_r_is_thursday(self):
        assert parse_weekdays("R") == {Weekday.THURSDAY}
        assert parse_weekdays("T") == {Weekday.TUESDAY}

    def test_all_seven(self):
        assert parse_weekdays("MTWRFSU") == set(Weekday)

    def test_empty_rejected(self):
        with pytest.raises(InvalidArgument):
            parse_weekdays("")

    def test_unknown_code_rejected(self):
        assert is_valid_weekdays("MX") is False
        with pytest.raises(InvalidArgument):
            parse_weekdays("MX")

    def test_lowercase_rejected(self):
        with pytest.raises(InvalidArgument):
            parse_weekdays("mwf")

    def test_to_codes_is_monday_first(self):
        assert weekdays_to_codes({Weekday.SUNDAY, Weekday.FRIDAY, Weekday.MONDAY}) == "MFU"

    def test_weekday_of_date(self):
        assert Weekday.of(date(2024, 1, 1)) is Weekday.MONDAY
        assert Weekday.of(datetime(2024, 1, 4, 12, tzinfo=UTC)) is Weekday.THURSDAY


class TestOverlaps:
    def _dt(self, hour, minute=0):
        return datetime(2024, 6, 1, hour, minute, tzinfo=UTC)

    def test_partial_overlap(self):
        assert overlaps(self._dt(10), self._dt(11), self._dt(10, 30), self._dt(11, 30)) is True

    def test_touching_does_not_overlap(self):
        assert overlaps(self._dt(10), self._dt(11), self._dt(11), self._dt(12)) is False
        assert overlaps(self._dt(11), self._dt(12), self._dt(10), self._dt(11)) is False

    def test_containment(self):
        assert overlaps(self._dt(9), self._dt(17), self._dt(12), self._dt(13)) is True

    def test_across_zones_compares_instants(self):
        ny_ten = datetime(2024, 6, 1, 10, tzinfo=NY)  # 14:00 UTC
        assert overlaps(ny_ten, ny_ten.replace(hour=11), self._dt(14, 30), self._dt(15)) is True


class TestComputeUntil:
    def test_standup_scenario(self):
        start = datetime(2024, 1, 1, 9, tzinfo=UTC)
        days = {Weekday.MONDAY, Weekday.WEDNESDAY, Weekday.FRIDAY}
        assert compute_until(start, days, 3) == datetime(2024, 1, 6, 9, tzinfo=UTC)

    def test_start_off_pattern(self):
        # Tuesday start, Mondays only: first Monday is Jan 8
        start = datetime(2024, 1, 2, 9, tzinfo=UTC)
        assert compute_until(start, {Weekday.MONDAY}, 1) == datetime(2024, 1, 9, 9, tzinfo=UTC)

    def test_rejects_non_positive_count(self):
        with pytest.raises(InvalidArgument):
            compute_until(datetime(2024, 1, 1, tzinfo=UTC), {Weekday.MONDAY}, 0)

    def test_rejects_empty_weekdays(self):
        with pytest.raises(InvalidArgument):
            compute_until(datetime(2024, 1, 1, tzinfo=UTC), set(), 2)


class TestParsers:
    def test_frequency(self):
        assert parse_frequency("5") == 5

    @pytest.mark.parametrize(
        "value", ["0", "-2", "three", "2.5", "", " 3", "3 ", "+3", "1_0", "３"]
    )
    def test_frequency_rejects(self, value):
        with pytest.raises(InvalidArgument):
            parse_frequency(value)

    def test_bool(self):
        assert parse_bool("true") is True
        assert parse_bool("TRUE") is True
        assert parse_bool("yes") is False
        assert parse_bool("false") is False


class TestAllDay:
    def test_bounds(self):
        start, end = all_day_bounds(datetime(2024, 6, 1, 15, 45, tzinfo=NY))
        assert start == datetime(2024, 6, 1, 0, 0, tzinfo=NY)
        assert end == datetime(2024, 6, 1, 23, 59, tzinfo=NY)

    def test_check(self):
        assert check_all_day(*all_day_bounds(datetime(2024, 6, 1, tzinfo=NY))) is True
        assert check_all_day(
            datetime(2024, 6, 1, 0, 30, tzinfo=NY), datetime(2024, 6, 1, 23, 59, tzinfo=NY)
        ) is False
        assert check_all_day(
            datetime(2024, 6, 1, tzinfo=NY), datetime(2024, 6, 2, 23, 59, tzinfo=NY)
        ) is False


class TestProcessEventDateTime:
    def test_timed(self):
        result = process_event_date_time("2024-06-01T10:00", "2024-06-01T11:00", NY)
        assert result.all_day is False
        assert result.end - result.start == datetime(2024, 1, 1, 1) - datetime(2024, 1, 1)

    def test_empty_end_is_all_day(self):
        result = process_event_date_time("2024-06-01", "", NY)
        assert result.all_day is True
        assert result.start == datetime(2024, 6, 1, tzinfo=NY)
        assert result.end == datetime(2024, 6, 1, 23, 59, tzinfo=NY)

    def test_end_before_start(self):
        with pytest.raises(InvalidArgument):
            process_event_date_time("2024-06-01T11:00", "2024-06-01T10:00", NY)

    def test_empty_start(self):
        with pytest.raises(InvalidArgument):
            process_event_date_time("", "2024-06-01T10:00", NY)


class TestMisc:
    def test_offset_days(self):
        assert offset_days_between(date(2024, 1, 1), date(2024, 2, 5)) == 35
        assert offset_days_between(date(2024, 2, 5), date(2024, 1, 1)) == -35

    def test_offset_days_accepts_datetimes(self):
        assert offset_days_between(
            datetime(2024, 1, 1, 23, tzinfo=UTC), datetime(2024, 1, 2, 1, tzinfo=UTC)
        ) == 1

    def test_export_formats(self):
        morning = datetime(2024, 1, 1, 9, 0, tzinfo=UTC)
        afternoon = datetime(2024, 1, 1, 13, 30, tzinfo=UTC)
        assert format_export_date(morning) == "01/01/2024"
        assert format_export_time(morning) == "09:00 AM"
        assert format_export_time(afternoon) == "01:30 PM"
