"""Tests for the datebook command line."""

import json
from unittest.mock import patch

import pytest
from click.testing import CliRunner

from datebook import __version__
from datebook.cli import main
from datebook.config import Config


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture(autouse=True)
def utc_config():
    with patch("datebook.cli.load_config", return_value=Config(timezone="UTC")):
        yield


class TestExpand:
    def test_text_output(self, runner):
        result = runner.invoke(
            main,
            ["expand", "Standup", "--start", "2024-01-01T09:00", "--end", "2024-01-01T09:30",
             "--weekdays", "MWF", "--count", "3"],
        )

        assert result.exit_code == 0
        lines = result.output.strip().splitlines()
        assert len(lines) == 3
        assert lines[0].startswith("Mon 2024-01-01")
        assert "09:00-09:30" in lines[0]
        assert lines[2].startswith("Fri 2024-01-05")

    def test_json_output(self, runner):
        result = runner.invoke(
            main,
            ["expand", "Standup", "--start", "2024-01-01T09:00", "--end", "2024-01-01T09:30",
             "--weekdays", "MWF", "--count", "3", "--json"],
        )

        assert result.exit_code == 0
        data = json.loads(result.output)
        assert data["frequency"] == 3
        assert data["until"] == "2024-01-06T09:00:00+00:00"
        assert [o["start"][:10] for o in data["occurrences"]] == [
            "2024-01-01",
            "2024-01-03",
            "2024-01-05",
        ]

    def test_all_day_with_until(self, runner):
        result = runner.invoke(
            main,
            ["expand", "Gym", "--start", "2024-01-01", "--weekdays", "S", "--until", "2024-01-14",
             "--timezone", "America/New_York"],
        )

        assert result.exit_code == 0
        assert "All day" in result.output
        assert result.output.count("Sat") == 2

    def test_no_occurrences(self, runner):
        result = runner.invoke(
            main,
            ["expand", "Gym", "--start", "2024-01-02T07:00", "--end", "2024-01-02T08:00",
             "--weekdays", "M", "--until", "2024-01-05"],
        )

        assert result.exit_code == 0
        assert "No occurrences." in result.output

    def test_both_bounds_is_an_error(self, runner):
        result = runner.invoke(
            main,
            ["expand", "Gym", "--start", "2024-01-02T07:00", "--end", "2024-01-02T08:00",
             "--weekdays", "M", "--until", "2024-02-01", "--count", "2"],
        )

        assert result.exit_code == 1
        assert "Error:" in result.output

    def test_conflicting_series_declined(self, runner):
        result = runner.invoke(
            main,
            ["expand", "Standup", "--start", "2024-01-01T09:00", "--end", "2024-01-01T09:30",
             "--weekdays", "MWF", "--count", "3",
             "--event", "Dentist|2024-01-03T09:15|2024-01-03T10:00"],
        )

        assert result.exit_code == 1
        assert "Error:" in result.output

    def test_conflicting_series_kept_without_auto_decline(self, runner):
        config = Config(timezone="UTC", auto_decline=False)
        with patch("datebook.cli.load_config", return_value=config):
            result = runner.invoke(
                main,
                ["expand", "Standup", "--start", "2024-01-01T09:00", "--end", "2024-01-01T09:30",
                 "--weekdays", "MWF", "--count", "3",
                 "--event", "Dentist|2024-01-03T09:15|2024-01-03T10:00"],
            )

        assert result.exit_code == 0
        assert len(result.output.strip().splitlines()) == 3

    def test_bad_weekdays(self, runner):
        result = runner.invoke(
            main,
            ["expand", "Gym", "--start", "2024-01-02T07:00", "--end", "2024-01-02T08:00",
             "--weekdays", "XYZ", "--count", "2"],
        )

        assert result.exit_code == 1
        assert "Invalid weekdays" in result.output


class TestConflicts:
    def test_reports_overlap(self, runner):
        result = runner.invoke(
            main,
            ["conflicts",
             "--event", "A|2024-06-01T10:00|2024-06-01T11:00",
             "--event", "B|2024-06-01T10:30|2024-06-01T11:30",
             "--event", "C|2024-06-01T11:30|2024-06-01T12:00"],
        )

        assert result.exit_code == 0
        assert "A (2024-06-01 10:00) overlaps B (2024-06-01 10:30)" in result.output
        assert "C (" not in result.output

    def test_none(self, runner):
        result = runner.invoke(
            main,
            ["conflicts",
             "--event", "A|2024-06-01T10:00|2024-06-01T11:00",
             "--event", "B|2024-06-01T11:00|2024-06-01T12:00"],
        )

        assert result.exit_code == 0
        assert "No conflicts." in result.output

    def test_json_output(self, runner):
        result = runner.invoke(
            main,
            ["conflicts", "--json",
             "--event", "A|2024-06-01T10:00|2024-06-01T11:00",
             "--event", "Holiday|2024-06-01"],
        )

        assert result.exit_code == 0
        data = json.loads(result.output)
        assert len(data) == 1
        assert data[0]["first"]["name"] == "A"
        assert data[0]["second"]["all_day"] is True

    def test_malformed_event(self, runner):
        result = runner.invoke(main, ["conflicts", "--event", "just-a-name"])

        assert result.exit_code == 2

    def test_invalid_date(self, runner):
        result = runner.invoke(main, ["conflicts", "--event", "A|tomorrow|later"])

        assert result.exit_code == 1
        assert "Error:" in result.output


def test_version(runner):
    result = runner.invoke(main, ["--version"])

    assert result.exit_code == 0
    assert __version__ in result.output
