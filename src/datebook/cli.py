"""Datebook CLI - expand recurrences and check conflicts."""

import json
import logging
import sys

import click

from . import __version__
from .config import load_config
from .core.calendar import Calendar
from .core.conflicts import find_conflicts
from .core.entry import CalendarEntry, SingleEvent
from .errors import DatebookError

logger = logging.getLogger(__name__)


@click.group()
@click.version_option(version=__version__)
@click.option("--debug", is_flag=True, help="Enable debug logging")
@click.pass_context
def main(ctx, debug: bool):
    """Datebook - personal calendar CLI."""
    config = load_config()
    logging.basicConfig(
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        level=logging.DEBUG if debug else getattr(logging, config.log_level, logging.WARNING),
    )
    ctx.obj = config


def _fail(error: DatebookError) -> None:
    logger.debug("Command failed", exc_info=error)
    click.echo(f"Error: {error}", err=True)
    sys.exit(1)


def _event_json(event: SingleEvent) -> dict:
    return {
        "name": event.name,
        "start": event.start.isoformat(),
        "end": event.end.isoformat(),
        "all_day": event.is_all_day,
    }


def _parse_event_spec(calendar: Calendar, spec: str) -> CalendarEntry:
    parts = [p.strip() for p in spec.split("|")]
    if len(parts) not in (2, 3):
        raise click.BadParameter(f"Expected NAME|START|END, got {spec!r}", param_hint="--event")
    name, start = parts[0], parts[1]
    end = parts[2] if len(parts) == 3 else ""
    return calendar.add_event(name, start, end, auto_decline=False)


@main.command()
@click.argument("name")
@click.option("--start", required=True, help="Start, yyyy-MM-ddTHH:mm")
@click.option("--end", default="", help="End, yyyy-MM-ddTHH:mm (omit for all-day)")
@click.option("--weekdays", required=True, help="Weekday codes, e.g. MWF (R = Thursday)")
@click.option("--until", default=None, help="Exclusive bound, yyyy-MM-dd[THH:mm]")
@click.option("--count", type=int, default=None, help="Number of occurrences")
@click.option(
    "--event",
    "events",
    multiple=True,
    help="Existing event as NAME|START|END; the series is declined if it conflicts "
    "and auto_decline is on",
)
@click.option("--timezone", "zone", default=None, help="IANA timezone (defaults to config)")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.pass_obj
def expand(config, name, start, end, weekdays, until, count, events, zone, as_json: bool):
    """List the occurrences of a recurring event."""
    try:
        calendar = Calendar(zone or config.timezone)
        for spec in events:
            _parse_event_spec(calendar, spec)
        series = calendar.add_recurring_event(
            name,
            start,
            end,
            weekdays,
            until=until,
            count=count,
            auto_decline=config.auto_decline,
        )
    except DatebookError as e:
        _fail(e)
        return

    logger.debug(f"Expanded {name} to {series.frequency} occurrences until {series.until}")

    if as_json:
        click.echo(
            json.dumps(
                {
                    "until": series.until.isoformat(),
                    "frequency": series.frequency,
                    "occurrences": [_event_json(occ) for occ in series.occurrences],
                },
                indent=2,
            )
        )
        return

    if not series.occurrences:
        click.echo("No occurrences.")
        return

    for occ in series.occurrences:
        if occ.is_all_day:
            when = "All day"
        else:
            when = f"{occ.start.strftime('%H:%M')}-{occ.end.strftime('%H:%M')}"
        click.echo(f"{occ.start.strftime('%a %Y-%m-%d')}  {when:11} {occ.name}")


@main.command()
@click.option(
    "--event",
    "events",
    multiple=True,
    required=True,
    help="Event as NAME|START|END (END omitted for all-day)",
)
@click.option("--timezone", "zone", default=None, help="IANA timezone (defaults to config)")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.pass_obj
def conflicts(config, events, zone, as_json: bool):
    """Report overlapping pairs among the given events."""
    try:
        calendar = Calendar(zone or config.timezone)
        for spec in events:
            _parse_event_spec(calendar, spec)
    except DatebookError as e:
        _fail(e)
        return

    pairs = find_conflicts(calendar.entries)

    if as_json:
        click.echo(
            json.dumps(
                [{"first": _event_json(a), "second": _event_json(b)} for a, b in pairs],
                indent=2,
            )
        )
        return

    if not pairs:
        click.echo("No conflicts.")
        return

    for a, b in pairs:
        click.echo(f"• {a.name} ({a.start.strftime('%Y-%m-%d %H:%M')}) overlaps "
                   f"{b.name} ({b.start.strftime('%Y-%m-%d %H:%M')})")


if __name__ == "__main__":
    main()
