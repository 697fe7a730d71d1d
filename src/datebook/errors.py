"""Error taxonomy shared by the core and the CLI."""


class DatebookError(Exception):
    """Base class for every error raised by datebook."""


class InvalidArgument(DatebookError, ValueError):
    """Malformed date/time, weekday, timezone or frequency input."""


class InvalidProperty(DatebookError, ValueError):
    """Unknown property name for the entry's edit path."""

    def __init__(self, property_name: str):
        super().__init__(f"Invalid property name: {property_name}")
        self.property_name = property_name


class NotFound(DatebookError, LookupError):
    """No occurrence or series matches the given identity."""


class StateViolation(DatebookError, ValueError):
    """An edit would leave the entry in an impossible state."""


class EntryConflict(StateViolation):
    """An entry overlaps an existing one and auto-decline is on."""
