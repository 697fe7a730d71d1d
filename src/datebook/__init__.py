"""Datebook - personal calendar entries, recurrence and conflict checking."""

__version__ = "0.1.0"
