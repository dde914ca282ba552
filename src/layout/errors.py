from __future__ import annotations


class LayoutError(Exception):
    """Base error for calendar layout issues."""


class InvalidEventError(LayoutError):
    """Raised when an event cannot be laid out (bad interval or timestamp)."""


class SplitLimitExceededError(InvalidEventError):
    """Raised when an event spans more days than the layout allows."""
