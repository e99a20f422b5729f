"""Utility functions for the application."""

from datetime import datetime
from typing import Any


def timestamp_seconds(value: Any) -> float:
    """Return a server timestamp as epoch seconds.

    A timestamp the server has not filled in yet (a pending write still holds
    the sentinel, or the field is missing) counts as 0, the oldest possible.
    """
    if isinstance(value, datetime):
        return value.timestamp()
    seconds = getattr(value, "seconds", None)
    if isinstance(seconds, (int, float)):
        return float(seconds)
    return 0.0


def clean_text(value: Any) -> str:
    """Strip surrounding whitespace; None becomes an empty string."""
    if value is None:
        return ""
    return str(value).strip()
