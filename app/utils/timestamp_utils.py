"""
Timestamp utility functions for quota boundaries and media durations.

This module provides utilities for:
- Formatting UTC instants as ISO 8601 with a trailing Z
- Computing the first instant of the next calendar month (quota reset boundary)
- Advancing a reset boundary past a given instant
- Formatting video durations as "M:SS" / "H:MM:SS"
"""

from datetime import datetime, timezone
from typing import Optional


def utcnow() -> datetime:
    """Timezone-aware current time in UTC."""
    return datetime.now(timezone.utc)


def isoformat_utc(moment: datetime) -> str:
    """ISO 8601 in UTC with a trailing 'Z', the same form pydantic emits in JSON bodies."""
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")


def first_instant_of_next_month(moment: datetime) -> datetime:
    """
    Return 00:00:00 UTC on the first day of the month following `moment`.

    Examples:
        2026-01-15T10:00Z -> 2026-02-01T00:00Z
        2026-12-31T23:59Z -> 2027-01-01T00:00Z
    """
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    moment = moment.astimezone(timezone.utc)
    if moment.month == 12:
        return datetime(moment.year + 1, 1, 1, tzinfo=timezone.utc)
    return datetime(moment.year, moment.month + 1, 1, tzinfo=timezone.utc)


def advance_reset_boundary(reset_date: datetime, now: datetime) -> datetime:
    """
    Step `reset_date` forward one calendar month at a time until it lies after `now`.

    Advancing from the previous boundary (rather than from `now`) keeps the
    cycle anchored to month starts even when the process sat idle across
    several boundaries.
    """
    boundary = reset_date
    while now >= boundary:
        boundary = first_instant_of_next_month(boundary)
    return boundary


def format_duration(seconds: Optional[float]) -> Optional[str]:
    """Convert seconds to a clock-style duration: 225 -> "3:45", 3725 -> "1:02:05"."""
    if seconds is None:
        return None
    total = int(seconds)
    hours = total // 3600
    minutes = (total % 3600) // 60
    secs = total % 60
    if hours:
        return f"{hours}:{minutes:02d}:{secs:02d}"
    return f"{minutes}:{secs:02d}"
