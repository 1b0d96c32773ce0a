"""HH:MM / YYYY-MM-DD helpers shared by schedules, workdays and reports.

Durations are integer minutes everywhere; hours only appear at the
presentation boundary.
"""

from __future__ import annotations

from datetime import date, datetime, timezone
from typing import Optional

from backend.common.constants import DATE_FORMAT, TIME_PATTERN


def is_valid_hhmm(value: object) -> bool:
    """True for ``9:00``, ``09:00``, ``23:59``; False for ``24:00``, ``9:5`` or a non-string."""
    return isinstance(value, str) and TIME_PATTERN.match(value) is not None


def parse_hhmm(value: str) -> int:
    """Convert ``"HH:MM"`` to minutes since midnight.

    Raises:
        ValueError: if *value* is not a valid 24h time.
    """
    if not is_valid_hhmm(value):
        raise ValueError(f"Invalid time '{value}'. Use HH:MM.")
    hours, minutes = value.split(":")
    return int(hours) * 60 + int(minutes)


def normalize_hhmm(value: str) -> str:
    """``"9:05"`` → ``"09:05"``."""
    return format_minutes(parse_hhmm(value))


def format_minutes(minutes: int) -> str:
    """Render a minute count as zero-padded ``HH:MM``."""
    hours, mins = divmod(int(minutes), 60)
    return f"{hours:02d}:{mins:02d}"


def minutes_between(start: str, end: str) -> int:
    """Signed minutes from *start* to *end* (both ``HH:MM``)."""
    return parse_hhmm(end) - parse_hhmm(start)


def iso(day: date) -> str:
    return day.strftime(DATE_FORMAT)


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Attach UTC to naive datetimes (SQLite drops tzinfo on round-trip)."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def floor_minutes(start: datetime, end: datetime) -> int:
    """Whole minutes elapsed between two timestamps, floored."""
    return int((as_utc(end) - as_utc(start)).total_seconds() // 60)
