"""Schedule time and date-range rules (pure, no DB).

Functions return a field → messages dict in the same shape as
``ValidationException.errors`` so callers can raise it directly. An empty
dict means the payload is valid.
"""

from __future__ import annotations

from datetime import date
from typing import Optional

from backend.common.time_utils import format_minutes, is_valid_hhmm, parse_hhmm
from backend.config import settings


def schedule_time_errors(
    start_time: Optional[str],
    end_time: Optional[str],
    start_break: Optional[str] = None,
    end_break: Optional[str] = None,
) -> dict[str, list[str]]:
    """Validate one schedule's times.

    Rules: valid ``HH:MM``; end after start; span within
    ``MIN_SCHEDULE_MINUTES``..``MAX_SCHEDULE_MINUTES``; a break has both
    ends, is ordered, and lies inside the working span.
    """
    errors: dict[str, list[str]] = {}

    for name, value in (("start_time", start_time), ("end_time", end_time)):
        if value is None:
            errors.setdefault(name, []).append("This field is required.")

    for name, value in (
        ("start_time", start_time),
        ("end_time", end_time),
        ("start_break", start_break),
        ("end_break", end_break),
    ):
        if value is not None and not is_valid_hhmm(value):
            errors.setdefault(name, []).append(
                f"'{value}' is not a valid time. Use HH:MM (00:00-23:59)."
            )
    if errors:
        return errors

    start = parse_hhmm(start_time)
    end = parse_hhmm(end_time)
    if end <= start:
        errors.setdefault("end_time", []).append(
            "End time must be later than start time."
        )
        return errors

    span = end - start
    if span > settings.MAX_SCHEDULE_MINUTES:
        errors.setdefault("end_time", []).append(
            f"A schedule cannot exceed {format_minutes(settings.MAX_SCHEDULE_MINUTES)} hours."
        )
    if span < settings.MIN_SCHEDULE_MINUTES:
        errors.setdefault("end_time", []).append(
            f"A schedule must last at least {settings.MIN_SCHEDULE_MINUTES} minutes."
        )

    if (start_break is None) != (end_break is None):
        missing = "end_break" if end_break is None else "start_break"
        errors.setdefault(missing, []).append(
            "Break start and end must be given together."
        )
        return errors

    if start_break is not None and end_break is not None:
        b_start = parse_hhmm(start_break)
        b_end = parse_hhmm(end_break)
        if b_end <= b_start:
            errors.setdefault("end_break", []).append(
                "Break end must be later than break start."
            )
        if b_start < start or b_end > end:
            errors.setdefault("start_break", []).append(
                "The break must fall within the working hours."
            )

    return errors


def date_range_errors(
    start_date: date,
    end_date: date,
    *,
    max_days: Optional[int] = None,
) -> dict[str, list[str]]:
    """Start ≤ end and end lies at most *max_days* days after start."""
    if max_days is None:
        max_days = settings.MAX_SCHEDULE_RANGE_DAYS

    if start_date > end_date:
        return {"start_date": ["start_date must be on or before end_date."]}
    if (end_date - start_date).days > max_days:
        return {"end_date": [f"The date range cannot exceed {max_days} days."]}
    return {}


def flatten_errors(errors: dict[str, list[str]]) -> str:
    """``{"a": ["x"], "b": ["y"]}`` → ``"a: x; b: y"`` (pydantic ValueError text)."""
    return "; ".join(
        f"{field}: {msg}" for field, messages in errors.items() for msg in messages
    )
