"""Hours reconciliation: worked vs. scheduled vs. convention hours.

Pure functions. Inputs are integer minutes or schedule-like objects
(ORM rows or dicts with ``start_time`` / ``end_time`` / ``start_break`` /
``end_break`` as ``HH:MM``). Hours are produced only here, rounded to
two decimals.
"""

from __future__ import annotations

from typing import Any, Iterable

from backend.common.time_utils import minutes_between

TIER_GOOD = "good"
TIER_FAIR = "fair"
TIER_WARNING = "warning"
TIER_POOR = "poor"


def hours_from_minutes(minutes: int) -> float:
    return round(minutes / 60, 2)


def percentage_worked(hours: float, convention_hours: float) -> float:
    """Share of the annual convention target already worked, in percent.

    A non-positive convention yields ``0`` instead of dividing by zero.
    """
    if not convention_hours or convention_hours <= 0:
        return 0.0
    return round(hours / convention_hours * 100, 2)


def _get(schedule: Any, name: str) -> Any:
    if isinstance(schedule, dict):
        return schedule.get(name)
    return getattr(schedule, name, None)


def assigned_minutes(schedule: Any) -> int:
    """Planned minutes for one schedule: span minus the break when both ends exist."""
    total = minutes_between(_get(schedule, "start_time"), _get(schedule, "end_time"))
    start_break = _get(schedule, "start_break")
    end_break = _get(schedule, "end_break")
    if start_break and end_break:
        total -= minutes_between(start_break, end_break)
    return total


def total_assigned_minutes(schedules: Iterable[Any]) -> int:
    return sum(assigned_minutes(s) for s in schedules)


def progress_tier(percentage: float) -> str:
    """Bucket a percentage: ≥90 good, ≥70 fair, ≥50 warning, else poor."""
    if percentage >= 90:
        return TIER_GOOD
    if percentage >= 70:
        return TIER_FAIR
    if percentage >= 50:
        return TIER_WARNING
    return TIER_POOR


def reconcile(
    worked_minutes: int,
    scheduled_minutes: int,
    convention_hours: int,
) -> dict[str, Any]:
    """One employee's reconciliation row."""
    worked_hours = hours_from_minutes(worked_minutes)
    pct = percentage_worked(worked_hours, convention_hours)
    return {
        "worked_minutes": worked_minutes,
        "worked_hours": worked_hours,
        "assigned_minutes": scheduled_minutes,
        "assigned_hours": hours_from_minutes(scheduled_minutes),
        "convention_hours": convention_hours,
        "remaining_hours": round(max(0.0, convention_hours - worked_hours), 2),
        "percentage_worked": pct,
        "tier": progress_tier(pct),
    }
