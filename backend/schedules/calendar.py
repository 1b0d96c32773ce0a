"""Annual schedule calendar grid.

Pure module (no DB access). Builds a 12-month, Monday-first grid where
every week has exactly seven slots; slots outside the month are ``None``.
Each real day is flagged with whether the employee has a schedule on it,
looked up by ISO date string.
"""

from __future__ import annotations

import calendar
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Iterable, Optional

from backend.common.time_utils import iso

MONTH_NAMES = tuple(calendar.month_name[1:])

_GRID = calendar.Calendar(firstweekday=calendar.MONDAY)


@dataclass(frozen=True)
class DayCell:
    date: date
    iso: str
    in_month: bool = True
    is_today: bool = False
    is_selected: bool = False
    has_schedule: bool = False
    schedule: Any = None


@dataclass(frozen=True)
class CalendarMonth:
    year: int
    month: int
    name: str
    weeks: list[list[Optional[DayCell]]] = field(default_factory=list)

    @property
    def scheduled_days(self) -> int:
        return sum(
            1 for week in self.weeks for cell in week
            if cell is not None and cell.has_schedule
        )


@dataclass(frozen=True)
class YearCalendar:
    year: int
    months: list[CalendarMonth]

    @property
    def scheduled_days(self) -> int:
        return sum(m.scheduled_days for m in self.months)


def _schedule_date(schedule: Any) -> date:
    if isinstance(schedule, dict):
        return schedule["date"]
    return schedule.date


def index_schedules(schedules: Iterable[Any]) -> dict[str, Any]:
    """Map ISO date → schedule.

    Raises:
        ValueError: if two schedules share a date.
    """
    by_iso: dict[str, Any] = {}
    for schedule in schedules:
        key = iso(_schedule_date(schedule))
        if key in by_iso:
            raise ValueError(f"More than one schedule supplied for {key}.")
        by_iso[key] = schedule
    return by_iso


def build_month(
    year: int,
    month: int,
    by_iso: dict[str, Any],
    *,
    selected: frozenset[str] = frozenset(),
    today: Optional[date] = None,
) -> CalendarMonth:
    weeks: list[list[Optional[DayCell]]] = []
    for week in _GRID.monthdayscalendar(year, month):
        row: list[Optional[DayCell]] = []
        for day_number in week:
            if day_number == 0:
                row.append(None)
                continue
            day = date(year, month, day_number)
            key = iso(day)
            schedule = by_iso.get(key)
            row.append(
                DayCell(
                    date=day,
                    iso=key,
                    is_today=day == today,
                    is_selected=key in selected,
                    has_schedule=schedule is not None,
                    schedule=schedule,
                )
            )
        weeks.append(row)

    return CalendarMonth(
        year=year,
        month=month,
        name=MONTH_NAMES[month - 1],
        weeks=weeks,
    )


def build_year_calendar(
    year: int,
    schedules: Iterable[Any],
    *,
    selected: Iterable[date] = (),
    today: Optional[date] = None,
) -> YearCalendar:
    """Build the twelve month grids of *year*.

    Args:
        year: Calendar year (leap years handled by ``calendar``).
        schedules: Objects or dicts carrying a ``date``; at most one per date.
        selected: Dates currently selected in the client.
        today: Reference date for ``is_today`` (defaults to ``date.today()``).

    Raises:
        ValueError: on duplicate schedule dates.
    """
    if today is None:
        today = date.today()

    by_iso = index_schedules(schedules)
    selected_iso = frozenset(iso(d) for d in selected)

    months = [
        build_month(year, month, by_iso, selected=selected_iso, today=today)
        for month in range(1, 13)
    ]
    return YearCalendar(year=year, months=months)
