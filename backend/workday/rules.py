"""Workday rules: clock-entry state machine and minute arithmetic.

Pure module (no DB access). Clock entries are any objects exposing
``entry_type`` and ``timestamp`` (ORM rows or ``ClockEvent``). Timestamps
are treated as UTC; naive values are assumed to already be UTC.

    NOT_STARTED ──clock_in──▶ CLOCKED_IN ──break_start──▶ ON_BREAK
                                  ▲  │                       │
                                  │  └──clock_out──▶ COMPLETED
                                  └──────break_end───────────┘
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone
from typing import Any, Iterable, Optional, Sequence

from backend.common.constants import ClockEntryType
from backend.common.time_utils import as_utc, floor_minutes, parse_hhmm


class WorkdayStatus(str, enum.Enum):
    NOT_STARTED = "not_started"
    CLOCKED_IN = "clocked_in"
    ON_BREAK = "on_break"
    COMPLETED = "completed"


class InvalidTransitionError(ValueError):
    """Raised when a clock entry is not allowed after the previous one."""

    def __init__(self, new_type: ClockEntryType, last_type: Optional[ClockEntryType]) -> None:
        self.new_type = new_type
        self.last_type = last_type
        if last_type is None:
            message = f"The first entry of the day must be clock_in, not {new_type.value}."
        else:
            message = f"Cannot register {new_type.value} after {last_type.value}."
        super().__init__(message)


# Last entry → entries allowed next. ``None`` is the empty day.
ALLOWED_TRANSITIONS: dict[Optional[ClockEntryType], frozenset[ClockEntryType]] = {
    None: frozenset({ClockEntryType.clock_in}),
    ClockEntryType.clock_in: frozenset({ClockEntryType.break_start, ClockEntryType.clock_out}),
    ClockEntryType.break_start: frozenset({ClockEntryType.break_end}),
    ClockEntryType.break_end: frozenset({ClockEntryType.break_start, ClockEntryType.clock_out}),
    ClockEntryType.clock_out: frozenset(),
}

_STATUS_AFTER = {
    ClockEntryType.clock_in: WorkdayStatus.CLOCKED_IN,
    ClockEntryType.break_start: WorkdayStatus.ON_BREAK,
    ClockEntryType.break_end: WorkdayStatus.CLOCKED_IN,
    ClockEntryType.clock_out: WorkdayStatus.COMPLETED,
}


@dataclass(frozen=True)
class ClockEvent:
    entry_type: ClockEntryType
    timestamp: datetime


@dataclass(frozen=True)
class WorkdaySummary:
    start_time: Optional[datetime]
    end_time: Optional[datetime]
    worked_minutes: int
    break_minutes: int
    overtime_minutes: int


@dataclass(frozen=True)
class ScheduleComparison:
    is_on_time: bool
    minutes_difference: int
    started_early: bool
    finished_late: bool


# ── Status ──────────────────────────────────────────────────────────

def derive_workday_status(entry_types: Sequence[ClockEntryType]) -> WorkdayStatus:
    """Status after the last entry of the day (entries in time order)."""
    if not entry_types:
        return WorkdayStatus.NOT_STARTED
    return _STATUS_AFTER[ClockEntryType(entry_types[-1])]


def allowed_next(entry_types: Sequence[ClockEntryType]) -> frozenset[ClockEntryType]:
    last = ClockEntryType(entry_types[-1]) if entry_types else None
    return ALLOWED_TRANSITIONS[last]


def validate_transition(
    new_type: ClockEntryType,
    entry_types: Sequence[ClockEntryType],
) -> None:
    """Raise ``InvalidTransitionError`` unless *new_type* may follow *entry_types*."""
    new_type = ClockEntryType(new_type)
    if new_type not in allowed_next(entry_types):
        last = ClockEntryType(entry_types[-1]) if entry_types else None
        raise InvalidTransitionError(new_type, last)


def validate_clock_timestamp(
    timestamp: datetime,
    *,
    now: datetime,
    max_backdate_days: int,
) -> None:
    """No future entries and nothing older than *max_backdate_days* whole days."""
    ts = as_utc(timestamp)
    now = as_utc(now)
    if ts > now:
        raise ValueError("Clock entries cannot be in the future.")
    if (now - ts).days > max_backdate_days:
        raise ValueError(
            f"Clock entries cannot be more than {max_backdate_days} days old."
        )


# ── Minutes ─────────────────────────────────────────────────────────

def ordered(entries: Iterable[Any]) -> list[Any]:
    return sorted(entries, key=lambda e: as_utc(e.timestamp))


def break_minutes(entries: Iterable[Any]) -> int:
    """Sum of closed break_start → break_end pairs, in floor minutes."""
    total = 0
    opened: Optional[datetime] = None
    for entry in ordered(entries):
        if entry.entry_type == ClockEntryType.break_start:
            opened = entry.timestamp
        elif entry.entry_type == ClockEntryType.break_end and opened is not None:
            total += floor_minutes(opened, entry.timestamp)
            opened = None
    return total


def summarize(entries: Iterable[Any], scheduled_minutes: int = 0) -> WorkdaySummary:
    """Recalculate a workday from its entries.

    start = first clock_in, end = last clock_out; worked = (end - start)
    minus breaks, floored at zero, and only once both ends exist;
    overtime = worked beyond *scheduled_minutes* (0 when nothing is
    scheduled).
    """
    entries = ordered(entries)
    clock_ins = [e.timestamp for e in entries if e.entry_type == ClockEntryType.clock_in]
    clock_outs = [e.timestamp for e in entries if e.entry_type == ClockEntryType.clock_out]
    start = as_utc(clock_ins[0]) if clock_ins else None
    end = as_utc(clock_outs[-1]) if clock_outs else None

    pauses = break_minutes(entries)
    worked = 0
    if start is not None and end is not None:
        worked = max(0, floor_minutes(start, end) - pauses)

    overtime = max(0, worked - scheduled_minutes) if scheduled_minutes > 0 else 0
    return WorkdaySummary(
        start_time=start,
        end_time=end,
        worked_minutes=worked,
        break_minutes=pauses,
        overtime_minutes=overtime,
    )


# ── Manual workdays ─────────────────────────────────────────────────

def manual_workday_errors(
    start_time: str,
    end_time: str,
    break_minutes: int,
) -> dict[str, list[str]]:
    start = parse_hhmm(start_time)
    end = parse_hhmm(end_time)
    if end <= start:
        return {"end_time": ["End time must be later than start time."]}
    if break_minutes < 0:
        return {"break_minutes": ["Break minutes cannot be negative."]}
    if break_minutes >= end - start:
        return {"break_minutes": ["Break minutes must be shorter than the workday."]}
    return {}


def _at(day: date, minutes: int) -> datetime:
    hours, mins = divmod(minutes, 60)
    return datetime.combine(day, time(hours, mins), tzinfo=timezone.utc)


def auto_entries(
    day: date,
    start_time: str,
    end_time: str,
    break_minutes: int,
) -> list[ClockEvent]:
    """Synthetic clock entries for a manually entered workday.

    clock_in at start, clock_out at end and, when there is a break, a
    break_start/break_end pair centred on the midpoint of the day.
    """
    start = parse_hhmm(start_time)
    end = parse_hhmm(end_time)
    events = [ClockEvent(ClockEntryType.clock_in, _at(day, start))]
    if break_minutes > 0:
        midpoint = (start + end) // 2
        pause_start = midpoint - break_minutes // 2
        events.append(ClockEvent(ClockEntryType.break_start, _at(day, pause_start)))
        events.append(
            ClockEvent(ClockEntryType.break_end, _at(day, pause_start) + timedelta(minutes=break_minutes))
        )
    events.append(ClockEvent(ClockEntryType.clock_out, _at(day, end)))
    return events


# ── Schedule comparison ─────────────────────────────────────────────

def _minute_of_day(ts: datetime) -> int:
    ts = as_utc(ts)
    return ts.hour * 60 + ts.minute


def compare_with_schedule(
    entries: Iterable[Any],
    schedule: Any,
    tolerance: int = 15,
) -> ScheduleComparison:
    """Compare actual clock-in/out against the planned start/end.

    On time means both ends are within *tolerance* minutes of the plan.
    Without a schedule or entries the day counts as on time; a day with
    entries but no clock_in does not. A day not yet clocked out is judged
    on its start only.
    """
    entries = ordered(entries)
    if schedule is None or not entries:
        return ScheduleComparison(True, 0, False, False)

    clock_in = next((e for e in entries if e.entry_type == ClockEntryType.clock_in), None)
    if clock_in is None:
        return ScheduleComparison(False, 0, False, False)
    clock_outs = [e for e in entries if e.entry_type == ClockEntryType.clock_out]

    start_diff = _minute_of_day(clock_in.timestamp) - parse_hhmm(schedule.start_time)
    end_diff = 0
    if clock_outs:
        end_diff = _minute_of_day(clock_outs[-1].timestamp) - parse_hhmm(schedule.end_time)

    return ScheduleComparison(
        is_on_time=abs(start_diff) <= tolerance and abs(end_diff) <= tolerance,
        minutes_difference=abs(start_diff) + abs(end_diff),
        started_early=start_diff < -tolerance,
        finished_late=end_diff > tolerance,
    )
