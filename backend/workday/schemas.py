"""Workday & clock-entry Pydantic v2 schemas."""


import datetime as dt
import uuid
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from backend.common.constants import ClockEntryType, ClockSource
from backend.common.time_utils import normalize_hhmm
from backend.core_hr.schemas import EmployeeSummary
from backend.schedules.rules import flatten_errors
from backend.workday.rules import WorkdayStatus, manual_workday_errors


# ═════════════════════════════════════════════════════════════════════
# Clock entries
# ═════════════════════════════════════════════════════════════════════


class ClockEntryCreate(BaseModel):
    """Register a clock event; ``timestamp`` defaults to now."""

    employee_id: uuid.UUID
    entry_type: ClockEntryType
    timestamp: Optional[dt.datetime] = None
    source: ClockSource = ClockSource.web


class ClockEntryResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    employee_id: uuid.UUID
    workday_id: uuid.UUID
    entry_type: ClockEntryType
    timestamp: dt.datetime
    source: ClockSource
    auto_generated: bool


# ═════════════════════════════════════════════════════════════════════
# Manual workdays
# ═════════════════════════════════════════════════════════════════════


class _ManualTimes(BaseModel):
    start_time: str = Field(..., examples=["09:00"])
    end_time: str = Field(..., examples=["17:00"])
    break_minutes: int = Field(0, ge=0)

    @field_validator("start_time", "end_time", mode="before")
    @classmethod
    def normalize_times(cls, v: str) -> str:
        return normalize_hhmm(v)

    @model_validator(mode="after")
    def validate_span(self):
        errors = manual_workday_errors(self.start_time, self.end_time, self.break_minutes)
        if errors:
            raise ValueError(flatten_errors(errors))
        return self


class ManualWorkdayCreate(_ManualTimes):
    employee_id: uuid.UUID
    date: dt.date
    actor_id: Optional[uuid.UUID] = None


class ManualWorkdayUpdate(_ManualTimes):
    """Replaces the day's clock entries; ``force`` confirms discarding real ones."""

    force: bool = False
    actor_id: Optional[uuid.UUID] = None


# ═════════════════════════════════════════════════════════════════════
# Read schemas
# ═════════════════════════════════════════════════════════════════════


class WorkdayResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    employee_id: uuid.UUID
    date: dt.date
    start_time: Optional[dt.datetime] = None
    end_time: Optional[dt.datetime] = None
    worked_minutes: int
    break_minutes: int
    overtime_minutes: int
    is_manual: bool
    created_at: dt.datetime
    updated_at: dt.datetime
    clock_entries: list[ClockEntryResponse] = []
    # Enriched by service layer
    status: WorkdayStatus = WorkdayStatus.NOT_STARTED
    worked_hours: float = 0.0


class TimeEntryResponse(WorkdayResponse):
    """Workday plus who it belongs to (day / month listings)."""

    employee: Optional[EmployeeSummary] = None


class WorkdayLookup(BaseModel):
    """``GET /daily-workday`` payload."""

    workday: Optional[WorkdayResponse] = None
    has_clock_entries: bool
    can_edit: bool
    status: WorkdayStatus


class ClockEntryResult(BaseModel):
    entry: ClockEntryResponse
    workday: WorkdayResponse
    status: WorkdayStatus
