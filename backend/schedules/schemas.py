"""Date-schedule Pydantic v2 schemas — request / response validation.

Times are accepted as ``H:MM`` or ``HH:MM`` and normalised to ``HH:MM``.
Cross-field rules live in ``backend.schedules.rules`` and are shared with
the service layer (which re-validates merged partial updates).
"""


import datetime as dt
import uuid
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from backend.common.constants import ScheduleType
from backend.common.time_utils import normalize_hhmm
from backend.core_hr.schemas import EmployeeSummary
from backend.schedules.rules import date_range_errors, flatten_errors, schedule_time_errors


def _normalize_time(value: Optional[str]) -> Optional[str]:
    if value is None or value == "":
        return None
    return normalize_hhmm(value)


# ═════════════════════════════════════════════════════════════════════
# Time payload (shared by create / modify / generate / apply-selection)
# ═════════════════════════════════════════════════════════════════════


class ScheduleTimes(BaseModel):
    """Start/end and optional break of a working day."""

    start_time: str = Field(..., examples=["09:00"])
    end_time: str = Field(..., examples=["17:00"])
    start_break: Optional[str] = Field(None, examples=["13:00"])
    end_break: Optional[str] = Field(None, examples=["14:00"])
    schedule_type: ScheduleType = ScheduleType.total

    @field_validator("start_time", "end_time", "start_break", "end_break", mode="before")
    @classmethod
    def normalize_times(cls, v: Optional[str]) -> Optional[str]:
        return _normalize_time(v)

    @model_validator(mode="after")
    def validate_times(self):
        errors = schedule_time_errors(
            self.start_time, self.end_time, self.start_break, self.end_break,
        )
        if errors:
            raise ValueError(flatten_errors(errors))
        return self

    def time_fields(self) -> dict:
        return {
            "start_time": self.start_time,
            "end_time": self.end_time,
            "start_break": self.start_break,
            "end_break": self.end_break,
            "schedule_type": self.schedule_type,
        }


# ═════════════════════════════════════════════════════════════════════
# Write schemas
# ═════════════════════════════════════════════════════════════════════


class DateScheduleCreate(ScheduleTimes):
    """One schedule for one employee on one date."""

    employee_id: uuid.UUID
    date: dt.date


class BulkScheduleCreate(BaseModel):
    schedules: list[DateScheduleCreate] = Field(..., min_length=1)
    actor_id: Optional[uuid.UUID] = None


class ScheduleDatesRequest(ScheduleTimes):
    """Same time payload applied to several dates of one employee."""

    employee_id: uuid.UUID
    dates: list[dt.date] = Field(..., min_length=1)
    actor_id: Optional[uuid.UUID] = None

    @field_validator("dates")
    @classmethod
    def unique_dates(cls, v: list[dt.date]) -> list[dt.date]:
        return sorted(set(v))


class DateScheduleUpdate(BaseModel):
    """Partial update; validated against the merged row by the service."""

    date: Optional[dt.date] = None
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    start_break: Optional[str] = None
    end_break: Optional[str] = None
    schedule_type: Optional[ScheduleType] = None
    actor_id: Optional[uuid.UUID] = None

    @field_validator("start_time", "end_time", "start_break", "end_break", mode="before")
    @classmethod
    def normalize_times(cls, v: Optional[str]) -> Optional[str]:
        return _normalize_time(v)

    @field_validator("date", "start_time", "end_time", "schedule_type")
    @classmethod
    def not_null(cls, v):
        # Only explicit nulls reach here; omitted fields keep the default.
        if v is None:
            raise ValueError("This field cannot be cleared.")
        return v


class BulkDeleteRequest(BaseModel):
    ids: list[uuid.UUID] = Field(..., min_length=1)
    actor_id: Optional[uuid.UUID] = None


class CopySchedulesRequest(BaseModel):
    """Copy one employee's schedules for *year* onto other employees."""

    source_employee_id: uuid.UUID
    target_employee_ids: list[uuid.UUID] = Field(..., min_length=1)
    year: int = Field(..., ge=1900, le=9999)
    actor_id: Optional[uuid.UUID] = None

    @model_validator(mode="after")
    def source_not_in_targets(self) -> "CopySchedulesRequest":
        if self.source_employee_id in self.target_employee_ids:
            raise ValueError("The source employee cannot be a copy target.")
        return self


class GenerateSchedulesRequest(ScheduleTimes):
    """One schedule per day between *start_date* and *end_date*."""

    employee_id: uuid.UUID
    start_date: dt.date
    end_date: dt.date
    exclude_weekends: bool = True
    actor_id: Optional[uuid.UUID] = None

    @model_validator(mode="after")
    def validate_range(self) -> "GenerateSchedulesRequest":
        errors = date_range_errors(self.start_date, self.end_date)
        if errors:
            raise ValueError(flatten_errors(errors))
        return self


class CopyToYearRequest(BaseModel):
    employee_id: uuid.UUID
    source_year: int = Field(..., ge=1900, le=9999)
    target_year: int = Field(..., ge=1900, le=9999)
    actor_id: Optional[uuid.UUID] = None

    @model_validator(mode="after")
    def different_years(self) -> "CopyToYearRequest":
        if self.source_year == self.target_year:
            raise ValueError("source_year and target_year must differ.")
        return self


class ApplySelectionRequest(ScheduleTimes):
    """Calendar clicks replayed server-side, in the order they happened."""

    employee_id: uuid.UUID
    clicks: list[dt.date] = Field(..., min_length=1)
    actor_id: Optional[uuid.UUID] = None


# ═════════════════════════════════════════════════════════════════════
# Read schemas
# ═════════════════════════════════════════════════════════════════════


class DateScheduleResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    employee_id: uuid.UUID
    date: dt.date
    start_time: str
    end_time: str
    start_break: Optional[str] = None
    end_break: Optional[str] = None
    schedule_type: ScheduleType
    created_at: dt.datetime
    updated_at: dt.datetime
    # Enriched by service layer
    work_minutes: int = 0


class BulkCreateResult(BaseModel):
    schedules: list[DateScheduleResponse]
    created: int
    skipped: int


class BulkDeleteResult(BaseModel):
    deleted: int
    missing: int


class CopyConflict(BaseModel):
    employee: EmployeeSummary
    has_conflict: bool
    conflicting_dates: list[dt.date] = []


class CopyTargetResult(BaseModel):
    employee_id: uuid.UUID
    success: bool
    created: int = 0
    error: Optional[str] = None


class CopyResult(BaseModel):
    success_count: int
    error_count: int
    results: list[CopyTargetResult]


class ApplySelectionResult(BaseModel):
    operation: str
    dates: list[dt.date]
    schedules: list[DateScheduleResponse]


# ── Calendar ────────────────────────────────────────────────────────


class CalendarDay(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    date: dt.date
    iso: str
    in_month: bool
    is_today: bool
    is_selected: bool
    has_schedule: bool
    schedule: Optional[DateScheduleResponse] = None


class CalendarMonthOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    year: int
    month: int
    name: str
    scheduled_days: int
    weeks: list[list[Optional[CalendarDay]]]


class YearCalendarOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    year: int
    scheduled_days: int
    months: list[CalendarMonthOut]
