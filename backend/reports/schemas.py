"""Report Pydantic v2 schemas — annual reconciliation and period analysis."""


import datetime as dt
import uuid
from typing import Optional

from pydantic import BaseModel

from backend.common.constants import IncidentStatus
from backend.core_hr.schemas import EmployeeSummary


# ═════════════════════════════════════════════════════════════════════
# Annual summary
# ═════════════════════════════════════════════════════════════════════


class AnnualSummaryRow(BaseModel):
    """Worked vs. assigned vs. convention hours for one employee."""

    employee: EmployeeSummary
    department_name: Optional[str] = None
    worked_minutes: int
    worked_hours: float
    assigned_minutes: int
    assigned_hours: float
    convention_hours: int
    remaining_hours: float
    percentage_worked: float
    tier: str


class AnnualSummary(BaseModel):
    year: int
    employees: list[AnnualSummaryRow]
    total_worked_hours: float
    total_assigned_hours: float
    average_percentage: float


# ═════════════════════════════════════════════════════════════════════
# Period analysis
# ═════════════════════════════════════════════════════════════════════


class IncidentBrief(BaseModel):
    id: uuid.UUID
    date: dt.date
    description: str
    status: IncidentStatus


class PeriodAnalysisRow(BaseModel):
    employee: EmployeeSummary
    worked_minutes: int
    worked_hours: float
    planned_minutes: int
    planned_hours: float
    difference_minutes: int
    days_worked: int
    days_scheduled: int
    absences: int
    absence_dates: list[dt.date]
    incidents: list[IncidentBrief]


class PeriodTotals(BaseModel):
    total_worked_hours: float
    total_planned_hours: float
    average_hours_per_day: float
    total_days_worked: int
    total_absences: int
    total_incidents: int


class PeriodAnalysis(BaseModel):
    start_date: dt.date
    end_date: dt.date
    employees: list[PeriodAnalysisRow]
    totals: PeriodTotals
