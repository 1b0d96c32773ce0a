"""Dashboard Pydantic v2 schemas — response models for all dashboard endpoints."""


import uuid

from pydantic import BaseModel, Field

from backend.workday.rules import WorkdayStatus


# ═════════════════════════════════════════════════════════════════════
# GET /stats
# ═════════════════════════════════════════════════════════════════════


class DashboardStatsResponse(BaseModel):
    """Top-level KPI cards for the admin dashboard."""

    total_employees: int = Field(..., description="Active employees count")
    present_today: int = Field(..., description="Clocked in today and not clocked out")
    hours_this_week: int = Field(..., description="Whole hours worked since Monday")
    pending_incidents: int = Field(..., description="Incidents with status=pending")
    new_employees_last_week: int = Field(..., description="Hired in the last 7 days")
    new_incidents_last_week: int = Field(..., description="Registered in the last 7 days")


# ═════════════════════════════════════════════════════════════════════
# GET /departments
# ═════════════════════════════════════════════════════════════════════


class DepartmentStatsItem(BaseModel):
    department_id: uuid.UUID
    department_name: str
    total_employees: int = 0
    present_today: int = 0
    hours_this_week: int = 0
    average_hours_per_employee: float = 0.0


# ═════════════════════════════════════════════════════════════════════
# GET /employee/{id}
# ═════════════════════════════════════════════════════════════════════


class EmployeeStatsResponse(BaseModel):
    employee_id: uuid.UUID
    is_clocked_in: bool
    status: WorkdayStatus
    hours_this_week: int
    pending_incidents: int
