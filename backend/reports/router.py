"""Reports router.

Routes:
    GET /reports/annual-summary   — Worked / assigned / convention hours per employee
    GET /reports/period-analysis  — Worked vs. planned, absences, incidents in a range
"""


import uuid
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from backend.database import get_db
from backend.reports.service import ReportService

router = APIRouter(prefix="", tags=["reports"])


@router.get("/annual-summary")
async def get_annual_summary(
    year: int = Query(..., ge=1900, le=9999),
    search: Optional[str] = Query(None, description="Search by name, email or code"),
    department_id: Optional[uuid.UUID] = Query(None),
    db: AsyncSession = Depends(get_db),
):
    summary = await ReportService.annual_summary(
        db, year, search=search, department_id=department_id,
    )
    return {
        "data": summary.model_dump(mode="json"),
        "message": f"Annual summary for {year}: {len(summary.employees)} employee(s).",
    }


@router.get("/period-analysis")
async def get_period_analysis(
    start_date: date = Query(...),
    end_date: date = Query(...),
    employee_id: Optional[uuid.UUID] = Query(None),
    department_id: Optional[uuid.UUID] = Query(None),
    db: AsyncSession = Depends(get_db),
):
    """Range is inclusive and limited to 365 days."""
    analysis = await ReportService.period_analysis(
        db, start_date, end_date, employee_id=employee_id, department_id=department_id,
    )
    return {
        "data": analysis.model_dump(mode="json"),
        "message": "Period analysis generated successfully.",
    }
