"""Dashboard router — read-only endpoints for dashboard widgets."""


import uuid

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from backend.dashboard.service import DashboardService
from backend.database import get_db

router = APIRouter(prefix="", tags=["dashboard"])


# ── GET /stats ──────────────────────────────────────────────────────

@router.get("/stats")
async def dashboard_stats(db: AsyncSession = Depends(get_db)):
    """KPI cards: headcount, present today, hours this week, incidents."""
    stats = await DashboardService.get_stats(db)
    return {
        "data": stats.model_dump(mode="json"),
        "message": "Dashboard stats retrieved successfully.",
    }


# ── GET /departments ────────────────────────────────────────────────

@router.get("/departments")
async def department_stats(db: AsyncSession = Depends(get_db)):
    items = await DashboardService.get_department_stats(db)
    return {
        "data": [i.model_dump(mode="json") for i in items],
        "message": f"Stats for {len(items)} department(s).",
    }


# ── GET /employee/{id} ──────────────────────────────────────────────

@router.get("/employee/{employee_id}")
async def employee_stats(
    employee_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
):
    stats = await DashboardService.get_employee_stats(db, employee_id)
    return {
        "data": stats.model_dump(mode="json"),
        "message": "Employee stats retrieved successfully.",
    }
