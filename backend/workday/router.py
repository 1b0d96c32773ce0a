"""Workday routers — daily workdays, clock entries, time-entry listings.

Routes:
    GET    /daily-workday                     — Workday lookup for employee + date
    GET    /daily-workday/history             — Workdays in a date range
    POST   /daily-workday                     — Manual workday (auto clock entries)
    GET    /daily-workday/{id}                — Single workday
    PUT    /daily-workday/{id}                — Replace entries (force if clocked)
    DELETE /daily-workday/{id}                — Delete (force if clocked)
    POST   /clock-entries                     — Clock in / out / break
    GET    /time-entries/day/{date}           — Every workday on a date
    GET    /time-entries/user/{employee_id}   — An employee's month
"""


import uuid
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from backend.database import get_db
from backend.workday.schemas import (
    ClockEntryCreate,
    ManualWorkdayCreate,
    ManualWorkdayUpdate,
)
from backend.workday.service import WorkdayService

workday_router = APIRouter(prefix="", tags=["daily-workday"])
clock_router = APIRouter(prefix="", tags=["clock-entries"])
time_entries_router = APIRouter(prefix="", tags=["time-entries"])


# ═════════════════════════════════════════════════════════════════════
# Daily workday
# ═════════════════════════════════════════════════════════════════════


@workday_router.get("")
async def get_daily_workday(
    employee_id: uuid.UUID = Query(...),
    date: date = Query(..., description="YYYY-MM-DD"),
    db: AsyncSession = Depends(get_db),
):
    """``can_edit`` is false once the employee clocked anything that day."""
    lookup = await WorkdayService.lookup(db, employee_id, date)
    return {
        "data": lookup.model_dump(mode="json"),
        "message": "Workday retrieved successfully.",
    }


@workday_router.get("/history")
async def get_workday_history(
    employee_id: uuid.UUID = Query(...),
    start_date: date = Query(...),
    end_date: date = Query(...),
    db: AsyncSession = Depends(get_db),
):
    workdays = await WorkdayService.history(db, employee_id, start_date, end_date)
    return {
        "data": [w.model_dump(mode="json") for w in workdays],
        "message": f"Found {len(workdays)} workday(s).",
    }


@workday_router.post("", status_code=201)
async def create_manual_workday(
    body: ManualWorkdayCreate,
    db: AsyncSession = Depends(get_db),
):
    workday = await WorkdayService.create_manual(db, body)
    return {
        "data": workday.model_dump(mode="json"),
        "message": "Workday created successfully.",
    }


@workday_router.get("/{workday_id}")
async def get_workday(
    workday_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
):
    workday = await WorkdayService.get_workday(db, workday_id)
    return {
        "data": workday.model_dump(mode="json"),
        "message": "Workday retrieved successfully.",
    }


@workday_router.put("/{workday_id}")
async def update_manual_workday(
    workday_id: uuid.UUID,
    body: ManualWorkdayUpdate,
    db: AsyncSession = Depends(get_db),
):
    workday = await WorkdayService.update_manual(db, workday_id, body)
    return {
        "data": workday.model_dump(mode="json"),
        "message": "Workday updated successfully.",
    }


@workday_router.delete("/{workday_id}")
async def delete_workday(
    workday_id: uuid.UUID,
    force: bool = Query(False, description="Confirm deleting clocked entries"),
    actor_id: Optional[uuid.UUID] = Query(None),
    db: AsyncSession = Depends(get_db),
):
    await WorkdayService.delete_workday(db, workday_id, force=force, actor_id=actor_id)
    return {
        "data": {"id": str(workday_id)},
        "message": "Workday deleted successfully.",
    }


# ═════════════════════════════════════════════════════════════════════
# Clock entries
# ═════════════════════════════════════════════════════════════════════


@clock_router.post("", status_code=201)
async def create_clock_entry(
    body: ClockEntryCreate,
    db: AsyncSession = Depends(get_db),
):
    result = await WorkdayService.record_clock_entry(db, body)
    return {
        "data": result.model_dump(mode="json"),
        "message": f"{body.entry_type.value} registered successfully.",
    }


# ═════════════════════════════════════════════════════════════════════
# Time entries
# ═════════════════════════════════════════════════════════════════════


@time_entries_router.get("/day/{day}")
async def get_day_time_entries(
    day: date,
    db: AsyncSession = Depends(get_db),
):
    entries = await WorkdayService.time_entries_for_day(db, day)
    return {
        "data": [e.model_dump(mode="json") for e in entries],
        "message": f"Found {len(entries)} workday(s) on {day.isoformat()}.",
    }


@time_entries_router.get("/user/{employee_id}")
async def get_user_time_entries(
    employee_id: uuid.UUID,
    year: int = Query(..., ge=1900, le=9999),
    month: int = Query(..., ge=1, le=12),
    db: AsyncSession = Depends(get_db),
):
    entries = await WorkdayService.time_entries_for_month(db, employee_id, year, month)
    return {
        "data": [e.model_dump(mode="json") for e in entries],
        "message": f"Found {len(entries)} workday(s) in {year}-{month:02d}.",
    }
