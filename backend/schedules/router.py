"""Date-schedule router — calendar, bulk mutations, copy between employees.

Routes:
    GET    /date-schedules                 — List (employee and/or date range)
    GET    /date-schedules/by-date         — All schedules on one date
    GET    /date-schedules/calendar        — Twelve-month grid for an employee
    GET    /date-schedules/copy-conflicts  — Copy targets flagged for conflicts
    POST   /date-schedules/bulk            — Bulk create (skips exact duplicates)
    POST   /date-schedules/modify          — Replace schedules on given dates
    POST   /date-schedules/bulk-delete     — Delete many (missing ids ignored)
    POST   /date-schedules/copy            — Copy a year to other employees
    POST   /date-schedules/generate        — One schedule per day in a range
    POST   /date-schedules/copy-to-year    — Repeat a year's schedules in another
    POST   /date-schedules/apply-selection — Replay calendar clicks, create or modify
    GET    /date-schedules/{id}            — Single schedule
    PUT    /date-schedules/{id}            — Partial update
    DELETE /date-schedules/{id}            — Delete
"""


import uuid
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from backend.common.rate_limit import limiter
from backend.config import settings
from backend.database import get_db
from backend.schedules.schemas import (
    ApplySelectionRequest,
    BulkDeleteRequest,
    BulkScheduleCreate,
    CopySchedulesRequest,
    CopyToYearRequest,
    DateScheduleUpdate,
    GenerateSchedulesRequest,
    ScheduleDatesRequest,
)
from backend.schedules.service import ScheduleService

router = APIRouter(prefix="", tags=["date-schedules"])


# ═════════════════════════════════════════════════════════════════════
# Read endpoints (static paths before /{schedule_id})
# ═════════════════════════════════════════════════════════════════════


# ── GET /date-schedules — List ──────────────────────────────────────

@router.get("")
async def list_schedules(
    db: AsyncSession = Depends(get_db),
    employee_id: Optional[uuid.UUID] = Query(None, description="Filter by employee"),
    start_date: Optional[date] = Query(None, description="Range start (requires end_date)"),
    end_date: Optional[date] = Query(None, description="Range end (requires start_date)"),
):
    """List schedules; each row carries its planned ``work_minutes``."""
    schedules = await ScheduleService.list_schedules(
        db, employee_id=employee_id, start_date=start_date, end_date=end_date,
    )
    return {
        "data": [s.model_dump(mode="json") for s in schedules],
        "message": f"Found {len(schedules)} schedule(s).",
    }


# ── GET /date-schedules/by-date — Schedules on one date ────────────

@router.get("/by-date")
async def list_schedules_by_date(
    date: date = Query(..., description="YYYY-MM-DD"),
    db: AsyncSession = Depends(get_db),
):
    schedules = await ScheduleService.list_by_date(db, date)
    return {
        "data": [s.model_dump(mode="json") for s in schedules],
        "message": f"Found {len(schedules)} schedule(s) on {date.isoformat()}.",
    }


# ── GET /date-schedules/calendar — Annual grid ─────────────────────

@router.get("/calendar")
async def get_year_calendar(
    employee_id: uuid.UUID = Query(...),
    year: int = Query(..., ge=1900, le=9999),
    selected: list[date] = Query(default=[], description="Dates selected in the client"),
    db: AsyncSession = Depends(get_db),
):
    """Twelve Monday-first month grids; padding slots are ``null``."""
    grid = await ScheduleService.year_calendar(db, employee_id, year, selected=selected)
    return {
        "data": grid.model_dump(mode="json"),
        "message": f"Calendar for {year} retrieved successfully.",
    }


# ── GET /date-schedules/copy-conflicts — Copy target availability ──

@router.get("/copy-conflicts")
async def get_copy_conflicts(
    source_employee_id: uuid.UUID = Query(...),
    year: int = Query(..., ge=1900, le=9999),
    db: AsyncSession = Depends(get_db),
):
    """Targets with ``has_conflict`` set should be disabled in the picker."""
    conflicts = await ScheduleService.copy_conflicts(db, source_employee_id, year)
    return {
        "data": [c.model_dump(mode="json") for c in conflicts],
        "message": f"{sum(c.has_conflict for c in conflicts)} employee(s) with conflicts.",
    }


# ═════════════════════════════════════════════════════════════════════
# Bulk mutations
# ═════════════════════════════════════════════════════════════════════


# ── POST /date-schedules/bulk — Bulk create ────────────────────────

@router.post("/bulk", status_code=201)
async def bulk_create_schedules(
    body: BulkScheduleCreate,
    db: AsyncSession = Depends(get_db),
):
    result = await ScheduleService.bulk_create(db, body)
    return {
        "data": result.model_dump(mode="json"),
        "message": f"{result.created} schedule(s) created, {result.skipped} skipped.",
    }


# ── POST /date-schedules/modify — Replace on dates ─────────────────

@router.post("/modify")
async def modify_schedules(
    body: ScheduleDatesRequest,
    db: AsyncSession = Depends(get_db),
):
    """Delete the schedules on ``dates`` and recreate them with the new times."""
    schedules = await ScheduleService.modify(db, body)
    return {
        "data": [s.model_dump(mode="json") for s in schedules],
        "message": f"{len(schedules)} schedule(s) modified.",
    }


# ── POST /date-schedules/bulk-delete — Delete many ─────────────────

@router.post("/bulk-delete")
async def bulk_delete_schedules(
    body: BulkDeleteRequest,
    db: AsyncSession = Depends(get_db),
):
    result = await ScheduleService.bulk_delete(db, body.ids, actor_id=body.actor_id)
    return {
        "data": result.model_dump(mode="json"),
        "message": f"{result.deleted} schedule(s) deleted.",
    }


# ── POST /date-schedules/copy — Copy to other employees ────────────

@router.post("/copy")
@limiter.limit(settings.RATE_LIMIT_COPY)
async def copy_schedules(
    request: Request,
    body: CopySchedulesRequest,
    db: AsyncSession = Depends(get_db),
):
    """Per-target outcome; failed targets do not undo successful ones."""
    result = await ScheduleService.copy_schedules(db, body)
    return {
        "data": result.model_dump(mode="json"),
        "message": (
            f"Copied to {result.success_count} employee(s), "
            f"{result.error_count} failed."
        ),
    }


# ── POST /date-schedules/generate — Fill a date range ──────────────

@router.post("/generate", status_code=201)
async def generate_schedules(
    body: GenerateSchedulesRequest,
    db: AsyncSession = Depends(get_db),
):
    result = await ScheduleService.generate(db, body)
    return {
        "data": result.model_dump(mode="json"),
        "message": f"{result.created} schedule(s) generated, {result.skipped} skipped.",
    }


# ── POST /date-schedules/copy-to-year — Repeat in another year ─────

@router.post("/copy-to-year", status_code=201)
async def copy_schedules_to_year(
    body: CopyToYearRequest,
    db: AsyncSession = Depends(get_db),
):
    result = await ScheduleService.copy_to_year(db, body)
    return {
        "data": {
            **result,
            "schedules": [s.model_dump(mode="json") for s in result["schedules"]],
        },
        "message": f"{result['created']} schedule(s) copied to {body.target_year}.",
    }


# ── POST /date-schedules/apply-selection — Calendar clicks ─────────

@router.post("/apply-selection")
async def apply_selection(
    body: ApplySelectionRequest,
    db: AsyncSession = Depends(get_db),
):
    """Free dates are created, scheduled dates are modified; mixing is a 422."""
    result = await ScheduleService.apply_selection(db, body)
    return {
        "data": result.model_dump(mode="json"),
        "message": f"{result.operation.capitalize()} applied to {len(result.dates)} date(s).",
    }


# ═════════════════════════════════════════════════════════════════════
# Single schedule
# ═════════════════════════════════════════════════════════════════════


# ── GET /date-schedules/{id} ────────────────────────────────────────

@router.get("/{schedule_id}")
async def get_schedule(
    schedule_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
):
    schedule = await ScheduleService.get_schedule(db, schedule_id)
    return {
        "data": schedule.model_dump(mode="json"),
        "message": "Schedule retrieved successfully.",
    }


# ── PUT /date-schedules/{id} ────────────────────────────────────────

@router.put("/{schedule_id}")
async def update_schedule(
    schedule_id: uuid.UUID,
    body: DateScheduleUpdate,
    db: AsyncSession = Depends(get_db),
):
    schedule = await ScheduleService.update_schedule(db, schedule_id, body)
    return {
        "data": schedule.model_dump(mode="json"),
        "message": "Schedule updated successfully.",
    }


# ── DELETE /date-schedules/{id} ─────────────────────────────────────

@router.delete("/{schedule_id}")
async def delete_schedule(
    schedule_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    actor_id: Optional[uuid.UUID] = Query(None),
):
    await ScheduleService.delete_schedule(db, schedule_id, actor_id=actor_id)
    return {
        "data": {"id": str(schedule_id)},
        "message": "Schedule deleted successfully.",
    }
