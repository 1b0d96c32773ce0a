"""Workday service layer — clocking, manual workdays, time-entry listings.

A DailyWorkday is created by the first clock-in of a day or by a manual
admin entry. Its minute columns are always recalculated from its clock
entries (see ``backend.workday.rules.summarize``). Workdays carrying
entries the employee actually clocked are protected: editing or deleting
them needs ``force=True``.
"""

from __future__ import annotations

import calendar
import logging
import uuid
from datetime import date, datetime, timezone
from typing import Optional, Sequence

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from backend.common.audit import create_audit_entry
from backend.common.constants import ClockEntryType
from backend.common.exceptions import (
    ConfirmationRequiredException,
    ConflictError,
    NotFoundException,
    ValidationException,
)
from backend.common.time_utils import as_utc
from backend.config import settings
from backend.core_hr.service import EmployeeService
from backend.incidents.models import Incident
from backend.reports.reconciliation import assigned_minutes, hours_from_minutes
from backend.schedules.rules import date_range_errors
from backend.schedules.service import ScheduleService
from backend.workday.models import ClockEntry, DailyWorkday
from backend.workday.rules import (
    InvalidTransitionError,
    WorkdayStatus,
    auto_entries,
    derive_workday_status,
    ordered,
    summarize,
    validate_clock_timestamp,
    validate_transition,
)
from backend.workday.schemas import (
    ClockEntryCreate,
    ClockEntryResponse,
    ClockEntryResult,
    ManualWorkdayCreate,
    ManualWorkdayUpdate,
    TimeEntryResponse,
    WorkdayLookup,
    WorkdayResponse,
)

logger = logging.getLogger(__name__)


def workday_status(workday: Optional[DailyWorkday]) -> WorkdayStatus:
    if workday is None:
        return WorkdayStatus.NOT_STARTED
    return derive_workday_status([e.entry_type for e in ordered(workday.clock_entries)])


def has_real_entries(workday: Optional[DailyWorkday]) -> bool:
    """True when the day holds entries the employee clocked themselves."""
    if workday is None:
        return False
    return any(not e.auto_generated for e in workday.clock_entries)


class WorkdayService:
    """Async operations on workdays and clock entries."""

    # ─────────────────────────────────────────────────────────────────
    # Helpers
    # ─────────────────────────────────────────────────────────────────

    @staticmethod
    def to_response(workday: DailyWorkday, *, with_employee: bool = False) -> WorkdayResponse:
        schema = TimeEntryResponse if with_employee else WorkdayResponse
        resp = schema.model_validate(workday)
        resp.clock_entries = [
            ClockEntryResponse.model_validate(e) for e in ordered(workday.clock_entries)
        ]
        resp.status = workday_status(workday)
        resp.worked_hours = hours_from_minutes(workday.worked_minutes)
        return resp

    @staticmethod
    async def find(
        db: AsyncSession,
        employee_id: uuid.UUID,
        day: date,
    ) -> Optional[DailyWorkday]:
        result = await db.execute(
            select(DailyWorkday).where(
                DailyWorkday.employee_id == employee_id,
                DailyWorkday.date == day,
            )
        )
        return result.scalars().first()

    @staticmethod
    async def find_or_create(
        db: AsyncSession,
        employee_id: uuid.UUID,
        day: date,
    ) -> DailyWorkday:
        """Existing workday for the date, or a fresh empty one (flushed)."""
        workday = await WorkdayService.find(db, employee_id, day)
        if workday is not None:
            return workday
        workday = DailyWorkday(employee_id=employee_id, date=day, clock_entries=[])
        db.add(workday)
        await db.flush()
        return workday

    @staticmethod
    async def _get_or_404(db: AsyncSession, workday_id: uuid.UUID) -> DailyWorkday:
        result = await db.execute(
            select(DailyWorkday).where(DailyWorkday.id == workday_id)
        )
        workday = result.scalars().first()
        if workday is None:
            raise NotFoundException("DailyWorkday", str(workday_id))
        return workday

    @staticmethod
    async def recalculate(db: AsyncSession, workday: DailyWorkday) -> None:
        """Refresh start/end and minute totals from the clock entries."""
        schedule = await ScheduleService.schedule_for(db, workday.employee_id, workday.date)
        scheduled = assigned_minutes(schedule) if schedule is not None else 0

        summary = summarize(workday.clock_entries, scheduled)
        workday.start_time = summary.start_time
        workday.end_time = summary.end_time
        workday.worked_minutes = summary.worked_minutes
        workday.break_minutes = summary.break_minutes
        workday.overtime_minutes = summary.overtime_minutes

    @staticmethod
    def _append_auto_entries(workday: DailyWorkday, data) -> None:
        for event in auto_entries(workday.date, data.start_time, data.end_time, data.break_minutes):
            workday.clock_entries.append(
                ClockEntry(
                    employee_id=workday.employee_id,
                    entry_type=event.entry_type,
                    timestamp=event.timestamp,
                    auto_generated=True,
                )
            )

    # ─────────────────────────────────────────────────────────────────
    # Clocking
    # ─────────────────────────────────────────────────────────────────

    @staticmethod
    async def record_clock_entry(
        db: AsyncSession,
        data: ClockEntryCreate,
        *,
        now: Optional[datetime] = None,
    ) -> ClockEntryResult:
        """Register one clock event and recalculate the day.

        Raises:
            ValidationException: future / too old timestamp, second clock-in,
                out-of-order timestamp or a transition the state machine
                does not allow.
        """
        await EmployeeService.get_employee(db, data.employee_id)

        now = as_utc(now) if now is not None else datetime.now(timezone.utc)
        ts = as_utc(data.timestamp) if data.timestamp is not None else now
        try:
            validate_clock_timestamp(
                ts, now=now, max_backdate_days=settings.CLOCK_MAX_BACKDATE_DAYS,
            )
        except ValueError as exc:
            raise ValidationException({"timestamp": [str(exc)]})

        day = ts.date()
        workday = await WorkdayService.find(db, data.employee_id, day)
        entries = ordered(workday.clock_entries) if workday is not None else []
        entry_types = [e.entry_type for e in entries]

        if data.entry_type == ClockEntryType.clock_in and ClockEntryType.clock_in in entry_types:
            raise ValidationException(
                {"entry_type": ["A clock-in already exists for this day."]}
            )
        try:
            validate_transition(data.entry_type, entry_types)
        except InvalidTransitionError as exc:
            raise ValidationException({"entry_type": [str(exc)]})
        if entries and ts < as_utc(entries[-1].timestamp):
            raise ValidationException(
                {"timestamp": ["A clock entry cannot precede the previous one."]}
            )

        if workday is None:
            workday = DailyWorkday(employee_id=data.employee_id, date=day, clock_entries=[])
            db.add(workday)

        entry = ClockEntry(
            employee_id=data.employee_id,
            entry_type=data.entry_type,
            timestamp=ts,
            source=data.source,
            auto_generated=False,
        )
        workday.clock_entries.append(entry)
        await WorkdayService.recalculate(db, workday)

        try:
            await db.flush()
        except IntegrityError:
            await db.rollback()
            raise ConflictError("date", day.isoformat())

        await create_audit_entry(
            db,
            action=data.entry_type.value,
            entity_type="clock_entry",
            entity_id=entry.id,
            actor_id=data.employee_id,
            new_values={"timestamp": ts.isoformat(), "source": data.source.value},
        )
        logger.info(
            "Clock %s for employee %s at %s", data.entry_type.value, data.employee_id, ts,
        )

        status = workday_status(workday)
        return ClockEntryResult(
            entry=ClockEntryResponse.model_validate(entry),
            workday=WorkdayService.to_response(workday),
            status=status,
        )

    # ─────────────────────────────────────────────────────────────────
    # Lookups
    # ─────────────────────────────────────────────────────────────────

    @staticmethod
    async def lookup(
        db: AsyncSession,
        employee_id: uuid.UUID,
        day: date,
    ) -> WorkdayLookup:
        """The day's workday (if any) and whether it may be edited without force."""
        workday = await WorkdayService.find(db, employee_id, day)
        has_entries = has_real_entries(workday)
        return WorkdayLookup(
            workday=WorkdayService.to_response(workday) if workday is not None else None,
            has_clock_entries=has_entries,
            can_edit=not has_entries,
            status=workday_status(workday),
        )

    @staticmethod
    async def get_workday(db: AsyncSession, workday_id: uuid.UUID) -> WorkdayResponse:
        return WorkdayService.to_response(await WorkdayService._get_or_404(db, workday_id))

    @staticmethod
    async def history(
        db: AsyncSession,
        employee_id: uuid.UUID,
        start_date: date,
        end_date: date,
    ) -> list[WorkdayResponse]:
        errors = date_range_errors(start_date, end_date)
        if errors:
            raise ValidationException(errors)

        result = await db.execute(
            select(DailyWorkday)
            .where(
                DailyWorkday.employee_id == employee_id,
                DailyWorkday.date >= start_date,
                DailyWorkday.date <= end_date,
            )
            .order_by(DailyWorkday.date)
        )
        return [WorkdayService.to_response(w) for w in result.scalars().all()]

    @staticmethod
    async def workdays_in_range(
        db: AsyncSession,
        start: date,
        end: date,
        *,
        employee_ids: Optional[Sequence[uuid.UUID]] = None,
    ) -> Sequence[DailyWorkday]:
        query = select(DailyWorkday).where(
            DailyWorkday.date >= start, DailyWorkday.date <= end,
        )
        if employee_ids is not None:
            query = query.where(DailyWorkday.employee_id.in_(list(employee_ids)))
        result = await db.execute(query.order_by(DailyWorkday.date))
        return result.scalars().all()

    @staticmethod
    async def time_entries_for_day(db: AsyncSession, day: date) -> list[TimeEntryResponse]:
        """Every workday on *day*, with its entries and the employee."""
        workdays = await WorkdayService.workdays_in_range(db, day, day)
        return [WorkdayService.to_response(w, with_employee=True) for w in workdays]

    @staticmethod
    async def time_entries_for_month(
        db: AsyncSession,
        employee_id: uuid.UUID,
        year: int,
        month: int,
    ) -> list[TimeEntryResponse]:
        await EmployeeService.get_employee(db, employee_id)
        start = date(year, month, 1)
        end = date(year, month, calendar.monthrange(year, month)[1])
        result = await db.execute(
            select(DailyWorkday)
            .where(
                DailyWorkday.employee_id == employee_id,
                DailyWorkday.date >= start,
                DailyWorkday.date <= end,
            )
            .order_by(DailyWorkday.date)
        )
        return [
            WorkdayService.to_response(w, with_employee=True)
            for w in result.scalars().all()
        ]

    # ─────────────────────────────────────────────────────────────────
    # Manual workdays
    # ─────────────────────────────────────────────────────────────────

    @staticmethod
    async def create_manual(
        db: AsyncSession,
        data: ManualWorkdayCreate,
    ) -> WorkdayResponse:
        """Admin-entered workday with auto-generated clock entries."""
        await EmployeeService.get_employee(db, data.employee_id)

        if await WorkdayService.find(db, data.employee_id, data.date) is not None:
            raise ConflictError("date", data.date.isoformat())

        workday = DailyWorkday(
            employee_id=data.employee_id,
            date=data.date,
            is_manual=True,
            created_by=data.actor_id,
            clock_entries=[],
        )
        WorkdayService._append_auto_entries(workday, data)
        db.add(workday)
        await WorkdayService.recalculate(db, workday)

        try:
            await db.flush()
        except IntegrityError:
            await db.rollback()
            raise ConflictError("date", data.date.isoformat())

        await create_audit_entry(
            db,
            action="create",
            entity_type="daily_workday",
            entity_id=workday.id,
            actor_id=data.actor_id,
            new_values=data.model_dump(mode="json", exclude={"actor_id"}),
        )
        logger.info(
            "Manual workday %s for employee %s: %d min worked",
            data.date, data.employee_id, workday.worked_minutes,
        )
        return WorkdayService.to_response(workday)

    @staticmethod
    async def update_manual(
        db: AsyncSession,
        workday_id: uuid.UUID,
        data: ManualWorkdayUpdate,
    ) -> WorkdayResponse:
        """Replace the day's entries with auto-generated ones.

        Raises:
            ConfirmationRequiredException: the day has clocked entries and
                ``force`` was not set.
        """
        workday = await WorkdayService._get_or_404(db, workday_id)
        forced = has_real_entries(workday)
        if forced and not data.force:
            raise ConfirmationRequiredException(
                "Workday",
                "This workday has clock entries registered by the employee. "
                "Editing it will delete them.",
            )

        old_values = {
            "worked_minutes": workday.worked_minutes,
            "break_minutes": workday.break_minutes,
            "entries": len(workday.clock_entries),
        }

        workday.clock_entries.clear()
        await db.flush()

        WorkdayService._append_auto_entries(workday, data)
        workday.is_manual = True
        await WorkdayService.recalculate(db, workday)
        await db.flush()

        await create_audit_entry(
            db,
            action="force_update" if forced else "update",
            entity_type="daily_workday",
            entity_id=workday.id,
            actor_id=data.actor_id,
            old_values=old_values,
            new_values=data.model_dump(mode="json", exclude={"actor_id"}),
        )
        if forced:
            logger.info(
                "Forced edit of workday %s: %d clocked entries replaced",
                workday.id, old_values["entries"],
            )
        return WorkdayService.to_response(workday)

    @staticmethod
    async def delete_workday(
        db: AsyncSession,
        workday_id: uuid.UUID,
        *,
        force: bool = False,
        actor_id: Optional[uuid.UUID] = None,
    ) -> None:
        """Delete a workday and its entries; incidents keep their date but lose the link."""
        workday = await WorkdayService._get_or_404(db, workday_id)
        forced = has_real_entries(workday)
        if forced and not force:
            raise ConfirmationRequiredException(
                "Workday",
                "This workday has clock entries registered by the employee. "
                "Deleting it will delete them.",
            )

        await db.execute(
            update(Incident)
            .where(Incident.workday_id == workday_id)
            .values(workday_id=None)
            .execution_options(synchronize_session="fetch")
        )
        old_values = {
            "employee_id": str(workday.employee_id),
            "date": workday.date.isoformat(),
            "worked_minutes": workday.worked_minutes,
            "entries": len(workday.clock_entries),
        }
        await db.delete(workday)
        await db.flush()

        await create_audit_entry(
            db,
            action="force_delete" if forced else "delete",
            entity_type="daily_workday",
            entity_id=workday_id,
            actor_id=actor_id,
            old_values=old_values,
        )
        logger.info("Deleted workday %s (forced=%s)", workday_id, forced)
