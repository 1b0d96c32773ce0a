"""Date-schedule service layer — bulk create / modify / delete / copy.

Every public method works on the request's ``AsyncSession``; ``get_db``
commits once at the end of the request, so each HTTP call is atomic.
``copy_schedules`` is the one exception to all-or-nothing: each target
runs inside its own SAVEPOINT so one failing target does not undo the
others.
"""

from __future__ import annotations

import logging
import uuid
from collections import defaultdict
from datetime import date, timedelta
from typing import Any, Iterable, Optional, Sequence

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from backend.common.audit import create_audit_entry
from backend.common.exceptions import (
    AppException,
    ConflictError,
    NotFoundException,
    ValidationException,
)
from backend.core_hr.models import Employee
from backend.core_hr.schemas import EmployeeSummary
from backend.core_hr.service import EmployeeService
from backend.reports.reconciliation import assigned_minutes
from backend.schedules.calendar import build_year_calendar
from backend.schedules.models import DateSchedule
from backend.schedules.rules import schedule_time_errors
from backend.schedules.schemas import (
    ApplySelectionRequest,
    ApplySelectionResult,
    BulkCreateResult,
    BulkDeleteResult,
    BulkScheduleCreate,
    CopyConflict,
    CopyResult,
    CopySchedulesRequest,
    CopyTargetResult,
    CopyToYearRequest,
    DateScheduleResponse,
    DateScheduleUpdate,
    GenerateSchedulesRequest,
    ScheduleDatesRequest,
    YearCalendarOut,
)
from backend.schedules.selection import DateSelection, MixedSelectionError, SelectionState

logger = logging.getLogger(__name__)

_TIME_FIELDS = ("start_time", "end_time", "start_break", "end_break", "schedule_type")


def _year_bounds(year: int) -> tuple[date, date]:
    return date(year, 1, 1), date(year, 12, 31)


class ScheduleService:
    """Async operations on per-date schedules."""

    # ─────────────────────────────────────────────────────────────────
    # Helpers
    # ─────────────────────────────────────────────────────────────────

    @staticmethod
    def to_response(schedule: DateSchedule) -> DateScheduleResponse:
        resp = DateScheduleResponse.model_validate(schedule)
        resp.work_minutes = assigned_minutes(schedule)
        return resp

    @staticmethod
    async def _get_or_404(db: AsyncSession, schedule_id: uuid.UUID) -> DateSchedule:
        schedule = await db.get(DateSchedule, schedule_id)
        if schedule is None:
            raise NotFoundException("DateSchedule", str(schedule_id))
        return schedule

    @staticmethod
    async def _existing_by_date(
        db: AsyncSession,
        employee_id: uuid.UUID,
        dates: Iterable[date],
    ) -> dict[date, DateSchedule]:
        dates = list(dates)
        if not dates:
            return {}
        result = await db.execute(
            select(DateSchedule).where(
                DateSchedule.employee_id == employee_id,
                DateSchedule.date.in_(dates),
            )
        )
        return {s.date: s for s in result.scalars().all()}

    @staticmethod
    async def _for_year(
        db: AsyncSession,
        employee_id: uuid.UUID,
        year: int,
    ) -> Sequence[DateSchedule]:
        start, end = _year_bounds(year)
        result = await db.execute(
            select(DateSchedule)
            .where(
                DateSchedule.employee_id == employee_id,
                DateSchedule.date >= start,
                DateSchedule.date <= end,
            )
            .order_by(DateSchedule.date)
        )
        return result.scalars().all()

    @staticmethod
    def _build(
        employee_id: uuid.UUID,
        dates: Iterable[date],
        times: dict[str, Any],
        actor_id: Optional[uuid.UUID],
    ) -> list[DateSchedule]:
        return [
            DateSchedule(employee_id=employee_id, date=day, created_by=actor_id, **times)
            for day in dates
        ]

    @staticmethod
    async def _flush_or_conflict(
        db: AsyncSession,
        dates: Iterable[date] = (),
    ) -> None:
        try:
            await db.flush()
        except IntegrityError as exc:
            await db.rollback()
            logger.warning("Schedule write hit unique constraint: %s", exc.orig)
            raise ConflictError("date", ", ".join(d.isoformat() for d in dates))

    @staticmethod
    async def _audit_bulk(
        db: AsyncSession,
        action: str,
        employee_id: uuid.UUID,
        dates: Iterable[date],
        actor_id: Optional[uuid.UUID],
        **extra: Any,
    ) -> None:
        await create_audit_entry(
            db,
            action=action,
            entity_type="date_schedule",
            entity_id=employee_id,
            actor_id=actor_id,
            new_values={"dates": [d.isoformat() for d in dates], **extra},
        )

    # ─────────────────────────────────────────────────────────────────
    # Read
    # ─────────────────────────────────────────────────────────────────

    @staticmethod
    async def list_schedules(
        db: AsyncSession,
        *,
        employee_id: Optional[uuid.UUID] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> list[DateScheduleResponse]:
        """Schedules filtered by employee and/or inclusive date range.

        The range bounds must be given together.
        """
        if (start_date is None) != (end_date is None):
            raise ValidationException(
                {"start_date": ["start_date and end_date must be given together."]}
            )
        if start_date is not None and end_date is not None and start_date > end_date:
            raise ValidationException(
                {"start_date": ["start_date must be on or before end_date."]}
            )

        query = select(DateSchedule)
        if employee_id is not None:
            query = query.where(DateSchedule.employee_id == employee_id)
        if start_date is not None:
            query = query.where(
                DateSchedule.date >= start_date, DateSchedule.date <= end_date,
            )
        query = query.order_by(DateSchedule.date, DateSchedule.start_time)

        result = await db.execute(query)
        return [ScheduleService.to_response(s) for s in result.scalars().all()]

    @staticmethod
    async def list_by_date(db: AsyncSession, day: date) -> list[DateScheduleResponse]:
        result = await db.execute(
            select(DateSchedule)
            .where(DateSchedule.date == day)
            .order_by(DateSchedule.start_time)
        )
        return [ScheduleService.to_response(s) for s in result.scalars().all()]

    @staticmethod
    async def get_schedule(
        db: AsyncSession,
        schedule_id: uuid.UUID,
    ) -> DateScheduleResponse:
        return ScheduleService.to_response(
            await ScheduleService._get_or_404(db, schedule_id)
        )

    @staticmethod
    async def year_calendar(
        db: AsyncSession,
        employee_id: uuid.UUID,
        year: int,
        *,
        selected: Iterable[date] = (),
        today: Optional[date] = None,
    ) -> YearCalendarOut:
        """The employee's twelve-month grid with schedules attached to their days."""
        await EmployeeService.get_employee(db, employee_id)

        schedules = [
            ScheduleService.to_response(s)
            for s in await ScheduleService._for_year(db, employee_id, year)
        ]
        try:
            grid = build_year_calendar(year, schedules, selected=selected, today=today)
        except ValueError as exc:
            raise ValidationException({"schedules": [str(exc)]})
        return YearCalendarOut.model_validate(grid)

    # ─────────────────────────────────────────────────────────────────
    # Bulk create
    # ─────────────────────────────────────────────────────────────────

    @staticmethod
    async def bulk_create(
        db: AsyncSession,
        data: BulkScheduleCreate,
    ) -> BulkCreateResult:
        """Create many schedules, possibly for several employees.

        An identical schedule (same employee, date, start and end) already
        stored is skipped. A different schedule on the same date is a
        conflict and aborts the whole request.
        """
        by_employee: dict[uuid.UUID, dict[date, Any]] = defaultdict(dict)
        for item in data.schedules:
            seen = by_employee[item.employee_id]
            previous = seen.get(item.date)
            if previous is not None and previous.time_fields() != item.time_fields():
                raise ValidationException(
                    {"schedules": [
                        f"Two different schedules given for {item.date.isoformat()}."
                    ]}
                )
            seen[item.date] = item

        created: list[DateSchedule] = []
        skipped = 0

        for employee_id, items in by_employee.items():
            await EmployeeService.get_employee(db, employee_id)
            existing = await ScheduleService._existing_by_date(db, employee_id, items)

            new_dates: list[date] = []
            for day, item in sorted(items.items()):
                current = existing.get(day)
                if current is None:
                    new_dates.append(day)
                    schedule = DateSchedule(
                        employee_id=employee_id,
                        date=day,
                        created_by=data.actor_id,
                        **item.time_fields(),
                    )
                    db.add(schedule)
                    created.append(schedule)
                elif (current.start_time, current.end_time) == (item.start_time, item.end_time):
                    skipped += 1
                else:
                    raise ConflictError("date", day.isoformat())

            if new_dates:
                await ScheduleService._flush_or_conflict(db, new_dates)
                await ScheduleService._audit_bulk(
                    db, "bulk_create", employee_id, new_dates, data.actor_id,
                )

        logger.info(
            "Bulk schedule create: %d created, %d skipped", len(created), skipped,
        )
        return BulkCreateResult(
            schedules=[ScheduleService.to_response(s) for s in created],
            created=len(created),
            skipped=skipped,
        )

    @staticmethod
    async def create_for_dates(
        db: AsyncSession,
        data: ScheduleDatesRequest,
    ) -> list[DateScheduleResponse]:
        """One schedule per date with the same times; every date must be free."""
        await EmployeeService.get_employee(db, data.employee_id)

        existing = await ScheduleService._existing_by_date(db, data.employee_id, data.dates)
        if existing:
            taken = ", ".join(d.isoformat() for d in sorted(existing))
            raise ConflictError("date", taken)

        schedules = ScheduleService._build(
            data.employee_id, data.dates, data.time_fields(), data.actor_id,
        )
        db.add_all(schedules)
        await ScheduleService._flush_or_conflict(db, data.dates)
        await ScheduleService._audit_bulk(
            db, "bulk_create", data.employee_id, data.dates, data.actor_id,
        )
        logger.info(
            "Created %d schedule(s) for employee %s", len(schedules), data.employee_id,
        )
        return [ScheduleService.to_response(s) for s in schedules]

    # ─────────────────────────────────────────────────────────────────
    # Modify (delete + recreate, atomic)
    # ─────────────────────────────────────────────────────────────────

    @staticmethod
    async def modify(
        db: AsyncSession,
        data: ScheduleDatesRequest,
    ) -> list[DateScheduleResponse]:
        """Replace the schedules on *dates* with the new times.

        Every date must already carry a schedule. The old rows are deleted
        and flushed before the replacements are inserted, inside the same
        transaction.
        """
        await EmployeeService.get_employee(db, data.employee_id)

        existing = await ScheduleService._existing_by_date(db, data.employee_id, data.dates)
        missing = [d for d in data.dates if d not in existing]
        if missing:
            raise ValidationException(
                {"dates": [f"No schedule exists on {d.isoformat()}." for d in missing]}
            )

        old_values = {
            d.isoformat(): f"{s.start_time}-{s.end_time}" for d, s in existing.items()
        }
        for schedule in existing.values():
            await db.delete(schedule)
        await db.flush()

        replacements = ScheduleService._build(
            data.employee_id, data.dates, data.time_fields(), data.actor_id,
        )
        db.add_all(replacements)
        await ScheduleService._flush_or_conflict(db, data.dates)

        await create_audit_entry(
            db,
            action="modify",
            entity_type="date_schedule",
            entity_id=data.employee_id,
            actor_id=data.actor_id,
            old_values=old_values,
            new_values={
                "dates": [d.isoformat() for d in data.dates],
                "start_time": data.start_time,
                "end_time": data.end_time,
            },
        )
        logger.info(
            "Modified %d schedule(s) for employee %s", len(replacements), data.employee_id,
        )
        return [ScheduleService.to_response(s) for s in replacements]

    # ─────────────────────────────────────────────────────────────────
    # Single update / delete
    # ─────────────────────────────────────────────────────────────────

    @staticmethod
    async def update_schedule(
        db: AsyncSession,
        schedule_id: uuid.UUID,
        data: DateScheduleUpdate,
    ) -> DateScheduleResponse:
        schedule = await ScheduleService._get_or_404(db, schedule_id)
        changes = data.model_dump(exclude_unset=True, exclude={"actor_id"})
        if not changes:
            return ScheduleService.to_response(schedule)

        merged = {
            name: changes.get(name, getattr(schedule, name))
            for name in ("start_time", "end_time", "start_break", "end_break")
        }
        errors = schedule_time_errors(**merged)
        if errors:
            raise ValidationException(errors)

        old_values: dict[str, Any] = {}
        for field, value in changes.items():
            current = getattr(schedule, field)
            old_values[field] = current.isoformat() if isinstance(current, date) else current
            setattr(schedule, field, value)

        await ScheduleService._flush_or_conflict(db, [schedule.date])

        await create_audit_entry(
            db,
            action="update",
            entity_type="date_schedule",
            entity_id=schedule.id,
            actor_id=data.actor_id,
            old_values=old_values,
            new_values=data.model_dump(mode="json", exclude_unset=True, exclude={"actor_id"}),
        )
        return ScheduleService.to_response(schedule)

    @staticmethod
    async def delete_schedule(
        db: AsyncSession,
        schedule_id: uuid.UUID,
        *,
        actor_id: Optional[uuid.UUID] = None,
    ) -> None:
        schedule = await ScheduleService._get_or_404(db, schedule_id)
        old_values = {
            "employee_id": str(schedule.employee_id),
            "date": schedule.date.isoformat(),
            "start_time": schedule.start_time,
            "end_time": schedule.end_time,
        }
        await db.delete(schedule)
        await db.flush()

        await create_audit_entry(
            db,
            action="delete",
            entity_type="date_schedule",
            entity_id=schedule_id,
            actor_id=actor_id,
            old_values=old_values,
        )

    @staticmethod
    async def bulk_delete(
        db: AsyncSession,
        ids: Sequence[uuid.UUID],
        *,
        actor_id: Optional[uuid.UUID] = None,
    ) -> BulkDeleteResult:
        """Delete the given schedules; ids that no longer exist are ignored."""
        wanted = set(ids)
        result = await db.execute(
            select(DateSchedule.id).where(DateSchedule.id.in_(list(wanted)))
        )
        found = set(result.scalars().all())
        missing = len(wanted - found)
        if missing:
            logger.warning("Bulk delete: %d schedule id(s) already gone", missing)

        if found:
            await db.execute(
                delete(DateSchedule)
                .where(DateSchedule.id.in_(list(found)))
                .execution_options(synchronize_session="fetch")
            )
            for schedule_id in found:
                await create_audit_entry(
                    db,
                    action="bulk_delete",
                    entity_type="date_schedule",
                    entity_id=schedule_id,
                    actor_id=actor_id,
                )

        logger.info("Bulk delete: %d schedule(s) removed", len(found))
        return BulkDeleteResult(deleted=len(found), missing=missing)

    # ─────────────────────────────────────────────────────────────────
    # Copy between employees
    # ─────────────────────────────────────────────────────────────────

    @staticmethod
    async def copy_conflicts(
        db: AsyncSession,
        source_employee_id: uuid.UUID,
        year: int,
    ) -> list[CopyConflict]:
        """Every other active employee, flagged when they already have a
        schedule on any of the source's dates in *year*."""
        await EmployeeService.get_employee(db, source_employee_id)
        source_dates = [
            s.date for s in await ScheduleService._for_year(db, source_employee_id, year)
        ]

        taken: dict[uuid.UUID, list[date]] = defaultdict(list)
        if source_dates:
            result = await db.execute(
                select(DateSchedule.employee_id, DateSchedule.date)
                .where(
                    DateSchedule.employee_id != source_employee_id,
                    DateSchedule.date.in_(source_dates),
                )
                .order_by(DateSchedule.date)
            )
            for employee_id, day in result.all():
                taken[employee_id].append(day)

        employees = await EmployeeService.list_active(
            db, exclude_ids=[source_employee_id],
        )
        return [
            CopyConflict(
                employee=EmployeeSummary.model_validate(emp),
                has_conflict=bool(taken.get(emp.id)),
                conflicting_dates=taken.get(emp.id, []),
            )
            for emp in employees
        ]

    @staticmethod
    async def copy_schedules(
        db: AsyncSession,
        data: CopySchedulesRequest,
    ) -> CopyResult:
        """Copy the source's *year* schedules onto each target.

        Targets are processed one after another, each in a SAVEPOINT. A
        target that conflicts or fails is rolled back alone and reported;
        the others keep their copies.
        """
        await EmployeeService.get_employee(db, data.source_employee_id)
        source = await ScheduleService._for_year(db, data.source_employee_id, data.year)
        if not source:
            raise ValidationException(
                {"year": [f"The source employee has no schedules in {data.year}."]}
            )
        templates = [
            (s.date, {name: getattr(s, name) for name in _TIME_FIELDS}) for s in source
        ]
        source_dates = [day for day, _ in templates]

        results: list[CopyTargetResult] = []
        for target_id in dict.fromkeys(data.target_employee_ids):
            try:
                async with db.begin_nested():
                    target = await db.get(Employee, target_id)
                    if target is None or not target.is_active:
                        raise NotFoundException("Employee", str(target_id))

                    existing = await ScheduleService._existing_by_date(
                        db, target_id, source_dates,
                    )
                    if existing:
                        raise ConflictError(
                            "date",
                            ", ".join(d.isoformat() for d in sorted(existing)),
                        )

                    db.add_all([
                        DateSchedule(
                            employee_id=target_id,
                            date=day,
                            created_by=data.actor_id,
                            **times,
                        )
                        for day, times in templates
                    ])
                    await db.flush()
            except (AppException, IntegrityError) as exc:
                reason = exc.detail if isinstance(exc, AppException) else "Schedule conflict."
                logger.warning("Copy to employee %s failed: %s", target_id, reason)
                results.append(
                    CopyTargetResult(employee_id=target_id, success=False, error=reason)
                )
                continue

            results.append(
                CopyTargetResult(employee_id=target_id, success=True, created=len(templates))
            )

        success_count = sum(1 for r in results if r.success)
        error_count = len(results) - success_count

        await create_audit_entry(
            db,
            action="copy",
            entity_type="date_schedule",
            entity_id=data.source_employee_id,
            actor_id=data.actor_id,
            new_values={
                "year": data.year,
                "targets": [str(r.employee_id) for r in results if r.success],
                "failed": [str(r.employee_id) for r in results if not r.success],
            },
        )
        logger.info(
            "Copied %d schedule(s) from %s: %d target(s) ok, %d failed",
            len(templates), data.source_employee_id, success_count, error_count,
        )
        return CopyResult(
            success_count=success_count,
            error_count=error_count,
            results=results,
        )

    # ─────────────────────────────────────────────────────────────────
    # Generators
    # ─────────────────────────────────────────────────────────────────

    @staticmethod
    async def generate(
        db: AsyncSession,
        data: GenerateSchedulesRequest,
    ) -> BulkCreateResult:
        """One schedule per day of the range; existing dates are left alone."""
        await EmployeeService.get_employee(db, data.employee_id)

        days: list[date] = []
        cursor = data.start_date
        while cursor <= data.end_date:
            if not (data.exclude_weekends and cursor.weekday() >= 5):
                days.append(cursor)
            cursor += timedelta(days=1)

        existing = await ScheduleService._existing_by_date(db, data.employee_id, days)
        new_days = [d for d in days if d not in existing]

        schedules = ScheduleService._build(
            data.employee_id, new_days, data.time_fields(), data.actor_id,
        )
        if schedules:
            db.add_all(schedules)
            await ScheduleService._flush_or_conflict(db, new_days)
            await ScheduleService._audit_bulk(
                db, "generate", data.employee_id, new_days, data.actor_id,
            )

        logger.info(
            "Generated %d schedule(s) for employee %s (%d skipped)",
            len(schedules), data.employee_id, len(existing),
        )
        return BulkCreateResult(
            schedules=[ScheduleService.to_response(s) for s in schedules],
            created=len(schedules),
            skipped=len(existing),
        )

    @staticmethod
    async def copy_to_year(
        db: AsyncSession,
        data: CopyToYearRequest,
    ) -> dict[str, Any]:
        """Repeat an employee's schedules in another year on the same month/day.

        Feb 29 is dropped when the target year is not a leap year; dates
        that already have a schedule in the target year are skipped.
        """
        await EmployeeService.get_employee(db, data.employee_id)
        source = await ScheduleService._for_year(db, data.employee_id, data.source_year)

        planned: dict[date, DateSchedule] = {}
        dropped = 0
        for s in source:
            try:
                target_day = s.date.replace(year=data.target_year)
            except ValueError:
                dropped += 1
                continue
            planned[target_day] = s

        existing = await ScheduleService._existing_by_date(db, data.employee_id, planned)
        schedules = [
            DateSchedule(
                employee_id=data.employee_id,
                date=day,
                created_by=data.actor_id,
                **{name: getattr(s, name) for name in _TIME_FIELDS},
            )
            for day, s in sorted(planned.items())
            if day not in existing
        ]
        if schedules:
            db.add_all(schedules)
            await ScheduleService._flush_or_conflict(db, [s.date for s in schedules])
            await ScheduleService._audit_bulk(
                db, "copy_to_year", data.employee_id, [s.date for s in schedules],
                data.actor_id, source_year=data.source_year,
            )

        logger.info(
            "Copied %d schedule(s) of %s from %d to %d (%d skipped, %d dropped)",
            len(schedules), data.employee_id, data.source_year, data.target_year,
            len(existing), dropped,
        )
        return {
            "schedules": [ScheduleService.to_response(s) for s in schedules],
            "created": len(schedules),
            "skipped": len(existing),
            "dropped": dropped,
        }

    # ─────────────────────────────────────────────────────────────────
    # Calendar selection
    # ─────────────────────────────────────────────────────────────────

    @staticmethod
    async def apply_selection(
        db: AsyncSession,
        data: ApplySelectionRequest,
    ) -> ApplySelectionResult:
        """Replay calendar clicks and run the operation the selection implies.

        Free dates → create; scheduled dates → modify. A click mixing the
        two kinds is rejected.
        """
        await EmployeeService.get_employee(db, data.employee_id)
        scheduled = await ScheduleService._existing_by_date(
            db, data.employee_id, set(data.clicks),
        )

        selection = DateSelection()
        try:
            for day in data.clicks:
                selection.toggle(day, day in scheduled)
        except MixedSelectionError as exc:
            raise ValidationException({"clicks": [str(exc)]})

        if selection.state is SelectionState.NO_SELECTION:
            raise ValidationException({"clicks": ["The clicks leave no date selected."]})

        request = ScheduleDatesRequest(
            employee_id=data.employee_id,
            dates=selection.dates,
            actor_id=data.actor_id,
            **data.time_fields(),
        )
        if selection.pending_operation == "create":
            schedules = await ScheduleService.create_for_dates(db, request)
        else:
            schedules = await ScheduleService.modify(db, request)

        return ApplySelectionResult(
            operation=selection.pending_operation,
            dates=selection.dates,
            schedules=schedules,
        )

    # ─────────────────────────────────────────────────────────────────
    # Aggregates used by reports / workday
    # ─────────────────────────────────────────────────────────────────

    @staticmethod
    async def schedule_for(
        db: AsyncSession,
        employee_id: uuid.UUID,
        day: date,
    ) -> Optional[DateSchedule]:
        result = await db.execute(
            select(DateSchedule).where(
                DateSchedule.employee_id == employee_id,
                DateSchedule.date == day,
            )
        )
        return result.scalars().first()

    @staticmethod
    async def schedules_in_range(
        db: AsyncSession,
        start: date,
        end: date,
        *,
        employee_ids: Optional[Sequence[uuid.UUID]] = None,
    ) -> Sequence[DateSchedule]:
        query = select(DateSchedule).where(
            DateSchedule.date >= start, DateSchedule.date <= end,
        )
        if employee_ids is not None:
            query = query.where(DateSchedule.employee_id.in_(list(employee_ids)))
        result = await db.execute(query.order_by(DateSchedule.date))
        return result.scalars().all()

