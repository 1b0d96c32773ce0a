"""Report service — annual hours reconciliation and period analysis.

Both reports load the workdays, schedules and incidents of the range in
one query each and aggregate per employee in Python; the arithmetic lives
in ``backend.reports.reconciliation``.
"""

from __future__ import annotations

import logging
import uuid
from collections import defaultdict
from datetime import date
from typing import Optional, Sequence

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from backend.config import settings
from backend.core_hr.models import Employee
from backend.core_hr.schemas import EmployeeSummary
from backend.core_hr.service import EmployeeService
from backend.common.exceptions import ValidationException
from backend.incidents.models import Incident
from backend.reports.reconciliation import (
    assigned_minutes,
    hours_from_minutes,
    reconcile,
    total_assigned_minutes,
)
from backend.reports.schemas import (
    AnnualSummary,
    AnnualSummaryRow,
    IncidentBrief,
    PeriodAnalysis,
    PeriodAnalysisRow,
    PeriodTotals,
)
from backend.schedules.rules import date_range_errors
from backend.schedules.service import ScheduleService
from backend.workday.models import DailyWorkday
from backend.workday.service import WorkdayService

logger = logging.getLogger(__name__)


class ReportService:

    # ─────────────────────────────────────────────────────────────────
    # Annual summary
    # ─────────────────────────────────────────────────────────────────

    @staticmethod
    async def annual_summary(
        db: AsyncSession,
        year: int,
        *,
        search: Optional[str] = None,
        department_id: Optional[uuid.UUID] = None,
    ) -> AnnualSummary:
        """Reconcile every active employee's year against their convention hours."""
        start, end = date(year, 1, 1), date(year, 12, 31)
        employees = await EmployeeService.list_active(
            db, search=search, department_id=department_id,
        )
        ids = [e.id for e in employees]

        worked: dict[uuid.UUID, int] = {}
        if ids:
            rows = await db.execute(
                select(DailyWorkday.employee_id, func.sum(DailyWorkday.worked_minutes))
                .where(
                    DailyWorkday.employee_id.in_(ids),
                    DailyWorkday.date >= start,
                    DailyWorkday.date <= end,
                )
                .group_by(DailyWorkday.employee_id)
            )
            worked = {employee_id: int(total or 0) for employee_id, total in rows.all()}

        assigned: dict[uuid.UUID, int] = defaultdict(int)
        for schedule in await ScheduleService.schedules_in_range(
            db, start, end, employee_ids=ids,
        ):
            assigned[schedule.employee_id] += assigned_minutes(schedule)

        rows_out = []
        for employee in employees:
            row = reconcile(
                worked.get(employee.id, 0),
                assigned[employee.id],
                employee.effective_convention_hours,
            )
            rows_out.append(
                AnnualSummaryRow(
                    employee=EmployeeSummary.model_validate(employee),
                    department_name=employee.department.name if employee.department else None,
                    **row,
                )
            )

        average = (
            round(sum(r.percentage_worked for r in rows_out) / len(rows_out), 2)
            if rows_out else 0.0
        )
        return AnnualSummary(
            year=year,
            employees=rows_out,
            total_worked_hours=hours_from_minutes(sum(r.worked_minutes for r in rows_out)),
            total_assigned_hours=hours_from_minutes(sum(r.assigned_minutes for r in rows_out)),
            average_percentage=average,
        )

    # ─────────────────────────────────────────────────────────────────
    # Period analysis
    # ─────────────────────────────────────────────────────────────────

    @staticmethod
    async def _employees_for(
        db: AsyncSession,
        employee_id: Optional[uuid.UUID],
        department_id: Optional[uuid.UUID],
    ) -> Sequence[Employee]:
        if employee_id is not None:
            return [await EmployeeService.get_employee(db, employee_id)]
        return await EmployeeService.list_active(db, department_id=department_id)

    @staticmethod
    async def period_analysis(
        db: AsyncSession,
        start_date: date,
        end_date: date,
        *,
        employee_id: Optional[uuid.UUID] = None,
        department_id: Optional[uuid.UUID] = None,
    ) -> PeriodAnalysis:
        """Worked vs. planned minutes, absences and incidents per employee.

        A day counts as worked once it has a clock-in; a scheduled date
        without one is an absence.
        """
        errors = date_range_errors(
            start_date, end_date, max_days=settings.MAX_SCHEDULE_RANGE_DAYS,
        )
        if errors:
            raise ValidationException(errors)

        employees = await ReportService._employees_for(db, employee_id, department_id)
        ids = [e.id for e in employees]

        workdays = defaultdict(list)
        for workday in await WorkdayService.workdays_in_range(
            db, start_date, end_date, employee_ids=ids,
        ):
            workdays[workday.employee_id].append(workday)

        schedules = defaultdict(list)
        for schedule in await ScheduleService.schedules_in_range(
            db, start_date, end_date, employee_ids=ids,
        ):
            schedules[schedule.employee_id].append(schedule)

        incidents = defaultdict(list)
        if ids:
            result = await db.execute(
                select(Incident)
                .where(
                    Incident.employee_id.in_(ids),
                    Incident.date >= start_date,
                    Incident.date <= end_date,
                )
                .order_by(Incident.date)
            )
            for incident in result.scalars().all():
                incidents[incident.employee_id].append(incident)

        rows = []
        for employee in employees:
            worked_days = [w for w in workdays[employee.id] if w.start_time is not None]
            worked_dates = {w.date for w in worked_days}
            worked = sum(w.worked_minutes for w in workdays[employee.id])
            planned = total_assigned_minutes(schedules[employee.id])
            absence_dates = sorted(
                s.date for s in schedules[employee.id] if s.date not in worked_dates
            )
            rows.append(
                PeriodAnalysisRow(
                    employee=EmployeeSummary.model_validate(employee),
                    worked_minutes=worked,
                    worked_hours=hours_from_minutes(worked),
                    planned_minutes=planned,
                    planned_hours=hours_from_minutes(planned),
                    difference_minutes=worked - planned,
                    days_worked=len(worked_days),
                    days_scheduled=len(schedules[employee.id]),
                    absences=len(absence_dates),
                    absence_dates=absence_dates,
                    incidents=[
                        IncidentBrief(
                            id=i.id, date=i.date, description=i.description, status=i.status,
                        )
                        for i in incidents[employee.id]
                    ],
                )
            )

        total_worked = sum(r.worked_minutes for r in rows)
        total_days = sum(r.days_worked for r in rows)
        totals = PeriodTotals(
            total_worked_hours=hours_from_minutes(total_worked),
            total_planned_hours=hours_from_minutes(sum(r.planned_minutes for r in rows)),
            average_hours_per_day=(
                hours_from_minutes(total_worked // total_days) if total_days else 0.0
            ),
            total_days_worked=total_days,
            total_absences=sum(r.absences for r in rows),
            total_incidents=sum(len(r.incidents) for r in rows),
        )
        logger.debug(
            "Period analysis %s..%s: %d employee(s)", start_date, end_date, len(rows),
        )
        return PeriodAnalysis(
            start_date=start_date,
            end_date=end_date,
            employees=rows,
            totals=totals,
        )
