"""Dashboard service — read-only aggregation queries across modules.

All methods are static async, following the project convention.
Counts run as COUNT/SUM at DB level; "present" needs each workday's last
clock entry, so today's workdays are loaded with their entries.
"""

from __future__ import annotations

import uuid
from collections import defaultdict
from datetime import date, datetime, time, timedelta, timezone
from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from backend.common.constants import IncidentStatus
from backend.core_hr.models import Department, Employee
from backend.core_hr.service import EmployeeService
from backend.dashboard.schemas import (
    DashboardStatsResponse,
    DepartmentStatsItem,
    EmployeeStatsResponse,
)
from backend.incidents.models import Incident
from backend.workday.models import DailyWorkday
from backend.workday.rules import WorkdayStatus
from backend.workday.service import WorkdayService, workday_status

_PRESENT = (WorkdayStatus.CLOCKED_IN, WorkdayStatus.ON_BREAK)


def _today() -> date:
    """Current date in UTC (clock timestamps are stored as UTC)."""
    return datetime.now(timezone.utc).date()


def _week_start(today: date) -> date:
    return today - timedelta(days=today.weekday())


class DashboardService:
    """Async dashboard aggregation queries."""

    @staticmethod
    async def _present_ids(db: AsyncSession, today: date) -> set[uuid.UUID]:
        workdays = await WorkdayService.workdays_in_range(db, today, today)
        return {w.employee_id for w in workdays if workday_status(w) in _PRESENT}

    # ═════════════════════════════════════════════════════════════════
    # GET /stats
    # ═════════════════════════════════════════════════════════════════

    @staticmethod
    async def get_stats(
        db: AsyncSession,
        *,
        today: Optional[date] = None,
    ) -> DashboardStatsResponse:
        """Return top-level KPI metrics for the dashboard."""
        today = today or _today()
        week_ago = today - timedelta(days=7)
        week_ago_ts = datetime.combine(week_ago, time.min, tzinfo=timezone.utc)

        total_q = select(func.count(Employee.id)).where(Employee.is_active.is_(True))
        week_q = select(func.coalesce(func.sum(DailyWorkday.worked_minutes), 0)).where(
            DailyWorkday.date >= _week_start(today),
            DailyWorkday.date <= today,
        )
        pending_q = select(func.count(Incident.id)).where(
            Incident.status == IncidentStatus.pending,
        )
        new_employees_q = select(func.count(Employee.id)).where(
            Employee.is_active.is_(True),
            Employee.hire_date >= week_ago,
        )
        new_incidents_q = select(func.count(Incident.id)).where(
            Incident.created_at >= week_ago_ts,
        )

        results = await _multi_scalar(
            db, total_q, week_q, pending_q, new_employees_q, new_incidents_q,
        )
        present = await DashboardService._present_ids(db, today)

        return DashboardStatsResponse(
            total_employees=results[0] or 0,
            present_today=len(present),
            hours_this_week=int(results[1] or 0) // 60,
            pending_incidents=results[2] or 0,
            new_employees_last_week=results[3] or 0,
            new_incidents_last_week=results[4] or 0,
        )

    # ═════════════════════════════════════════════════════════════════
    # GET /departments
    # ═════════════════════════════════════════════════════════════════

    @staticmethod
    async def get_department_stats(
        db: AsyncSession,
        *,
        today: Optional[date] = None,
    ) -> list[DepartmentStatsItem]:
        """Headcount, presence and weekly hours per active department."""
        today = today or _today()

        departments = (
            await db.execute(
                select(Department)
                .where(Department.is_active.is_(True))
                .order_by(Department.name)
            )
        ).scalars().all()

        members: dict[uuid.UUID, set[uuid.UUID]] = defaultdict(set)
        rows = await db.execute(
            select(Employee.department_id, Employee.id).where(
                Employee.is_active.is_(True),
                Employee.department_id.is_not(None),
            )
        )
        for department_id, employee_id in rows.all():
            members[department_id].add(employee_id)

        minutes: dict[uuid.UUID, int] = {}
        rows = await db.execute(
            select(Employee.department_id, func.sum(DailyWorkday.worked_minutes))
            .join(Employee, Employee.id == DailyWorkday.employee_id)
            .where(
                Employee.is_active.is_(True),
                DailyWorkday.date >= _week_start(today),
                DailyWorkday.date <= today,
            )
            .group_by(Employee.department_id)
        )
        for department_id, total in rows.all():
            minutes[department_id] = int(total or 0)

        present = await DashboardService._present_ids(db, today)

        items = []
        for dept in departments:
            headcount = len(members[dept.id])
            hours = minutes.get(dept.id, 0) // 60
            items.append(
                DepartmentStatsItem(
                    department_id=dept.id,
                    department_name=dept.name,
                    total_employees=headcount,
                    present_today=len(members[dept.id] & present),
                    hours_this_week=hours,
                    average_hours_per_employee=(
                        round(hours / headcount, 2) if headcount else 0.0
                    ),
                )
            )
        return items

    # ═════════════════════════════════════════════════════════════════
    # GET /employee/{id}
    # ═════════════════════════════════════════════════════════════════

    @staticmethod
    async def get_employee_stats(
        db: AsyncSession,
        employee_id: uuid.UUID,
        *,
        today: Optional[date] = None,
    ) -> EmployeeStatsResponse:
        today = today or _today()
        await EmployeeService.get_employee(db, employee_id)

        workday = await WorkdayService.find(db, employee_id, today)
        status = workday_status(workday)

        week_q = select(func.coalesce(func.sum(DailyWorkday.worked_minutes), 0)).where(
            DailyWorkday.employee_id == employee_id,
            DailyWorkday.date >= _week_start(today),
            DailyWorkday.date <= today,
        )
        pending_q = select(func.count(Incident.id)).where(
            Incident.employee_id == employee_id,
            Incident.status == IncidentStatus.pending,
        )
        week_minutes, pending = await _multi_scalar(db, week_q, pending_q)

        return EmployeeStatsResponse(
            employee_id=employee_id,
            is_clocked_in=status in _PRESENT,
            status=status,
            hours_this_week=int(week_minutes or 0) // 60,
            pending_incidents=pending or 0,
        )


# ═════════════════════════════════════════════════════════════════════
# Helpers
# ═════════════════════════════════════════════════════════════════════


async def _multi_scalar(db: AsyncSession, *stmts) -> list:
    """Execute multiple scalar queries and return their results in order."""
    results = []
    for stmt in stmts:
        result = await db.execute(stmt)
        results.append(result.scalar())
    return results
