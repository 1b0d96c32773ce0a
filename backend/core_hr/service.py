"""Core HR service layer — async CRUD + business logic.

Uses:
  - ``paginate()`` from backend.common.pagination
  - ``apply_filters / apply_search`` from backend.common.filters
  - ``create_audit_entry`` from backend.common.audit
  - ``NotFoundException / ConflictError`` from backend.common.exceptions

Departments and roles are reference tables: deleting one unassigns the
employees that point at it instead of blocking the delete.
"""

from __future__ import annotations

import logging
import uuid
from typing import Any, Optional, Sequence

from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from backend.common.audit import create_audit_entry
from backend.common.exceptions import ConflictError, NotFoundException
from backend.common.filters import apply_filters, apply_search
from backend.common.pagination import PaginatedResponse, PaginationParams, paginate
from backend.core_hr.models import Department, Employee, Role
from backend.core_hr.schemas import (
    DepartmentCreate,
    DepartmentResponse,
    DepartmentUpdate,
    EmployeeCreate,
    EmployeeUpdate,
    RoleCreate,
    RoleResponse,
    RoleUpdate,
)

logger = logging.getLogger(__name__)


# ═════════════════════════════════════════════════════════════════════
# EmployeeService
# ═════════════════════════════════════════════════════════════════════


class EmployeeService:
    """Async CRUD operations for employees."""

    # ── List (paginated, searchable, filterable) ────────────────────

    @staticmethod
    async def list_employees(
        db: AsyncSession,
        pagination: PaginationParams,
        *,
        search: Optional[str] = None,
        department_id: Optional[uuid.UUID] = None,
        role_id: Optional[uuid.UUID] = None,
        is_active: Optional[bool] = None,
    ) -> PaginatedResponse:
        """Return a paginated, filtered, searchable employee list."""

        query = select(Employee)

        filters: dict[str, Any] = {
            "department_id": department_id,
            "role_id": role_id,
            "is_active": is_active,
        }
        query = apply_filters(query, Employee, filters)

        if search:
            query = apply_search(
                query,
                Employee,
                search,
                ["first_name", "last_name", "email", "employee_code", "dni"],
            )

        if not pagination.sort:
            query = query.order_by(Employee.last_name, Employee.first_name)

        return await paginate(db, query, pagination, model=Employee)

    @staticmethod
    async def list_active(
        db: AsyncSession,
        *,
        search: Optional[str] = None,
        department_id: Optional[uuid.UUID] = None,
        exclude_ids: Sequence[uuid.UUID] = (),
    ) -> Sequence[Employee]:
        """Unpaginated active employees (reports, copy target pickers)."""

        query = select(Employee).where(Employee.is_active.is_(True))
        query = apply_filters(query, Employee, {
            "department_id": department_id,
            "id__not_in": exclude_ids,
        })
        if search:
            query = apply_search(
                query, Employee, search,
                ["first_name", "last_name", "email", "employee_code"],
            )
        query = query.order_by(Employee.last_name, Employee.first_name)
        result = await db.execute(query)
        return result.scalars().all()

    # ── Get single ──────────────────────────────────────────────────

    @staticmethod
    async def get_employee(
        db: AsyncSession,
        employee_id: uuid.UUID,
    ) -> Employee:
        """Load an employee (department + role eager-loaded)."""

        result = await db.execute(
            select(Employee).where(Employee.id == employee_id),
        )
        employee = result.scalars().first()
        if employee is None:
            raise NotFoundException("Employee", str(employee_id))
        return employee

    # ── Create ──────────────────────────────────────────────────────

    @staticmethod
    async def create_employee(
        db: AsyncSession,
        data: EmployeeCreate,
        *,
        actor_id: Optional[uuid.UUID] = None,
    ) -> Employee:
        """Create a new employee record."""

        if data.department_id is not None:
            await DepartmentService._get_or_404(db, data.department_id)
        if data.role_id is not None:
            await RoleService._get_or_404(db, data.role_id)

        employee = Employee(**data.model_dump())

        db.add(employee)
        try:
            await db.flush()
        except IntegrityError as exc:
            await db.rollback()
            err = str(exc.orig)
            if "employee_code" in err:
                raise ConflictError("employee_code", data.employee_code)
            if "email" in err:
                raise ConflictError("email", data.email)
            raise

        await db.refresh(employee, ["department", "role"])

        await create_audit_entry(
            db,
            action="create",
            entity_type="employee",
            entity_id=employee.id,
            actor_id=actor_id,
            new_values=data.model_dump(mode="json"),
        )
        logger.info("Created employee %s (%s)", employee.employee_code, employee.id)

        return employee

    # ── Update ──────────────────────────────────────────────────────

    @staticmethod
    async def update_employee(
        db: AsyncSession,
        employee_id: uuid.UUID,
        data: EmployeeUpdate,
        *,
        actor_id: Optional[uuid.UUID] = None,
    ) -> Employee:
        """Partial-update an existing employee."""

        employee = await EmployeeService.get_employee(db, employee_id)

        changes = data.model_dump(exclude_unset=True)
        if not changes:
            return employee

        if changes.get("department_id") is not None:
            await DepartmentService._get_or_404(db, changes["department_id"])
        if changes.get("role_id") is not None:
            await RoleService._get_or_404(db, changes["role_id"])

        old_values = {field: getattr(employee, field, None) for field in changes}
        for field, value in changes.items():
            setattr(employee, field, value)

        try:
            await db.flush()
        except IntegrityError as exc:
            await db.rollback()
            err = str(exc.orig)
            if "email" in err:
                raise ConflictError("email", changes.get("email", ""))
            if "employee_code" in err:
                raise ConflictError("employee_code", changes.get("employee_code", ""))
            raise

        await db.refresh(employee, ["department", "role"])

        await create_audit_entry(
            db,
            action="update",
            entity_type="employee",
            entity_id=employee.id,
            actor_id=actor_id,
            old_values=old_values,
            new_values=data.model_dump(mode="json", exclude_unset=True),
        )

        return employee

    # ── Soft deactivate ─────────────────────────────────────────────

    @staticmethod
    async def deactivate_employee(
        db: AsyncSession,
        employee_id: uuid.UUID,
        *,
        actor_id: Optional[uuid.UUID] = None,
    ) -> Employee:
        """Soft-delete: employees are referenced by schedules and workdays,
        so they are never hard-deleted."""

        employee = await EmployeeService.get_employee(db, employee_id)
        if not employee.is_active:
            return employee

        employee.is_active = False
        await db.flush()

        await create_audit_entry(
            db,
            action="deactivate",
            entity_type="employee",
            entity_id=employee.id,
            actor_id=actor_id,
            old_values={"is_active": True},
            new_values={"is_active": False},
        )
        logger.info("Deactivated employee %s", employee.id)

        return employee


# ═════════════════════════════════════════════════════════════════════
# DepartmentService
# ═════════════════════════════════════════════════════════════════════


class DepartmentService:
    """Async CRUD for departments."""

    @staticmethod
    async def _get_or_404(db: AsyncSession, department_id: uuid.UUID) -> Department:
        dept = await db.get(Department, department_id)
        if dept is None:
            raise NotFoundException("Department", str(department_id))
        return dept

    @staticmethod
    async def _employee_counts(db: AsyncSession) -> dict[uuid.UUID, int]:
        result = await db.execute(
            select(
                Employee.department_id,
                func.count(Employee.id).label("cnt"),
            )
            .where(Employee.is_active.is_(True))
            .group_by(Employee.department_id)
        )
        return {row[0]: row[1] for row in result.all() if row[0]}

    @staticmethod
    async def list_departments(
        db: AsyncSession,
        *,
        is_active: Optional[bool] = None,
    ) -> list[DepartmentResponse]:
        """Return departments with active-employee counts."""

        query = select(Department).order_by(Department.name)
        if is_active is not None:
            query = query.where(Department.is_active == is_active)

        departments = (await db.execute(query)).scalars().all()
        counts = await DepartmentService._employee_counts(db)

        responses: list[DepartmentResponse] = []
        for dept in departments:
            resp = DepartmentResponse.model_validate(dept)
            resp.employee_count = counts.get(dept.id, 0)
            responses.append(resp)
        return responses

    @staticmethod
    async def get_department(
        db: AsyncSession,
        department_id: uuid.UUID,
    ) -> DepartmentResponse:
        dept = await DepartmentService._get_or_404(db, department_id)
        counts = await DepartmentService._employee_counts(db)
        resp = DepartmentResponse.model_validate(dept)
        resp.employee_count = counts.get(dept.id, 0)
        return resp

    @staticmethod
    async def create_department(
        db: AsyncSession,
        data: DepartmentCreate,
        *,
        actor_id: Optional[uuid.UUID] = None,
    ) -> DepartmentResponse:
        dept = Department(**data.model_dump())
        db.add(dept)
        try:
            await db.flush()
        except IntegrityError:
            await db.rollback()
            raise ConflictError("name", data.name)

        await create_audit_entry(
            db,
            action="create",
            entity_type="department",
            entity_id=dept.id,
            actor_id=actor_id,
            new_values=data.model_dump(mode="json"),
        )
        return DepartmentResponse.model_validate(dept)

    @staticmethod
    async def update_department(
        db: AsyncSession,
        department_id: uuid.UUID,
        data: DepartmentUpdate,
        *,
        actor_id: Optional[uuid.UUID] = None,
    ) -> DepartmentResponse:
        dept = await DepartmentService._get_or_404(db, department_id)
        changes = data.model_dump(exclude_unset=True)

        old_values = {k: getattr(dept, k) for k in changes}
        for field, value in changes.items():
            setattr(dept, field, value)

        try:
            await db.flush()
        except IntegrityError:
            await db.rollback()
            raise ConflictError("name", changes.get("name", ""))

        if changes:
            await create_audit_entry(
                db,
                action="update",
                entity_type="department",
                entity_id=dept.id,
                actor_id=actor_id,
                old_values=old_values,
                new_values=changes,
            )
        return await DepartmentService.get_department(db, dept.id)

    @staticmethod
    async def delete_department(
        db: AsyncSession,
        department_id: uuid.UUID,
        *,
        actor_id: Optional[uuid.UUID] = None,
    ) -> int:
        """Delete a department and unassign its employees.

        Returns:
            Number of employees that were unassigned.
        """
        dept = await DepartmentService._get_or_404(db, department_id)

        result = await db.execute(
            update(Employee)
            .where(Employee.department_id == department_id)
            .values(department_id=None)
            .execution_options(synchronize_session="fetch")
        )
        unassigned = result.rowcount or 0

        await db.delete(dept)
        await db.flush()

        await create_audit_entry(
            db,
            action="delete",
            entity_type="department",
            entity_id=department_id,
            actor_id=actor_id,
            old_values={"name": dept.name, "unassigned_employees": unassigned},
        )
        logger.info(
            "Deleted department %s; %d employee(s) unassigned",
            department_id, unassigned,
        )
        return unassigned


# ═════════════════════════════════════════════════════════════════════
# RoleService
# ═════════════════════════════════════════════════════════════════════


class RoleService:
    """Async CRUD for enterprise roles. Mirrors DepartmentService."""

    @staticmethod
    async def _get_or_404(db: AsyncSession, role_id: uuid.UUID) -> Role:
        role = await db.get(Role, role_id)
        if role is None:
            raise NotFoundException("Role", str(role_id))
        return role

    @staticmethod
    async def _employee_counts(db: AsyncSession) -> dict[uuid.UUID, int]:
        result = await db.execute(
            select(Employee.role_id, func.count(Employee.id))
            .where(Employee.is_active.is_(True))
            .group_by(Employee.role_id)
        )
        return {row[0]: row[1] for row in result.all() if row[0]}

    @staticmethod
    async def list_roles(db: AsyncSession) -> list[RoleResponse]:
        roles = (await db.execute(select(Role).order_by(Role.name))).scalars().all()
        counts = await RoleService._employee_counts(db)
        responses = []
        for role in roles:
            resp = RoleResponse.model_validate(role)
            resp.employee_count = counts.get(role.id, 0)
            responses.append(resp)
        return responses

    @staticmethod
    async def create_role(
        db: AsyncSession,
        data: RoleCreate,
        *,
        actor_id: Optional[uuid.UUID] = None,
    ) -> RoleResponse:
        role = Role(**data.model_dump())
        db.add(role)
        try:
            await db.flush()
        except IntegrityError:
            await db.rollback()
            raise ConflictError("name", data.name)

        await create_audit_entry(
            db,
            action="create",
            entity_type="role",
            entity_id=role.id,
            actor_id=actor_id,
            new_values=data.model_dump(mode="json"),
        )
        return RoleResponse.model_validate(role)

    @staticmethod
    async def update_role(
        db: AsyncSession,
        role_id: uuid.UUID,
        data: RoleUpdate,
        *,
        actor_id: Optional[uuid.UUID] = None,
    ) -> RoleResponse:
        role = await RoleService._get_or_404(db, role_id)
        changes = data.model_dump(exclude_unset=True)
        old_values = {k: getattr(role, k) for k in changes}
        for field, value in changes.items():
            setattr(role, field, value)
        try:
            await db.flush()
        except IntegrityError:
            await db.rollback()
            raise ConflictError("name", changes.get("name", ""))

        if changes:
            await create_audit_entry(
                db,
                action="update",
                entity_type="role",
                entity_id=role.id,
                actor_id=actor_id,
                old_values=old_values,
                new_values=changes,
            )
        return RoleResponse.model_validate(role)

    @staticmethod
    async def delete_role(
        db: AsyncSession,
        role_id: uuid.UUID,
        *,
        actor_id: Optional[uuid.UUID] = None,
    ) -> int:
        """Delete a role and unassign its employees. Returns the unassigned count."""
        role = await RoleService._get_or_404(db, role_id)

        result = await db.execute(
            update(Employee)
            .where(Employee.role_id == role_id)
            .values(role_id=None)
            .execution_options(synchronize_session="fetch")
        )
        unassigned = result.rowcount or 0

        await db.delete(role)
        await db.flush()

        await create_audit_entry(
            db,
            action="delete",
            entity_type="role",
            entity_id=role_id,
            actor_id=actor_id,
            old_values={"name": role.name, "unassigned_employees": unassigned},
        )
        logger.info("Deleted role %s; %d employee(s) unassigned", role_id, unassigned)
        return unassigned
