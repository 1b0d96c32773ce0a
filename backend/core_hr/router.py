"""Core HR router — Employee, Department, Role API endpoints.

Routes:
    /employees              — List, create employees
    /employees/{id}         — Get, update, deactivate employee
    /departments            — List, create departments
    /departments/{id}       — Department detail, update, delete
    /departments/{id}/members — Paginated employees of a department
    /roles                  — List, create roles
    /roles/{id}             — Update, delete role
"""


import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from backend.common.pagination import PaginationParams
from backend.core_hr.schemas import (
    DepartmentCreate,
    DepartmentUpdate,
    EmployeeCreate,
    EmployeeDetail,
    EmployeeListItem,
    EmployeeUpdate,
    RoleCreate,
    RoleUpdate,
)
from backend.core_hr.service import DepartmentService, EmployeeService, RoleService
from backend.database import get_db


# ═════════════════════════════════════════════════════════════════════
# Routers
# ═════════════════════════════════════════════════════════════════════

employees_router = APIRouter(prefix="", tags=["employees"])
departments_router = APIRouter(prefix="", tags=["departments"])
roles_router = APIRouter(prefix="", tags=["roles"])


# ═════════════════════════════════════════════════════════════════════
# Employee Endpoints
# ═════════════════════════════════════════════════════════════════════


# ── GET /employees — List employees ─────────────────────────────────

@employees_router.get("")
async def list_employees(
    db: AsyncSession = Depends(get_db),
    pagination: PaginationParams = Depends(),
    search: Optional[str] = Query(None, description="Search by name, email, DNI or employee code"),
    department_id: Optional[uuid.UUID] = Query(None, description="Filter by department"),
    role_id: Optional[uuid.UUID] = Query(None, description="Filter by role"),
    is_active: Optional[bool] = Query(None, description="Filter by active flag"),
):
    """List employees with pagination, search, and filtering."""
    result = await EmployeeService.list_employees(
        db,
        pagination,
        search=search,
        department_id=department_id,
        role_id=role_id,
        is_active=is_active,
    )
    items = [EmployeeListItem.model_validate(emp) for emp in result.data]
    return {
        "data": [item.model_dump(mode="json") for item in items],
        "meta": result.meta.model_dump(),
    }


# ── GET /employees/{id} — Employee detail ──────────────────────────

@employees_router.get("/{employee_id}")
async def get_employee(
    employee_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
):
    """Retrieve a single employee with department and role."""
    employee = await EmployeeService.get_employee(db, employee_id)
    return {
        "data": EmployeeDetail.model_validate(employee).model_dump(mode="json"),
        "message": "Employee retrieved successfully.",
    }


# ── POST /employees — Create employee ──────────────────────────────

@employees_router.post("", status_code=201)
async def create_employee(
    body: EmployeeCreate,
    db: AsyncSession = Depends(get_db),
):
    """Create a new employee record."""
    employee = await EmployeeService.create_employee(db, body)
    return {
        "data": EmployeeDetail.model_validate(employee).model_dump(mode="json"),
        "message": "Employee created successfully.",
    }


# ── PUT /employees/{id} — Update employee ──────────────────────────

@employees_router.put("/{employee_id}")
async def update_employee(
    employee_id: uuid.UUID,
    body: EmployeeUpdate,
    db: AsyncSession = Depends(get_db),
):
    """Partial update of an employee record."""
    employee = await EmployeeService.update_employee(db, employee_id, body)
    return {
        "data": EmployeeDetail.model_validate(employee).model_dump(mode="json"),
        "message": "Employee updated successfully.",
    }


# ── DELETE /employees/{id} — Deactivate employee ───────────────────

@employees_router.delete("/{employee_id}")
async def deactivate_employee(
    employee_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
):
    """Soft-delete: flag the employee inactive, keep history intact."""
    employee = await EmployeeService.deactivate_employee(db, employee_id)
    return {
        "data": EmployeeDetail.model_validate(employee).model_dump(mode="json"),
        "message": "Employee deactivated successfully.",
    }


# ═════════════════════════════════════════════════════════════════════
# Department Endpoints
# ═════════════════════════════════════════════════════════════════════


# ── GET /departments — List departments ─────────────────────────────

@departments_router.get("")
async def list_departments(
    db: AsyncSession = Depends(get_db),
    is_active: Optional[bool] = Query(None, description="Filter by active flag"),
):
    """List departments with active-employee counts."""
    departments = await DepartmentService.list_departments(db, is_active=is_active)
    return {
        "data": [dept.model_dump(mode="json") for dept in departments],
        "message": f"Found {len(departments)} department(s).",
    }


# ── POST /departments — Create department ──────────────────────────

@departments_router.post("", status_code=201)
async def create_department(
    body: DepartmentCreate,
    db: AsyncSession = Depends(get_db),
):
    dept = await DepartmentService.create_department(db, body)
    return {
        "data": dept.model_dump(mode="json"),
        "message": "Department created successfully.",
    }


# ── GET /departments/{id} — Department detail ──────────────────────

@departments_router.get("/{department_id}")
async def get_department(
    department_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
):
    """Retrieve a single department with its employee count."""
    dept = await DepartmentService.get_department(db, department_id)
    return {
        "data": dept.model_dump(mode="json"),
        "message": "Department retrieved successfully.",
    }


# ── PUT /departments/{id} — Update department ──────────────────────

@departments_router.put("/{department_id}")
async def update_department(
    department_id: uuid.UUID,
    body: DepartmentUpdate,
    db: AsyncSession = Depends(get_db),
):
    dept = await DepartmentService.update_department(db, department_id, body)
    return {
        "data": dept.model_dump(mode="json"),
        "message": "Department updated successfully.",
    }


# ── DELETE /departments/{id} — Delete department ───────────────────

@departments_router.delete("/{department_id}")
async def delete_department(
    department_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
):
    """Delete a department; its employees are left without department."""
    unassigned = await DepartmentService.delete_department(db, department_id)
    return {
        "data": {"id": str(department_id), "unassigned_employees": unassigned},
        "message": "Department deleted successfully.",
    }


# ── GET /departments/{id}/members — Paginated employee list ────

@departments_router.get("/{department_id}/members")
async def list_department_members(
    department_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    pagination: PaginationParams = Depends(),
    search: Optional[str] = Query(None, description="Search by name, email, or employee code"),
):
    """Paginated list of employees belonging to a department."""
    await DepartmentService.get_department(db, department_id)

    result = await EmployeeService.list_employees(
        db,
        pagination,
        department_id=department_id,
        search=search,
    )

    items = [EmployeeListItem.model_validate(emp) for emp in result.data]
    return {
        "data": [item.model_dump(mode="json") for item in items],
        "meta": result.meta.model_dump(),
        "message": f"Found {result.meta.total} member(s) in department.",
    }


# ═════════════════════════════════════════════════════════════════════
# Role Endpoints
# ═════════════════════════════════════════════════════════════════════


# ── GET /roles — List roles ─────────────────────────────────────────

@roles_router.get("")
async def list_roles(db: AsyncSession = Depends(get_db)):
    roles = await RoleService.list_roles(db)
    return {
        "data": [role.model_dump(mode="json") for role in roles],
        "message": f"Found {len(roles)} role(s).",
    }


# ── POST /roles — Create role ───────────────────────────────────────

@roles_router.post("", status_code=201)
async def create_role(
    body: RoleCreate,
    db: AsyncSession = Depends(get_db),
):
    role = await RoleService.create_role(db, body)
    return {
        "data": role.model_dump(mode="json"),
        "message": "Role created successfully.",
    }


# ── PUT /roles/{id} — Update role ───────────────────────────────────

@roles_router.put("/{role_id}")
async def update_role(
    role_id: uuid.UUID,
    body: RoleUpdate,
    db: AsyncSession = Depends(get_db),
):
    role = await RoleService.update_role(db, role_id, body)
    return {
        "data": role.model_dump(mode="json"),
        "message": "Role updated successfully.",
    }


# ── DELETE /roles/{id} — Delete role ────────────────────────────────

@roles_router.delete("/{role_id}")
async def delete_role(
    role_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
):
    unassigned = await RoleService.delete_role(db, role_id)
    return {
        "data": {"id": str(role_id), "unassigned_employees": unassigned},
        "message": "Role deleted successfully.",
    }
