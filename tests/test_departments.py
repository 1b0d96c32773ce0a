"""Department and role test suite — CRUD, employee counts, delete
unassigning employees, and name conflicts.
"""

from __future__ import annotations

import uuid

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from backend.common.exceptions import ConflictError, NotFoundException
from backend.core_hr.models import Department, Employee, Role
from backend.core_hr.schemas import (
    DepartmentCreate,
    DepartmentUpdate,
    RoleCreate,
    RoleUpdate,
)
from backend.core_hr.service import DepartmentService, RoleService
from tests.conftest import _make_department, _make_employee, _make_role, insert_employee


# ── Helpers ─────────────────────────────────────────────────────────


async def _seed_department(db: AsyncSession, **kwargs) -> Department:
    dept = Department(**_make_department(**kwargs))
    db.add(dept)
    await db.flush()
    return dept


async def _seed_role(db: AsyncSession, **kwargs) -> Role:
    role = Role(**_make_role(**kwargs))
    db.add(role)
    await db.flush()
    return role


# ═════════════════════════════════════════════════════════════════════
# 1. DEPARTMENT SERVICE
# ═════════════════════════════════════════════════════════════════════


class TestDepartmentService:

    async def test_create_and_list(self, db: AsyncSession):
        await DepartmentService.create_department(db, DepartmentCreate(name="Sales"))
        await DepartmentService.create_department(
            db, DepartmentCreate(name="Kitchen", convention_hours=1600),
        )

        rows = await DepartmentService.list_departments(db)
        assert [d.name for d in rows] == ["Kitchen", "Sales"]
        assert rows[0].convention_hours == 1600

    async def test_duplicate_name(self, db: AsyncSession):
        await DepartmentService.create_department(db, DepartmentCreate(name="Sales"))
        with pytest.raises(ConflictError):
            await DepartmentService.create_department(db, DepartmentCreate(name="Sales"))

    async def test_employee_count_ignores_inactive(self, db: AsyncSession):
        dept = await _seed_department(db)
        for _ in range(2):
            db.add(Employee(**_make_employee(department_id=dept.id)))
        db.add(Employee(**_make_employee(department_id=dept.id, is_active=False)))
        await db.flush()

        resp = await DepartmentService.get_department(db, dept.id)
        assert resp.employee_count == 2

    async def test_update(self, db: AsyncSession):
        dept = await _seed_department(db)
        resp = await DepartmentService.update_department(
            db, dept.id, DepartmentUpdate(convention_hours=1500),
        )
        assert resp.convention_hours == 1500
        assert resp.name == "Operations"

    async def test_filter_inactive(self, db: AsyncSession):
        await _seed_department(db, name="Open")
        closed = await _seed_department(db, name="Closed")
        closed.is_active = False
        await db.flush()

        rows = await DepartmentService.list_departments(db, is_active=True)
        assert [d.name for d in rows] == ["Open"]

    async def test_delete_unassigns_employees(self, db: AsyncSession):
        dept = await _seed_department(db)
        emp = Employee(**_make_employee(department_id=dept.id))
        db.add(emp)
        await db.flush()

        unassigned = await DepartmentService.delete_department(db, dept.id)
        assert unassigned == 1

        await db.refresh(emp)
        assert emp.department_id is None
        assert await db.get(Department, dept.id) is None

    async def test_delete_missing(self, db: AsyncSession):
        with pytest.raises(NotFoundException):
            await DepartmentService.delete_department(db, uuid.uuid4())


# ═════════════════════════════════════════════════════════════════════
# 2. ROLE SERVICE
# ═════════════════════════════════════════════════════════════════════


class TestRoleService:

    async def test_create_and_count(self, db: AsyncSession):
        role = await RoleService.create_role(db, RoleCreate(name="Waiter"))
        db.add(Employee(**_make_employee(role_id=role.id)))
        await db.flush()

        rows = await RoleService.list_roles(db)
        assert len(rows) == 1
        assert rows[0].employee_count == 1

    async def test_rename(self, db: AsyncSession):
        role = await _seed_role(db)
        resp = await RoleService.update_role(db, role.id, RoleUpdate(name="Head Cashier"))
        assert resp.name == "Head Cashier"

    async def test_rename_conflict(self, db: AsyncSession):
        await _seed_role(db, name="Cook")
        role = await _seed_role(db, name="Cashier")
        with pytest.raises(ConflictError):
            await RoleService.update_role(db, role.id, RoleUpdate(name="Cook"))

    async def test_delete_unassigns_employees(self, db: AsyncSession):
        role = await _seed_role(db)
        emp = Employee(**_make_employee(role_id=role.id))
        db.add(emp)
        await db.flush()

        assert await RoleService.delete_role(db, role.id) == 1
        await db.refresh(emp)
        assert emp.role_id is None


# ═════════════════════════════════════════════════════════════════════
# 3. HTTP API
# ═════════════════════════════════════════════════════════════════════


class TestDepartmentAPI:

    async def test_list(self, client, test_employee):
        resp = await client.get("/api/v1/departments")
        assert resp.status_code == 200
        data = resp.json()["data"]
        assert len(data) == 1
        assert data[0]["employee_count"] == 1

    async def test_create_conflict(self, client, test_department):
        resp = await client.post("/api/v1/departments", json={"name": "Operations"})
        assert resp.status_code == 409
        assert resp.json()["errors"]["name"]

    async def test_members(self, client, db, test_department):
        for i in range(3):
            await insert_employee(db, first_name=f"M{i}", department_id=test_department["id"])
        await insert_employee(db, first_name="Outsider")

        resp = await client.get(
            f"/api/v1/departments/{test_department['id']}/members",
            params={"page_size": 2},
        )
        assert resp.status_code == 200
        body = resp.json()
        assert body["meta"]["total"] == 3
        assert len(body["data"]) == 2

    async def test_delete_reports_unassigned(self, client, test_employee, test_department):
        resp = await client.delete(f"/api/v1/departments/{test_department['id']}")
        assert resp.status_code == 200
        assert resp.json()["data"]["unassigned_employees"] == 1

        resp = await client.get(f"/api/v1/employees/{test_employee['id']}")
        assert resp.json()["data"]["department"] is None


class TestRoleAPI:

    async def test_crud(self, client, test_role):
        resp = await client.get("/api/v1/roles")
        assert [r["name"] for r in resp.json()["data"]] == ["Cashier"]

        resp = await client.put(
            f"/api/v1/roles/{test_role['id']}", json={"description": "Front desk"},
        )
        assert resp.status_code == 200
        assert resp.json()["data"]["description"] == "Front desk"

        resp = await client.delete(f"/api/v1/roles/{test_role['id']}")
        assert resp.status_code == 200
        assert resp.json()["data"]["unassigned_employees"] == 0

    async def test_create_blank_name_is_422(self, client):
        resp = await client.post("/api/v1/roles", json={"name": ""})
        assert resp.status_code == 422
