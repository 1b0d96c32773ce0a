"""Employee module test suite — CRUD, search, pagination, department filter,
validation errors, deactivation, and convention-hours fallback.

Tests exercise the service layer and the HTTP API (via router).
Uses the shared conftest.py pattern with in-memory SQLite.
"""

from __future__ import annotations

import uuid
from datetime import date

import pytest
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from backend.common.audit import AuditTrail
from backend.common.exceptions import ConflictError, NotFoundException
from backend.common.pagination import PaginationParams
from backend.config import settings
from backend.core_hr.models import Department, Employee
from backend.core_hr.schemas import EmployeeCreate, EmployeeUpdate
from backend.core_hr.service import EmployeeService
from tests.conftest import _make_department, _make_employee


# ── Helpers ─────────────────────────────────────────────────────────


async def _seed_department(db: AsyncSession, **kwargs) -> Department:
    dept = Department(**_make_department(**kwargs))
    db.add(dept)
    await db.flush()
    return dept


async def _seed_employee(db: AsyncSession, **kwargs) -> Employee:
    emp = Employee(**_make_employee(**kwargs))
    db.add(emp)
    await db.flush()
    return emp


def _create_payload(**overrides) -> EmployeeCreate:
    data = dict(
        employee_code="EMP-SVC001",
        first_name="Service",
        last_name="Test",
        email="svctest@example.com",
        hire_date=date(2025, 1, 1),
    )
    data.update(overrides)
    return EmployeeCreate(**data)


# ═════════════════════════════════════════════════════════════════════
# 1. SERVICE — CREATE
# ═════════════════════════════════════════════════════════════════════


class TestEmployeeCreate:

    async def test_create_employee(self, db: AsyncSession):
        dept = await _seed_department(db)
        emp = await EmployeeService.create_employee(
            db, _create_payload(department_id=dept.id),
        )
        assert emp.id is not None
        assert emp.is_active is True
        assert emp.department.name == "Operations"

    async def test_create_writes_audit_entry(self, db: AsyncSession):
        emp = await EmployeeService.create_employee(db, _create_payload())
        result = await db.execute(
            select(AuditTrail).where(AuditTrail.entity_id == emp.id)
        )
        entry = result.scalars().one()
        assert entry.action == "create"
        assert entry.entity_type == "employee"

    async def test_duplicate_email_conflict(self, db: AsyncSession):
        await EmployeeService.create_employee(db, _create_payload())
        with pytest.raises(ConflictError):
            await EmployeeService.create_employee(
                db, _create_payload(employee_code="EMP-SVC002"),
            )

    async def test_duplicate_code_conflict(self, db: AsyncSession):
        await EmployeeService.create_employee(db, _create_payload())
        with pytest.raises(ConflictError) as exc_info:
            await EmployeeService.create_employee(
                db, _create_payload(email="other@example.com"),
            )
        assert "employee_code" in exc_info.value.errors

    async def test_unknown_department_is_404(self, db: AsyncSession):
        with pytest.raises(NotFoundException):
            await EmployeeService.create_employee(
                db, _create_payload(department_id=uuid.uuid4()),
            )


# ═════════════════════════════════════════════════════════════════════
# 2. SERVICE — LIST / SEARCH / PAGINATION
# ═════════════════════════════════════════════════════════════════════


class TestEmployeeList:

    async def test_paginated(self, db: AsyncSession):
        for i in range(8):
            await _seed_employee(db, first_name=f"List{i}")

        params = PaginationParams(page=1, page_size=5, sort=None)
        result = await EmployeeService.list_employees(db, params)
        assert result.meta.page_size == 5
        assert result.meta.total == 8
        assert result.meta.has_next is True
        assert len(result.data) == 5

    async def test_filter_department(self, db: AsyncSession):
        d1 = await _seed_department(db, name="Dept1")
        d2 = await _seed_department(db, name="Dept2")
        for _ in range(3):
            await _seed_employee(db, department_id=d1.id)
        await _seed_employee(db, department_id=d2.id)

        params = PaginationParams(page=1, page_size=50, sort=None)
        result = await EmployeeService.list_employees(db, params, department_id=d1.id)
        assert result.meta.total == 3

    async def test_filter_active(self, db: AsyncSession):
        await _seed_employee(db, first_name="Active")
        await _seed_employee(db, first_name="Gone", is_active=False)

        params = PaginationParams(page=1, page_size=50, sort=None)
        result = await EmployeeService.list_employees(db, params, is_active=True)
        assert result.meta.total == 1
        assert result.data[0].first_name == "Active"

    async def test_search_by_name(self, db: AsyncSession):
        await _seed_employee(db, first_name="Alice")
        await _seed_employee(db, first_name="Bob")
        await _seed_employee(db, first_name="Alison")

        params = PaginationParams(page=1, page_size=50, sort=None)
        result = await EmployeeService.list_employees(db, params, search="ali")
        assert {e.first_name for e in result.data} == {"Alice", "Alison"}

    async def test_list_active_excludes(self, db: AsyncSession):
        a = await _seed_employee(db, first_name="A")
        b = await _seed_employee(db, first_name="B")
        await _seed_employee(db, first_name="C", is_active=False)

        rows = await EmployeeService.list_active(db, exclude_ids=[a.id])
        assert [e.id for e in rows] == [b.id]


# ═════════════════════════════════════════════════════════════════════
# 3. SERVICE — UPDATE / DEACTIVATE
# ═════════════════════════════════════════════════════════════════════


class TestEmployeeUpdate:

    async def test_partial_update(self, db: AsyncSession):
        emp = await _seed_employee(db)
        updated = await EmployeeService.update_employee(
            db, emp.id, EmployeeUpdate(last_name="Changed"),
        )
        assert updated.last_name == "Changed"
        assert updated.first_name == "Test"

    async def test_update_audit_values_are_json(self, db: AsyncSession):
        emp = await _seed_employee(db)
        await EmployeeService.update_employee(
            db, emp.id, EmployeeUpdate(hire_date=date(2024, 3, 1)),
        )
        result = await db.execute(
            select(AuditTrail).where(
                AuditTrail.entity_id == emp.id, AuditTrail.action == "update",
            )
        )
        entry = result.scalars().one()
        assert entry.old_values == {"hire_date": "2024-01-15"}
        assert entry.new_values == {"hire_date": "2024-03-01"}

    async def test_update_not_found(self, db: AsyncSession):
        with pytest.raises(NotFoundException):
            await EmployeeService.update_employee(
                db, uuid.uuid4(), EmployeeUpdate(last_name="X"),
            )

    async def test_deactivate_is_soft(self, db: AsyncSession):
        emp = await _seed_employee(db)
        await EmployeeService.deactivate_employee(db, emp.id)

        found = await db.get(Employee, emp.id)
        assert found is not None
        assert found.is_active is False


# ═════════════════════════════════════════════════════════════════════
# 4. CONVENTION HOURS
# ═════════════════════════════════════════════════════════════════════


class TestConventionHours:

    async def test_employee_value_wins(self, db: AsyncSession):
        dept = await _seed_department(db, convention_hours=1600)
        emp = await _seed_employee(db, department_id=dept.id, convention_hours=1400)
        await db.refresh(emp, ["department"])
        assert emp.effective_convention_hours == 1400

    async def test_department_fallback(self, db: AsyncSession):
        dept = await _seed_department(db, convention_hours=1600)
        emp = await _seed_employee(db, department_id=dept.id)
        await db.refresh(emp, ["department"])
        assert emp.effective_convention_hours == 1600

    async def test_global_default(self, db: AsyncSession):
        emp = await _seed_employee(db)
        await db.refresh(emp, ["department"])
        assert emp.effective_convention_hours == settings.DEFAULT_CONVENTION_HOURS


# ═════════════════════════════════════════════════════════════════════
# 5. HTTP API
# ═════════════════════════════════════════════════════════════════════


class TestEmployeeAPI:

    async def test_list_envelope(self, client, test_employee):
        resp = await client.get("/api/v1/employees")
        assert resp.status_code == 200
        body = resp.json()
        assert "data" in body and "meta" in body
        assert body["meta"]["total"] == 1
        assert body["data"][0]["department"]["name"] == "Operations"

    async def test_create_and_get(self, client, test_department):
        resp = await client.post(
            "/api/v1/employees",
            json={
                "employee_code": "EMP-API01",
                "first_name": "Api",
                "last_name": "User",
                "email": "api.user@example.com",
                "hire_date": "2025-02-01",
                "department_id": str(test_department["id"]),
            },
        )
        assert resp.status_code == 201
        emp_id = resp.json()["data"]["id"]

        resp = await client.get(f"/api/v1/employees/{emp_id}")
        assert resp.status_code == 200
        data = resp.json()["data"]
        assert data["full_name"] == "Api User"
        assert data["effective_convention_hours"] == settings.DEFAULT_CONVENTION_HOURS

    async def test_get_missing_is_problem_json(self, client):
        resp = await client.get(f"/api/v1/employees/{uuid.uuid4()}")
        assert resp.status_code == 404
        assert resp.headers["content-type"].startswith("application/problem+json")
        assert resp.json()["title"] == "Employee Not Found"

    async def test_invalid_email_is_422(self, client):
        resp = await client.post(
            "/api/v1/employees",
            json={
                "employee_code": "EMP-BAD",
                "first_name": "Bad",
                "last_name": "Email",
                "email": "not-an-email",
                "hire_date": "2025-02-01",
            },
        )
        assert resp.status_code == 422
        assert "email" in resp.json()["errors"]

    async def test_delete_deactivates(self, client, test_employee):
        resp = await client.delete(f"/api/v1/employees/{test_employee['id']}")
        assert resp.status_code == 200

        resp = await client.get(f"/api/v1/employees/{test_employee['id']}")
        assert resp.json()["data"]["is_active"] is False
