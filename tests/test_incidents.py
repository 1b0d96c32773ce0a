"""Incident test suite — incident types, registration against the workday,
the pending → approved / rejected review flow, and the HTTP API.
"""

from __future__ import annotations

import uuid
from datetime import date

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from backend.common.constants import IncidentStatus
from backend.common.exceptions import ConflictError, NotFoundException, ValidationException
from backend.common.pagination import PaginationParams
from backend.incidents.models import IncidentType
from backend.incidents.schemas import (
    IncidentCreate,
    IncidentReview,
    IncidentTypeCreate,
    IncidentUpdate,
)
from backend.incidents.service import IncidentService, IncidentTypeService
from backend.workday.service import WorkdayService
from tests.conftest import insert_employee, insert_incident_type


DAY = date(2024, 6, 3)


async def _register(db: AsyncSession, employee_id, type_id, day: date = DAY, **kwargs):
    return await IncidentService.create_incident(
        db,
        IncidentCreate(
            employee_id=employee_id,
            date=day,
            incident_type_id=type_id,
            description=kwargs.pop("description", "Arrived late"),
            **kwargs,
        ),
    )


# ═════════════════════════════════════════════════════════════════════
# 1. INCIDENT TYPES
# ═════════════════════════════════════════════════════════════════════


class TestIncidentTypes:

    async def test_create_and_list(self, db: AsyncSession):
        await IncidentTypeService.create_type(db, IncidentTypeCreate(name="Medical leave"))
        await IncidentTypeService.create_type(db, IncidentTypeCreate(name="Delay"))

        types = await IncidentTypeService.list_types(db)
        assert [t.name for t in types] == ["Delay", "Medical leave"]

    async def test_duplicate_name(self, db: AsyncSession):
        await IncidentTypeService.create_type(db, IncidentTypeCreate(name="Delay"))
        with pytest.raises(ConflictError):
            await IncidentTypeService.create_type(db, IncidentTypeCreate(name="Delay"))

    async def test_unused_type_is_deleted(self, db: AsyncSession):
        incident_type = await insert_incident_type(db)
        assert await IncidentTypeService.delete_type(db, incident_type["id"]) is True
        assert await db.get(IncidentType, incident_type["id"]) is None

    async def test_used_type_is_deactivated(self, db: AsyncSession, test_employee):
        incident_type = await insert_incident_type(db)
        await _register(db, test_employee["id"], incident_type["id"])

        assert await IncidentTypeService.delete_type(db, incident_type["id"]) is False
        kept = await db.get(IncidentType, incident_type["id"])
        assert kept.is_active is False

        active = await IncidentTypeService.list_types(db, is_active=True)
        assert active == []


# ═════════════════════════════════════════════════════════════════════
# 2. REGISTRATION
# ═════════════════════════════════════════════════════════════════════


class TestRegistration:

    async def test_creates_workday_when_missing(self, db: AsyncSession, test_employee):
        incident_type = await insert_incident_type(db)
        incident = await _register(db, test_employee["id"], incident_type["id"])

        assert incident.status == IncidentStatus.pending
        assert incident.incident_type.name == "Delay"
        assert incident.employee.full_name == "Test User"

        workday = await WorkdayService.find(db, test_employee["id"], DAY)
        assert workday is not None
        assert incident.workday_id == workday.id
        assert workday.worked_minutes == 0

    async def test_reuses_existing_workday(self, db: AsyncSession, test_employee):
        incident_type = await insert_incident_type(db)
        first = await _register(db, test_employee["id"], incident_type["id"])
        second = await _register(
            db, test_employee["id"], incident_type["id"], description="Left early",
        )
        assert first.workday_id == second.workday_id

    async def test_inactive_type_rejected(self, db: AsyncSession, test_employee):
        incident_type = await insert_incident_type(db, is_active=False)
        with pytest.raises(ValidationException) as exc_info:
            await _register(db, test_employee["id"], incident_type["id"])
        assert "incident_type_id" in exc_info.value.errors

    async def test_unknown_employee(self, db: AsyncSession):
        incident_type = await insert_incident_type(db)
        with pytest.raises(NotFoundException):
            await _register(db, uuid.uuid4(), incident_type["id"])


# ═════════════════════════════════════════════════════════════════════
# 3. REVIEW FLOW
# ═════════════════════════════════════════════════════════════════════


class TestReview:

    async def test_approve(self, db: AsyncSession, test_employee):
        incident_type = await insert_incident_type(db)
        incident = await _register(db, test_employee["id"], incident_type["id"])
        reviewer = uuid.uuid4()

        approved = await IncidentService.approve_incident(
            db, incident.id, IncidentReview(reviewed_by=reviewer, remarks="Justified"),
        )
        assert approved.status == IncidentStatus.approved
        assert approved.reviewed_by == reviewer
        assert approved.reviewed_at is not None
        assert approved.reviewer_remarks == "Justified"

    async def test_reviewed_incident_is_final(self, db: AsyncSession, test_employee):
        incident_type = await insert_incident_type(db)
        incident = await _register(db, test_employee["id"], incident_type["id"])
        await IncidentService.reject_incident(db, incident.id, IncidentReview())

        with pytest.raises(ValidationException):
            await IncidentService.approve_incident(db, incident.id, IncidentReview())
        with pytest.raises(ValidationException):
            await IncidentService.update_incident(
                db, incident.id, IncidentUpdate(description="Changed"),
            )

    async def test_update_while_pending(self, db: AsyncSession, test_employee):
        delay = await insert_incident_type(db)
        medical = await insert_incident_type(db, name="Medical leave")
        incident = await _register(db, test_employee["id"], delay["id"])

        updated = await IncidentService.update_incident(
            db, incident.id, IncidentUpdate(incident_type_id=medical["id"]),
        )
        assert updated.incident_type.name == "Medical leave"

    async def test_list_filters(self, db: AsyncSession, test_employee):
        incident_type = await insert_incident_type(db)
        await _register(db, test_employee["id"], incident_type["id"])
        await _register(db, test_employee["id"], incident_type["id"], day=date(2024, 7, 1))

        params = PaginationParams(page=1, page_size=10, sort=None)
        result = await IncidentService.list_incidents(
            db, params, start_date=date(2024, 6, 1), end_date=date(2024, 6, 30),
        )
        assert result.meta.total == 1
        assert result.data[0].date == DAY


# ═════════════════════════════════════════════════════════════════════
# 4. HTTP API
# ═════════════════════════════════════════════════════════════════════


class TestIncidentAPI:

    async def test_register_and_approve(self, client, db, test_employee):
        incident_type = await insert_incident_type(db)
        resp = await client.post(
            "/api/v1/incidents",
            json={
                "employee_id": str(test_employee["id"]),
                "date": "2024-06-03",
                "incident_type_id": str(incident_type["id"]),
                "description": "Doctor appointment",
            },
        )
        assert resp.status_code == 201
        data = resp.json()["data"]
        assert data["status"] == "pending"
        assert data["incident_type"]["name"] == "Delay"

        resp = await client.post(
            f"/api/v1/incidents/{data['id']}/approve", json={"remarks": "OK"},
        )
        assert resp.status_code == 200
        assert resp.json()["data"]["status"] == "approved"

        resp = await client.post(f"/api/v1/incidents/{data['id']}/reject", json={})
        assert resp.status_code == 422

        resp = await client.get("/api/v1/incidents", params={"status": "approved"})
        assert resp.json()["meta"]["total"] == 1

    async def test_blank_description_is_422(self, client, db, test_employee):
        incident_type = await insert_incident_type(db)
        resp = await client.post(
            "/api/v1/incidents",
            json={
                "employee_id": str(test_employee["id"]),
                "date": "2024-06-03",
                "incident_type_id": str(incident_type["id"]),
                "description": "",
            },
        )
        assert resp.status_code == 422
        assert "description" in resp.json()["errors"]

    async def test_type_endpoints(self, client):
        resp = await client.post("/api/v1/incident-types", json={"name": "Personal matter"})
        assert resp.status_code == 201
        type_id = resp.json()["data"]["id"]

        resp = await client.put(f"/api/v1/incident-types/{type_id}", json={"description": "x"})
        assert resp.json()["data"]["description"] == "x"

        resp = await client.delete(f"/api/v1/incident-types/{type_id}")
        assert resp.json()["data"]["deleted"] is True

    async def test_delete_incident(self, client, db, test_employee):
        incident_type = await insert_incident_type(db)
        incident = await _register(db, test_employee["id"], incident_type["id"])
        await db.commit()

        resp = await client.delete(f"/api/v1/incidents/{incident.id}")
        assert resp.status_code == 200
        resp = await client.get(f"/api/v1/incidents/{incident.id}")
        assert resp.status_code == 404
