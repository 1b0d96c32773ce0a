"""Incident routers — incident types and the review workflow.

Routes:
    GET    /incident-types              — List types
    POST   /incident-types              — Create type
    PUT    /incident-types/{id}         — Update type
    DELETE /incident-types/{id}         — Delete (deactivate when in use)
    GET    /incidents                   — Paginated, filterable list
    POST   /incidents                   — Register (creates the workday if needed)
    GET    /incidents/{id}              — Detail
    PUT    /incidents/{id}              — Edit while pending
    DELETE /incidents/{id}              — Delete
    POST   /incidents/{id}/approve      — pending → approved
    POST   /incidents/{id}/reject       — pending → rejected
"""


import uuid
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from backend.common.constants import IncidentStatus
from backend.common.pagination import PaginationParams
from backend.database import get_db
from backend.incidents.schemas import (
    IncidentCreate,
    IncidentResponse,
    IncidentReview,
    IncidentTypeCreate,
    IncidentTypeResponse,
    IncidentTypeUpdate,
    IncidentUpdate,
)
from backend.incidents.service import IncidentService, IncidentTypeService

incident_types_router = APIRouter(prefix="", tags=["incident-types"])
incidents_router = APIRouter(prefix="", tags=["incidents"])


def _incident_out(incident) -> dict:
    return IncidentResponse.model_validate(incident).model_dump(mode="json")


# ═════════════════════════════════════════════════════════════════════
# Incident types
# ═════════════════════════════════════════════════════════════════════


@incident_types_router.get("")
async def list_incident_types(
    is_active: Optional[bool] = Query(None),
    db: AsyncSession = Depends(get_db),
):
    types = await IncidentTypeService.list_types(db, is_active=is_active)
    return {
        "data": [
            IncidentTypeResponse.model_validate(t).model_dump(mode="json") for t in types
        ],
        "message": f"Found {len(types)} incident type(s).",
    }


@incident_types_router.post("", status_code=201)
async def create_incident_type(
    body: IncidentTypeCreate,
    db: AsyncSession = Depends(get_db),
):
    incident_type = await IncidentTypeService.create_type(db, body)
    return {
        "data": IncidentTypeResponse.model_validate(incident_type).model_dump(mode="json"),
        "message": "Incident type created successfully.",
    }


@incident_types_router.put("/{type_id}")
async def update_incident_type(
    type_id: uuid.UUID,
    body: IncidentTypeUpdate,
    db: AsyncSession = Depends(get_db),
):
    incident_type = await IncidentTypeService.update_type(db, type_id, body)
    return {
        "data": IncidentTypeResponse.model_validate(incident_type).model_dump(mode="json"),
        "message": "Incident type updated successfully.",
    }


@incident_types_router.delete("/{type_id}")
async def delete_incident_type(
    type_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
):
    deleted = await IncidentTypeService.delete_type(db, type_id)
    return {
        "data": {"id": str(type_id), "deleted": deleted},
        "message": (
            "Incident type deleted successfully."
            if deleted
            else "Incident type is in use and was deactivated."
        ),
    }


# ═════════════════════════════════════════════════════════════════════
# Incidents
# ═════════════════════════════════════════════════════════════════════


@incidents_router.get("")
async def list_incidents(
    db: AsyncSession = Depends(get_db),
    pagination: PaginationParams = Depends(),
    employee_id: Optional[uuid.UUID] = Query(None),
    status: Optional[IncidentStatus] = Query(None),
    incident_type_id: Optional[uuid.UUID] = Query(None),
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
):
    result = await IncidentService.list_incidents(
        db,
        pagination,
        employee_id=employee_id,
        status=status,
        incident_type_id=incident_type_id,
        start_date=start_date,
        end_date=end_date,
    )
    return {
        "data": [_incident_out(i) for i in result.data],
        "meta": result.meta.model_dump(),
    }


@incidents_router.post("", status_code=201)
async def create_incident(
    body: IncidentCreate,
    db: AsyncSession = Depends(get_db),
):
    incident = await IncidentService.create_incident(db, body)
    return {
        "data": _incident_out(incident),
        "message": "Incident registered successfully.",
    }


@incidents_router.get("/{incident_id}")
async def get_incident(
    incident_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
):
    incident = await IncidentService.get_incident(db, incident_id)
    return {
        "data": _incident_out(incident),
        "message": "Incident retrieved successfully.",
    }


@incidents_router.put("/{incident_id}")
async def update_incident(
    incident_id: uuid.UUID,
    body: IncidentUpdate,
    db: AsyncSession = Depends(get_db),
):
    incident = await IncidentService.update_incident(db, incident_id, body)
    return {
        "data": _incident_out(incident),
        "message": "Incident updated successfully.",
    }


@incidents_router.delete("/{incident_id}")
async def delete_incident(
    incident_id: uuid.UUID,
    actor_id: Optional[uuid.UUID] = Query(None),
    db: AsyncSession = Depends(get_db),
):
    await IncidentService.delete_incident(db, incident_id, actor_id=actor_id)
    return {
        "data": {"id": str(incident_id)},
        "message": "Incident deleted successfully.",
    }


@incidents_router.post("/{incident_id}/approve")
async def approve_incident(
    incident_id: uuid.UUID,
    body: IncidentReview,
    db: AsyncSession = Depends(get_db),
):
    incident = await IncidentService.approve_incident(db, incident_id, body)
    return {
        "data": _incident_out(incident),
        "message": "Incident approved.",
    }


@incidents_router.post("/{incident_id}/reject")
async def reject_incident(
    incident_id: uuid.UUID,
    body: IncidentReview,
    db: AsyncSession = Depends(get_db),
):
    incident = await IncidentService.reject_incident(db, incident_id, body)
    return {
        "data": _incident_out(incident),
        "message": "Incident rejected.",
    }
