"""Incident Pydantic v2 schemas."""


import datetime as dt
import uuid
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from backend.common.constants import IncidentStatus
from backend.core_hr.schemas import EmployeeSummary


# ═════════════════════════════════════════════════════════════════════
# Incident types
# ═════════════════════════════════════════════════════════════════════


class IncidentTypeCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = None


class IncidentTypeUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = None
    is_active: Optional[bool] = None


class IncidentTypeResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    name: str
    description: Optional[str] = None
    is_active: bool
    created_at: dt.datetime
    updated_at: dt.datetime


class IncidentTypeBrief(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    name: str


# ═════════════════════════════════════════════════════════════════════
# Incidents — write
# ═════════════════════════════════════════════════════════════════════


class IncidentCreate(BaseModel):
    """Report an incident; the workday for ``date`` is created if missing."""

    employee_id: uuid.UUID
    date: dt.date
    incident_type_id: uuid.UUID
    description: str = Field(..., min_length=1, max_length=2000)
    registered_by: Optional[uuid.UUID] = None


class IncidentUpdate(BaseModel):
    """Only allowed while the incident is pending."""

    incident_type_id: Optional[uuid.UUID] = None
    description: Optional[str] = Field(None, min_length=1, max_length=2000)
    actor_id: Optional[uuid.UUID] = None


class IncidentReview(BaseModel):
    """Body of ``/approve`` and ``/reject``."""

    reviewed_by: Optional[uuid.UUID] = None
    remarks: Optional[str] = Field(None, max_length=1000)


# ═════════════════════════════════════════════════════════════════════
# Incidents — read
# ═════════════════════════════════════════════════════════════════════


class IncidentResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    employee_id: uuid.UUID
    workday_id: Optional[uuid.UUID] = None
    date: dt.date
    incident_type_id: uuid.UUID
    description: str
    status: IncidentStatus
    registered_by: Optional[uuid.UUID] = None
    reviewed_by: Optional[uuid.UUID] = None
    reviewed_at: Optional[dt.datetime] = None
    reviewer_remarks: Optional[str] = None
    created_at: dt.datetime
    updated_at: dt.datetime

    employee: Optional[EmployeeSummary] = None
    incident_type: Optional[IncidentTypeBrief] = None
