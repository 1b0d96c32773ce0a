"""Incident service layer — incident types and the review workflow.

Business rules:
  - Every incident hangs off the employee's DailyWorkday for its date;
    the workday is created (empty) when it does not exist yet.
  - Status moves pending → approved or pending → rejected, once.
  - Only pending incidents can be edited.
  - An incident type still referenced by incidents is deactivated instead
    of deleted.
"""

from __future__ import annotations

import logging
import uuid
from datetime import date, datetime, timezone
from typing import Any, Optional

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from backend.common.audit import create_audit_entry
from backend.common.constants import IncidentStatus
from backend.common.exceptions import ConflictError, NotFoundException, ValidationException
from backend.common.filters import apply_filters
from backend.common.pagination import PaginatedResponse, PaginationParams, paginate
from backend.core_hr.service import EmployeeService
from backend.incidents.models import Incident, IncidentType
from backend.incidents.schemas import (
    IncidentCreate,
    IncidentReview,
    IncidentTypeCreate,
    IncidentTypeUpdate,
    IncidentUpdate,
)
from backend.workday.service import WorkdayService

logger = logging.getLogger(__name__)


# ═════════════════════════════════════════════════════════════════════
# IncidentTypeService
# ═════════════════════════════════════════════════════════════════════


class IncidentTypeService:

    @staticmethod
    async def _get_or_404(db: AsyncSession, type_id: uuid.UUID) -> IncidentType:
        incident_type = await db.get(IncidentType, type_id)
        if incident_type is None:
            raise NotFoundException("IncidentType", str(type_id))
        return incident_type

    @staticmethod
    async def list_types(
        db: AsyncSession,
        *,
        is_active: Optional[bool] = None,
    ) -> list[IncidentType]:
        query = apply_filters(select(IncidentType), IncidentType, {"is_active": is_active})
        result = await db.execute(query.order_by(IncidentType.name))
        return list(result.scalars().all())

    @staticmethod
    async def create_type(
        db: AsyncSession,
        data: IncidentTypeCreate,
    ) -> IncidentType:
        incident_type = IncidentType(**data.model_dump())
        db.add(incident_type)
        try:
            await db.flush()
        except IntegrityError:
            await db.rollback()
            raise ConflictError("name", data.name)

        await create_audit_entry(
            db,
            action="create",
            entity_type="incident_type",
            entity_id=incident_type.id,
            new_values=data.model_dump(mode="json"),
        )
        return incident_type

    @staticmethod
    async def update_type(
        db: AsyncSession,
        type_id: uuid.UUID,
        data: IncidentTypeUpdate,
    ) -> IncidentType:
        incident_type = await IncidentTypeService._get_or_404(db, type_id)
        changes = data.model_dump(exclude_unset=True)
        old_values = {k: getattr(incident_type, k) for k in changes}
        for field, value in changes.items():
            setattr(incident_type, field, value)
        try:
            await db.flush()
        except IntegrityError:
            await db.rollback()
            raise ConflictError("name", changes.get("name"))

        await create_audit_entry(
            db,
            action="update",
            entity_type="incident_type",
            entity_id=incident_type.id,
            old_values=old_values,
            new_values=changes,
        )
        return incident_type

    @staticmethod
    async def delete_type(db: AsyncSession, type_id: uuid.UUID) -> bool:
        """Delete the type, or deactivate it when incidents use it.

        Returns:
            True if the row was deleted, False if it was only deactivated.
        """
        incident_type = await IncidentTypeService._get_or_404(db, type_id)
        in_use = (
            await db.execute(
                select(func.count()).select_from(Incident).where(
                    Incident.incident_type_id == type_id,
                )
            )
        ).scalar_one()

        if in_use:
            incident_type.is_active = False
            await db.flush()
            action = "deactivate"
        else:
            await db.delete(incident_type)
            await db.flush()
            action = "delete"

        await create_audit_entry(
            db,
            action=action,
            entity_type="incident_type",
            entity_id=type_id,
            old_values={"name": incident_type.name, "incidents": in_use},
        )
        logger.info("Incident type %s: %s (%d incident(s))", type_id, action, in_use)
        return not in_use


# ═════════════════════════════════════════════════════════════════════
# IncidentService
# ═════════════════════════════════════════════════════════════════════


class IncidentService:

    @staticmethod
    async def _get_or_404(db: AsyncSession, incident_id: uuid.UUID) -> Incident:
        result = await db.execute(select(Incident).where(Incident.id == incident_id))
        incident = result.scalars().first()
        if incident is None:
            raise NotFoundException("Incident", str(incident_id))
        return incident

    @staticmethod
    def _ensure_pending(incident: Incident) -> None:
        if incident.status != IncidentStatus.pending:
            raise ValidationException(
                {"status": [f"Incident is already {incident.status.value}."]}
            )

    # ── List / get ──────────────────────────────────────────────────

    @staticmethod
    async def list_incidents(
        db: AsyncSession,
        pagination: PaginationParams,
        *,
        employee_id: Optional[uuid.UUID] = None,
        status: Optional[IncidentStatus] = None,
        incident_type_id: Optional[uuid.UUID] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> PaginatedResponse:
        filters: dict[str, Any] = {
            "employee_id": employee_id,
            "status": status,
            "incident_type_id": incident_type_id,
            "date__from": start_date,
            "date__to": end_date,
        }
        query = apply_filters(select(Incident), Incident, filters)
        if not pagination.sort:
            query = query.order_by(Incident.date.desc(), Incident.created_at.desc())
        return await paginate(db, query, pagination, model=Incident)

    @staticmethod
    async def get_incident(db: AsyncSession, incident_id: uuid.UUID) -> Incident:
        return await IncidentService._get_or_404(db, incident_id)

    # ── Create ──────────────────────────────────────────────────────

    @staticmethod
    async def create_incident(db: AsyncSession, data: IncidentCreate) -> Incident:
        await EmployeeService.get_employee(db, data.employee_id)
        incident_type = await IncidentTypeService._get_or_404(db, data.incident_type_id)
        if not incident_type.is_active:
            raise ValidationException(
                {"incident_type_id": [f"Incident type '{incident_type.name}' is inactive."]}
            )

        workday = await WorkdayService.find_or_create(db, data.employee_id, data.date)

        incident = Incident(
            employee_id=data.employee_id,
            workday_id=workday.id,
            date=data.date,
            incident_type_id=data.incident_type_id,
            description=data.description,
            status=IncidentStatus.pending,
            registered_by=data.registered_by,
        )
        db.add(incident)
        await db.flush()
        await db.refresh(incident, ["employee", "incident_type"])

        await create_audit_entry(
            db,
            action="create",
            entity_type="incident",
            entity_id=incident.id,
            actor_id=data.registered_by,
            new_values=data.model_dump(mode="json"),
        )
        logger.info(
            "Incident %s registered for employee %s on %s",
            incident.id, data.employee_id, data.date,
        )
        return incident

    # ── Update / delete ─────────────────────────────────────────────

    @staticmethod
    async def update_incident(
        db: AsyncSession,
        incident_id: uuid.UUID,
        data: IncidentUpdate,
    ) -> Incident:
        incident = await IncidentService._get_or_404(db, incident_id)
        IncidentService._ensure_pending(incident)

        changes = data.model_dump(exclude_unset=True, exclude={"actor_id"})
        if "incident_type_id" in changes:
            await IncidentTypeService._get_or_404(db, changes["incident_type_id"])

        old_values = {k: getattr(incident, k) for k in changes}
        for field, value in changes.items():
            setattr(incident, field, value)
        await db.flush()
        await db.refresh(incident, ["incident_type"])

        await create_audit_entry(
            db,
            action="update",
            entity_type="incident",
            entity_id=incident.id,
            actor_id=data.actor_id,
            old_values=old_values,
            new_values=changes,
        )
        return incident

    @staticmethod
    async def delete_incident(
        db: AsyncSession,
        incident_id: uuid.UUID,
        *,
        actor_id: Optional[uuid.UUID] = None,
    ) -> None:
        incident = await IncidentService._get_or_404(db, incident_id)
        old_values = {
            "employee_id": str(incident.employee_id),
            "date": incident.date.isoformat(),
            "status": incident.status.value,
        }
        await db.delete(incident)
        await db.flush()

        await create_audit_entry(
            db,
            action="delete",
            entity_type="incident",
            entity_id=incident_id,
            actor_id=actor_id,
            old_values=old_values,
        )

    # ── Review ──────────────────────────────────────────────────────

    @staticmethod
    async def _review(
        db: AsyncSession,
        incident_id: uuid.UUID,
        data: IncidentReview,
        status: IncidentStatus,
    ) -> Incident:
        incident = await IncidentService._get_or_404(db, incident_id)
        IncidentService._ensure_pending(incident)

        now = datetime.now(timezone.utc)
        old_status = incident.status.value
        incident.status = status
        incident.reviewed_by = data.reviewed_by
        incident.reviewed_at = now
        incident.reviewer_remarks = data.remarks
        incident.updated_at = now
        await db.flush()

        await create_audit_entry(
            db,
            action="approve" if status == IncidentStatus.approved else "reject",
            entity_type="incident",
            entity_id=incident.id,
            actor_id=data.reviewed_by,
            old_values={"status": old_status},
            new_values={"status": status.value, "remarks": data.remarks},
        )
        logger.info("Incident %s %s", incident.id, status.value)
        return incident

    @staticmethod
    async def approve_incident(
        db: AsyncSession,
        incident_id: uuid.UUID,
        data: IncidentReview,
    ) -> Incident:
        return await IncidentService._review(db, incident_id, data, IncidentStatus.approved)

    @staticmethod
    async def reject_incident(
        db: AsyncSession,
        incident_id: uuid.UUID,
        data: IncidentReview,
    ) -> Incident:
        return await IncidentService._review(db, incident_id, data, IncidentStatus.rejected)
