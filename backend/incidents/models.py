"""Incident ORM models: IncidentType, Incident."""

from __future__ import annotations

import datetime as dt
import uuid
from typing import TYPE_CHECKING, Optional

import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from backend.common.audit import _utcnow
from backend.common.constants import IncidentStatus
from backend.database import Base

if TYPE_CHECKING:
    from backend.core_hr.models import Employee
    from backend.workday.models import DailyWorkday


class IncidentType(Base):
    """Catalogue entry: medical leave, delay, forgotten clock-in, ..."""

    __tablename__ = "incident_types"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    name: Mapped[str] = mapped_column(sa.String(100), unique=True, nullable=False)
    description: Mapped[Optional[str]] = mapped_column(sa.Text)
    is_active: Mapped[bool] = mapped_column(sa.Boolean, nullable=False, default=True)
    created_at: Mapped[dt.datetime] = mapped_column(
        sa.DateTime(timezone=True), nullable=False, default=_utcnow,
    )
    updated_at: Mapped[dt.datetime] = mapped_column(
        sa.DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow,
    )

    incidents: Mapped[list[Incident]] = relationship(back_populates="incident_type")

    def __repr__(self) -> str:
        return f"<IncidentType {self.name!r}>"


class Incident(Base):
    """An absence or anomaly reported against one employee's date.

    ``date`` is kept on the row so the incident survives the deletion of
    its workday (``workday_id`` is then set to NULL).
    """

    __tablename__ = "incidents"
    __table_args__ = (
        sa.Index("ix_incidents_employee_date", "employee_id", "date"),
        sa.Index("ix_incidents_status", "status"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    employee_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        sa.ForeignKey("employees.id", ondelete="CASCADE"),
        nullable=False,
    )
    workday_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True),
        sa.ForeignKey("daily_workdays.id", ondelete="SET NULL"),
    )
    date: Mapped[dt.date] = mapped_column(sa.Date, nullable=False)
    incident_type_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        sa.ForeignKey("incident_types.id"),
        nullable=False,
    )
    description: Mapped[str] = mapped_column(sa.Text, nullable=False)
    status: Mapped[IncidentStatus] = mapped_column(
        sa.Enum(IncidentStatus, name="incident_status"),
        nullable=False,
        default=IncidentStatus.pending,
    )
    registered_by: Mapped[Optional[uuid.UUID]] = mapped_column(UUID(as_uuid=True))
    reviewed_by: Mapped[Optional[uuid.UUID]] = mapped_column(UUID(as_uuid=True))
    reviewed_at: Mapped[Optional[dt.datetime]] = mapped_column(sa.DateTime(timezone=True))
    reviewer_remarks: Mapped[Optional[str]] = mapped_column(sa.Text)
    created_at: Mapped[dt.datetime] = mapped_column(
        sa.DateTime(timezone=True), nullable=False, default=_utcnow,
    )
    updated_at: Mapped[dt.datetime] = mapped_column(
        sa.DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow,
    )

    # ── Relationships ───────────────────────────────────────────────
    employee: Mapped[Employee] = relationship(lazy="selectin")
    incident_type: Mapped[IncidentType] = relationship(
        back_populates="incidents", lazy="selectin",
    )
    workday: Mapped[Optional[DailyWorkday]] = relationship()

    def __repr__(self) -> str:
        return f"<Incident {self.employee_id} {self.date} {self.status}>"
