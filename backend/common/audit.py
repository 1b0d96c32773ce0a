"""Timestamp mixin and the append-only audit trail.

Every service mutation (schedule bulk operations, workday edits, incident
reviews, HR changes) writes one ``AuditTrail`` row in the same session,
so the log commits or rolls back together with the change it describes.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Any, Optional

from pydantic_core import to_jsonable_python
from sqlalchemy import DateTime, Index, String
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import Mapped, mapped_column

from backend.database import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class AuditMixin:
    """
    ``created_at`` / ``updated_at`` / ``created_by`` columns::

        class DateSchedule(Base, AuditMixin):
            ...

    ``created_by`` is an opaque actor id with no foreign key; callers
    pass it through from the request body.
    """

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=_utcnow,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=_utcnow,
        onupdate=_utcnow,
    )
    created_by: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True),
        nullable=True,
    )


class AuditTrail(Base):
    """One row per mutation; never updated or deleted by the application."""

    __tablename__ = "audit_trail"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    actor_id: Mapped[Optional[uuid.UUID]] = mapped_column(UUID(as_uuid=True))
    action: Mapped[str] = mapped_column(String(50), nullable=False)
    entity_type: Mapped[str] = mapped_column(String(50), nullable=False)
    entity_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), nullable=False)
    old_values: Mapped[Optional[dict]] = mapped_column(JSONB)
    new_values: Mapped[Optional[dict]] = mapped_column(JSONB)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=_utcnow,
    )

    __table_args__ = (
        Index("ix_audit_trail_actor_id", "actor_id"),
        Index("ix_audit_trail_entity", "entity_type", "entity_id"),
        Index("ix_audit_trail_created_at", "created_at"),
        Index("ix_audit_trail_action", "action"),
    )

    def __repr__(self) -> str:
        return f"<AuditTrail {self.action} {self.entity_type}/{self.entity_id}>"


def _jsonable(values: Optional[dict[str, Any]]) -> Optional[dict[str, Any]]:
    """UUIDs, dates and enums → JSON primitives, so JSONB accepts the row."""
    if values is None:
        return None
    return to_jsonable_python(values)


async def create_audit_entry(
    session: AsyncSession,
    *,
    action: str,
    entity_type: str,
    entity_id: uuid.UUID,
    actor_id: Optional[uuid.UUID] = None,
    old_values: Optional[dict[str, Any]] = None,
    new_values: Optional[dict[str, Any]] = None,
) -> AuditTrail:
    """
    Add and flush an audit row.

    Args:
        action: create | update | delete | deactivate | bulk_create |
            bulk_delete | modify | copy | copy_to_year | generate |
            clock_in ... clock_out | force_update | approve | reject
        entity_type: "employee", "date_schedule", "daily_workday", "incident", ...
        entity_id: The affected row; for bulk actions, the employee.
        old_values / new_values: Plain dicts; values need not be JSON-ready.
    """
    entry = AuditTrail(
        actor_id=actor_id,
        action=action,
        entity_type=entity_type,
        entity_id=entity_id,
        old_values=_jsonable(old_values),
        new_values=_jsonable(new_values),
    )
    session.add(entry)
    await session.flush()
    return entry

