"""DateSchedule ORM model — one planned working interval per employee per date."""

from __future__ import annotations

import datetime as dt
import uuid
from typing import TYPE_CHECKING, Optional

import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from backend.common.audit import AuditMixin
from backend.common.constants import ScheduleType
from backend.database import Base

if TYPE_CHECKING:
    from backend.core_hr.models import Employee


class DateSchedule(Base, AuditMixin):
    """Planned start/end (and optional break) for a single calendar date.

    Times are stored as zero-padded ``HH:MM`` strings; all arithmetic goes
    through ``backend.common.time_utils`` and yields integer minutes.
    """

    __tablename__ = "date_schedules"
    __table_args__ = (
        sa.UniqueConstraint(
            "employee_id", "date", name="uq_date_schedule_emp_date",
        ),
        sa.Index("ix_date_schedules_date", "date"),
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
    date: Mapped[dt.date] = mapped_column(sa.Date, nullable=False)
    start_time: Mapped[str] = mapped_column(sa.String(5), nullable=False)
    end_time: Mapped[str] = mapped_column(sa.String(5), nullable=False)
    start_break: Mapped[Optional[str]] = mapped_column(sa.String(5))
    end_break: Mapped[Optional[str]] = mapped_column(sa.String(5))
    schedule_type: Mapped[ScheduleType] = mapped_column(
        sa.Enum(ScheduleType, name="schedule_type"),
        nullable=False,
        default=ScheduleType.total,
    )

    # ── Relationships ───────────────────────────────────────────────
    employee: Mapped[Employee] = relationship(back_populates="date_schedules")

    def __repr__(self) -> str:
        return (
            f"<DateSchedule {self.employee_id} {self.date} "
            f"{self.start_time}-{self.end_time}>"
        )
