"""Workday ORM models: DailyWorkday, ClockEntry."""

from __future__ import annotations

import datetime as dt
import uuid
from typing import TYPE_CHECKING, Optional

import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from backend.common.audit import AuditMixin, _utcnow
from backend.common.constants import ClockEntryType, ClockSource
from backend.database import Base

if TYPE_CHECKING:
    from backend.core_hr.models import Employee


class DailyWorkday(Base, AuditMixin):
    """Consolidated attendance for one employee on one date.

    ``start_time`` / ``end_time`` are the first clock-in and last clock-out;
    the minute columns are recalculated from ``clock_entries`` on every
    change.
    """

    __tablename__ = "daily_workdays"
    __table_args__ = (
        sa.UniqueConstraint("employee_id", "date", name="uq_daily_workday_emp_date"),
        sa.Index("ix_daily_workdays_date", "date"),
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
    start_time: Mapped[Optional[dt.datetime]] = mapped_column(sa.DateTime(timezone=True))
    end_time: Mapped[Optional[dt.datetime]] = mapped_column(sa.DateTime(timezone=True))
    worked_minutes: Mapped[int] = mapped_column(sa.Integer, nullable=False, default=0)
    break_minutes: Mapped[int] = mapped_column(sa.Integer, nullable=False, default=0)
    overtime_minutes: Mapped[int] = mapped_column(sa.Integer, nullable=False, default=0)
    is_manual: Mapped[bool] = mapped_column(sa.Boolean, nullable=False, default=False)

    # ── Relationships ───────────────────────────────────────────────
    employee: Mapped[Employee] = relationship(
        back_populates="workdays", lazy="selectin",
    )
    clock_entries: Mapped[list[ClockEntry]] = relationship(
        back_populates="workday",
        cascade="all, delete-orphan",
        order_by="ClockEntry.timestamp",
        lazy="selectin",
    )

    def __repr__(self) -> str:
        return f"<DailyWorkday {self.employee_id} {self.date} {self.worked_minutes}m>"


class ClockEntry(Base):
    """A single clock event (in / out / break start / break end)."""

    __tablename__ = "clock_entries"
    __table_args__ = (
        sa.Index("ix_clock_entries_employee_ts", "employee_id", "timestamp"),
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
    workday_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        sa.ForeignKey("daily_workdays.id", ondelete="CASCADE"),
        nullable=False,
    )
    entry_type: Mapped[ClockEntryType] = mapped_column(
        sa.Enum(ClockEntryType, name="clock_entry_type"),
        nullable=False,
    )
    timestamp: Mapped[dt.datetime] = mapped_column(
        sa.DateTime(timezone=True), nullable=False,
    )
    source: Mapped[ClockSource] = mapped_column(
        sa.Enum(ClockSource, name="clock_source"),
        nullable=False,
        default=ClockSource.web,
    )
    auto_generated: Mapped[bool] = mapped_column(sa.Boolean, nullable=False, default=False)
    created_at: Mapped[dt.datetime] = mapped_column(
        sa.DateTime(timezone=True), nullable=False, default=_utcnow,
    )

    # ── Relationships ───────────────────────────────────────────────
    workday: Mapped[DailyWorkday] = relationship(back_populates="clock_entries")

    def __repr__(self) -> str:
        return f"<ClockEntry {self.entry_type} {self.timestamp}>"
