"""Enums and constants for the attendance platform — matching PostgreSQL ENUM types."""

from __future__ import annotations

import enum
import re


# ── Schedules ───────────────────────────────────────────────────────

class ScheduleType(str, enum.Enum):
    total = "total"
    split = "split"


# ── Clock / Workday ─────────────────────────────────────────────────

class ClockEntryType(str, enum.Enum):
    clock_in = "clock_in"
    break_start = "break_start"
    break_end = "break_end"
    clock_out = "clock_out"


class ClockSource(str, enum.Enum):
    web = "web"
    mobile_device = "mobile_device"


# ── Incidents ───────────────────────────────────────────────────────

class IncidentStatus(str, enum.Enum):
    pending = "pending"
    approved = "approved"
    rejected = "rejected"


# ── Misc constants ──────────────────────────────────────────────────

DATE_FORMAT = "%Y-%m-%d"          # ISO: 2024-06-03
TIME_PATTERN = re.compile(r"^([01]?[0-9]|2[0-3]):[0-5][0-9]$")
MAX_PAGE_SIZE = 100
DEFAULT_PAGE_SIZE = 50
