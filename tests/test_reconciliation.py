"""Hours reconciliation and schedule-rule tests (pure functions)."""

from __future__ import annotations

from datetime import date

import pytest

from backend.reports.reconciliation import (
    TIER_FAIR,
    TIER_GOOD,
    TIER_POOR,
    TIER_WARNING,
    assigned_minutes,
    hours_from_minutes,
    percentage_worked,
    progress_tier,
    reconcile,
    total_assigned_minutes,
)
from backend.schedules.rules import date_range_errors, flatten_errors, schedule_time_errors


# ═════════════════════════════════════════════════════════════════════
# 1. RECONCILIATION
# ═════════════════════════════════════════════════════════════════════


class TestPercentage:

    def test_half_of_convention(self):
        assert percentage_worked(876, 1752) == 50.0

    def test_zero_convention(self):
        assert percentage_worked(100, 0) == 0.0

    @pytest.mark.parametrize(
        "pct, tier",
        [(95, TIER_GOOD), (90, TIER_GOOD), (75, TIER_FAIR), (50, TIER_WARNING), (10, TIER_POOR)],
    )
    def test_tiers(self, pct, tier):
        assert progress_tier(pct) == tier


class TestAssignedMinutes:

    def test_break_subtracted(self):
        sched = {
            "start_time": "09:00", "end_time": "17:00",
            "start_break": "13:00", "end_break": "14:00",
        }
        assert assigned_minutes(sched) == 420
        assert hours_from_minutes(assigned_minutes(sched)) == 7.0

    def test_half_break_ignored(self):
        sched = {"start_time": "09:00", "end_time": "17:00", "start_break": "13:00"}
        assert assigned_minutes(sched) == 480

    def test_total(self):
        rows = [
            {"start_time": "08:00", "end_time": "12:00"},
            {"start_time": "16:00", "end_time": "20:30"},
        ]
        assert total_assigned_minutes(rows) == 510


class TestReconcile:

    def test_row(self):
        row = reconcile(876 * 60, 900 * 60, 1752)
        assert row["worked_hours"] == 876.0
        assert row["assigned_hours"] == 900.0
        assert row["remaining_hours"] == 876.0
        assert row["percentage_worked"] == 50.0
        assert row["tier"] == TIER_WARNING

    def test_remaining_never_negative(self):
        row = reconcile(2000 * 60, 0, 1752)
        assert row["remaining_hours"] == 0.0
        assert row["tier"] == TIER_GOOD


# ═════════════════════════════════════════════════════════════════════
# 2. SCHEDULE RULES
# ═════════════════════════════════════════════════════════════════════


class TestScheduleRules:

    def test_valid(self):
        assert schedule_time_errors("09:00", "17:00", "13:00", "14:00") == {}

    def test_end_before_start(self):
        errors = schedule_time_errors("17:00", "09:00")
        assert "end_time" in errors

    def test_bad_format(self):
        assert "start_time" in schedule_time_errors("9am", "17:00")

    def test_too_long(self):
        assert "end_time" in schedule_time_errors("06:00", "19:00")

    def test_break_outside_span(self):
        assert "start_break" in schedule_time_errors("09:00", "17:00", "08:00", "09:30")

    def test_break_half_given(self):
        assert "end_break" in schedule_time_errors("09:00", "17:00", "13:00", None)

    def test_date_range(self):
        assert date_range_errors(date(2024, 1, 1), date(2024, 12, 31)) == {}
        assert "start_date" in date_range_errors(date(2024, 2, 1), date(2024, 1, 1))
        assert "end_date" in date_range_errors(
            date(2024, 1, 1), date(2024, 1, 31), max_days=7,
        )

    def test_flatten(self):
        assert flatten_errors({"a": ["x"], "b": ["y", "z"]}) == "a: x; b: y; b: z"
