"""Annual calendar grid tests — month layout, padding, schedule flags."""

from __future__ import annotations

from datetime import date

import pytest

from backend.schedules.calendar import build_year_calendar, index_schedules


def _cells(month):
    return [cell for week in month.weeks for cell in week if cell is not None]


class TestYearGrid:

    def test_twelve_months_of_full_weeks(self):
        cal = build_year_calendar(2024, [], today=date(2024, 1, 1))
        assert len(cal.months) == 12
        assert [m.name for m in cal.months][:2] == ["January", "February"]
        for month in cal.months:
            assert all(len(week) == 7 for week in month.weeks)

    def test_monday_first_with_none_padding(self):
        # 1 June 2024 is a Saturday
        cal = build_year_calendar(2024, [], today=date(2024, 1, 1))
        first_week = cal.months[5].weeks[0]
        assert first_week[:5] == [None] * 5
        assert first_week[5].date == date(2024, 6, 1)
        assert first_week[6].date == date(2024, 6, 2)

    def test_leap_year_february(self):
        leap = build_year_calendar(2024, [], today=date(2024, 1, 1))
        common = build_year_calendar(2023, [], today=date(2023, 1, 1))
        assert len(_cells(leap.months[1])) == 29
        assert len(_cells(common.months[1])) == 28

    def test_every_day_once(self):
        cal = build_year_calendar(2025, [], today=date(2025, 1, 1))
        days = [cell.date for m in cal.months for cell in _cells(m)]
        assert len(days) == 365
        assert len(set(days)) == 365


class TestScheduleFlags:

    def test_scheduled_days_flagged(self):
        schedules = [
            {"date": date(2024, 6, 3), "start_time": "09:00", "end_time": "17:00"},
            {"date": date(2024, 12, 31), "start_time": "08:00", "end_time": "14:00"},
        ]
        cal = build_year_calendar(2024, schedules, today=date(2024, 6, 3))

        june = {c.iso: c for c in _cells(cal.months[5])}
        assert june["2024-06-03"].has_schedule is True
        assert june["2024-06-03"].schedule["start_time"] == "09:00"
        assert june["2024-06-03"].is_today is True
        assert june["2024-06-04"].has_schedule is False
        assert cal.scheduled_days == 2

    def test_selected_days(self):
        cal = build_year_calendar(
            2024, [], selected=[date(2024, 3, 10)], today=date(2024, 1, 1),
        )
        march = {c.iso: c for c in _cells(cal.months[2])}
        assert march["2024-03-10"].is_selected is True
        assert march["2024-03-11"].is_selected is False

    def test_duplicate_dates_rejected(self):
        dup = [{"date": date(2024, 6, 3)}, {"date": date(2024, 6, 3)}]
        with pytest.raises(ValueError):
            index_schedules(dup)
        with pytest.raises(ValueError):
            build_year_calendar(2024, dup)
