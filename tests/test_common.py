"""Tests for common utilities — filters, pagination, time helpers and
RFC 7807 error bodies.
"""

from __future__ import annotations

from datetime import date, datetime, timedelta, timezone

import pytest
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from backend.common.exceptions import (
    ConfirmationRequiredException,
    ConflictError,
    NotFoundException,
    ValidationException,
    field_errors,
)
from backend.common.filters import apply_filters, apply_search, apply_sorting
from backend.common.pagination import PaginationParams, paginate
from backend.common.time_utils import (
    as_utc,
    floor_minutes,
    format_minutes,
    is_valid_hhmm,
    minutes_between,
    normalize_hhmm,
    parse_hhmm,
)
from backend.core_hr.models import Employee
from tests.conftest import _make_employee


# ── Helpers ─────────────────────────────────────────────────────────


async def _seed_employees(db: AsyncSession, *names: str, **kwargs) -> list[Employee]:
    rows = [Employee(**_make_employee(first_name=name, **kwargs)) for name in names]
    db.add_all(rows)
    await db.flush()
    return rows


# ═════════════════════════════════════════════════════════════════════
# FILTERS
# ═════════════════════════════════════════════════════════════════════


class TestApplyFilters:

    async def test_equality_and_none_skipped(self, db: AsyncSession):
        await _seed_employees(db, "Alice", "Bob")

        query = apply_filters(
            select(Employee), Employee, {"first_name": "Alice", "role_id": None},
        )
        rows = (await db.execute(query)).scalars().all()
        assert [e.first_name for e in rows] == ["Alice"]

    async def test_from_to_range(self, db: AsyncSession):
        await _seed_employees(db, "Old", hire_date=date(2023, 3, 1))
        await _seed_employees(db, "Mid", hire_date=date(2024, 6, 1))
        await _seed_employees(db, "New", hire_date=date(2025, 9, 1))

        query = apply_filters(select(Employee), Employee, {
            "hire_date__from": date(2024, 1, 1),
            "hire_date__to": date(2024, 12, 31),
        })
        rows = (await db.execute(query)).scalars().all()
        assert [e.first_name for e in rows] == ["Mid"]

    async def test_in_and_ilike(self, db: AsyncSession):
        await _seed_employees(db, "Alice", "Bob", "Charlie")

        query = apply_filters(select(Employee), Employee, {
            "first_name__in": ["Alice", "Charlie"],
            "first_name__ilike": "CHAR",
        })
        rows = (await db.execute(query)).scalars().all()
        assert [e.first_name for e in rows] == ["Charlie"]

    async def test_not_in_and_isnull(self, db: AsyncSession):
        alice, bob, _ = await _seed_employees(db, "Alice", "Bob", "Charlie")
        bob.convention_hours = 1600
        await db.flush()

        query = apply_filters(select(Employee), Employee, {
            "id__not_in": [alice.id],
            "convention_hours__isnull": True,
        })
        rows = (await db.execute(query)).scalars().all()
        assert [e.first_name for e in rows] == ["Charlie"]

    async def test_empty_in_list_skipped(self, db: AsyncSession):
        await _seed_employees(db, "Alice", "Bob")
        query = apply_filters(select(Employee), Employee, {"id__not_in": ()})
        assert len((await db.execute(query)).scalars().all()) == 2

    async def test_unknown_column_ignored(self, db: AsyncSession):
        await _seed_employees(db, "Solo")
        query = apply_filters(select(Employee), Employee, {"nonexistent": 1})
        assert len((await db.execute(query)).scalars().all()) == 1


class TestSearchAndSort:

    async def test_search_across_columns(self, db: AsyncSession):
        await _seed_employees(db, "Maria", "Jon")
        query = apply_search(select(Employee), Employee, "  mar ", ["first_name", "email"])
        rows = (await db.execute(query)).scalars().all()
        assert [e.first_name for e in rows] == ["Maria"]

    async def test_blank_search_is_noop(self):
        query = select(Employee)
        assert apply_search(query, Employee, "   ", ["first_name"]) is query

    async def test_sort_descending(self, db: AsyncSession):
        await _seed_employees(db, "Charlie", "Alice", "Bob")
        query = apply_sorting(select(Employee), Employee, "-first_name")
        rows = (await db.execute(query)).scalars().all()
        assert [e.first_name for e in rows] == ["Charlie", "Bob", "Alice"]

    async def test_search_every_term_must_match(self, db: AsyncSession):
        await _seed_employees(db, "Ana", last_name="Alvarez")
        await _seed_employees(db, "Ana", last_name="Blanco")
        query = apply_search(
            select(Employee), Employee, "ana alv", ["first_name", "last_name"],
        )
        rows = (await db.execute(query)).scalars().all()
        assert [e.last_name for e in rows] == ["Alvarez"]

    async def test_multi_column_sort(self, db: AsyncSession):
        await _seed_employees(db, "Bea", last_name="Zubiri")
        await _seed_employees(db, "Ana", "Carla", last_name="Zubiri")
        await _seed_employees(db, "Dora", last_name="Abad")
        query = apply_sorting(select(Employee), Employee, "last_name,-first_name")
        rows = (await db.execute(query)).scalars().all()
        assert [e.first_name for e in rows] == ["Dora", "Carla", "Bea", "Ana"]

    def test_unknown_sort_field(self):
        with pytest.raises(ValidationException) as exc_info:
            apply_sorting(select(Employee), Employee, "salary")
        assert "sort" in exc_info.value.errors


# ═════════════════════════════════════════════════════════════════════
# PAGINATION
# ═════════════════════════════════════════════════════════════════════


class TestPagination:

    async def test_second_page(self, db: AsyncSession):
        await _seed_employees(db, *(f"P{i}" for i in range(5)))

        params = PaginationParams(page=2, page_size=3, sort="first_name")
        result = await paginate(db, select(Employee), params, model=Employee)
        assert [e.first_name for e in result.data] == ["P3", "P4"]
        assert result.meta.total_pages == 2
        assert result.meta.has_prev is True
        assert result.meta.has_next is False

    async def test_empty(self, db: AsyncSession):
        params = PaginationParams(page=1, page_size=10, sort=None)
        result = await paginate(db, select(Employee), params, model=Employee)
        assert result.data == []
        assert result.meta.total == 0
        assert result.meta.total_pages == 0

    async def test_ties_broken_by_primary_key(self, db: AsyncSession):
        rows = await _seed_employees(db, *(["Same"] * 4))
        expected = sorted(e.id for e in rows)

        seen = []
        for page in (1, 2):
            params = PaginationParams(page=page, page_size=2, sort="first_name")
            result = await paginate(db, select(Employee), params, model=Employee)
            seen.extend(e.id for e in result.data)
        assert sorted(seen) == expected
        assert len(set(seen)) == 4

    async def test_unknown_sort_is_422(self, client):
        resp = await client.get("/api/v1/employees", params={"sort": "-salary"})
        assert resp.status_code == 422
        assert "sort" in resp.json()["errors"]


# ═════════════════════════════════════════════════════════════════════
# TIME HELPERS
# ═════════════════════════════════════════════════════════════════════


class TestTimeUtils:

    @pytest.mark.parametrize("value", ["00:00", "9:00", "09:30", "23:59"])
    def test_valid_times(self, value):
        assert is_valid_hhmm(value)

    @pytest.mark.parametrize("value", ["", "24:00", "12:60", "9:5", "noon"])
    def test_invalid_times(self, value):
        assert not is_valid_hhmm(value)

    def test_parse_and_format(self):
        assert parse_hhmm("13:45") == 825
        assert format_minutes(825) == "13:45"
        assert normalize_hhmm("7:05") == "07:05"
        assert minutes_between("09:00", "17:30") == 510

    def test_parse_rejects_garbage(self):
        with pytest.raises(ValueError):
            parse_hhmm("25:00")

    def test_non_string_time_is_invalid(self):
        assert not is_valid_hhmm(900)
        assert not is_valid_hhmm(None)
        with pytest.raises(ValueError):
            parse_hhmm(900)

    def test_as_utc_and_floor(self):
        naive = datetime(2024, 6, 3, 9, 0)
        aware = as_utc(naive)
        assert aware.tzinfo == timezone.utc
        assert as_utc(None) is None
        assert floor_minutes(naive, aware + timedelta(minutes=90, seconds=59)) == 90


# ═════════════════════════════════════════════════════════════════════
# EXCEPTIONS
# ═════════════════════════════════════════════════════════════════════


class TestExceptions:

    def test_status_codes(self):
        assert NotFoundException("Employee", "x").status_code == 404
        assert ConflictError("name", "Sales").status_code == 409
        assert ValidationException({"date": ["bad"]}).status_code == 422

    def test_confirmation_required_points_at_force(self):
        exc = ConfirmationRequiredException("Workday", "Has clock entries.")
        assert exc.status_code == 409
        assert exc.error_type == "confirmation-required"
        assert "force" in exc.errors

    def test_field_errors_split_rule_messages(self):
        errors = field_errors([
            {"loc": ("body", "schedules", 0), "type": "value_error",
             "msg": "Value error, end_time: End must be after start.; start_break: Outside span."},
            {"loc": ("query", "year"), "type": "missing", "msg": "Field required"},
            {"loc": ("body", "email"), "type": "value_error",
             "msg": "value is not a valid email address: An email address must have an @-sign."},
        ])
        assert errors["schedules.0.end_time"] == ["End must be after start."]
        assert errors["schedules.0.start_break"] == ["Outside span."]
        assert errors["year"] == ["Field required"]
        assert list(errors) == [
            "schedules.0.end_time", "schedules.0.start_break", "year", "email",
        ]

    async def test_problem_json_body(self, client):
        resp = await client.get("/api/v1/departments/not-a-uuid")
        assert resp.status_code == 422
        body = resp.json()
        assert body["type"].endswith("/validation-error")
        assert body["instance"] == "/api/v1/departments/not-a-uuid"
        assert "department_id" in body["errors"]

    async def test_health(self, client):
        resp = await client.get("/api/v1/health")
        assert resp.status_code == 200
        assert resp.json()["status"] == "healthy"
