"""Fixtures shared by every test module.

Tests run against in-memory SQLite (aiosqlite) behind a ``StaticPool``, so
the ``db`` fixture and the sessions the app opens per request see the same
tables and rows. Row factories at the bottom return plain dicts that tests
compare API output against.
"""

from __future__ import annotations

import uuid
from datetime import date, datetime, timezone
from typing import AsyncGenerator

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.dialects.postgresql import JSONB, UUID as PG_UUID
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.ext.compiler import compiles
from sqlalchemy.pool import StaticPool

from backend.common.rate_limit import limiter
from backend.database import Base, get_db
from backend.main import create_app

# Every mapper must be registered before create_all resolves the
# Employee ↔ DateSchedule / DailyWorkday / Incident relationships.
import backend.common.audit  # noqa: F401
import backend.core_hr.models  # noqa: F401
import backend.incidents.models  # noqa: F401
import backend.schedules.models  # noqa: F401
import backend.workday.models  # noqa: F401


# ── PostgreSQL column types on SQLite ───────────────────────────────

@compiles(JSONB, "sqlite")
def _jsonb_sqlite(element, compiler, **kw):
    return "TEXT"


@compiles(PG_UUID, "sqlite")
def _uuid_sqlite(element, compiler, **kw):
    return "CHAR(36)"


engine = create_async_engine(
    "sqlite+aiosqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestSessionFactory = async_sessionmaker(engine, expire_on_commit=False)


@pytest.fixture(autouse=True)
async def _schema():
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest.fixture(autouse=True)
def _fresh_limits():
    """The copy endpoint's per-minute limit must not leak between tests."""
    limiter.reset()
    yield


async def _request_session() -> AsyncGenerator[AsyncSession, None]:
    """Stand-in for ``get_db`` with the same commit-once semantics."""
    async with TestSessionFactory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


# ── App and HTTP client ─────────────────────────────────────────────

@pytest.fixture
async def app():
    application = create_app()
    application.dependency_overrides[get_db] = _request_session
    yield application
    application.dependency_overrides.clear()


@pytest.fixture
async def client(app) -> AsyncGenerator[AsyncClient, None]:
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


@pytest.fixture
async def db() -> AsyncGenerator[AsyncSession, None]:
    """Session for seeding rows and calling services directly."""
    async with TestSessionFactory() as session:
        yield session
        await session.commit()


# ── Model factories ─────────────────────────────────────────────────

def _make_department(
    *,
    name: str = "Operations",
    convention_hours: int | None = None,
) -> dict:
    return dict(
        id=uuid.uuid4(),
        name=name,
        convention_hours=convention_hours,
        is_active=True,
        created_at=datetime.now(timezone.utc),
        updated_at=datetime.now(timezone.utc),
    )


def _make_role(*, name: str = "Cashier") -> dict:
    return dict(
        id=uuid.uuid4(),
        name=name,
        created_at=datetime.now(timezone.utc),
        updated_at=datetime.now(timezone.utc),
    )


def _make_employee(
    *,
    email: str | None = None,
    first_name: str = "Test",
    last_name: str = "User",
    department_id: uuid.UUID | None = None,
    role_id: uuid.UUID | None = None,
    hire_date: date = date(2024, 1, 15),
    convention_hours: int | None = None,
    is_active: bool = True,
) -> dict:
    code = uuid.uuid4().hex[:6].upper()
    return dict(
        id=uuid.uuid4(),
        employee_code=f"EMP-{code}",
        first_name=first_name,
        last_name=last_name,
        email=email or f"user.{code.lower()}@example.com",
        hire_date=hire_date,
        department_id=department_id,
        role_id=role_id,
        convention_hours=convention_hours,
        is_active=is_active,
        created_at=datetime.now(timezone.utc),
        updated_at=datetime.now(timezone.utc),
    )


def _make_schedule(
    employee_id: uuid.UUID,
    day: date,
    *,
    start_time: str = "09:00",
    end_time: str = "17:00",
    start_break: str | None = None,
    end_break: str | None = None,
) -> dict:
    return dict(
        id=uuid.uuid4(),
        employee_id=employee_id,
        date=day,
        start_time=start_time,
        end_time=end_time,
        start_break=start_break,
        end_break=end_break,
    )


def _make_incident_type(*, name: str = "Delay", is_active: bool = True) -> dict:
    return dict(
        id=uuid.uuid4(),
        name=name,
        description=f"{name} incidents",
        is_active=is_active,
        created_at=datetime.now(timezone.utc),
        updated_at=datetime.now(timezone.utc),
    )


async def insert_employee(db: AsyncSession, **kwargs) -> dict:
    """Insert an employee built by ``_make_employee`` and commit."""
    from backend.core_hr.models import Employee

    data = _make_employee(**kwargs)
    db.add(Employee(**data))
    await db.commit()
    return data


async def insert_schedules(db: AsyncSession, employee_id: uuid.UUID, days, **kwargs) -> list[dict]:
    from backend.schedules.models import DateSchedule

    rows = [_make_schedule(employee_id, day, **kwargs) for day in days]
    db.add_all([DateSchedule(**row) for row in rows])
    await db.commit()
    return rows


async def insert_incident_type(db: AsyncSession, **kwargs) -> dict:
    from backend.incidents.models import IncidentType

    data = _make_incident_type(**kwargs)
    db.add(IncidentType(**data))
    await db.commit()
    return data


@pytest.fixture
async def test_department(db) -> dict:
    """Insert a test department."""
    from backend.core_hr.models import Department

    data = _make_department()
    db.add(Department(**data))
    await db.commit()
    return data


@pytest.fixture
async def test_role(db) -> dict:
    from backend.core_hr.models import Role

    data = _make_role()
    db.add(Role(**data))
    await db.commit()
    return data


@pytest.fixture
async def test_employee(db, test_department) -> dict:
    """Insert an active employee in test_department."""
    return await insert_employee(
        db,
        email="test.user@example.com",
        department_id=test_department["id"],
    )
