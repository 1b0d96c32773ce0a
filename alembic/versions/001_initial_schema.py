"""001 – Initial schema: all tables, indexes, enums.

Revision ID: 001_initial_schema
Revises:
Create Date: 2026-10-18 09:00:00.000000+00:00
"""

from alembic import op
import sqlalchemy as sa

# Revision identifiers
revision = "001_initial_schema"
down_revision = None
branch_labels = None
depends_on = None


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

ENUM_TYPES: list[tuple[str, list[str]]] = [
    ("schedule_type", ["total", "split"]),
    ("clock_entry_type", ["clock_in", "break_start", "break_end", "clock_out"]),
    ("clock_source", ["web", "mobile_device"]),
    ("incident_status", ["pending", "approved", "rejected"]),
]


def _create_enum(name: str, values: list[str]) -> None:
    vals = ", ".join(f"'{v}'" for v in values)
    op.execute(f"CREATE TYPE {name} AS ENUM ({vals})")


def _drop_enum(name: str) -> None:
    op.execute(f"DROP TYPE IF EXISTS {name}")


# ---------------------------------------------------------------------------
# UPGRADE
# ---------------------------------------------------------------------------


def upgrade() -> None:
    # ── Extensions ────────────────────────────────────────────────────────
    op.execute('CREATE EXTENSION IF NOT EXISTS "uuid-ossp"')

    # ── Enum types ────────────────────────────────────────────────────────
    for name, values in ENUM_TYPES:
        _create_enum(name, values)

    # ── 1. departments ────────────────────────────────────────────────────
    op.execute("""
        CREATE TABLE departments (
            id               UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
            name             VARCHAR(150) NOT NULL UNIQUE,
            description      TEXT,
            convention_hours INTEGER,
            is_active        BOOLEAN DEFAULT TRUE,
            created_at       TIMESTAMPTZ DEFAULT NOW(),
            updated_at       TIMESTAMPTZ DEFAULT NOW()
        )
    """)

    # ── 2. roles ──────────────────────────────────────────────────────────
    op.execute("""
        CREATE TABLE roles (
            id          UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
            name        VARCHAR(100) NOT NULL UNIQUE,
            description TEXT,
            created_at  TIMESTAMPTZ DEFAULT NOW(),
            updated_at  TIMESTAMPTZ DEFAULT NOW()
        )
    """)

    # ── 3. employees ──────────────────────────────────────────────────────
    op.execute("""
        CREATE TABLE employees (
            id               UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
            employee_code    VARCHAR(20)  NOT NULL UNIQUE,
            dni              VARCHAR(20),
            first_name       VARCHAR(100) NOT NULL,
            last_name        VARCHAR(100) NOT NULL,
            email            VARCHAR(255) NOT NULL UNIQUE,
            department_id    UUID REFERENCES departments(id) ON DELETE SET NULL,
            role_id          UUID REFERENCES roles(id) ON DELETE SET NULL,
            hire_date        DATE NOT NULL,
            convention_hours INTEGER,
            is_active        BOOLEAN DEFAULT TRUE,
            created_at       TIMESTAMPTZ DEFAULT NOW(),
            updated_at       TIMESTAMPTZ DEFAULT NOW()
        )
    """)
    op.execute("CREATE INDEX idx_employees_department ON employees(department_id)")
    op.execute("CREATE INDEX idx_employees_role       ON employees(role_id)")

    # ── 4. date_schedules ─────────────────────────────────────────────────
    op.execute("""
        CREATE TABLE date_schedules (
            id            UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
            employee_id   UUID NOT NULL REFERENCES employees(id) ON DELETE CASCADE,
            date          DATE NOT NULL,
            start_time    VARCHAR(5) NOT NULL,
            end_time      VARCHAR(5) NOT NULL,
            start_break   VARCHAR(5),
            end_break     VARCHAR(5),
            schedule_type schedule_type NOT NULL DEFAULT 'total',
            created_at    TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            updated_at    TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            created_by    UUID,
            CONSTRAINT uq_date_schedule_emp_date UNIQUE (employee_id, date)
        )
    """)
    op.execute("CREATE INDEX ix_date_schedules_date ON date_schedules(date)")

    # ── 5. daily_workdays ─────────────────────────────────────────────────
    op.execute("""
        CREATE TABLE daily_workdays (
            id               UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
            employee_id      UUID NOT NULL REFERENCES employees(id) ON DELETE CASCADE,
            date             DATE NOT NULL,
            start_time       TIMESTAMPTZ,
            end_time         TIMESTAMPTZ,
            worked_minutes   INTEGER NOT NULL DEFAULT 0,
            break_minutes    INTEGER NOT NULL DEFAULT 0,
            overtime_minutes INTEGER NOT NULL DEFAULT 0,
            is_manual        BOOLEAN NOT NULL DEFAULT FALSE,
            created_at       TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            updated_at       TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            created_by       UUID,
            CONSTRAINT uq_daily_workday_emp_date UNIQUE (employee_id, date)
        )
    """)
    op.execute("CREATE INDEX ix_daily_workdays_date ON daily_workdays(date)")

    # ── 6. clock_entries ──────────────────────────────────────────────────
    op.execute("""
        CREATE TABLE clock_entries (
            id             UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
            employee_id    UUID NOT NULL REFERENCES employees(id) ON DELETE CASCADE,
            workday_id     UUID NOT NULL REFERENCES daily_workdays(id) ON DELETE CASCADE,
            entry_type     clock_entry_type NOT NULL,
            timestamp      TIMESTAMPTZ NOT NULL,
            source         clock_source NOT NULL DEFAULT 'web',
            auto_generated BOOLEAN NOT NULL DEFAULT FALSE,
            created_at     TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)
    op.execute(
        "CREATE INDEX ix_clock_entries_employee_ts ON clock_entries(employee_id, timestamp)"
    )

    # ── 7. incident_types ─────────────────────────────────────────────────
    op.execute("""
        CREATE TABLE incident_types (
            id          UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
            name        VARCHAR(100) NOT NULL UNIQUE,
            description TEXT,
            is_active   BOOLEAN NOT NULL DEFAULT TRUE,
            created_at  TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            updated_at  TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)

    # ── 8. incidents ──────────────────────────────────────────────────────
    op.execute("""
        CREATE TABLE incidents (
            id               UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
            employee_id      UUID NOT NULL REFERENCES employees(id) ON DELETE CASCADE,
            workday_id       UUID REFERENCES daily_workdays(id) ON DELETE SET NULL,
            date             DATE NOT NULL,
            incident_type_id UUID NOT NULL REFERENCES incident_types(id),
            description      TEXT NOT NULL,
            status           incident_status NOT NULL DEFAULT 'pending',
            registered_by    UUID,
            reviewed_by      UUID,
            reviewed_at      TIMESTAMPTZ,
            reviewer_remarks TEXT,
            created_at       TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            updated_at       TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)
    op.execute("CREATE INDEX ix_incidents_employee_date ON incidents(employee_id, date)")
    op.execute("CREATE INDEX ix_incidents_status        ON incidents(status)")

    # ── 9. audit_trail ────────────────────────────────────────────────────
    op.execute("""
        CREATE TABLE audit_trail (
            id          UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
            actor_id    UUID,
            action      VARCHAR(50) NOT NULL,
            entity_type VARCHAR(50) NOT NULL,
            entity_id   UUID NOT NULL,
            old_values  JSONB,
            new_values  JSONB,
            created_at  TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)
    op.execute("CREATE INDEX ix_audit_trail_actor_id   ON audit_trail(actor_id)")
    op.execute("CREATE INDEX ix_audit_trail_entity     ON audit_trail(entity_type, entity_id)")
    op.execute("CREATE INDEX ix_audit_trail_created_at ON audit_trail(created_at)")
    op.execute("CREATE INDEX ix_audit_trail_action     ON audit_trail(action)")

    # ── Seed: default incident types ──────────────────────────────────────
    incident_types = sa.table(
        "incident_types",
        sa.column("name", sa.String),
        sa.column("description", sa.Text),
    )
    op.bulk_insert(
        incident_types,
        [
            {"name": "Medical leave", "description": "Absence covered by a medical certificate"},
            {"name": "Delay", "description": "Late arrival"},
            {"name": "Forgotten clock entry", "description": "Clock-in or clock-out not registered"},
            {"name": "Personal matter", "description": "Justified personal absence"},
        ],
    )


# ---------------------------------------------------------------------------
# DOWNGRADE
# ---------------------------------------------------------------------------


def downgrade() -> None:
    # Drop tables in reverse dependency order
    tables = [
        "audit_trail",
        "incidents",
        "incident_types",
        "clock_entries",
        "daily_workdays",
        "date_schedules",
        "employees",
        "roles",
        "departments",
    ]
    for t in tables:
        op.execute(f"DROP TABLE IF EXISTS {t} CASCADE")

    # Drop enum types
    for name, _ in reversed(ENUM_TYPES):
        _drop_enum(name)

    op.execute('DROP EXTENSION IF EXISTS "uuid-ossp"')
