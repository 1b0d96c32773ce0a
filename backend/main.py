"""Attendance Scheduler — FastAPI Application Factory."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from backend.common.exceptions import register_exception_handlers
from backend.common.rate_limit import limiter
from backend.config import settings
from backend.core_hr.router import departments_router, employees_router, roles_router
from backend.dashboard.router import router as dashboard_router
from backend.database import engine
from backend.incidents.router import incident_types_router, incidents_router
from backend.reports.router import router as reports_router
from backend.schedules.router import router as schedules_router
from backend.workday.router import clock_router, time_entries_router, workday_router

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application startup and shutdown events."""
    logger.info("Attendance Scheduler starting (%s)", settings.ENVIRONMENT)
    yield
    await engine.dispose()
    logger.info("Attendance Scheduler stopped")


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    logging.basicConfig(
        level=settings.LOG_LEVEL.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    app = FastAPI(
        title="Attendance Scheduler",
        description="Annual schedule calendars, clock tracking, incidents and hours reconciliation",
        version="1.0.0",
        docs_url="/api/docs" if settings.ENVIRONMENT != "production" else None,
        redoc_url="/api/redoc" if settings.ENVIRONMENT != "production" else None,
        lifespan=lifespan,
    )

    # Exception handlers (RFC 7807)
    register_exception_handlers(app)

    # Rate limiting (slowapi)
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

    # CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/api/v1/health", tags=["system"])
    async def health_check():
        return {
            "status": "healthy",
            "version": "1.0.0",
            "environment": settings.ENVIRONMENT,
        }

    # Register routers
    app.include_router(employees_router, prefix="/api/v1/employees", tags=["employees"])
    app.include_router(departments_router, prefix="/api/v1/departments", tags=["departments"])
    app.include_router(roles_router, prefix="/api/v1/roles", tags=["roles"])
    app.include_router(schedules_router, prefix="/api/v1/date-schedules", tags=["date-schedules"])
    app.include_router(workday_router, prefix="/api/v1/daily-workday", tags=["daily-workday"])
    app.include_router(clock_router, prefix="/api/v1/clock-entries", tags=["clock-entries"])
    app.include_router(time_entries_router, prefix="/api/v1/time-entries", tags=["time-entries"])
    app.include_router(incidents_router, prefix="/api/v1/incidents", tags=["incidents"])
    app.include_router(incident_types_router, prefix="/api/v1/incident-types", tags=["incident-types"])
    app.include_router(reports_router, prefix="/api/v1/reports", tags=["reports"])
    app.include_router(dashboard_router, prefix="/api/v1/dashboard", tags=["dashboard"])

    return app


app = create_app()
