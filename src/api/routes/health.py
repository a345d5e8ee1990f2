"""Health check endpoints for Kubernetes probes."""

import logging
from datetime import UTC, datetime

from fastapi import APIRouter, HTTPException, Request, status
from pydantic import BaseModel
from sqlalchemy import text

from src.core.config import get_settings
from src.db.database import async_session_maker

logger = logging.getLogger(__name__)

router = APIRouter()


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    timestamp: str
    version: str
    checks: dict | None = None


async def check_database() -> tuple[bool, str]:
    """Check PostgreSQL connectivity."""
    try:
        async with async_session_maker() as session:
            await session.execute(text("SELECT 1"))
        return True, "healthy"
    except Exception as e:
        logger.warning(f"[Health] Database check failed: {e}")
        return False, f"unhealthy: {e!s}"


@router.get("/health/live", response_model=HealthResponse)
async def liveness():
    """Kubernetes liveness probe.

    Returns 200 if the process is alive.
    """
    settings = get_settings()

    return HealthResponse(
        status="alive", timestamp=datetime.now(UTC).isoformat(), version=settings.app_version
    )


@router.get("/health/ready", response_model=HealthResponse)
async def readiness():
    """Kubernetes readiness probe.

    Returns 200 if the database is reachable.
    """
    settings = get_settings()

    db_ok, db_status = await check_database()
    checks = {"database": db_status}

    if not db_ok:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail={"status": "unhealthy", "checks": checks},
        )

    return HealthResponse(
        status="ready",
        timestamp=datetime.now(UTC).isoformat(),
        version=settings.app_version,
        checks=checks,
    )


@router.get("/health/startup", response_model=HealthResponse)
async def startup(request: Request):
    """Kubernetes startup probe.

    Returns 200 once the application lifespan has finished starting up.
    """
    settings = get_settings()

    if not getattr(request.app.state, "startup_complete", False):
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail={"status": "starting", "message": "Initialization in progress"},
        )

    return HealthResponse(
        status="started",
        timestamp=datetime.now(UTC).isoformat(),
        version=settings.app_version,
    )
