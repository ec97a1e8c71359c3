"""Health check endpoints for monitoring service status."""

import time
from enum import Enum
from typing import Dict, Optional

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from sqlalchemy import text
from sqlalchemy.orm import Session

from app.database import get_db
from app.services.routines.background_tasks import routine_auto_logger

router = APIRouter(tags=["health"])

VERSION = "0.1.0"


class HealthStatus(str, Enum):
    """Health status values."""
    HEALTHY = "healthy"
    DEGRADED = "degraded"
    UNHEALTHY = "unhealthy"


class DependencyHealth(BaseModel):
    """Health status of a single dependency."""
    status: HealthStatus
    latency_ms: Optional[float] = None
    message: Optional[str] = None


class HealthResponse(BaseModel):
    """Full health check response."""
    status: HealthStatus
    version: str
    dependencies: Dict[str, DependencyHealth]


async def check_database(db: Session) -> DependencyHealth:
    """Check database connectivity."""
    try:
        start = time.perf_counter()
        db.execute(text("SELECT 1"))
        latency = (time.perf_counter() - start) * 1000
        return DependencyHealth(
            status=HealthStatus.HEALTHY,
            latency_ms=round(latency, 2),
        )
    except Exception as e:
        return DependencyHealth(
            status=HealthStatus.UNHEALTHY,
            message=str(e),
        )


def check_auto_logger() -> DependencyHealth:
    """The auto-logger is optional: a configured but stopped loop is degraded."""
    if not routine_auto_logger.enabled or not routine_auto_logger.user_id:
        return DependencyHealth(status=HealthStatus.HEALTHY, message="disabled")
    if routine_auto_logger.is_active:
        return DependencyHealth(status=HealthStatus.HEALTHY)
    return DependencyHealth(
        status=HealthStatus.DEGRADED,
        message="Auto-logger enabled but not running",
    )


@router.get("/health", response_model=HealthResponse)
async def health_check(db: Session = Depends(get_db)) -> HealthResponse:
    """
    Health check with dependency status.

    - database: PostgreSQL connection
    - auto_logger: background routine auto-logger
    """
    dependencies = {
        "database": await check_database(db),
        "auto_logger": check_auto_logger(),
    }

    statuses = [d.status for d in dependencies.values()]
    if dependencies["database"].status == HealthStatus.UNHEALTHY:
        overall = HealthStatus.UNHEALTHY
    elif HealthStatus.UNHEALTHY in statuses or HealthStatus.DEGRADED in statuses:
        overall = HealthStatus.DEGRADED
    else:
        overall = HealthStatus.HEALTHY

    return HealthResponse(
        status=overall,
        version=VERSION,
        dependencies=dependencies,
    )


@router.get("/health/live")
async def liveness():
    """Liveness probe: always 200 while the process is serving requests."""
    return {"status": "alive"}


@router.get("/health/ready")
async def readiness(db: Session = Depends(get_db)):
    """
    Readiness probe - can the app handle traffic?

    Returns 503 when the database is unreachable.
    """
    db_health = await check_database(db)

    if db_health.status == HealthStatus.UNHEALTHY:
        return JSONResponse(
            status_code=503,
            content={"status": "not_ready", "reason": db_health.message},
        )

    return {"status": "ready"}
