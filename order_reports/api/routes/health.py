"""
Health Check Endpoints

Provides health and readiness checks for orchestration systems.
"""

from datetime import datetime, timezone
from typing import Dict, Any

from fastapi import APIRouter, Depends, Request, Response
from pydantic import BaseModel

from order_reports.api.dependencies import get_database
from order_reports.database.connection import ReportDatabase

router = APIRouter()


class HealthResponse(BaseModel):
    """Health check response"""
    status: str
    version: str
    environment: str
    timestamp: datetime
    checks: Dict[str, Any]


@router.get("/health", response_model=HealthResponse)
async def health_check(
    request: Request,
    db: ReportDatabase = Depends(get_database),
) -> HealthResponse:
    """
    Health check endpoint.

    Checks:
    - Application status
    - Database connectivity through the report pool
    """
    settings = request.app.state.settings
    checks = {}
    overall_status = "healthy"

    db_health = await db.check_health()
    checks["database"] = db_health
    if db_health.get("status") != "healthy":
        overall_status = "degraded"

    return HealthResponse(
        status=overall_status,
        version=settings.version,
        environment=settings.app_env,
        timestamp=datetime.now(timezone.utc),
        checks=checks,
    )


@router.get("/health/live")
async def liveness_check() -> Dict[str, str]:
    """
    Liveness probe endpoint.

    Returns 200 if the application is running.
    """
    return {"status": "alive"}


@router.get("/health/ready")
async def readiness_check(
    response: Response,
    db: ReportDatabase = Depends(get_database),
) -> Dict[str, str]:
    """
    Readiness probe endpoint.

    Returns 200 if the report views can be queried.
    """
    db_health = await db.check_health()

    if db_health.get("status") != "healthy":
        response.status_code = 503
        return {"status": "not_ready", "reason": "database_unavailable"}

    return {"status": "ready"}
