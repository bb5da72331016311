# =============================================================================
# app/routers/health.py - Health Endpoints
# =============================================================================
# Health checks for the hosting platform, mounted under /api/v1 (and therefore
# subject to the API rate limit like every other /api path):
# - /health        process is up, reports mode and version
# - /health/ready  database answers a ping
# - /health/live   process is alive
# =============================================================================

from datetime import datetime, timezone

from fastapi import APIRouter
from pydantic import BaseModel

from app.config import settings
from app.routing import AppRoute
from lib.mongo_client import MongoClient, MongoClientError

router = APIRouter(route_class=AppRoute)

VERSION = "1.0.0"


class HealthStatus(BaseModel):
    """Fields shared by every health check."""
    status: str
    timestamp: str


class HealthResponse(HealthStatus):
    environment: str
    version: str


class ReadinessResponse(HealthStatus):
    database: str


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


@router.get("/health", response_model=HealthResponse)
async def health_check():
    return HealthResponse(
        status="healthy",
        timestamp=_now(),
        environment=settings.NODE_ENV,
        version=VERSION,
    )


@router.get("/health/ready", response_model=ReadinessResponse)
async def readiness_check():
    """
    Report "ready" when MongoDB answers, "degraded" otherwise.

    The listener keeps serving while the database is down, so this check
    is where an outage shows.
    """
    try:
        await MongoClient.ping()
    except MongoClientError as e:
        return ReadinessResponse(
            status="degraded",
            timestamp=_now(),
            database=f"unhealthy: {e.message[:50]}",
        )

    return ReadinessResponse(status="ready", timestamp=_now(), database="healthy")


@router.get("/health/live", response_model=HealthStatus)
async def liveness_check():
    return HealthStatus(status="alive", timestamp=_now())
