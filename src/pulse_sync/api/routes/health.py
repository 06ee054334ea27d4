"""Health check endpoints."""

from fastapi import APIRouter, status
from pydantic import BaseModel

from pulse_sync.api.deps import EngineDep
from pulse_sync.config import settings
from pulse_sync.logging import get_logger

router = APIRouter(tags=["Health"])
logger = get_logger(__name__)


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    version: str
    timezone: str
    today: str


class ReadinessResponse(BaseModel):
    """Readiness check response."""

    ready: bool
    database: bool
    redis: bool


@router.get(
    "/health",
    response_model=HealthResponse,
    status_code=status.HTTP_200_OK,
    summary="Health check",
    description="Basic health check endpoint that verifies the API is running.",
)
def health_check(engine: EngineDep) -> HealthResponse:
    """Basic health check - is the API up, and which local day is it?"""
    from pulse_sync import __version__

    return HealthResponse(
        status="healthy",
        version=__version__,
        timezone=str(engine.timezone),
        today=engine.today(),
    )


@router.get(
    "/health/ready",
    response_model=ReadinessResponse,
    summary="Readiness check",
    description="Readiness check that verifies the record store and Redis.",
)
def readiness_check(engine: EngineDep) -> ReadinessResponse:
    """Readiness check including dependencies."""
    database_ok = engine.health_check()

    redis_ok = False
    try:
        import redis

        r = redis.from_url(settings.redis_url)
        r.ping()
        redis_ok = True
    except Exception as e:
        logger.error("redis_health_check_failed", error=str(e))

    return ReadinessResponse(
        ready=database_ok and redis_ok,
        database=database_ok,
        redis=redis_ok,
    )


@router.get(
    "/health/live",
    status_code=status.HTTP_200_OK,
    summary="Liveness probe",
    description="Simple liveness probe for Kubernetes.",
)
async def liveness_check() -> dict[str, str]:
    """Kubernetes liveness probe - is the process alive?"""
    return {"status": "alive"}
