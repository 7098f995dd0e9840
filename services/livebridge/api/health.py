"""
Health check endpoints for the livebridge server.

Provides /health (liveness) and /ready (readiness) endpoints.
"""

from fastapi import APIRouter, Response, status

from livebridge.auth.sources import list_sources
from livebridge.logging_config import get_logger
from livebridge.redis.client import flow_state_redis

router = APIRouter(tags=["health"])
logger = get_logger(__name__)


@router.get("/health", status_code=status.HTTP_200_OK)
async def health() -> dict[str, str]:
    """Liveness check."""
    return {"status": "healthy"}


@router.get("/ready", status_code=status.HTTP_200_OK)
async def ready(response: Response) -> dict[str, str | dict[str, str]]:
    """Readiness check.

    The state store must be reachable and at least one source registered.
    """
    checks: dict[str, str] = {}

    checks["redis"] = "healthy" if await flow_state_redis.ping() else "unhealthy"
    checks["sources"] = "healthy" if list_sources() else "unhealthy"

    if not all(v == "healthy" for v in checks.values()):
        logger.warning("Readiness check failed", checks=checks)
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
        return {"status": "not ready", "checks": checks}

    return {"status": "ready", "checks": checks}
