"""
Health check endpoints
"""

from typing import Any
from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from quickseats.config import settings
from quickseats.core.database import async_session
from quickseats.core.metrics import HealthChecker
from quickseats.core.redis import get_redis

router = APIRouter()


async def get_health_checker(redis_client=Depends(get_redis)) -> HealthChecker:
    return HealthChecker(redis_client, async_session)


@router.get("/live")
async def liveness() -> Any:
    """
    Kubernetes liveness probe
    """
    return {"status": "alive", "service": "quickseats-api"}


@router.get("/ready")
async def readiness(checker: HealthChecker = Depends(get_health_checker)) -> Any:
    """
    Kubernetes readiness probe - checks the database and the lock backend
    """
    health = await checker.get_system_health()
    ready = health["status"] == "healthy"
    return JSONResponse(
        status_code=200 if ready else 503,
        content={
            "status": "ready" if ready else "not ready",
            "checks": health["components"],
            "version": settings.APP_VERSION,
        },
    )
