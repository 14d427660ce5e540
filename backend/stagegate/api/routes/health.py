import logging

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse
from sqlalchemy import text

from stagegate.core.config import get_settings

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/health")
async def health_check(request: Request):
    """Liveness check. Returns 503 while the process is draining."""
    if getattr(request.app.state, "shutting_down", False):
        return JSONResponse(
            status_code=503,
            content={"status": "shutting_down", "service": "stagegate"},
        )
    return {"status": "healthy", "service": "stagegate"}


@router.get("/ready")
async def readiness_check():
    """Readiness check for the configured backing stores.

    Stores that are not configured (in-process mode) are reported as ready.
    """
    settings = get_settings()
    checks = {"database": True, "redis": True}

    if settings.database_url:
        try:
            from stagegate.db.base import get_session_factory

            async with get_session_factory()() as session:
                await session.execute(text("SELECT 1"))
        except Exception as e:
            checks["database"] = False
            logger.error(f"Database health check failed: {e}")

    if settings.redis_url or settings.lock_backend == "redis":
        try:
            from stagegate.db.redis import get_redis

            await get_redis().ping()
        except Exception as e:
            checks["redis"] = False
            logger.error(f"Redis health check failed: {e}")

    all_healthy = all(checks.values())
    return JSONResponse(
        status_code=200 if all_healthy else 503,
        content={"status": "ready" if all_healthy else "degraded", "checks": checks},
    )
