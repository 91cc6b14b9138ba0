from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Dict

from fastapi import APIRouter, status
from fastapi.responses import JSONResponse
from sqlalchemy import text

from medifind.core.config import get_settings
from medifind.db.session import async_transaction
from medifind.services.cache import get_redis_client

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])


@router.get("/healthz")
async def healthcheck() -> dict[str, str]:
    """Liveness probe - returns OK if the application is running."""
    return {"status": "ok"}


@router.get("/health")
async def health() -> JSONResponse:
    """
    Dependency health check.

    The database backs every search, so its failure makes the service
    unhealthy (503). Redis only caches medicine descriptions and the
    knowledge service only enriches results, so those are reported as
    degraded without failing the check.
    """
    settings = get_settings()
    health_status: Dict[str, Any] = {
        "status": "healthy",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "checks": {},
    }

    try:
        async with async_transaction() as session:
            result = await session.execute(text("SELECT 1"))
            result.scalar()
        health_status["checks"]["database"] = {"status": "healthy"}
    except Exception as e:
        logger.error("Database health check failed: %s", e)
        health_status["checks"]["database"] = {
            "status": "unhealthy",
            "message": f"Database connection failed: {e}",
        }
        health_status["status"] = "unhealthy"

    if settings.api_cache_ttl_seconds:
        try:
            redis_client = await get_redis_client()
            await redis_client.ping()
            health_status["checks"]["cache"] = {"status": "healthy"}
        except Exception as e:
            logger.warning("Redis health check failed: %s", e)
            health_status["checks"]["cache"] = {"status": "degraded", "message": str(e)}
    else:
        health_status["checks"]["cache"] = {"status": "disabled"}

    health_status["checks"]["knowledge_service"] = {
        "status": "configured" if settings.gemini_api_key else "disabled",
    }

    if health_status["status"] != "healthy":
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content=health_status,
        )
    return JSONResponse(status_code=status.HTTP_200_OK, content=health_status)


__all__ = ["router"]
