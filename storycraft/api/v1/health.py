"""
Health check endpoints.
"""

from datetime import datetime
from typing import Any

from fastapi import APIRouter
from sqlalchemy import text

from storycraft.core.config import settings
from storycraft.core.exceptions import DatabaseError
from storycraft.core.logging import get_logger
from storycraft.db.database import get_async_session

logger = get_logger(__name__)

router = APIRouter()


async def check_database() -> bool:
    """True when the configured storage answers."""
    if not settings.uses_sql_storage:
        return True
    try:
        async with get_async_session() as session:
            await session.execute(text("SELECT 1"))
    except (DatabaseError, OSError) as e:
        logger.warning("Database check failed", error=str(e))
        return False
    return True


@router.get("/health")
async def health_check() -> dict[str, Any]:
    """
    Basic health check endpoint.
    Returns application status.
    """
    return {
        "status": "healthy",
        "app": settings.app_name,
        "environment": settings.app_env,
        "timestamp": datetime.utcnow().isoformat(),
    }


@router.get("/health/ready")
async def readiness_check() -> dict[str, Any]:
    """
    Readiness check endpoint.
    Verifies the storage backend is reachable.
    """
    checks = {
        "app": True,
        "database": await check_database(),
    }

    all_healthy = all(checks.values())

    return {
        "status": "ready" if all_healthy else "not_ready",
        "storage": settings.database.backend,
        "checks": checks,
        "timestamp": datetime.utcnow().isoformat(),
    }


@router.get("/health/live")
async def liveness_check() -> dict[str, str]:
    """
    Liveness check endpoint.
    Simple check that the application is running.
    """
    return {"status": "alive"}
