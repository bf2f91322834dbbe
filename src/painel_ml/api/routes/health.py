"""
Health check endpoints for monitoring application status.

Provides:
- Basic health check
- Readiness check (database and Redis)
- Liveness check
"""

import time
from datetime import datetime
from typing import Dict, Any

from fastapi import APIRouter, status, Response
from sqlalchemy import text

from painel_ml.database.connection import SessionLocal
from painel_ml.cache.redis_cache import get_cache
from painel_ml.utils.logger import get_logger

logger = get_logger(__name__)

router = APIRouter()


@router.get("", status_code=status.HTTP_200_OK)
def health_check() -> Dict[str, Any]:
    """Returns 200 while the process is serving requests."""
    return {
        "status": "healthy",
        "timestamp": datetime.utcnow().isoformat(),
        "service": "painel-ml",
    }


@router.get("/ready", status_code=status.HTTP_200_OK)
def readiness_check(response: Response) -> Dict[str, Any]:
    """
    Readiness check endpoint.

    Verifies connectivity to the database and Redis; 503 when either fails.
    """
    checks = {
        "database": _check_database(),
        "redis": _check_redis(),
    }

    all_healthy = all(check["status"] == "healthy" for check in checks.values())
    if not all_healthy:
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE

    return {
        "status": "healthy" if all_healthy else "unhealthy",
        "timestamp": datetime.utcnow().isoformat(),
        "checks": checks,
    }


@router.get("/live", status_code=status.HTTP_200_OK)
def liveness_check() -> Dict[str, str]:
    return {
        "status": "alive",
        "timestamp": datetime.utcnow().isoformat(),
    }


def _check_database() -> Dict[str, Any]:
    start_time = time.time()

    try:
        db = SessionLocal()
        try:
            db.execute(text("SELECT 1"))
        finally:
            db.close()
        return {
            "status": "healthy",
            "response_time_ms": round((time.time() - start_time) * 1000, 2),
        }

    except Exception as e:
        logger.error(f"Database health check failed: {e}")
        return {
            "status": "unhealthy",
            "error": str(e)[:100],
            "response_time_ms": round((time.time() - start_time) * 1000, 2),
        }


def _check_redis() -> Dict[str, Any]:
    start_time = time.time()

    try:
        healthy = get_cache().ping()
    except Exception as e:
        logger.error(f"Redis health check failed: {e}")
        return {
            "status": "unhealthy",
            "error": str(e)[:100],
            "response_time_ms": round((time.time() - start_time) * 1000, 2),
        }

    result = {
        "status": "healthy" if healthy else "unhealthy",
        "response_time_ms": round((time.time() - start_time) * 1000, 2),
    }
    if not healthy:
        result["error"] = "PING failed"
    return result
