from fastapi import APIRouter
from sqlalchemy import text

from pos_api.database import engine
from pos_api.utils.cache import cache_service

router = APIRouter(prefix="/health", tags=["Health"])


@router.get(
    "/",
    summary="Health check",
    description="Basic health check endpoint."
)
def health_check():
    """Simple health check."""
    return {"status": "healthy"}


@router.get(
    "/ready",
    summary="Readiness check",
    description="Check if the database and the Redis cache are reachable."
)
def readiness_check():
    """
    Readiness check for all dependencies.

    The cache counts as ready when it is disabled.
    """
    checks = {
        "database": False,
        "cache": False
    }

    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
            checks["database"] = True
    except Exception as e:
        checks["database_error"] = str(e)

    if not cache_service.enabled:
        checks["cache"] = True
        checks["cache_disabled"] = True
    else:
        try:
            cache_service.ping()
            checks["cache"] = True
        except Exception as e:
            checks["cache_error"] = str(e)

    all_healthy = all([checks["database"], checks["cache"]])

    return {
        "status": "ready" if all_healthy else "not_ready",
        "checks": checks
    }
