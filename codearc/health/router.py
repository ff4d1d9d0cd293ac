"""Health check endpoints."""

from fastapi import APIRouter, Request

from codearc.config import get_settings


router = APIRouter(prefix="/health", tags=["health"])


@router.get("/live")
async def liveness() -> dict[str, str]:
    """Liveness probe - checks if the application is running."""
    return {"status": "alive"}


@router.get("/ready")
async def readiness(request: Request) -> dict[str, str | bool]:
    """Readiness probe - services wired and the Cassandra session open."""
    settings = get_settings()
    state = request.app.state
    wired = getattr(state, "progress_service", None) is not None
    # Services installed without a managed connection (tests) count as connected
    connection = getattr(state, "cassandra", None)
    database = wired and (connection is None or connection.is_connected)

    if not wired:
        status = "starting"
    else:
        status = "ready" if database else "not_ready"
    return {
        "status": status,
        "environment": settings.environment,
        "database": database,
        "cache": getattr(request.app.state, "redis", None) is not None,
    }


@router.get("")
async def health() -> dict[str, str]:
    """General health check endpoint."""
    settings = get_settings()
    return {
        "status": "healthy",
        "app_name": settings.app_name,
        "version": settings.app_version,
        "environment": settings.environment,
    }
