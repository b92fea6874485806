"""Health check endpoints.

Provides liveness (/health) and readiness (/health/ready) checks. Only the
database is a hard dependency; the URL shortener is reported but does not
make the service unready, since listing, editing and voting work without it.
"""

from __future__ import annotations

from fastapi import APIRouter, status
from fastapi.responses import JSONResponse

from src.app.config import get_settings
from src.app.core.database import ping_db

router = APIRouter(tags=["health"])


@router.get("/health")
async def health_check():
    """Basic liveness check. No external dependencies are checked."""
    settings = get_settings()
    return {"status": "ok", "environment": settings.ENVIRONMENT.value}


async def _check_dependencies() -> dict:
    """Check database connectivity and shortener configuration."""
    checks: dict = {"database": "ok"}

    try:
        await ping_db()
    except Exception as e:
        checks["database"] = "error"
        checks["database_error"] = str(e)

    settings = get_settings()
    if not settings.URL_SHORTENING_ENABLED:
        checks["url_shortener"] = "disabled"
    elif settings.URL_SHORTENER_BASE_URL:
        checks["url_shortener"] = "configured"
    else:
        checks["url_shortener"] = "not_configured"

    return checks


@router.get("/health/ready")
async def readiness_check():
    """Readiness check: 200 if the database answers, 503 otherwise."""
    checks = await _check_dependencies()
    healthy = checks.get("database") == "ok"

    return JSONResponse(
        status_code=status.HTTP_200_OK if healthy else status.HTTP_503_SERVICE_UNAVAILABLE,
        content={
            "status": "ready" if healthy else "degraded",
            "checks": checks,
        },
    )
