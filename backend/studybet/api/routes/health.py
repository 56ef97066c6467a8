import logging

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from studybet.db.base import ping_db
from studybet.db.redis import ping_redis

logger = logging.getLogger(__name__)

router = APIRouter()

SERVICE = "studybet-backend"

# Dependency name -> probe; every one must pass for /ready to answer 200
_PROBES = {
    "database": ping_db,
    "redis": ping_redis,
}


@router.get("/health")
async def health_check(request: Request):
    """Liveness probe. Returns 503 once SIGTERM has been received."""
    if getattr(request.app.state, "shutting_down", False):
        return JSONResponse(status_code=503, content={"status": "shutting_down", "service": SERVICE})
    return {"status": "healthy", "service": SERVICE}


@router.get("/ready")
async def readiness_check():
    """Readiness probe: PostgreSQL and Redis (locks, session updates) must answer."""
    checks = {}
    for name, probe in _PROBES.items():
        try:
            await probe()
            checks[name] = True
        except Exception as e:
            logger.error(f"{name} readiness check failed: {e}")
            checks[name] = False

    ready = all(checks.values())
    return JSONResponse(
        status_code=200 if ready else 503,
        content={"status": "ready" if ready else "degraded", "service": SERVICE, "checks": checks},
    )
