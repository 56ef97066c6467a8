"""StudyBet Backend: FastAPI application entry point."""

import asyncio
import contextlib
import signal
import uuid
from contextlib import asynccontextmanager
from datetime import timedelta
from zoneinfo import ZoneInfo

# CRITICAL ORDER: configure_structlog MUST be called before all other app imports
# to avoid the structlog cache pitfall (structlog caches the processor chain on first use).
from studybet.core.logging import configure_structlog
from studybet.core.config import get_settings as _get_settings_early

_early_settings = _get_settings_early()
configure_structlog(
    log_level="DEBUG" if _early_settings.debug else "INFO",
    json_logs=not _early_settings.debug,
)

import redis.asyncio as redis
import structlog
from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from studybet.api.routes import api_router
from studybet.core.clock import SystemClock
from studybet.core.config import Settings, get_settings
from studybet.core.exceptions import (
    InvalidStateError,
    NotFoundError,
    SessionBusyError,
    StudyBetError,
    ValidationError,
)
from studybet.core.locking import SessionLock
from studybet.db import close_db, close_redis, get_redis, get_session_factory, init_db, init_redis
from studybet.db.sql_repository import SqlStudyRepository
from studybet.middleware.correlation import get_correlation_id, setup_correlation_middleware
from studybet.services.narrative_service import NarrativeService
from studybet.services.notification_service import RedisNotifier
from studybet.services.study_service import StudyService
from studybet.services.sweeper import SessionSweeper
from studybet.services.tag_service import TagService

logger = structlog.get_logger(__name__)


def build_study_service(
    settings: Settings,
    session_factory: async_sessionmaker[AsyncSession],
    redis_client: redis.Redis,
) -> StudyService:
    """Production wiring: PostgreSQL, Redis lock + pub/sub, Claude, wall clock."""
    return StudyService(
        repository=SqlStudyRepository(session_factory),
        clock=SystemClock(),
        narrative=NarrativeService(),
        notifier=RedisNotifier(redis_client),
        lock=SessionLock(
            redis_client,
            ttl=settings.session_lock_ttl_seconds,
            wait_timeout=settings.session_lock_wait_seconds,
        ),
        timezone=ZoneInfo(settings.study_day_timezone),
        stale_after=timedelta(hours=settings.stale_session_hours),
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler for startup/shutdown events."""
    # SIGTERM flips this so the health check returns 503 while draining
    app.state.shutting_down = False

    def handle_sigterm(signum, frame):
        app.state.shutting_down = True
        logger.info("sigterm_received", action="health_check_503_draining_connections")

    signal.signal(signal.SIGTERM, handle_sigterm)

    # Startup
    settings = get_settings()
    logger.info("startup_begin", app_name=settings.app_name, debug=settings.debug)

    await init_db()
    logger.info("db_initialized")

    await init_redis()
    logger.info("redis_initialized")

    study_service = build_study_service(settings, get_session_factory(), get_redis())
    app.state.study_service = study_service
    app.state.tag_service = TagService(study_service.repository, study_service.clock)

    sweeper_task = None
    if settings.sweep_enabled:
        sweeper = SessionSweeper(study_service, interval_seconds=settings.sweep_interval_seconds)
        sweeper_task = asyncio.create_task(sweeper.run())
        logger.info("session_sweeper_scheduled", interval_seconds=settings.sweep_interval_seconds)

    yield

    # Shutdown
    logger.info("shutdown_begin")
    if sweeper_task is not None:
        sweeper_task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await sweeper_task
    await close_redis()
    await close_db()
    logger.info("shutdown_complete")


_STATUS_BY_ERROR: tuple[tuple[type[StudyBetError], int], ...] = (
    (InvalidStateError, 409),
    (SessionBusyError, 409),
    (ValidationError, 400),
    (NotFoundError, 404),
)


async def study_error_handler(request: Request, exc: StudyBetError) -> JSONResponse:
    """Translate domain errors into 409 / 400 / 404 with debug_id tracking."""
    status_code = next((code for error_type, code in _STATUS_BY_ERROR if isinstance(exc, error_type)), 500)
    debug_id = str(uuid.uuid4())

    logger.warning(
        "domain_error",
        status_code=status_code,
        debug_id=debug_id,
        correlation_id=get_correlation_id(),
        path=request.url.path,
        method=request.method,
        user_id=getattr(request.state, "user_id", None),
        error=str(exc),
        error_type=type(exc).__name__,
    )

    content = {"detail": str(exc), "debug_id": debug_id}
    if isinstance(exc, InvalidStateError):
        content["required"] = exc.required
        content["actual"] = exc.actual
    return JSONResponse(status_code=status_code, content=content)


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """Global exception handler for HTTPException with debug_id tracking.

    Logs errors server-side with full context, returns sanitized response to client.
    """
    debug_id = str(uuid.uuid4())

    logger.error(
        "http_exception",
        status_code=exc.status_code,
        debug_id=debug_id,
        correlation_id=get_correlation_id(),
        path=request.url.path,
        method=request.method,
        user_id=getattr(request.state, "user_id", None),
        detail=exc.detail,
    )

    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail, "debug_id": debug_id},
    )


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Global exception handler for unhandled errors with debug_id tracking.

    Logs full exception with traceback, returns generic 500 to client.
    """
    debug_id = str(uuid.uuid4())

    logger.error(
        "unhandled_exception",
        debug_id=debug_id,
        correlation_id=get_correlation_id(),
        path=request.url.path,
        method=request.method,
        user_id=getattr(request.state, "user_id", None),
        error=str(exc),
        error_type=type(exc).__name__,
        exc_info=True,
    )

    # No internal details leaked
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal server error", "debug_id": debug_id},
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.exception_handler(StudyBetError)(study_error_handler)
    app.exception_handler(HTTPException)(http_exception_handler)
    app.exception_handler(Exception)(generic_exception_handler)


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title=settings.app_name,
        description="Study sessions as bets against your own pledge",
        version="0.1.0",
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=[settings.frontend_url, "http://localhost:3000"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Correlation ID middleware (runs first on incoming requests)
    setup_correlation_middleware(app)

    register_exception_handlers(app)

    app.include_router(api_router, prefix="/api")

    return app


# Create the app instance
app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "studybet.main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
    )
