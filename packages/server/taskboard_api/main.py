"""
Taskboard Sync API Server

Entry point for the FastAPI application.
"""

import structlog
import uvicorn
from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from taskboard_api.api.v1 import router as api_v1_router
from taskboard_api.core.config import get_settings
from taskboard_api.core.database import get_session, init_db, ping
from taskboard_api.core.errors import error_response, register_exception_handlers
from taskboard_api.core.logging_config import configure_logging
from taskboard_api.core.middleware import RequestContextMiddleware, SecurityHeadersMiddleware
from taskboard_api.core.redis import close_redis

settings = get_settings()
log = structlog.get_logger()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    configure_logging(settings.log_level, settings.log_format)

    app = FastAPI(
        title="Taskboard Sync",
        description="Offline-first pull/push replication for labels, projects and tasks.",
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
    )

    # Middleware: the last one added runs outermost
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST"],
        allow_headers=["Content-Type", "Authorization", "X-Request-ID"],
    )
    app.add_middleware(RequestContextMiddleware)

    register_exception_handlers(app)

    app.include_router(api_v1_router, prefix=settings.api_prefix)

    @app.get("/health", tags=["System"])
    async def health_check():
        """Health check endpoint for liveness probes."""
        return {"status": "ok"}

    @app.get("/ready", tags=["System"])
    async def readiness_check(session: AsyncSession = Depends(get_session)):
        """Readiness check: the database must answer a trivial query."""
        try:
            await ping(session)
        except (SQLAlchemyError, OSError):
            log.exception("ready.database_unavailable")
            return error_response(503, "Database unavailable")
        return {"status": "ready"}

    @app.on_event("startup")
    async def on_startup():
        log.info("taskboard_sync.starting", api_prefix=settings.api_prefix)
        if settings.create_tables:
            await init_db()

    @app.on_event("shutdown")
    async def on_shutdown():
        log.info("taskboard_sync.shutting_down")
        await close_redis()

    return app


app = create_app()


def run() -> None:
    """Console entry point: serve the app with uvicorn."""
    uvicorn.run(
        "taskboard_api.main:app",
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level,
    )
