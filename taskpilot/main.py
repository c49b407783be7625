import asyncio
import time
from contextlib import asynccontextmanager, suppress
from datetime import datetime, timezone

from fastapi import Depends, FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from taskpilot.cache.layer import TenantCache, run_sweeper
from taskpilot.core.config import Settings, SettingsDep, get_settings
from taskpilot.core.identity import IdentityDep, build_identity_resolver, require_role
from taskpilot.core.logging import configure_logging
from taskpilot.database import build_engine, build_sessionmaker, create_db_and_tables
from taskpilot.routers import ai, profile, projects, settings as settings_router, tasks
from taskpilot.services.ai_service import SuggestionService

import logging

logger = logging.getLogger(__name__)

SERVICE_NAME = "taskpilot-api"
VERSION = "1.0.0"


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings: Settings = app.state.settings
    configure_logging(settings.log_level)

    if settings.create_tables:
        await create_db_and_tables(app.state.engine)

    sweepers = [
        asyncio.create_task(run_sweeper(cache, settings.cache_sweep_interval_seconds))
        for cache in (app.state.task_cache, app.state.project_cache)
    ]
    app.state.started_at = time.monotonic()
    logger.info(f"{SERVICE_NAME} started (auth_mode={settings.auth_mode})")

    yield

    for sweeper in sweepers:
        sweeper.cancel()
    for sweeper in sweepers:
        with suppress(asyncio.CancelledError):
            await sweeper
    await app.state.engine.dispose()


async def database_error_handler(request: Request, exc: SQLAlchemyError):
    logger.error(f"Database error on {request.method} {request.url.path}", exc_info=exc)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Internal server error"},
    )


def create_app(settings: Settings | None = None) -> FastAPI:
    settings = settings or get_settings()

    app = FastAPI(
        title="TaskPilot API",
        description="Family task management API: shared tasks, projects, settings and profiles",
        swagger_ui_parameters={"displayRequestDuration": True},
        version=VERSION,
        lifespan=lifespan,
    )

    app.state.settings = settings
    app.state.engine = build_engine(settings.database_url)
    app.state.sessionmaker = build_sessionmaker(app.state.engine)
    app.state.task_cache = TenantCache(
        "tasks", ttl_seconds=settings.cache_ttl_seconds, maxsize=settings.cache_maxsize
    )
    app.state.project_cache = TenantCache(
        "projects", ttl_seconds=settings.cache_ttl_seconds, maxsize=settings.cache_maxsize
    )
    app.state.identity_resolver = build_identity_resolver(settings)
    app.state.suggestion_service = SuggestionService(
        settings.gemini_api_key,
        model=settings.gemini_model,
        timeout_seconds=settings.ai_timeout_seconds,
    )
    app.state.started_at = time.monotonic()

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_exception_handler(SQLAlchemyError, database_error_handler)

    # Include routers
    app.include_router(tasks.router)
    app.include_router(projects.router)
    app.include_router(settings_router.router)
    app.include_router(profile.router)
    app.include_router(ai.router)

    @app.get("/")
    async def root():
        return {
            "message": "Welcome to TaskPilot API",
            "service": SERVICE_NAME,
            "docs": "/docs",
            "version": VERSION,
        }

    @app.get("/health")
    async def health_check(request: Request, settings: SettingsDep):
        return {
            "status": "healthy",
            "service": SERVICE_NAME,
            "auth_mode": settings.auth_mode,
            "uptime": time.monotonic() - request.app.state.started_at,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }

    @app.get("/tenant-info")
    async def tenant_info(identity: IdentityDep):
        """Current tenant and identity context"""
        return {
            "tenant": identity.tenant_id,
            "roles": list(identity.roles),
            "sub": identity.sub,
            "email": identity.email,
            "name": identity.name,
        }

    @app.get("/cache/stats", dependencies=[Depends(require_role("admin"))])
    async def cache_stats(request: Request):
        return {
            "tasks": request.app.state.task_cache.stats(),
            "projects": request.app.state.project_cache.stats(),
        }

    return app


app = create_app()
