"""FastAPI application factory."""

from __future__ import annotations

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI

from checklist.auth.jwt import TokenSigner
from checklist.auth.password_reset import router as password_router
from checklist.auth.router import router as auth_router
from checklist.config import Settings, get_settings
from checklist.database import close_db, init_db
from checklist.health.router import router as health_router
from checklist.lists.router import lists_router, resources_router, sections_router, topics_router
from checklist.middleware import setup_middleware
from checklist.progress.builtin_router import router as builtin_progress_router
from checklist.progress.router import router as progress_router
from checklist.public.router import router as public_router
from checklist.redis_client import close_redis, init_redis

logger = structlog.get_logger()


def create_app(settings: Settings | None = None) -> FastAPI:
    """Create and configure the FastAPI application.

    Settings are read (and the JWT secret validated) here, so a missing or
    short secret stops the process before it serves anything.
    """
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(_app: FastAPI) -> AsyncGenerator[None, None]:
        """Startup and shutdown lifecycle."""
        await init_db(settings.database_url, settings)
        if settings.redis_url:
            await init_redis(settings.redis_url)
        logger.info("app_started", environment=settings.environment, version=settings.app_version)

        yield

        await close_db()
        await close_redis()

    app = FastAPI(
        title="DSA Learning Checklist API",
        description="Backend API for the DSA learning checklist: custom lists, progress tracking and sharing",
        version=settings.app_version,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.token_signer = TokenSigner.from_settings(settings)

    setup_middleware(app, settings)
    app.include_router(health_router, tags=["Health"])
    app.include_router(auth_router)
    app.include_router(password_router)
    app.include_router(public_router)
    app.include_router(lists_router)
    app.include_router(sections_router)
    app.include_router(topics_router)
    app.include_router(resources_router)
    app.include_router(progress_router)
    app.include_router(builtin_progress_router)

    return app


app = create_app()
