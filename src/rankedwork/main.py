"""FastAPI application factory."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI

from rankedwork.config import get_settings
from rankedwork.database import close_db, get_session_factory, init_db
from rankedwork.dependencies import EngineRegistry
from rankedwork.health.router import router as health_router
from rankedwork.middleware import setup_middleware
from rankedwork.progression.router import router as progression_router
from rankedwork.stores.sql import SqlHistoryStore, SqlProfileStore

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Startup and shutdown lifecycle."""
    settings = get_settings()
    await init_db(settings.database_url)

    session_factory = get_session_factory()
    app.state.engines = EngineRegistry(
        SqlProfileStore(session_factory),
        SqlHistoryStore(session_factory),
        settings,
    )
    logger.info("app_started", environment=settings.environment, timezone=settings.timezone)

    yield

    app.state.engines.clear()
    await close_db()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title="Ranked Work API",
        description="Daily task tracker with XP, placement matches and a ranked LP ladder",
        version=settings.app_version,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        lifespan=lifespan,
    )

    setup_middleware(app, settings)
    app.include_router(health_router, tags=["Health"])
    app.include_router(progression_router)

    return app


app = create_app()
