"""
maui_care.api.app

FastAPI app factory for the care service.

Responsibilities:
- Build the FastAPI application and register routers/middleware/error handlers.
- Initialize and dispose shared infrastructure (DB engine/session factory).
- Provide a single composition root where cross-cutting concerns live.
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from maui_care import __version__
from maui_care.api.errors import install_error_handlers
from maui_care.api.routers.dev_auth import router as dev_auth_router
from maui_care.api.routers.health import router as health_router
from maui_care.api.routers.medications import router as medications_router
from maui_care.api.routers.profiles import router as profiles_router
from maui_care.api.routers.records import router as records_router
from maui_care.api.routers.residents import router as residents_router
from maui_care.db.init_db import init_db
from maui_care.db.session import create_engine, create_sessionmaker
from maui_care.observability.logging import configure_logging, get_logger
from maui_care.observability.middleware import RequestContextMiddleware
from maui_care.settings import Settings

log = get_logger(__name__)


def create_app(*, settings: Settings) -> FastAPI:
    # Configure structured logging once at process startup (before app serves requests).
    configure_logging(service_name=settings.service_name, level=settings.log_level)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        log.info("startup", env=settings.env)
        # Engine and session factory live on app.state; routers reach them via `api.deps`.
        engine = create_engine(settings)
        app.state.engine = engine
        app.state.sessionmaker = create_sessionmaker(engine)
        if settings.env in ("dev", "test"):
            # Dev/test convenience: create tables automatically. Prod uses Alembic migrations.
            await init_db(engine)
        try:
            yield
        finally:
            await engine.dispose()
            log.info("shutdown")

    app = FastAPI(
        title="Maui Care",
        version=__version__,
        docs_url="/docs",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )
    app.state.settings = settings

    app.add_middleware(RequestContextMiddleware)
    install_error_handlers(app)
    app.include_router(health_router, tags=["health"])
    app.include_router(dev_auth_router)
    app.include_router(residents_router)
    app.include_router(medications_router)
    app.include_router(records_router)
    app.include_router(profiles_router)

    return app


# --- Module Notes -----------------------------------------------------------
# Business logic stays in services; this file only composes the app.
