"""
maui_care.db.session

Async SQLAlchemy engine + session factory helpers.

Responsibilities:
- Create the async engine from settings.
- Create the async sessionmaker with safe defaults.
"""

from __future__ import annotations

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from maui_care.settings import Settings


def create_engine(settings: Settings) -> AsyncEngine:
    # pool_pre_ping helps detect stale connections in long-lived processes.
    return create_async_engine(
        settings.database_url,
        pool_pre_ping=True,
    )


def create_sessionmaker(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    # expire_on_commit=False avoids surprising lazy loads after commits.
    return async_sessionmaker(
        bind=engine,
        expire_on_commit=False,
        autoflush=False,
    )


# --- Module Notes -----------------------------------------------------------
# The API layer scopes sessions per request via `api.deps.db_session`.
