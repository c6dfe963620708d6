"""
maui_care.api.deps

FastAPI dependency wiring for the API layer.

Responsibilities:
- Provide dependency functions for settings and DB sessions.
- Encapsulate app.state access patterns (engine/sessionmaker).
"""

from __future__ import annotations

from collections.abc import AsyncIterator

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from maui_care.settings import Settings


def settings_dep(request: Request) -> Settings:
    # The app is built around one Settings instance; see `create_app`.
    return request.app.state.settings  # type: ignore[attr-defined]


def sessionmaker_from_app(request: Request) -> async_sessionmaker[AsyncSession]:
    return request.app.state.sessionmaker  # type: ignore[attr-defined]


async def db_session(
    session_factory: async_sessionmaker[AsyncSession] = Depends(sessionmaker_from_app),
) -> AsyncIterator[AsyncSession]:
    # Request-scoped DB session. Commit is managed explicitly by the service layer.
    async with session_factory() as session:
        yield session
