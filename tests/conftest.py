"""
tests.conftest

Shared fixtures: an app per test on its own sqlite file, an in-process HTTP client,
and token helpers.
"""

from __future__ import annotations

from collections.abc import AsyncIterator, Callable
from pathlib import Path

import httpx
import pytest
import pytest_asyncio
from fastapi import FastAPI

from maui_care.api.app import create_app
from maui_care.auth.jwt import JwtConfig, issue_token
from maui_care.settings import Settings


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    return Settings(
        env="test",
        log_level="WARNING",
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'maui_care.db'}",
    )


@pytest_asyncio.fixture
async def app(settings: Settings) -> AsyncIterator[FastAPI]:
    app = create_app(settings=settings)
    # httpx ASGITransport does not drive lifespan; run it explicitly.
    async with app.router.lifespan_context(app):
        yield app


@pytest_asyncio.fixture
async def http(app: FastAPI) -> AsyncIterator[httpx.AsyncClient]:
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest.fixture
def auth(settings: Settings) -> Callable[..., dict[str, str]]:
    cfg = JwtConfig.from_settings(settings)

    def _headers(subject: str, *roles: str) -> dict[str, str]:
        token = issue_token(cfg=cfg, subject=subject, roles=list(roles or ("user",)))
        return {"Authorization": f"Bearer {token}"}

    return _headers


def resident_payload(resident_id: str | None = None, **overrides) -> dict:
    body = {
        "name": "Janet Studwell",
        "birth_date": "1944-07-14",
        "admission_date": "2021-10-14",
        "room_number": "001",
        "room_type": "Shared",
        "bed": "A",
        "medicaid_number": "MCD-1",
        "medicare_number": "MCR-1",
        "insurance": {"company": "Acme Health", "policy_number": "P-100"},
        "pharmacy": {"name": "Corner Pharmacy"},
        "physicians": [{"name": "Dr. Kealoha", "specialty": "Geriatrics"}],
        "responsible_persons": [{"name": "Ann Studwell", "relationship": "Daughter"}],
    }
    if resident_id is not None:
        body["id"] = resident_id
    body.update(overrides)
    return body


@pytest.fixture
def resident_body() -> Callable[..., dict]:
    return resident_payload
