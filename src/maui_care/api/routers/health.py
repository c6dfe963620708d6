"""
maui_care.api.routers.health

Health and readiness endpoints.

Responsibilities:
- Provide liveness probe (`/healthz`).
- Provide readiness probe (`/readyz`) with DB connectivity validation.
- Provide the anonymous reachability check the client polls before login (`/v1/health`).
"""

from __future__ import annotations

import time

from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from maui_care.api.deps import db_session, settings_dep
from maui_care.api.schemas import HealthCheckResponse
from maui_care.settings import Settings

router = APIRouter()


@router.get("/healthz")
async def healthz() -> dict[str, str]:
    return {"status": "ok"}


@router.get("/readyz")
async def readyz(session: AsyncSession = Depends(db_session)) -> dict[str, str]:
    await session.execute(text("SELECT 1"))
    return {"status": "ready"}


@router.get("/v1/health", response_model=HealthCheckResponse)
async def health_check(settings: Settings = Depends(settings_dep)) -> HealthCheckResponse:
    return HealthCheckResponse(
        status="ok",
        message="Care service is reachable",
        timestamp=time.time_ns(),
        service=settings.service_name,
    )
