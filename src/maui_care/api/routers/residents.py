"""
maui_care.api.routers.residents

Resident directory and profile endpoints.

Responsibilities:
- Serve the lightweight directory listing and full resident profiles.
- Create/update/delete residents and toggle their active status.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Response
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.status import HTTP_201_CREATED, HTTP_204_NO_CONTENT

from maui_care.api.deps import db_session
from maui_care.api.schemas import (
    ResidentActiveResponse,
    ResidentCreateRequest,
    ResidentOut,
    ResidentsDirectoryResponse,
    ResidentUpdateRequest,
    ResidentUpdateResponse,
    StatusToggleResponse,
)
from maui_care.auth.deps import get_principal, require_roles
from maui_care.auth.models import Principal
from maui_care.services.residents import ResidentService

router = APIRouter(prefix="/v1/residents", tags=["residents"])


@router.get("/directory", response_model=ResidentsDirectoryResponse)
async def residents_directory(
    principal: Principal = Depends(get_principal),
    session: AsyncSession = Depends(db_session),
) -> ResidentsDirectoryResponse:
    return await ResidentService(session=session).directory(principal)


@router.get("", response_model=list[ResidentOut])
async def list_active_residents(
    principal: Principal = Depends(get_principal),
    session: AsyncSession = Depends(db_session),
) -> list[ResidentOut]:
    return await ResidentService(session=session).list_active(principal)


@router.post("", response_model=ResidentOut, status_code=HTTP_201_CREATED)
async def create_resident(
    body: ResidentCreateRequest,
    principal: Principal = Depends(require_roles("user")),
    session: AsyncSession = Depends(db_session),
) -> ResidentOut:
    return await ResidentService(session=session).create(principal, body)


@router.get("/{resident_id}", response_model=ResidentOut)
async def get_resident(
    resident_id: str,
    principal: Principal = Depends(get_principal),
    session: AsyncSession = Depends(db_session),
) -> ResidentOut:
    return await ResidentService(session=session).get(principal, resident_id)


@router.get("/{resident_id}/active", response_model=ResidentActiveResponse)
async def is_resident_active(
    resident_id: str,
    principal: Principal = Depends(get_principal),
    session: AsyncSession = Depends(db_session),
) -> ResidentActiveResponse:
    active = await ResidentService(session=session).is_active(principal, resident_id)
    return ResidentActiveResponse(active=active)


@router.put("/{resident_id}", response_model=ResidentUpdateResponse)
async def update_resident(
    resident_id: str,
    body: ResidentUpdateRequest,
    principal: Principal = Depends(require_roles("user")),
    session: AsyncSession = Depends(db_session),
) -> ResidentUpdateResponse:
    await ResidentService(session=session).update(principal, resident_id, body)
    return ResidentUpdateResponse()


@router.post("/{resident_id}/toggle-status", response_model=StatusToggleResponse)
async def toggle_resident_status(
    resident_id: str,
    principal: Principal = Depends(require_roles("user")),
    session: AsyncSession = Depends(db_session),
) -> StatusToggleResponse:
    result = await ResidentService(session=session).toggle_status(principal, resident_id)
    return StatusToggleResponse(result=result)


@router.delete("/{resident_id}", status_code=HTTP_204_NO_CONTENT)
async def delete_resident(
    resident_id: str,
    principal: Principal = Depends(require_roles("user")),
    session: AsyncSession = Depends(db_session),
) -> Response:
    await ResidentService(session=session).delete(principal, resident_id)
    return Response(status_code=HTTP_204_NO_CONTENT)


# --- Module Notes -----------------------------------------------------------
# `/directory` is declared before `/{resident_id}` so the static path wins routing.
