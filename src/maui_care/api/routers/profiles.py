"""
maui_care.api.routers.profiles

Caller profile and role endpoints.

Responsibilities:
- Read and save the caller's display profile and report the caller's role.
- Let administrators read another principal's profile and assign roles.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.status import HTTP_403_FORBIDDEN, HTTP_404_NOT_FOUND

from maui_care.api.deps import db_session
from maui_care.api.schemas import (
    CallerAdminResponse,
    CallerRoleResponse,
    RoleAssignmentRequest,
    UserProfileBody,
)
from maui_care.auth.deps import get_principal, require_roles
from maui_care.auth.models import Principal
from maui_care.db.repositories.profiles import ProfileRepo
from maui_care.observability.logging import get_logger

log = get_logger(__name__)

router = APIRouter(prefix="/v1/profile", tags=["profile"])


@router.get("", response_model=UserProfileBody)
async def get_caller_profile(
    principal: Principal = Depends(get_principal),
    session: AsyncSession = Depends(db_session),
) -> UserProfileBody:
    profile = await ProfileRepo(session).get(principal.subject)
    if profile is None:
        raise HTTPException(status_code=HTTP_404_NOT_FOUND, detail="Profile not found")
    return UserProfileBody(name=profile.name)


@router.put("", response_model=UserProfileBody)
async def save_caller_profile(
    body: UserProfileBody,
    principal: Principal = Depends(get_principal),
    session: AsyncSession = Depends(db_session),
) -> UserProfileBody:
    profile = await ProfileRepo(session).save(principal=principal.subject, name=body.name)
    await session.commit()
    return UserProfileBody(name=profile.name)


@router.get("/role", response_model=CallerRoleResponse)
async def get_caller_role(principal: Principal = Depends(get_principal)) -> CallerRoleResponse:
    return CallerRoleResponse(role=principal.role.value)


@router.get("/admin", response_model=CallerAdminResponse)
async def is_caller_admin(principal: Principal = Depends(get_principal)) -> CallerAdminResponse:
    return CallerAdminResponse(is_admin=principal.is_admin)


# Declared after the static paths above so `/role` and `/admin` are not read as principals.


@router.get("/{user}", response_model=UserProfileBody)
async def get_user_profile(
    user: str,
    principal: Principal = Depends(get_principal),
    session: AsyncSession = Depends(db_session),
) -> UserProfileBody:
    if not principal.can_manage(user):
        raise HTTPException(
            status_code=HTTP_403_FORBIDDEN, detail="Unauthorized: can only view your own profile"
        )
    profile = await ProfileRepo(session).get(user)
    if profile is None:
        raise HTTPException(status_code=HTTP_404_NOT_FOUND, detail="Profile not found")
    return UserProfileBody(name=profile.name)


@router.put("/{user}/role", response_model=CallerRoleResponse)
async def assign_user_role(
    user: str,
    body: RoleAssignmentRequest,
    principal: Principal = Depends(require_roles("admin")),
    session: AsyncSession = Depends(db_session),
) -> CallerRoleResponse:
    await ProfileRepo(session).assign_role(
        principal=user, role=body.role.value, assigned_by=principal.subject
    )
    await session.commit()
    log.info("role_assigned", principal=user, role=body.role.value, actor=principal.subject)
    return CallerRoleResponse(role=body.role.value)
