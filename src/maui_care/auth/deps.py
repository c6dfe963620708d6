"""
maui_care.auth.deps

FastAPI dependency functions for authentication and authorization.

Responsibilities:
- Convert a bearer token into a typed `Principal`, applying any stored role assignment.
- Enforce RBAC via reusable dependency factories.
"""

from __future__ import annotations

from fastapi import Depends, HTTPException
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.status import HTTP_401_UNAUTHORIZED, HTTP_403_FORBIDDEN

from maui_care.auth.jwt import JwtConfig, JwtValidationError, decode_and_validate
from maui_care.auth.models import Principal
from maui_care.api.deps import db_session, settings_dep
from maui_care.db.repositories.profiles import ProfileRepo
from maui_care.settings import Settings

_bearer = HTTPBearer(auto_error=False)


async def get_principal(
    creds: HTTPAuthorizationCredentials | None = Depends(_bearer),
    settings: Settings = Depends(settings_dep),
    session: AsyncSession = Depends(db_session),
) -> Principal:
    if creds is None or not creds.credentials:
        raise HTTPException(status_code=HTTP_401_UNAUTHORIZED, detail="Missing bearer token")

    try:
        payload = decode_and_validate(
            cfg=JwtConfig.from_settings(settings), token=creds.credentials
        )
    except JwtValidationError as e:
        raise HTTPException(status_code=HTTP_401_UNAUTHORIZED, detail=f"Invalid token: {e}") from e

    subject = str(payload.get("sub", ""))
    roles_raw = payload.get("roles", [])
    if not subject:
        raise HTTPException(status_code=HTTP_401_UNAUTHORIZED, detail="Invalid token subject")
    if not isinstance(roles_raw, list):
        raise HTTPException(status_code=HTTP_401_UNAUTHORIZED, detail="Invalid token roles")

    roles: frozenset[str] = frozenset(str(r) for r in roles_raw)
    # An assigned role replaces whatever the token claims.
    assigned = await ProfileRepo(session).assigned_role(subject)
    if assigned is not None:
        roles = frozenset({assigned})
    return Principal(subject=subject, roles=roles)


def require_roles(*required: str):
    required_set = frozenset(required)

    def _dep(principal: Principal = Depends(get_principal)) -> Principal:
        # Authz: admin bypasses role checks.
        if principal.is_admin:
            return principal
        if not required_set.issubset(principal.roles):
            raise HTTPException(status_code=HTTP_403_FORBIDDEN, detail="Insufficient role")
        return principal

    return _dep


# --- Module Notes -----------------------------------------------------------
# Ownership checks (owner vs. admin) are a service-layer concern; see
# `services.residents.ResidentService.owned`.
