from __future__ import annotations

from datetime import timedelta

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field
from starlette.status import HTTP_404_NOT_FOUND

from maui_care.api.deps import settings_dep
from maui_care.auth.jwt import JwtConfig, issue_token
from maui_care.settings import Settings

router = APIRouter(prefix="/v1/dev", tags=["dev"])


class DevTokenRequest(BaseModel):
    subject: str = Field(min_length=1, max_length=256)
    roles: list[str] = Field(default_factory=lambda: ["user"])
    ttl_minutes: int = Field(default=60, ge=1, le=24 * 60)


class DevTokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"


@router.post("/token", response_model=DevTokenResponse)
async def mint_dev_token(
    body: DevTokenRequest,
    settings: Settings = Depends(settings_dep),
) -> DevTokenResponse:
    if settings.env == "prod":
        raise HTTPException(status_code=HTTP_404_NOT_FOUND, detail="Not found")

    token = issue_token(
        cfg=JwtConfig.from_settings(settings),
        subject=body.subject,
        roles=body.roles,
        ttl=timedelta(minutes=body.ttl_minutes),
    )
    return DevTokenResponse(access_token=token)
