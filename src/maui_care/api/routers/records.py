"""
maui_care.api.routers.records

Timestamped clinical record endpoints (vitals, MAR, ADL).

Responsibilities:
- Mount create/list/delete routes for each record kind under a resident.
"""

# No `from __future__ import annotations` here: the route factory below passes the
# body model as a runtime annotation, which FastAPI must be able to evaluate.

from fastapi import APIRouter, Depends, Response
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.status import HTTP_201_CREATED, HTTP_204_NO_CONTENT

from maui_care.api.deps import db_session
from maui_care.api.schemas import AdlIn, AdlOut, MarIn, MarOut, VitalsIn, VitalsOut
from maui_care.auth.deps import get_principal, require_roles
from maui_care.auth.models import Principal
from maui_care.services.records import RecordKind, RecordService

router = APIRouter(prefix="/v1/residents", tags=["records"])


def _mount(kind: RecordKind, body_model: type[BaseModel], out_model: type[BaseModel]) -> None:
    path = f"/{{resident_id}}/{kind.value}"

    @router.post(
        path,
        response_model=out_model,
        status_code=HTTP_201_CREATED,
        name=f"create_{kind.value}_record",
    )
    async def create_record(
        resident_id: str,
        body: body_model,  # type: ignore[valid-type]
        principal: Principal = Depends(require_roles("user")),
        session: AsyncSession = Depends(db_session),
    ) -> BaseModel:
        return await RecordService(session=session).create(principal, resident_id, kind, body)

    @router.get(path, response_model=list[out_model], name=f"list_{kind.value}_records")
    async def list_records(
        resident_id: str,
        principal: Principal = Depends(get_principal),
        session: AsyncSession = Depends(db_session),
    ) -> list[BaseModel]:
        return await RecordService(session=session).list_records(principal, resident_id, kind)

    @router.delete(
        path + "/{timestamp}",
        status_code=HTTP_204_NO_CONTENT,
        name=f"delete_{kind.value}_record",
    )
    async def delete_record(
        resident_id: str,
        timestamp: int,
        principal: Principal = Depends(require_roles("user")),
        session: AsyncSession = Depends(db_session),
    ) -> Response:
        await RecordService(session=session).delete(principal, resident_id, kind, timestamp)
        return Response(status_code=HTTP_204_NO_CONTENT)


_mount(RecordKind.vitals, VitalsIn, VitalsOut)
_mount(RecordKind.mar, MarIn, MarOut)
_mount(RecordKind.adl, AdlIn, AdlOut)
