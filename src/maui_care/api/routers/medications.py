from __future__ import annotations

from fastapi import APIRouter, Depends, Response
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.status import HTTP_201_CREATED, HTTP_204_NO_CONTENT

from maui_care.api.deps import db_session
from maui_care.api.schemas import MedicationIn, MedicationOut
from maui_care.auth.deps import require_roles
from maui_care.auth.models import Principal
from maui_care.services.records import MedicationService

router = APIRouter(prefix="/v1/residents/{resident_id}/medications", tags=["medications"])


@router.post("", response_model=MedicationOut, status_code=HTTP_201_CREATED)
async def add_medication(
    resident_id: str,
    body: MedicationIn,
    principal: Principal = Depends(require_roles("user")),
    session: AsyncSession = Depends(db_session),
) -> MedicationOut:
    return await MedicationService(session=session).add(principal, resident_id, body)


@router.put("/{medication_id}", response_model=MedicationOut)
async def update_medication(
    resident_id: str,
    medication_id: int,
    body: MedicationIn,
    principal: Principal = Depends(require_roles("user")),
    session: AsyncSession = Depends(db_session),
) -> MedicationOut:
    return await MedicationService(session=session).update(
        principal, resident_id, medication_id, body
    )


@router.post("/{medication_id}/discontinue", response_model=MedicationOut)
async def discontinue_medication(
    resident_id: str,
    medication_id: int,
    principal: Principal = Depends(require_roles("user")),
    session: AsyncSession = Depends(db_session),
) -> MedicationOut:
    return await MedicationService(session=session).discontinue(
        principal, resident_id, medication_id
    )


@router.delete("/{medication_id}", status_code=HTTP_204_NO_CONTENT)
async def delete_medication(
    resident_id: str,
    medication_id: int,
    principal: Principal = Depends(require_roles("user")),
    session: AsyncSession = Depends(db_session),
) -> Response:
    await MedicationService(session=session).delete(principal, resident_id, medication_id)
    return Response(status_code=HTTP_204_NO_CONTENT)
