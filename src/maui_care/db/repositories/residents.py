"""
maui_care.db.repositories.residents

Repository for `Resident` entities.

Responsibilities:
- Create, fetch, update and delete residents.
- Provide the owner-scoped queries behind the directory and active listings.
"""

from __future__ import annotations

from typing import Any

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from maui_care.db.models import AdlRecord, MarRecord, Medication, Resident, VitalsRecord


class ResidentRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def create(self, *, resident_id: str, owner: str, fields: dict[str, Any]) -> Resident:
        resident = Resident(id=resident_id, owner=owner, active=True, **fields)
        self._session.add(resident)
        await self._session.flush()
        return resident

    async def get(self, resident_id: str) -> Resident | None:
        return await self._session.get(Resident, resident_id)

    async def get_for_update(self, resident_id: str) -> Resident | None:
        return await self._session.get(Resident, resident_id, with_for_update=True)

    async def list_visible(self, *, owner: str | None, active_only: bool = False) -> list[Resident]:
        # owner=None lists every resident (admin view).
        stmt = select(Resident).order_by(Resident.room_number, Resident.name)
        if owner is not None:
            stmt = stmt.where(Resident.owner == owner)
        if active_only:
            stmt = stmt.where(Resident.active.is_(True))
        return list((await self._session.execute(stmt)).scalars().all())

    async def update_fields(self, resident: Resident, fields: dict[str, Any]) -> Resident:
        for key, value in fields.items():
            setattr(resident, key, value)
        await self._session.flush()
        return resident

    async def set_active(self, resident: Resident, active: bool) -> None:
        resident.active = active
        await self._session.flush()

    async def delete(self, resident: Resident) -> None:
        for model in (Medication, VitalsRecord, MarRecord, AdlRecord):
            await self._session.execute(delete(model).where(model.resident_id == resident.id))
        await self._session.delete(resident)
        await self._session.flush()


# --- Module Notes -----------------------------------------------------------
# Directory listings are ordered by room then name so the dashboard grid is stable.
