from __future__ import annotations

from typing import Any

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from maui_care.db.models import Medication, MedicationStatus


class MedicationRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def list_for_resident(
        self, resident_id: str, *, include_deleted: bool = False
    ) -> list[Medication]:
        stmt = (
            select(Medication)
            .where(Medication.resident_id == resident_id)
            .order_by(Medication.medication_id)
        )
        if not include_deleted:
            stmt = stmt.where(Medication.status != MedicationStatus.deleted)
        return list((await self._session.execute(stmt)).scalars().all())

    async def get(self, resident_id: str, medication_id: int) -> Medication | None:
        stmt = select(Medication).where(
            Medication.resident_id == resident_id, Medication.medication_id == medication_id
        )
        return (await self._session.execute(stmt)).scalar_one_or_none()

    async def next_id(self, resident_id: str) -> int:
        # Soft-deleted rows still hold their id, so numbering never reuses one.
        stmt = select(func.max(Medication.medication_id)).where(
            Medication.resident_id == resident_id
        )
        current = (await self._session.execute(stmt)).scalar_one_or_none()
        return (current or 0) + 1

    async def add(self, *, resident_id: str, fields: dict[str, Any]) -> Medication:
        med = Medication(
            resident_id=resident_id,
            medication_id=await self.next_id(resident_id),
            **fields,
        )
        self._session.add(med)
        await self._session.flush()
        return med

    async def update(self, med: Medication, fields: dict[str, Any]) -> Medication:
        for key, value in fields.items():
            setattr(med, key, value)
        await self._session.flush()
        return med

    async def set_status(self, med: Medication, status: MedicationStatus) -> Medication:
        med.status = status
        await self._session.flush()
        return med
