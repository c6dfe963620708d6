"""
maui_care.db.repositories.records

Repository for timestamped resident records (vitals, MAR, ADL).

Responsibilities:
- Append, list (newest-first) and delete records addressed by `(resident_id, timestamp)`.
"""

from __future__ import annotations

from typing import Any, Generic, TypeVar

from sqlalchemy import delete, desc, select
from sqlalchemy.ext.asyncio import AsyncSession

from maui_care.db.models import AdlRecord, MarRecord, VitalsRecord

RecordT = TypeVar("RecordT", VitalsRecord, MarRecord, AdlRecord)


class RecordRepo(Generic[RecordT]):
    def __init__(self, session: AsyncSession, model: type[RecordT]) -> None:
        self._session = session
        self._model = model

    async def add(self, *, resident_id: str, timestamp: int, fields: dict[str, Any]) -> RecordT:
        record = self._model(resident_id=resident_id, timestamp=timestamp, **fields)
        self._session.add(record)
        await self._session.flush()
        return record

    async def get(self, resident_id: str, timestamp: int) -> RecordT | None:
        stmt = select(self._model).where(
            self._model.resident_id == resident_id, self._model.timestamp == timestamp
        )
        return (await self._session.execute(stmt)).scalar_one_or_none()

    async def list_for_resident(self, resident_id: str, *, limit: int = 500) -> list[RecordT]:
        stmt = (
            select(self._model)
            .where(self._model.resident_id == resident_id)
            .order_by(desc(self._model.timestamp))
            .limit(limit)
        )
        return list((await self._session.execute(stmt)).scalars().all())

    async def delete(self, resident_id: str, timestamp: int) -> bool:
        stmt = delete(self._model).where(
            self._model.resident_id == resident_id, self._model.timestamp == timestamp
        )
        result = await self._session.execute(stmt)
        return bool(result.rowcount)


# --- Module Notes -----------------------------------------------------------
# One generic repo serves all three record tables; they share the addressing scheme.
