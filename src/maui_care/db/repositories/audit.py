"""
maui_care.db.repositories.audit

Repository for `AuditEvent` entities.

Responsibilities:
- Append audit events for resident and record mutations.
- Query the audit trail of a resident.
"""

from __future__ import annotations

from typing import Any

from sqlalchemy import desc, select
from sqlalchemy.ext.asyncio import AsyncSession

from maui_care.db.models import AuditEvent


class AuditRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def add(
        self,
        *,
        resident_id: str,
        actor: str,
        event_type: str,
        details: dict[str, Any] | None = None,
    ) -> AuditEvent:
        # Audit events are append-only (no update/delete) in normal operation.
        ev = AuditEvent(
            resident_id=resident_id,
            actor=actor,
            event_type=event_type,
            details=details or {},
        )
        self._session.add(ev)
        await self._session.flush()
        return ev

    async def list_for_resident(self, resident_id: str, *, limit: int = 200) -> list[AuditEvent]:
        stmt = (
            select(AuditEvent)
            .where(AuditEvent.resident_id == resident_id)
            .order_by(desc(AuditEvent.created_at))
            .limit(limit)
        )
        return list((await self._session.execute(stmt)).scalars().all())
