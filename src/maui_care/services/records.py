"""
maui_care.services.records

Clinical record service: vitals, medication administration (MAR), activities of
daily living (ADL), and the resident medication list.

Responsibilities:
- Create/list/delete timestamped records addressed by `(resident_id, timestamp)`.
- Refuse new records for inactive residents.
- Stamp MAR/ADL records with the acting principal.
- Add, update, discontinue and soft-delete medications.
"""

from __future__ import annotations

import enum

from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from maui_care.api.schemas import (
    AdlIn,
    AdlOut,
    MarIn,
    MarOut,
    MedicationIn,
    MedicationOut,
    VitalsIn,
    VitalsOut,
)
from maui_care.auth.models import Principal
from maui_care.db.models import AdlRecord, MarRecord, Medication, MedicationStatus, VitalsRecord
from maui_care.db.repositories.audit import AuditRepo
from maui_care.db.repositories.medications import MedicationRepo
from maui_care.db.repositories.records import RecordRepo
from maui_care.services.errors import (
    InactiveResident,
    MedicationNotFound,
    RecordAlreadyExists,
    RecordNotFound,
)
from maui_care.services.residents import ResidentService, medication_out


class RecordKind(enum.StrEnum):
    vitals = "vitals"
    mar = "mar"
    adl = "adl"


_MODELS = {
    RecordKind.vitals: VitalsRecord,
    RecordKind.mar: MarRecord,
    RecordKind.adl: AdlRecord,
}

_OUT = {
    RecordKind.vitals: VitalsOut,
    RecordKind.mar: MarOut,
    RecordKind.adl: AdlOut,
}


def _stamp(kind: RecordKind, principal: Principal) -> dict[str, str]:
    # MAR and ADL entries record who administered/supervised.
    if kind is RecordKind.mar:
        return {"nurse_id": principal.subject}
    if kind is RecordKind.adl:
        return {"supervisor_id": principal.subject}
    return {}


class RecordService:
    def __init__(self, *, session: AsyncSession) -> None:
        self._session = session
        self._residents = ResidentService(session=session)
        self._audit = AuditRepo(session)

    def _repo(self, kind: RecordKind) -> RecordRepo:
        return RecordRepo(self._session, _MODELS[kind])

    async def create(
        self,
        principal: Principal,
        resident_id: str,
        kind: RecordKind,
        body: VitalsIn | MarIn | AdlIn,
    ) -> BaseModel:
        resident = await self._residents.owned(principal, resident_id, action=f"add {kind} for")
        if not resident.active:
            raise InactiveResident(resident_id)

        repo = self._repo(kind)
        if await repo.get(resident_id, body.timestamp) is not None:
            raise RecordAlreadyExists(kind.value, body.timestamp)

        fields = body.model_dump(exclude={"timestamp"}) | _stamp(kind, principal)
        record = await repo.add(resident_id=resident_id, timestamp=body.timestamp, fields=fields)
        await self._audit.add(
            resident_id=resident_id,
            actor=principal.subject,
            event_type=f"{kind.value.upper()}_RECORD_CREATED",
            details={"timestamp": body.timestamp},
        )
        await self._session.commit()
        return _OUT[kind].model_validate(record, from_attributes=True)

    async def list_records(
        self, principal: Principal, resident_id: str, kind: RecordKind
    ) -> list[BaseModel]:
        await self._residents.owned(principal, resident_id, action="access")
        records = await self._repo(kind).list_for_resident(resident_id)
        out = _OUT[kind]
        return [out.model_validate(r, from_attributes=True) for r in records]

    async def delete(
        self, principal: Principal, resident_id: str, kind: RecordKind, timestamp: int
    ) -> None:
        await self._residents.owned(principal, resident_id, action=f"delete {kind} for")
        if not await self._repo(kind).delete(resident_id, timestamp):
            raise RecordNotFound(kind.value, timestamp)
        await self._audit.add(
            resident_id=resident_id,
            actor=principal.subject,
            event_type=f"{kind.value.upper()}_RECORD_DELETED",
            details={"timestamp": timestamp},
        )
        await self._session.commit()


class MedicationService:
    def __init__(self, *, session: AsyncSession) -> None:
        self._session = session
        self._residents = ResidentService(session=session)
        self._medications = MedicationRepo(session)
        self._audit = AuditRepo(session)

    async def _audit_and_commit(
        self, principal: Principal, resident_id: str, event_type: str, medication_id: int
    ) -> None:
        await self._audit.add(
            resident_id=resident_id,
            actor=principal.subject,
            event_type=event_type,
            details={"medication_id": medication_id},
        )
        await self._session.commit()

    async def _existing(self, resident_id: str, medication_id: int) -> Medication:
        med = await self._medications.get(resident_id, medication_id)
        if med is None or med.status is MedicationStatus.deleted:
            raise MedicationNotFound(medication_id)
        return med

    async def add(
        self, principal: Principal, resident_id: str, body: MedicationIn
    ) -> MedicationOut:
        await self._residents.owned(principal, resident_id, action="add medications for")
        med = await self._medications.add(resident_id=resident_id, fields=body.model_dump())
        await self._audit_and_commit(principal, resident_id, "MEDICATION_ADDED", med.medication_id)
        return medication_out(med)

    async def update(
        self, principal: Principal, resident_id: str, medication_id: int, body: MedicationIn
    ) -> MedicationOut:
        await self._residents.owned(principal, resident_id, action="update medications for")
        med = await self._existing(resident_id, medication_id)
        await self._medications.update(med, body.model_dump())
        await self._audit_and_commit(principal, resident_id, "MEDICATION_UPDATED", medication_id)
        return medication_out(med)

    async def discontinue(
        self, principal: Principal, resident_id: str, medication_id: int
    ) -> MedicationOut:
        await self._residents.owned(principal, resident_id, action="update medications for")
        med = await self._existing(resident_id, medication_id)
        await self._medications.set_status(med, MedicationStatus.discontinued)
        await self._audit_and_commit(
            principal, resident_id, "MEDICATION_DISCONTINUED", medication_id
        )
        return medication_out(med)

    async def delete(self, principal: Principal, resident_id: str, medication_id: int) -> None:
        await self._residents.owned(principal, resident_id, action="update medications for")
        med = await self._existing(resident_id, medication_id)
        await self._medications.set_status(med, MedicationStatus.deleted)
        await self._audit_and_commit(principal, resident_id, "MEDICATION_DELETED", medication_id)
