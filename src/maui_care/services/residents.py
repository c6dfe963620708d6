"""
maui_care.services.residents

Resident lifecycle service (transaction + ownership owner).

Responsibilities:
- Create, read, update, delete residents on behalf of an authenticated principal.
- Toggle the active/discharged status.
- Build the lightweight directory listing with load timings.
- Persist audit events for every mutation.
"""

from __future__ import annotations

import time
import uuid

from sqlalchemy.ext.asyncio import AsyncSession

from maui_care.api.schemas import (
    DirectoryEntry,
    DirectoryLoadPerformance,
    MedicationOut,
    ResidentCreateRequest,
    ResidentOut,
    ResidentsDirectoryResponse,
    ResidentUpdateRequest,
    StatusToggleResult,
)
from maui_care.auth.models import Principal
from maui_care.db.models import Medication, Resident
from maui_care.db.repositories.audit import AuditRepo
from maui_care.db.repositories.medications import MedicationRepo
from maui_care.db.repositories.residents import ResidentRepo
from maui_care.observability.logging import get_logger
from maui_care.services.errors import (
    ResidentAccessDenied,
    ResidentAlreadyExists,
    ResidentNotFound,
)

log = get_logger(__name__)

_DIRECTORY_FIELDS = ("name", "room_number", "room_type", "bed", "birth_date", "admission_date")


def medication_out(med: Medication) -> MedicationOut:
    return MedicationOut(
        id=med.medication_id,
        medication_name=med.medication_name,
        dosage=med.dosage,
        prescribing_physician=med.prescribing_physician,
        administration_times=list(med.administration_times or []),
        route=med.route,
        route_other=med.route_other,
        status=med.status,
    )


def resident_out(resident: Resident, medications: list[Medication]) -> ResidentOut:
    return ResidentOut(
        id=resident.id,
        owner=resident.owner,
        active=resident.active,
        created_at_ns=resident.created_at_ns,
        name=resident.name,
        birth_date=resident.birth_date,
        admission_date=resident.admission_date,
        room_number=resident.room_number,
        room_type=resident.room_type,
        bed=resident.bed,
        medicaid_number=resident.medicaid_number,
        medicare_number=resident.medicare_number,
        insurance=resident.insurance or {},
        pharmacy=resident.pharmacy or {},
        physicians=resident.physicians or [],
        responsible_persons=resident.responsible_persons or [],
        medications=[medication_out(m) for m in medications],
    )


def directory_entry(resident: Resident) -> DirectoryEntry:
    fields = {name: getattr(resident, name) for name in _DIRECTORY_FIELDS}
    return DirectoryEntry(
        id=resident.id,
        display_fields={k: str(v) for k, v in fields.items() if v is not None},
        active=resident.active,
    )


class ResidentService:
    def __init__(self, *, session: AsyncSession) -> None:
        self._session = session
        self._residents = ResidentRepo(session)
        self._medications = MedicationRepo(session)
        self._audit = AuditRepo(session)

    async def owned(self, principal: Principal, resident_id: str, *, action: str) -> Resident:
        """
        Load a resident the caller may act on. Unknown ids are 404, foreign ones 403.
        """

        resident = await self._residents.get(resident_id)
        if resident is None:
            raise ResidentNotFound(resident_id)
        if not principal.can_manage(resident.owner):
            log.warning(
                "resident_access_denied",
                resident_id=resident_id,
                principal=principal.subject,
                action=action,
            )
            raise ResidentAccessDenied(action)
        return resident

    def _visible_owner(self, principal: Principal) -> str | None:
        return None if principal.is_admin else principal.subject

    async def directory(self, principal: Principal) -> ResidentsDirectoryResponse:
        started = time.perf_counter_ns()
        residents = await self._residents.list_visible(owner=self._visible_owner(principal))
        queried = time.perf_counter_ns()

        entries = tuple(directory_entry(r) for r in residents)
        perf = DirectoryLoadPerformance(
            backend_query_time_nanos=queried - started,
            total_request_time_nanos=time.perf_counter_ns() - started,
            resident_count=len(entries),
        )
        log.info(
            "residents_directory_loaded",
            resident_count=perf.resident_count,
            query_ms=round(perf.backend_query_time_nanos / 1e6, 3),
        )
        return ResidentsDirectoryResponse(residents=entries, performance=perf)

    async def list_active(self, principal: Principal) -> list[ResidentOut]:
        residents = await self._residents.list_visible(
            owner=self._visible_owner(principal), active_only=True
        )
        return [
            resident_out(r, await self._medications.list_for_resident(r.id)) for r in residents
        ]

    async def get(self, principal: Principal, resident_id: str) -> ResidentOut:
        resident = await self.owned(principal, resident_id, action="access")
        return resident_out(resident, await self._medications.list_for_resident(resident.id))

    async def is_active(self, principal: Principal, resident_id: str) -> bool:
        resident = await self.owned(principal, resident_id, action="access")
        return resident.active

    async def create(self, principal: Principal, body: ResidentCreateRequest) -> ResidentOut:
        resident_id = body.id or str(uuid.uuid4())
        if await self._residents.get(resident_id) is not None:
            raise ResidentAlreadyExists(resident_id)

        fields = body.model_dump(mode="json", exclude={"id", "medications"})
        resident = await self._residents.create(
            resident_id=resident_id, owner=principal.subject, fields=fields
        )
        for med in body.medications:
            await self._medications.add(resident_id=resident_id, fields=med.model_dump())

        await self._audit.add(
            resident_id=resident_id,
            actor=principal.subject,
            event_type="RESIDENT_CREATED",
            details={"medications": len(body.medications)},
        )
        await self._session.commit()
        log.info("resident_created", resident_id=resident_id, owner=principal.subject)
        return resident_out(resident, await self._medications.list_for_resident(resident_id))

    async def update(
        self, principal: Principal, resident_id: str, body: ResidentUpdateRequest
    ) -> None:
        resident = await self.owned(principal, resident_id, action="update")
        await self._residents.update_fields(resident, body.model_dump(mode="json"))
        await self._audit.add(
            resident_id=resident_id, actor=principal.subject, event_type="RESIDENT_UPDATED"
        )
        await self._session.commit()

    async def toggle_status(self, principal: Principal, resident_id: str) -> StatusToggleResult:
        await self.owned(principal, resident_id, action="modify")
        # Re-read under lock so two concurrent toggles serialize on the row.
        resident = await self._residents.get_for_update(resident_id)
        if resident is None:
            raise ResidentNotFound(resident_id)

        await self._residents.set_active(resident, not resident.active)
        result = StatusToggleResult.activated if resident.active else StatusToggleResult.terminated
        await self._audit.add(
            resident_id=resident_id,
            actor=principal.subject,
            event_type="RESIDENT_STATUS_TOGGLED",
            details={"result": result.value},
        )
        await self._session.commit()
        log.info("resident_status_toggled", resident_id=resident_id, result=result.value)
        return result

    async def delete(self, principal: Principal, resident_id: str) -> None:
        resident = await self.owned(principal, resident_id, action="delete")
        await self._residents.delete(resident)
        await self._audit.add(
            resident_id=resident_id, actor=principal.subject, event_type="RESIDENT_DELETED"
        )
        await self._session.commit()
        log.info("resident_deleted", resident_id=resident_id)


# --- Module Notes -----------------------------------------------------------
# Admins see and manage every resident; everyone else only the residents they created.
