"""
maui_care.api.schemas

Request/response models for the care service API.

Responsibilities:
- Validate request bodies at the HTTP boundary.
- Define the wire shapes the `CareApiClient` parses responses into.
"""

from __future__ import annotations

import enum
from typing import Self

from pydantic import BaseModel, ConfigDict, Field, model_validator

from maui_care.auth.models import UserRole
from maui_care.db.models import MedicationRoute, MedicationStatus


class InsuranceInfo(BaseModel):
    company: str = ""
    address: str = ""
    contact_number: str = ""
    policy_number: str = ""


class PharmacyInfo(BaseModel):
    name: str = ""
    address: str = ""
    contact_number: str = ""


class Physician(BaseModel):
    name: str = Field(min_length=1, max_length=256)
    specialty: str = ""
    contact_number: str = ""


class ResponsiblePerson(BaseModel):
    name: str = Field(min_length=1, max_length=256)
    relationship: str = ""
    address: str = ""
    contact_number: str = ""


class MedicationIn(BaseModel):
    medication_name: str = Field(min_length=1, max_length=256)
    dosage: str = Field(min_length=1, max_length=128)
    prescribing_physician: str = ""
    administration_times: list[str] = Field(default_factory=list)
    route: MedicationRoute | None = None
    route_other: str | None = Field(default=None, max_length=128)
    status: MedicationStatus = MedicationStatus.active

    @model_validator(mode="after")
    def _check_route(self) -> Self:
        if self.route is MedicationRoute.other:
            if not (self.route_other or "").strip():
                raise ValueError("route_other is required when route is 'other'")
        else:
            self.route_other = None
        return self


class MedicationOut(MedicationIn):
    id: int

    def route_label(self) -> str:
        if self.route is None:
            return ""
        if self.route is MedicationRoute.other:
            return self.route_other or ""
        return ROUTE_LABELS.get(self.route, self.route.value)


ROUTE_LABELS: dict[MedicationRoute, str] = {
    MedicationRoute.oral: "Oral",
    MedicationRoute.intravenous_iv: "Intravenous (IV)",
    MedicationRoute.intramuscular_im: "Intramuscular (IM)",
    MedicationRoute.subcutaneous_subq: "Subcutaneous (SubQ)",
    MedicationRoute.sublingual_sl: "Sublingual (SL)",
    MedicationRoute.topical: "Topical",
    MedicationRoute.transdermal: "Transdermal",
    MedicationRoute.rectal: "Rectal",
    MedicationRoute.inhalation: "Inhalation",
    MedicationRoute.nasal: "Nasal",
    MedicationRoute.ophthalmic: "Ophthalmic (Eye)",
    MedicationRoute.otic: "Otic (Ear)",
    MedicationRoute.vaginal: "Vaginal",
    MedicationRoute.injection: "Injection",
}


class ResidentFields(BaseModel):
    name: str = Field(min_length=1, max_length=256)
    birth_date: str = Field(min_length=1, max_length=32)
    admission_date: str = Field(min_length=1, max_length=32)
    room_number: str = Field(min_length=1, max_length=32)
    room_type: str = Field(min_length=1, max_length=32)
    bed: str | None = Field(default=None, max_length=32)
    medicaid_number: str = ""
    medicare_number: str = ""
    insurance: InsuranceInfo = Field(default_factory=InsuranceInfo)
    pharmacy: PharmacyInfo = Field(default_factory=PharmacyInfo)
    physicians: list[Physician] = Field(default_factory=list)
    responsible_persons: list[ResponsiblePerson] = Field(default_factory=list)


class ResidentCreateRequest(ResidentFields):
    # Client-supplied ids are accepted so offline-created residents keep their identity.
    id: str | None = Field(default=None, min_length=1, max_length=128)
    medications: list[MedicationIn] = Field(default_factory=list)


class ResidentUpdateRequest(ResidentFields):
    pass


class ResidentOut(ResidentFields):
    id: str
    owner: str
    active: bool
    created_at_ns: int
    medications: list[MedicationOut] = Field(default_factory=list)


class DirectoryEntry(BaseModel):
    """
    Lightweight directory row. Frozen: cache patches build new entries instead of
    mutating the ones a snapshot may still reference.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    display_fields: dict[str, str] = Field(default_factory=dict)
    active: bool


class DirectoryLoadPerformance(BaseModel):
    backend_query_time_nanos: int
    total_request_time_nanos: int
    resident_count: int


class ResidentsDirectoryResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    residents: tuple[DirectoryEntry, ...] = ()
    performance: DirectoryLoadPerformance | None = None


class StatusToggleResult(enum.StrEnum):
    activated = "activated"
    terminated = "terminated"


class StatusToggleResponse(BaseModel):
    result: StatusToggleResult


class ResidentUpdateResponse(BaseModel):
    result: str = "updated"


class ResidentActiveResponse(BaseModel):
    active: bool


class VitalsIn(BaseModel):
    timestamp: int = Field(ge=0)
    temperature: float = Field(gt=25, lt=46)
    blood_pressure: str = Field(min_length=3, max_length=32)
    pulse: int = Field(ge=0, le=300)
    blood_oxygen: int = Field(ge=0, le=100)


class VitalsOut(VitalsIn):
    pass


class MarIn(BaseModel):
    timestamp: int = Field(ge=0)
    medication_name: str = Field(min_length=1, max_length=256)
    dosage: str = Field(min_length=1, max_length=128)
    administration_time: str = Field(min_length=1, max_length=64)


class MarOut(MarIn):
    nurse_id: str


class AdlIn(BaseModel):
    timestamp: int = Field(ge=0)
    activity_type: str = Field(min_length=1, max_length=128)
    assistance_level: str = Field(min_length=1, max_length=128)
    notes: str = ""


class AdlOut(AdlIn):
    supervisor_id: str


class UserProfileBody(BaseModel):
    name: str = Field(min_length=1, max_length=256)


class CallerRoleResponse(BaseModel):
    role: str


class RoleAssignmentRequest(BaseModel):
    role: UserRole


class CallerAdminResponse(BaseModel):
    is_admin: bool


class HealthCheckResponse(BaseModel):
    status: str
    message: str
    timestamp: int
    service: str


class ErrorBody(BaseModel):
    detail: str
    code: str


# --- Module Notes -----------------------------------------------------------
# Timestamps on records are epoch milliseconds chosen by the client; they are the
# delete key, so the service rejects a second record with the same timestamp.
