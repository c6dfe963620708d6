"""
maui_care.db.models

Persistence schema for the care service.

Responsibilities:
- Define ORM models for residents and their clinical records:
  - Resident: profile, placement, insurance/pharmacy/contacts, active flag, owner
  - Medication: per-resident medication list (soft-deleted via status)
  - VitalsRecord / MarRecord / AdlRecord: timestamped record sub-resources
  - UserProfile: caller display profile
  - RoleAssignment: stored role that overrides the token's role claim
  - AuditEvent: append-only audit trail
"""

from __future__ import annotations

import enum
import time
import uuid
from datetime import UTC, datetime
from typing import Any

from sqlalchemy import (
    JSON,
    BigInteger,
    Boolean,
    Enum,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    Uuid as SAUuid,
)
from sqlalchemy.orm import Mapped, mapped_column

from maui_care.db.base import Base


def _utcnow() -> datetime:
    # Naive UTC timestamps; sqlite has no tz-aware column type.
    return datetime.now(tz=UTC).replace(tzinfo=None)


class MedicationStatus(enum.StrEnum):
    active = "active"
    discontinued = "discontinued"
    deleted = "deleted"


class MedicationRoute(enum.StrEnum):
    # Values are stored in DB and exchanged over the API; treat as stable.
    oral = "oral"
    intravenous_iv = "intravenous_IV"
    intramuscular_im = "intramuscular_IM"
    subcutaneous_subq = "subcutaneous_SubQ"
    sublingual_sl = "sublingual_SL"
    topical = "topical"
    transdermal = "transdermal"
    rectal = "rectal"
    inhalation = "inhalation"
    nasal = "nasal"
    ophthalmic = "ophthalmic"
    otic = "otic"
    vaginal = "vaginal"
    injection = "injection"
    other = "other"


class Resident(Base):
    __tablename__ = "residents"

    id: Mapped[str] = mapped_column(String(128), primary_key=True)
    owner: Mapped[str] = mapped_column(String(256), nullable=False, index=True)

    name: Mapped[str] = mapped_column(String(256), nullable=False)
    birth_date: Mapped[str] = mapped_column(String(32), nullable=False)
    admission_date: Mapped[str] = mapped_column(String(32), nullable=False)

    room_number: Mapped[str] = mapped_column(String(32), nullable=False)
    room_type: Mapped[str] = mapped_column(String(32), nullable=False)
    bed: Mapped[str | None] = mapped_column(String(32), nullable=True)

    medicaid_number: Mapped[str] = mapped_column(String(64), nullable=False, default="")
    medicare_number: Mapped[str] = mapped_column(String(64), nullable=False, default="")

    insurance: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)
    pharmacy: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)
    physicians: Mapped[list[dict[str, Any]]] = mapped_column(JSON, nullable=False, default=list)
    responsible_persons: Mapped[list[dict[str, Any]]] = mapped_column(
        JSON, nullable=False, default=list
    )

    active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, index=True)

    created_at_ns: Mapped[int] = mapped_column(BigInteger, nullable=False, default=time.time_ns)
    updated_at: Mapped[datetime] = mapped_column(nullable=False, default=_utcnow, onupdate=_utcnow)


class Medication(Base):
    __tablename__ = "medications"

    pk: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    resident_id: Mapped[str] = mapped_column(
        String(128), ForeignKey("residents.id", ondelete="CASCADE"), nullable=False
    )
    # Per-resident sequence number; this is the id exposed over the API.
    medication_id: Mapped[int] = mapped_column(Integer, nullable=False)

    medication_name: Mapped[str] = mapped_column(String(256), nullable=False)
    dosage: Mapped[str] = mapped_column(String(128), nullable=False)
    prescribing_physician: Mapped[str] = mapped_column(String(256), nullable=False, default="")
    administration_times: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)

    route: Mapped[MedicationRoute | None] = mapped_column(Enum(MedicationRoute), nullable=True)
    route_other: Mapped[str | None] = mapped_column(String(128), nullable=True)

    status: Mapped[MedicationStatus] = mapped_column(
        Enum(MedicationStatus), nullable=False, default=MedicationStatus.active
    )

    __table_args__ = (
        UniqueConstraint("resident_id", "medication_id", name="uq_medications_resident_med"),
    )


class VitalsRecord(Base):
    __tablename__ = "vitals_records"

    id: Mapped[uuid.UUID] = mapped_column(
        SAUuid(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    resident_id: Mapped[str] = mapped_column(
        String(128), ForeignKey("residents.id", ondelete="CASCADE"), nullable=False
    )
    # Milliseconds since epoch; unique per resident and doubles as the delete key.
    timestamp: Mapped[int] = mapped_column(BigInteger, nullable=False)

    temperature: Mapped[float] = mapped_column(Float, nullable=False)
    blood_pressure: Mapped[str] = mapped_column(String(32), nullable=False)
    pulse: Mapped[int] = mapped_column(Integer, nullable=False)
    blood_oxygen: Mapped[int] = mapped_column(Integer, nullable=False)

    __table_args__ = (UniqueConstraint("resident_id", "timestamp", name="uq_vitals_resident_ts"),)


class MarRecord(Base):
    __tablename__ = "mar_records"

    id: Mapped[uuid.UUID] = mapped_column(
        SAUuid(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    resident_id: Mapped[str] = mapped_column(
        String(128), ForeignKey("residents.id", ondelete="CASCADE"), nullable=False
    )
    timestamp: Mapped[int] = mapped_column(BigInteger, nullable=False)

    medication_name: Mapped[str] = mapped_column(String(256), nullable=False)
    dosage: Mapped[str] = mapped_column(String(128), nullable=False)
    administration_time: Mapped[str] = mapped_column(String(64), nullable=False)
    nurse_id: Mapped[str] = mapped_column(String(256), nullable=False)

    __table_args__ = (UniqueConstraint("resident_id", "timestamp", name="uq_mar_resident_ts"),)


class AdlRecord(Base):
    __tablename__ = "adl_records"

    id: Mapped[uuid.UUID] = mapped_column(
        SAUuid(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    resident_id: Mapped[str] = mapped_column(
        String(128), ForeignKey("residents.id", ondelete="CASCADE"), nullable=False
    )
    timestamp: Mapped[int] = mapped_column(BigInteger, nullable=False)

    activity_type: Mapped[str] = mapped_column(String(128), nullable=False)
    assistance_level: Mapped[str] = mapped_column(String(128), nullable=False)
    notes: Mapped[str] = mapped_column(Text, nullable=False, default="")
    supervisor_id: Mapped[str] = mapped_column(String(256), nullable=False)

    __table_args__ = (UniqueConstraint("resident_id", "timestamp", name="uq_adl_resident_ts"),)


class UserProfile(Base):
    __tablename__ = "user_profiles"

    principal: Mapped[str] = mapped_column(String(256), primary_key=True)
    name: Mapped[str] = mapped_column(String(256), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(nullable=False, default=_utcnow, onupdate=_utcnow)


class RoleAssignment(Base):
    __tablename__ = "role_assignments"

    principal: Mapped[str] = mapped_column(String(256), primary_key=True)
    # One of `auth.models.UserRole`.
    role: Mapped[str] = mapped_column(String(16), nullable=False)
    assigned_by: Mapped[str] = mapped_column(String(256), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(nullable=False, default=_utcnow, onupdate=_utcnow)


class AuditEvent(Base):
    __tablename__ = "audit_events"

    id: Mapped[uuid.UUID] = mapped_column(
        SAUuid(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    # No FK: audit rows outlive the resident they describe.
    resident_id: Mapped[str] = mapped_column(String(128), nullable=False, index=True)

    actor: Mapped[str] = mapped_column(String(256), nullable=False)
    event_type: Mapped[str] = mapped_column(String(128), nullable=False, index=True)
    details: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)

    created_at: Mapped[datetime] = mapped_column(nullable=False, default=_utcnow, index=True)

    __table_args__ = (Index("ix_audit_resident_created", "resident_id", "created_at"),)


# --- Module Notes -----------------------------------------------------------
# Child tables declare ON DELETE CASCADE for Postgres deployments; sqlite does not
# enforce it by default, so `ResidentRepo.delete` removes children explicitly.
