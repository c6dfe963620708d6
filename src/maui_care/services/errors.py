"""
maui_care.services.errors

Domain exceptions raised by the service layer.

Responsibilities:
- Give every failure a stable machine-readable `code` and HTTP status.
- Keep HTTP concerns out of services; `api.errors` renders these as responses.
"""

from __future__ import annotations

from starlette.status import (
    HTTP_403_FORBIDDEN,
    HTTP_404_NOT_FOUND,
    HTTP_409_CONFLICT,
)


class CareServiceError(Exception):
    code: str = "unknown"
    status_code: int = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ResidentNotFound(CareServiceError):
    code = "not_found"
    status_code = HTTP_404_NOT_FOUND

    def __init__(self, resident_id: str) -> None:
        super().__init__(f"Resident {resident_id} not found")


class ResidentAccessDenied(CareServiceError):
    code = "unauthorized"
    status_code = HTTP_403_FORBIDDEN

    def __init__(self, action: str) -> None:
        super().__init__(f"Unauthorized: cannot {action} this resident")


class ResidentAlreadyExists(CareServiceError):
    code = "conflict"
    status_code = HTTP_409_CONFLICT

    def __init__(self, resident_id: str) -> None:
        super().__init__(f"Resident {resident_id} already exists")


class InactiveResident(CareServiceError):
    code = "inactive_resident"
    status_code = HTTP_409_CONFLICT

    def __init__(self, resident_id: str) -> None:
        super().__init__(f"Cannot add records to inactive resident {resident_id}")


class RecordNotFound(CareServiceError):
    code = "not_found"
    status_code = HTTP_404_NOT_FOUND

    def __init__(self, kind: str, timestamp: int) -> None:
        super().__init__(f"{kind} record at {timestamp} not found")


class RecordAlreadyExists(CareServiceError):
    code = "conflict"
    status_code = HTTP_409_CONFLICT

    def __init__(self, kind: str, timestamp: int) -> None:
        super().__init__(f"{kind} record at {timestamp} already exists")


class MedicationNotFound(CareServiceError):
    code = "not_found"
    status_code = HTTP_404_NOT_FOUND

    def __init__(self, medication_id: int) -> None:
        super().__init__(f"Medication {medication_id} not found")
