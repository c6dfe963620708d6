"""
maui_care.client.care_api

Remote procedure client for the care service.

Responsibilities:
- One coroutine per service operation (residents, medications, records, profile).
- Attach the identity provider's bearer token and the current request id.
- Raise `CareApiError` with a structural `kind` for every failure.
- Bound the directory and health calls with client-side timeouts.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable
from typing import Any, TypeVar

import httpx
import structlog

from maui_care.api.schemas import (
    AdlIn,
    AdlOut,
    HealthCheckResponse,
    MarIn,
    MarOut,
    MedicationIn,
    MedicationOut,
    ResidentCreateRequest,
    ResidentOut,
    ResidentsDirectoryResponse,
    ResidentUpdateRequest,
    RoleAssignmentRequest,
    StatusToggleResult,
    UserProfileBody,
    VitalsIn,
    VitalsOut,
)
from maui_care.auth.models import UserRole
from maui_care.client.errors import CareApiError, ErrorKind, from_response, from_transport
from maui_care.client.identity import IdentityProvider
from maui_care.observability.logging import get_logger
from maui_care.settings import Settings

log = get_logger(__name__)

T = TypeVar("T")


class CareApiClient:
    """
    The cache layer talks to the service only through this class, so tests can swap
    the transport (`httpx.ASGITransport`, `httpx.MockTransport`) without touching it.
    """

    def __init__(
        self,
        *,
        settings: Settings,
        http: httpx.AsyncClient,
        identity: IdentityProvider,
    ) -> None:
        self._settings = settings
        self._http = http
        self._identity = identity
        # Requests whose caller stopped waiting keep running; hold references until done.
        self._abandoned: set[asyncio.Future[Any]] = set()

    @property
    def abandoned_requests(self) -> int:
        return len(self._abandoned)

    def _headers(self) -> dict[str, str]:
        headers = self._identity.auth_headers()
        request_id = structlog.contextvars.get_contextvars().get("request_id")
        if request_id:
            headers["x-request-id"] = str(request_id)
        return headers

    async def _call(self, method: str, path: str, *, json: Any = None) -> httpx.Response:
        try:
            r = await self._http.request(method, path, json=json, headers=self._headers())
        except httpx.HTTPError as e:
            raise from_transport(e) from e
        if r.is_error:
            err = from_response(r)
            log.info(
                "care_api_error",
                method=method,
                path=path,
                status_code=r.status_code,
                kind=err.kind.value,
            )
            raise err
        return r

    async def _with_timeout(self, call: Awaitable[T], *, seconds: float, what: str) -> T:
        """
        Race `call` against a timer. On timeout, or when the caller itself is
        cancelled, the call is left running in the background and only the wait is
        abandoned.
        """

        task = asyncio.ensure_future(call)
        try:
            return await asyncio.wait_for(asyncio.shield(task), timeout=seconds)
        except TimeoutError:
            log.warning("care_api_timeout", operation=what, timeout_seconds=seconds)
            raise CareApiError(
                ErrorKind.timeout, f"{what} timed out after {seconds:g} seconds"
            ) from None
        finally:
            if not task.done():
                self._abandoned.add(task)
                task.add_done_callback(self._forget)

    def _forget(self, task: asyncio.Future[Any]) -> None:
        self._abandoned.discard(task)
        if not task.cancelled():
            # Consume the outcome so asyncio does not warn about an unretrieved exception.
            task.exception()

    # Health

    async def health_check(self) -> HealthCheckResponse:
        r = await self._with_timeout(
            self._call("GET", "/v1/health"),
            seconds=self._settings.health_check_timeout_seconds,
            what="Health check",
        )
        return HealthCheckResponse.model_validate(r.json())

    # Residents

    async def residents_directory(self) -> ResidentsDirectoryResponse:
        r = await self._with_timeout(
            self._call("GET", "/v1/residents/directory"),
            seconds=self._settings.directory_timeout_seconds,
            what="Residents directory",
        )
        return ResidentsDirectoryResponse.model_validate(r.json())

    async def list_active_residents(self) -> list[ResidentOut]:
        r = await self._call("GET", "/v1/residents")
        return [ResidentOut.model_validate(item) for item in r.json()]

    async def get_resident(self, resident_id: str) -> ResidentOut | None:
        try:
            r = await self._call("GET", f"/v1/residents/{resident_id}")
        except CareApiError as e:
            if e.kind is ErrorKind.not_found:
                return None
            raise
        return ResidentOut.model_validate(r.json())

    async def is_resident_active(self, resident_id: str) -> bool:
        r = await self._call("GET", f"/v1/residents/{resident_id}/active")
        return bool(r.json()["active"])

    async def create_resident(self, body: ResidentCreateRequest) -> ResidentOut:
        r = await self._call("POST", "/v1/residents", json=body.model_dump(mode="json"))
        return ResidentOut.model_validate(r.json())

    async def update_resident(self, resident_id: str, body: ResidentUpdateRequest) -> str:
        r = await self._call(
            "PUT", f"/v1/residents/{resident_id}", json=body.model_dump(mode="json")
        )
        return str(r.json()["result"])

    async def toggle_resident_status(self, resident_id: str) -> StatusToggleResult:
        r = await self._call("POST", f"/v1/residents/{resident_id}/toggle-status")
        return StatusToggleResult(r.json()["result"])

    async def delete_resident(self, resident_id: str) -> None:
        await self._call("DELETE", f"/v1/residents/{resident_id}")

    # Medications

    async def add_medication(self, resident_id: str, body: MedicationIn) -> MedicationOut:
        r = await self._call(
            "POST",
            f"/v1/residents/{resident_id}/medications",
            json=body.model_dump(mode="json"),
        )
        return MedicationOut.model_validate(r.json())

    async def update_medication(
        self, resident_id: str, medication_id: int, body: MedicationIn
    ) -> MedicationOut:
        r = await self._call(
            "PUT",
            f"/v1/residents/{resident_id}/medications/{medication_id}",
            json=body.model_dump(mode="json"),
        )
        return MedicationOut.model_validate(r.json())

    async def discontinue_medication(self, resident_id: str, medication_id: int) -> MedicationOut:
        r = await self._call(
            "POST", f"/v1/residents/{resident_id}/medications/{medication_id}/discontinue"
        )
        return MedicationOut.model_validate(r.json())

    async def delete_medication(self, resident_id: str, medication_id: int) -> None:
        await self._call("DELETE", f"/v1/residents/{resident_id}/medications/{medication_id}")

    # Records

    async def create_vitals(self, resident_id: str, record: VitalsIn) -> VitalsOut:
        r = await self._call(
            "POST", f"/v1/residents/{resident_id}/vitals", json=record.model_dump(mode="json")
        )
        return VitalsOut.model_validate(r.json())

    async def list_vitals(self, resident_id: str) -> list[VitalsOut]:
        r = await self._call("GET", f"/v1/residents/{resident_id}/vitals")
        return [VitalsOut.model_validate(item) for item in r.json()]

    async def delete_vitals(self, resident_id: str, timestamp: int) -> None:
        await self._call("DELETE", f"/v1/residents/{resident_id}/vitals/{timestamp}")

    async def create_mar_record(self, resident_id: str, record: MarIn) -> MarOut:
        r = await self._call(
            "POST", f"/v1/residents/{resident_id}/mar", json=record.model_dump(mode="json")
        )
        return MarOut.model_validate(r.json())

    async def list_mar_records(self, resident_id: str) -> list[MarOut]:
        r = await self._call("GET", f"/v1/residents/{resident_id}/mar")
        return [MarOut.model_validate(item) for item in r.json()]

    async def delete_mar_record(self, resident_id: str, timestamp: int) -> None:
        await self._call("DELETE", f"/v1/residents/{resident_id}/mar/{timestamp}")

    async def create_adl_record(self, resident_id: str, record: AdlIn) -> AdlOut:
        r = await self._call(
            "POST", f"/v1/residents/{resident_id}/adl", json=record.model_dump(mode="json")
        )
        return AdlOut.model_validate(r.json())

    async def list_adl_records(self, resident_id: str) -> list[AdlOut]:
        r = await self._call("GET", f"/v1/residents/{resident_id}/adl")
        return [AdlOut.model_validate(item) for item in r.json()]

    async def delete_adl_record(self, resident_id: str, timestamp: int) -> None:
        await self._call("DELETE", f"/v1/residents/{resident_id}/adl/{timestamp}")

    # Profile

    async def get_caller_profile(self) -> UserProfileBody | None:
        try:
            r = await self._call("GET", "/v1/profile")
        except CareApiError as e:
            if e.kind is ErrorKind.not_found:
                return None
            raise
        return UserProfileBody.model_validate(r.json())

    async def save_caller_profile(self, profile: UserProfileBody) -> UserProfileBody:
        r = await self._call("PUT", "/v1/profile", json=profile.model_dump(mode="json"))
        return UserProfileBody.model_validate(r.json())

    async def get_caller_role(self) -> str:
        r = await self._call("GET", "/v1/profile/role")
        return str(r.json()["role"])

    async def is_caller_admin(self) -> bool:
        r = await self._call("GET", "/v1/profile/admin")
        return bool(r.json()["is_admin"])

    async def get_user_profile(self, user: str) -> UserProfileBody | None:
        try:
            r = await self._call("GET", f"/v1/profile/{user}")
        except CareApiError as e:
            if e.kind is ErrorKind.not_found:
                return None
            raise
        return UserProfileBody.model_validate(r.json())

    async def assign_user_role(self, user: str, role: UserRole) -> UserRole:
        body = RoleAssignmentRequest(role=role)
        r = await self._call(
            "PUT", f"/v1/profile/{user}/role", json=body.model_dump(mode="json")
        )
        return UserRole(r.json()["role"])


# --- Module Notes -----------------------------------------------------------
# No retries here; callers (or the transport) own retry policy.
