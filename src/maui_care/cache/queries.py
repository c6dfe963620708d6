"""
maui_care.cache.queries

Query layer over the care service: every read goes through the `QueryCache`, every
mutation settles by invalidating the namespaces it touched.

Responsibilities:
- Resolve the current principal and derive cache keys from it.
- Load directory, list, detail and record data with registered fetchers.
- Route status toggles through `DirectoryCacheCoordinator`.
- Drop a principal's cached data on logout.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Iterable
from typing import Any, TypeVar

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
    StatusToggleResult,
    VitalsIn,
    VitalsOut,
)
from maui_care.cache.coordinator import DirectoryCacheCoordinator
from maui_care.cache.keys import CacheKey, CacheNamespace, Scope, principal_prefix
from maui_care.cache.query_cache import QueryCache
from maui_care.client.care_api import CareApiClient
from maui_care.client.identity import IdentityProvider

T = TypeVar("T")

HEALTH_KEY: CacheKey = ("health",)


class ResidentQueries:
    def __init__(
        self,
        *,
        cache: QueryCache,
        client: CareApiClient,
        identity: IdentityProvider,
        coordinator: DirectoryCacheCoordinator | None = None,
    ) -> None:
        self._cache = cache
        self._client = client
        self._identity = identity
        self._coordinator = coordinator or DirectoryCacheCoordinator(cache=cache)
        identity.on_logout(self._forget_principal)

    @property
    def coordinator(self) -> DirectoryCacheCoordinator:
        return self._coordinator

    @property
    def identity(self) -> IdentityProvider:
        return self._identity

    def _ns(self, scope: Scope, entity_id: str | None = None) -> CacheNamespace:
        return self._coordinator.namespace_for(
            self._identity.current_principal(), scope, entity_id
        )

    def _record_key(self, resident_id: str, kind: str) -> CacheKey:
        return self._ns(Scope.detail, resident_id).child(kind)

    def _forget_principal(self, principal_id: str) -> None:
        self._cache.remove(principal_prefix(principal_id))

    async def _settle(
        self, mutation: Callable[[], Awaitable[T]], keys: Iterable[CacheKey]
    ) -> T:
        # Invalidate after the call resolves, whether it succeeded or not.
        try:
            return await mutation()
        finally:
            for key in keys:
                self._cache.invalidate(key)

    def _resident_keys(self, resident_id: str | None = None) -> list[CacheKey]:
        keys = [self._ns(Scope.list).key, self._ns(Scope.directory).key]
        if resident_id is not None:
            keys.append(self._ns(Scope.detail, resident_id).key)
        return keys

    # Reads

    async def health(self) -> HealthCheckResponse:
        return await self._cache.fetch(HEALTH_KEY, self._client.health_check)

    async def directory(self) -> ResidentsDirectoryResponse:
        return await self._cache.fetch(
            self._ns(Scope.directory).key, self._client.residents_directory
        )

    async def active_residents(self) -> list[ResidentOut]:
        return await self._cache.fetch(self._ns(Scope.list).key, self._client.list_active_residents)

    async def resident(self, resident_id: str) -> ResidentOut | None:
        return await self._cache.fetch(
            self._ns(Scope.detail, resident_id).key,
            lambda: self._client.get_resident(resident_id),
        )

    async def vitals(self, resident_id: str) -> list[VitalsOut]:
        return await self._cache.fetch(
            self._record_key(resident_id, "vitals"),
            lambda: self._client.list_vitals(resident_id),
        )

    async def mar_records(self, resident_id: str) -> list[MarOut]:
        return await self._cache.fetch(
            self._record_key(resident_id, "mar"),
            lambda: self._client.list_mar_records(resident_id),
        )

    async def adl_records(self, resident_id: str) -> list[AdlOut]:
        return await self._cache.fetch(
            self._record_key(resident_id, "adl"),
            lambda: self._client.list_adl_records(resident_id),
        )

    # Resident mutations

    async def create_resident(self, body: ResidentCreateRequest) -> ResidentOut:
        return await self._settle(lambda: self._client.create_resident(body), self._resident_keys())

    async def update_resident(self, resident_id: str, body: ResidentUpdateRequest) -> str:
        return await self._settle(
            lambda: self._client.update_resident(resident_id, body),
            self._resident_keys(resident_id),
        )

    async def toggle_status(self, resident_id: str) -> StatusToggleResult:
        return await self._coordinator.toggle(
            self._identity.current_principal(),
            resident_id,
            lambda: self._client.toggle_resident_status(resident_id),
        )

    async def delete_resident(self, resident_id: str) -> None:
        await self._settle(
            lambda: self._client.delete_resident(resident_id), self._resident_keys()
        )
        # The detail slot (and its records) now points at nothing; drop it outright.
        self._cache.remove(self._ns(Scope.detail, resident_id).key)

    # Medication mutations

    async def add_medication(self, resident_id: str, body: MedicationIn) -> MedicationOut:
        return await self._settle(
            lambda: self._client.add_medication(resident_id, body),
            self._resident_keys(resident_id),
        )

    async def update_medication(
        self, resident_id: str, medication_id: int, body: MedicationIn
    ) -> MedicationOut:
        return await self._settle(
            lambda: self._client.update_medication(resident_id, medication_id, body),
            self._resident_keys(resident_id),
        )

    async def discontinue_medication(self, resident_id: str, medication_id: int) -> MedicationOut:
        return await self._settle(
            lambda: self._client.discontinue_medication(resident_id, medication_id),
            self._resident_keys(resident_id),
        )

    async def delete_medication(self, resident_id: str, medication_id: int) -> None:
        await self._settle(
            lambda: self._client.delete_medication(resident_id, medication_id),
            self._resident_keys(resident_id),
        )

    # Record mutations

    async def _record_mutation(
        self, resident_id: str, kind: str, mutation: Callable[[], Awaitable[Any]]
    ) -> Any:
        return await self._settle(mutation, [self._record_key(resident_id, kind)])

    async def create_vitals(self, resident_id: str, record: VitalsIn) -> VitalsOut:
        return await self._record_mutation(
            resident_id, "vitals", lambda: self._client.create_vitals(resident_id, record)
        )

    async def delete_vitals(self, resident_id: str, timestamp: int) -> None:
        await self._record_mutation(
            resident_id, "vitals", lambda: self._client.delete_vitals(resident_id, timestamp)
        )

    async def create_mar_record(self, resident_id: str, record: MarIn) -> MarOut:
        return await self._record_mutation(
            resident_id, "mar", lambda: self._client.create_mar_record(resident_id, record)
        )

    async def delete_mar_record(self, resident_id: str, timestamp: int) -> None:
        await self._record_mutation(
            resident_id, "mar", lambda: self._client.delete_mar_record(resident_id, timestamp)
        )

    async def create_adl_record(self, resident_id: str, record: AdlIn) -> AdlOut:
        return await self._record_mutation(
            resident_id, "adl", lambda: self._client.create_adl_record(resident_id, record)
        )

    async def delete_adl_record(self, resident_id: str, timestamp: int) -> None:
        await self._record_mutation(
            resident_id, "adl", lambda: self._client.delete_adl_record(resident_id, timestamp)
        )


# --- Module Notes -----------------------------------------------------------
# Keys are resolved at call time, so a login switch between two calls naturally moves
# reads to the new principal's namespace.
