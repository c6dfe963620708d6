"""
tests.test_queries

`ResidentQueries` end to end: cache, client and the in-process service together.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable

import httpx
import pytest
import pytest_asyncio

from maui_care.api.schemas import ResidentCreateRequest, StatusToggleResult, VitalsIn
from maui_care.cache.coordinator import MutationInProgress
from maui_care.cache.keys import Scope, namespace_for
from maui_care.cache.queries import ResidentQueries
from maui_care.cache.query_cache import QueryCache
from maui_care.client.care_api import CareApiClient
from maui_care.client.errors import CareApiError, ErrorKind
from maui_care.client.identity import IdentityProvider
from maui_care.settings import Settings


@pytest.fixture
def cache() -> QueryCache:
    return QueryCache()


@pytest_asyncio.fixture
async def session_for(
    settings: Settings, http: httpx.AsyncClient, cache: QueryCache
) -> Callable:
    # One identity per signed-in user, all sharing the same cache.
    async def _login(subject: str, *roles: str) -> ResidentQueries:
        identity = IdentityProvider(http=http)
        await identity.login(subject, roles=list(roles or ("user",)))
        client = CareApiClient(settings=settings, http=http, identity=identity)
        return ResidentQueries(cache=cache, client=client, identity=identity)

    return _login


def directory_key(principal: str) -> tuple[str, ...]:
    return namespace_for(principal, Scope.directory).key


def flags(value) -> dict[str, bool]:
    return {e.id: e.active for e in value.residents}


@pytest_asyncio.fixture
async def alice(session_for: Callable, resident_body) -> ResidentQueries:
    queries = await session_for("alice")
    await queries.create_resident(ResidentCreateRequest.model_validate(resident_body("r-1")))
    return queries


@pytest.mark.asyncio
async def test_toggle_success_converges(alice: ResidentQueries, cache: QueryCache) -> None:
    assert flags(await alice.directory()) == {"r-1": True}

    assert await alice.toggle_status("r-1") is StatusToggleResult.terminated
    assert cache.is_stale(directory_key("alice"))

    await cache.wait_idle()
    assert flags(cache.get(directory_key("alice"))) == {"r-1": False}
    assert not cache.is_stale(directory_key("alice"))


@pytest.mark.asyncio
async def test_toggle_failure_rolls_back_then_converges(
    alice: ResidentQueries, cache: QueryCache, http: httpx.AsyncClient, auth
) -> None:
    before = await alice.directory()
    r = await http.delete("/v1/residents/r-1", headers=auth("root", "admin"))
    assert r.status_code == 204

    with pytest.raises(CareApiError) as exc_info:
        await alice.toggle_status("r-1")
    assert exc_info.value.kind is ErrorKind.not_found
    assert cache.get(directory_key("alice")) == before

    await cache.wait_idle()
    assert flags(cache.get(directory_key("alice"))) == {}


@pytest.mark.asyncio
async def test_principals_do_not_share_entries(
    alice: ResidentQueries, session_for: Callable, cache: QueryCache
) -> None:
    admin = await session_for("root", "admin")
    alice_view = await alice.directory()
    assert flags(await admin.directory()) == {"r-1": True}

    assert await admin.toggle_status("r-1") is StatusToggleResult.terminated
    await cache.wait_idle()

    assert cache.get(directory_key("alice")) is alice_view
    assert not cache.is_stale(directory_key("alice"))
    assert flags(cache.get(directory_key("root"))) == {"r-1": False}


@pytest.mark.asyncio
async def test_concurrent_toggle_is_rejected(alice: ResidentQueries, cache: QueryCache) -> None:
    await alice.directory()

    results = await asyncio.gather(
        alice.toggle_status("r-1"), alice.toggle_status("r-1"), return_exceptions=True
    )
    assert results.count(StatusToggleResult.terminated) == 1
    assert sum(isinstance(r, MutationInProgress) for r in results) == 1

    await cache.wait_idle()
    assert flags(cache.get(directory_key("alice"))) == {"r-1": False}


@pytest.mark.asyncio
async def test_logout_drops_only_that_principal(
    alice: ResidentQueries, session_for: Callable, cache: QueryCache
) -> None:
    admin = await session_for("root", "admin")
    await alice.directory()
    await alice.resident("r-1")
    await admin.directory()

    alice.identity.logout()

    assert cache.keys(("residents", "alice")) == []
    assert cache.has(directory_key("root"))


@pytest.mark.asyncio
async def test_record_mutations_refresh_the_record_list(
    alice: ResidentQueries, cache: QueryCache
) -> None:
    assert await alice.vitals("r-1") == []
    vitals = VitalsIn(
        timestamp=1_700_000_000_000,
        temperature=36.6,
        blood_pressure="120/80",
        pulse=68,
        blood_oxygen=99,
    )
    await alice.create_vitals("r-1", vitals)
    await cache.wait_idle()
    assert [v.timestamp for v in await alice.vitals("r-1")] == [vitals.timestamp]

    await alice.delete_vitals("r-1", vitals.timestamp)
    await cache.wait_idle()
    assert await alice.vitals("r-1") == []


@pytest.mark.asyncio
async def test_delete_resident_drops_detail(alice: ResidentQueries, cache: QueryCache) -> None:
    assert (await alice.resident("r-1")).id == "r-1"
    await alice.active_residents()

    await alice.delete_resident("r-1")
    await cache.wait_idle()

    assert not cache.has(namespace_for("alice", Scope.detail, "r-1").key)
    assert await alice.active_residents() == []


@pytest.mark.asyncio
async def test_anonymous_reads_use_their_own_namespace(
    settings: Settings, http: httpx.AsyncClient, cache: QueryCache
) -> None:
    identity = IdentityProvider(http=http)
    queries = ResidentQueries(
        cache=cache,
        client=CareApiClient(settings=settings, http=http, identity=identity),
        identity=identity,
    )
    assert (await queries.health()).status == "ok"

    with pytest.raises(CareApiError) as exc_info:
        await queries.directory()
    assert exc_info.value.kind is ErrorKind.unauthorized
    assert cache.entry(directory_key("anonymous")) is not None
