"""
tests.test_coordinator

Optimistic status-toggle protocol against principal-scoped directory entries.
"""

from __future__ import annotations

import asyncio

import pytest

from maui_care.api.schemas import DirectoryEntry, ResidentsDirectoryResponse
from maui_care.cache.coordinator import (
    DirectoryCacheCoordinator,
    MutationInProgress,
    Outcome,
)
from maui_care.cache.keys import Scope
from maui_care.cache.query_cache import QueryCache


def directory(*entries: tuple[str, bool]) -> ResidentsDirectoryResponse:
    return ResidentsDirectoryResponse(
        residents=tuple(
            DirectoryEntry(id=rid, display_fields={"name": rid}, active=active)
            for rid, active in entries
        )
    )


def active_flags(value: ResidentsDirectoryResponse) -> dict[str, bool]:
    return {e.id: e.active for e in value.residents}


@pytest.fixture
def cache() -> QueryCache:
    return QueryCache()


@pytest.fixture
def coordinator(cache: QueryCache) -> DirectoryCacheCoordinator:
    return DirectoryCacheCoordinator(cache=cache)


def seed(cache: QueryCache, principal: str, value: object) -> tuple[str, ...]:
    key = DirectoryCacheCoordinator.namespace_for(principal, Scope.directory).key
    cache.set(key, value)
    return key


def test_begin_flips_only_the_target_entry(
    cache: QueryCache, coordinator: DirectoryCacheCoordinator
) -> None:
    key = seed(cache, "alice", directory(("A", True), ("B", True)))
    ns = coordinator.namespace_for("alice", Scope.directory)

    snapshot = coordinator.begin_optimistic_toggle(ns, "A")

    assert active_flags(cache.get(key)) == {"A": False, "B": True}
    assert active_flags(snapshot.previous_value) == {"A": True, "B": True}
    assert coordinator.is_pending("alice", "A")


def test_failure_restores_the_exact_snapshot(
    cache: QueryCache, coordinator: DirectoryCacheCoordinator
) -> None:
    original = directory(("A", True), ("B", False))
    key = seed(cache, "alice", original)
    ns = coordinator.namespace_for("alice", Scope.directory)

    snapshot = coordinator.begin_optimistic_toggle(ns, "A")
    coordinator.commit_or_rollback(snapshot, Outcome.failure)

    assert cache.get(key) == original
    assert cache.is_stale(key)
    assert not coordinator.is_pending("alice", "A")


def test_success_keeps_patch_until_refetch(
    cache: QueryCache, coordinator: DirectoryCacheCoordinator
) -> None:
    key = seed(cache, "alice", directory(("A", True)))
    ns = coordinator.namespace_for("alice", Scope.directory)

    snapshot = coordinator.begin_optimistic_toggle(ns, "A")
    coordinator.commit_or_rollback(snapshot, Outcome.success)

    assert active_flags(cache.get(key)) == {"A": False}
    assert cache.is_stale(key)


def test_settle_invalidates_list_directory_and_detail(
    cache: QueryCache, coordinator: DirectoryCacheCoordinator
) -> None:
    seed(cache, "alice", directory(("A", True)))
    list_key = coordinator.namespace_for("alice", Scope.list).key
    detail_key = coordinator.namespace_for("alice", Scope.detail, "A").key
    other_detail = coordinator.namespace_for("alice", Scope.detail, "B").key
    for key in (list_key, detail_key, detail_key + ("vitals",), other_detail):
        cache.set(key, object())

    snapshot = coordinator.begin_optimistic_toggle(
        coordinator.namespace_for("alice", Scope.directory), "A"
    )
    coordinator.commit_or_rollback(snapshot, Outcome.success)

    assert cache.is_stale(list_key)
    assert cache.is_stale(detail_key)
    assert cache.is_stale(detail_key + ("vitals",))
    assert not cache.is_stale(other_detail)


def test_cache_miss_applies_nothing(
    cache: QueryCache, coordinator: DirectoryCacheCoordinator
) -> None:
    ns = coordinator.namespace_for("alice", Scope.directory)

    snapshot = coordinator.begin_optimistic_toggle(ns, "A")
    assert snapshot.empty
    assert not cache.has(ns.key)

    coordinator.commit_or_rollback(snapshot, Outcome.failure)
    assert not cache.has(ns.key)


@pytest.mark.parametrize("outcome", [Outcome.success, Outcome.failure])
def test_other_principals_are_untouched(
    cache: QueryCache, coordinator: DirectoryCacheCoordinator, outcome: Outcome
) -> None:
    seed(cache, "alice", directory(("A", True)))
    bob_key = seed(cache, "bob", directory(("A", True)))
    bob_before = cache.get(bob_key)

    snapshot = coordinator.begin_optimistic_toggle(
        coordinator.namespace_for("alice", Scope.directory), "A"
    )
    assert cache.get(bob_key) is bob_before
    coordinator.commit_or_rollback(snapshot, outcome)

    assert cache.get(bob_key) is bob_before
    assert not cache.is_stale(bob_key)


def test_second_toggle_while_pending_is_rejected(
    cache: QueryCache, coordinator: DirectoryCacheCoordinator
) -> None:
    key = seed(cache, "alice", directory(("A", True)))
    ns = coordinator.namespace_for("alice", Scope.directory)
    snapshot = coordinator.begin_optimistic_toggle(ns, "A")

    with pytest.raises(MutationInProgress):
        coordinator.begin_optimistic_toggle(ns, "A")
    assert active_flags(cache.get(key)) == {"A": False}

    # Other entities and other principals are independent.
    coordinator.commit_or_rollback(coordinator.begin_optimistic_toggle(ns, "B"), Outcome.success)
    bob = coordinator.namespace_for("bob", Scope.directory)
    coordinator.commit_or_rollback(coordinator.begin_optimistic_toggle(bob, "A"), Outcome.success)

    coordinator.commit_or_rollback(snapshot, Outcome.success)
    coordinator.begin_optimistic_toggle(ns, "A")


def test_snapshot_settles_once(cache: QueryCache, coordinator: DirectoryCacheCoordinator) -> None:
    key = seed(cache, "alice", directory(("A", True)))
    ns = coordinator.namespace_for("alice", Scope.directory)
    snapshot = coordinator.begin_optimistic_toggle(ns, "A")
    coordinator.commit_or_rollback(snapshot, Outcome.success)

    fresh = directory(("A", False), ("C", True))
    cache.set(key, fresh)
    coordinator.commit_or_rollback(snapshot, Outcome.failure)

    assert cache.get(key) is fresh
    assert not cache.is_stale(key)


def test_snapshot_survives_in_place_edits(
    cache: QueryCache, coordinator: DirectoryCacheCoordinator
) -> None:
    entries = [{"id": "A", "active": True}]
    key = seed(cache, "alice", entries)
    snapshot = coordinator.begin_optimistic_toggle(
        coordinator.namespace_for("alice", Scope.directory), "A"
    )
    entries[0]["active"] = "corrupted"

    coordinator.commit_or_rollback(snapshot, Outcome.failure)
    assert cache.get(key) == [{"id": "A", "active": True}]


@pytest.mark.asyncio
async def test_toggle_reraises_and_rolls_back(
    cache: QueryCache, coordinator: DirectoryCacheCoordinator
) -> None:
    original = directory(("A", True))
    key = seed(cache, "alice", original)
    error = RuntimeError("remote failed")

    async def failing() -> None:
        assert active_flags(cache.get(key)) == {"A": False}
        raise error

    with pytest.raises(RuntimeError) as exc_info:
        await coordinator.toggle("alice", "A", failing)
    assert exc_info.value is error
    assert cache.get(key) == original
    assert not coordinator.is_pending("alice", "A")


@pytest.mark.asyncio
async def test_toggle_success_converges_on_server_state(
    cache: QueryCache, coordinator: DirectoryCacheCoordinator
) -> None:
    key = coordinator.namespace_for("alice", Scope.directory).key
    server = {"A": True}

    async def load() -> ResidentsDirectoryResponse:
        return directory(*server.items())

    await cache.fetch(key, load)

    async def mutate() -> str:
        server["A"] = not server["A"]
        return "terminated"

    assert await coordinator.toggle("alice", "A", mutate) == "terminated"
    await cache.wait_idle()
    assert active_flags(cache.get(key)) == {"A": False}
    assert not cache.is_stale(key)


@pytest.mark.asyncio
async def test_begin_cancels_an_outdated_directory_fetch(
    cache: QueryCache, coordinator: DirectoryCacheCoordinator
) -> None:
    key = seed(cache, "alice", directory(("A", True)))
    cache.invalidate(key, refetch=False)
    gate = asyncio.Event()

    async def slow_load() -> ResidentsDirectoryResponse:
        await gate.wait()
        return directory(("A", True))

    reader = asyncio.create_task(cache.fetch(key, slow_load))
    await asyncio.sleep(0)
    assert cache.is_fetching(key)

    coordinator.begin_optimistic_toggle(coordinator.namespace_for("alice", Scope.directory), "A")
    gate.set()

    assert active_flags(await reader) == {"A": False}
    assert active_flags(cache.get(key)) == {"A": False}


@pytest.mark.asyncio
async def test_toggle_during_first_load_still_yields_the_directory(
    cache: QueryCache, coordinator: DirectoryCacheCoordinator
) -> None:
    ns = coordinator.namespace_for("alice", Scope.directory)
    gate = asyncio.Event()
    server = {"A": True}

    async def load() -> ResidentsDirectoryResponse:
        await gate.wait()
        return directory(*server.items())

    reader = asyncio.create_task(cache.fetch(ns.key, load))
    await asyncio.sleep(0)

    snapshot = coordinator.begin_optimistic_toggle(ns, "A")
    assert snapshot.empty
    server["A"] = False
    gate.set()
    coordinator.commit_or_rollback(snapshot, Outcome.success)

    value = await reader
    assert value is not None
    assert active_flags(value) == {"A": False}
    await cache.wait_idle()
    assert active_flags(cache.get(ns.key)) == {"A": False}


# --- Module Notes -----------------------------------------------------------
# Synchronous tests run without an event loop, so settle-time invalidation only
# marks entries stale there; the async tests cover the background refetch.
