"""
maui_care.cache.coordinator

Directory cache coordinator: principal-scoped keys plus the optimistic status-toggle
protocol for directory listings.

Responsibilities:
- Build cache namespaces for the resolved principal.
- Speculatively flip an entry's `active` flag in the cached directory.
- Restore the snapshot when the remote call fails, and invalidate the list,
  directory and detail entries of the principal either way.
- Allow at most one unsettled toggle per (principal, entity).

Protocol:
    snapshot = coordinator.begin_optimistic_toggle(ns, entity_id)
    try:
        await remote_call()
    except Exception:
        coordinator.commit_or_rollback(snapshot, Outcome.failure)
        raise
    coordinator.commit_or_rollback(snapshot, Outcome.success)

`toggle` runs exactly this sequence.
"""

from __future__ import annotations

import copy
import enum
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass
from typing import Any, TypeVar

from pydantic import BaseModel

from maui_care.cache.keys import CacheNamespace, Scope, namespace_for
from maui_care.cache.query_cache import QueryCache
from maui_care.observability.logging import get_logger

log = get_logger(__name__)

T = TypeVar("T")


class Outcome(enum.StrEnum):
    success = "success"
    failure = "failure"


class MutationInProgress(Exception):
    """
    Raised when a toggle is started for an entity whose previous toggle has not
    settled yet. Nothing in the cache is touched.
    """

    def __init__(self, principal_id: str, entity_id: str) -> None:
        super().__init__(f"A status change for {entity_id} is already in progress")
        self.principal_id = principal_id
        self.entity_id = entity_id


@dataclass(frozen=True, slots=True, eq=False)
class OptimisticSnapshot:
    namespace: CacheNamespace
    entity_id: str
    previous_value: Any = None
    # True when nothing was cached: no patch was applied and nothing is restored.
    empty: bool = False


def _toggle_entry(entry: Any, entity_id: str) -> Any:
    if isinstance(entry, BaseModel):
        if str(getattr(entry, "id", None)) == entity_id:
            return entry.model_copy(update={"active": not entry.active})
        return entry
    if isinstance(entry, Mapping):
        if str(entry.get("id")) == entity_id:
            return {**entry, "active": not entry.get("active", False)}
        return entry
    return entry


def _toggle_in(value: Any, entity_id: str) -> Any:
    """
    Return a copy of a cached directory value with one entry's `active` flag flipped.
    Accepts a sequence of entries or a container with a `residents` sequence.
    """

    if isinstance(value, BaseModel) and hasattr(value, "residents"):
        residents = value.residents
        return value.model_copy(
            update={"residents": type(residents)(_toggle_entry(e, entity_id) for e in residents)}
        )
    if isinstance(value, Mapping) and "residents" in value:
        return {**value, "residents": [_toggle_entry(e, entity_id) for e in value["residents"]]}
    if isinstance(value, (list, tuple)):
        return type(value)(_toggle_entry(e, entity_id) for e in value)
    log.warning("optimistic_patch_unsupported_value", value_type=type(value).__name__)
    return value


class DirectoryCacheCoordinator:
    def __init__(self, *, cache: QueryCache) -> None:
        self._cache = cache
        self._pending: dict[tuple[str, str], OptimisticSnapshot] = {}

    @staticmethod
    def namespace_for(
        principal_id: str | None, scope: Scope | str, entity_id: str | None = None
    ) -> CacheNamespace:
        return namespace_for(principal_id, scope, entity_id)

    def is_pending(self, principal_id: str | None, entity_id: str) -> bool:
        ns = namespace_for(principal_id, Scope.directory)
        return (ns.principal_id, str(entity_id)) in self._pending

    def begin_optimistic_toggle(
        self, namespace: CacheNamespace, entity_id: str
    ) -> OptimisticSnapshot:
        entity_id = str(entity_id)
        token = (namespace.principal_id, entity_id)
        if token in self._pending:
            raise MutationInProgress(namespace.principal_id, entity_id)

        # A fetch resolving after the patch would overwrite it with pre-toggle data.
        self._cache.cancel_in_flight(namespace.key)

        if not self._cache.has(namespace.key):
            snapshot = OptimisticSnapshot(namespace=namespace, entity_id=entity_id, empty=True)
            log.debug("optimistic_toggle_cache_miss", key=list(namespace.key), entity_id=entity_id)
        else:
            previous = self._cache.get(namespace.key)
            snapshot = OptimisticSnapshot(
                namespace=namespace,
                entity_id=entity_id,
                previous_value=copy.deepcopy(previous),
            )
            self._cache.set(namespace.key, _toggle_in(previous, entity_id))
            log.debug("optimistic_toggle_applied", key=list(namespace.key), entity_id=entity_id)

        self._pending[token] = snapshot
        return snapshot

    def commit_or_rollback(self, snapshot: OptimisticSnapshot, outcome: Outcome) -> None:
        token = (snapshot.namespace.principal_id, snapshot.entity_id)
        if self._pending.get(token) is not snapshot:
            log.warning(
                "optimistic_snapshot_already_settled",
                key=list(snapshot.namespace.key),
                entity_id=snapshot.entity_id,
            )
            return
        del self._pending[token]

        if outcome is Outcome.failure and not snapshot.empty:
            self._cache.cancel_in_flight(snapshot.namespace.key)
            self._cache.set(snapshot.namespace.key, snapshot.previous_value)
            log.info(
                "optimistic_toggle_rolled_back",
                key=list(snapshot.namespace.key),
                entity_id=snapshot.entity_id,
            )

        # Settle: converge on server state whatever the outcome.
        principal_id = snapshot.namespace.principal_id
        for ns in (
            namespace_for(principal_id, Scope.list),
            namespace_for(principal_id, Scope.directory),
            namespace_for(principal_id, Scope.detail, snapshot.entity_id),
        ):
            self._cache.invalidate(ns.key)

    async def toggle(
        self,
        principal_id: str | None,
        entity_id: str,
        mutation: Callable[[], Awaitable[T]],
    ) -> T:
        """
        Run `mutation` under the optimistic-toggle protocol against the principal's
        directory. The mutation's exception, if any, propagates unchanged.
        """

        snapshot = self.begin_optimistic_toggle(
            namespace_for(principal_id, Scope.directory), entity_id
        )
        try:
            result = await mutation()
        except BaseException:
            self.commit_or_rollback(snapshot, Outcome.failure)
            raise
        self.commit_or_rollback(snapshot, Outcome.success)
        return result


# --- Module Notes -----------------------------------------------------------
# Snapshots hold a deep copy, so a caller that mutates the cached value in place after
# the toggle began cannot corrupt the rollback target.
