"""
maui_care.cache.keys

Cache key construction.

Responsibilities:
- Build `CacheNamespace` keys that always lead with the resolved principal, so two
  principals never read or invalidate each other's entries.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass

ROOT = "residents"
ANONYMOUS = "anonymous"

CacheKey = tuple[str, ...]


class Scope(enum.StrEnum):
    list = "list"
    directory = "directory"
    detail = "detail"


@dataclass(frozen=True, slots=True)
class CacheNamespace:
    principal_id: str
    scope: Scope
    entity_id: str | None = None

    @property
    def key(self) -> CacheKey:
        parts: CacheKey = (ROOT, self.principal_id, self.scope.value)
        if self.entity_id is not None:
            parts += (self.entity_id,)
        return parts

    def child(self, *parts: str) -> CacheKey:
        # Sub-resources nest under their parent so prefix invalidation reaches them.
        return self.key + parts


def principal_segment(principal_id: str | None) -> str:
    return principal_id if principal_id else ANONYMOUS


def namespace_for(
    principal_id: str | None, scope: Scope | str, entity_id: str | None = None
) -> CacheNamespace:
    """
    Pure key construction: identical arguments always give equal namespaces.
    A missing principal maps to the "anonymous" segment.
    """

    return CacheNamespace(
        principal_id=principal_segment(principal_id),
        scope=Scope(scope),
        entity_id=str(entity_id) if entity_id is not None else None,
    )


def principal_prefix(principal_id: str | None) -> CacheKey:
    return (ROOT, principal_segment(principal_id))


# --- Module Notes -----------------------------------------------------------
# Shape: ("residents", principal, scope[, entity_id][, sub-resource...]).
