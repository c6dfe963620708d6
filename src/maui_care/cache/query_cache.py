"""
maui_care.cache.query_cache

In-memory query cache keyed by tuples.

Responsibilities:
- Hold the last known value per key with a stale flag.
- Load values through registered fetchers, sharing one in-flight fetch per key.
- Invalidate by key prefix and refetch entries that hold a value in the background.
- Cancel in-flight fetches so a late response cannot overwrite a newer local write.
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from functools import partial
from typing import Any

from maui_care.cache.keys import CacheKey
from maui_care.observability.logging import get_logger

log = get_logger(__name__)

Fetcher = Callable[[], Awaitable[Any]]


@dataclass(slots=True)
class CacheEntry:
    value: Any = None
    has_value: bool = False
    stale: bool = False
    updated_at: float = 0.0
    fetcher: Fetcher | None = None
    error: BaseException | None = None


def _matches(key: CacheKey, prefix: CacheKey, *, exact: bool) -> bool:
    return key == prefix if exact else key[: len(prefix)] == prefix


class QueryCache:
    """
    Single-event-loop cache. All reads and writes are synchronous; only `fetch`
    and `wait_idle` suspend.
    """

    def __init__(self) -> None:
        self._entries: dict[CacheKey, CacheEntry] = {}
        self._in_flight: dict[CacheKey, asyncio.Task[Any]] = {}

    # Plain access

    def get(self, key: CacheKey) -> Any | None:
        entry = self._entries.get(key)
        if entry is None or not entry.has_value:
            return None
        return entry.value

    def has(self, key: CacheKey) -> bool:
        entry = self._entries.get(key)
        return entry is not None and entry.has_value

    def entry(self, key: CacheKey) -> CacheEntry | None:
        return self._entries.get(key)

    def set(self, key: CacheKey, value: Any) -> None:
        entry = self._entries.setdefault(key, CacheEntry())
        entry.value = value
        entry.has_value = True
        entry.stale = False
        entry.error = None
        entry.updated_at = time.monotonic()

    def is_stale(self, key: CacheKey) -> bool:
        entry = self._entries.get(key)
        return entry is None or not entry.has_value or entry.stale

    def is_fetching(self, key: CacheKey) -> bool:
        return key in self._in_flight

    def keys(self, prefix: CacheKey = ()) -> list[CacheKey]:
        return [k for k in self._entries if _matches(k, prefix, exact=False)]

    def register(self, key: CacheKey, fetcher: Fetcher) -> None:
        self._entries.setdefault(key, CacheEntry()).fetcher = fetcher

    # Fetching

    async def fetch(
        self, key: CacheKey, fetcher: Fetcher | None = None, *, force: bool = False
    ) -> Any:
        """
        Return the cached value if fresh, otherwise load it. Concurrent callers for the
        same key share one fetch.

        If the shared fetch is cancelled, the caller follows its replacement when one
        was started (invalidation), takes the value written locally in the meantime
        (optimistic patch), or starts a new fetch when the entry still holds nothing.
        A caller whose entry was removed receives None.
        """

        entry = self._entries.setdefault(key, CacheEntry())
        if fetcher is not None:
            entry.fetcher = fetcher
        if entry.has_value and not entry.stale and not force:
            return entry.value
        if entry.fetcher is None:
            raise LookupError(f"No fetcher registered for {key!r}")

        superseded = False
        while True:
            if self._entries.get(key) is not entry:
                return None
            task = self._in_flight.get(key)
            if task is None:
                if superseded and entry.has_value:
                    return entry.value
                task = self._start_fetch(key, entry.fetcher)
            try:
                return await asyncio.shield(task)
            except asyncio.CancelledError:
                if not task.cancelled():
                    raise
                superseded = True

    def _start_fetch(self, key: CacheKey, fetcher: Fetcher) -> asyncio.Task[Any]:
        task = asyncio.get_running_loop().create_task(self._run_fetch(key, fetcher))
        self._in_flight[key] = task
        task.add_done_callback(partial(self._fetch_done, key))
        return task

    async def _run_fetch(self, key: CacheKey, fetcher: Fetcher) -> Any:
        value = await fetcher()
        self.set(key, value)
        return value

    def _fetch_done(self, key: CacheKey, task: asyncio.Task[Any]) -> None:
        if self._in_flight.get(key) is task:
            del self._in_flight[key]
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            entry = self._entries.get(key)
            if entry is not None:
                entry.error = exc
            log.warning("cache_fetch_failed", key=list(key), error=repr(exc))

    def cancel_in_flight(self, key: CacheKey) -> bool:
        """
        Cancel the outstanding fetch for `key`, if any. Safe to call repeatedly.
        """

        task = self._in_flight.pop(key, None)
        if task is None or task.done():
            return False
        task.cancel()
        log.debug("cache_fetch_cancelled", key=list(key))
        return True

    # Invalidation

    def invalidate(self, key: CacheKey, *, exact: bool = False, refetch: bool = True) -> int:
        """
        Mark every entry under `key` stale. Entries that have a fetcher and either hold
        a value or are being loaded are reloaded in the background when an event loop
        is running.
        """

        matched = [k for k in self._entries if _matches(k, key, exact=exact)]
        try:
            loop_running = asyncio.get_running_loop() is not None
        except RuntimeError:
            loop_running = False

        for k in matched:
            entry = self._entries[k]
            entry.stale = True
            reload = entry.has_value or k in self._in_flight
            if refetch and loop_running and reload and entry.fetcher is not None:
                # A fetch started before the invalidation may carry pre-mutation data.
                self.cancel_in_flight(k)
                self._start_fetch(k, entry.fetcher)
        if matched:
            log.debug("cache_invalidated", key=list(key), entries=len(matched))
        return len(matched)

    def remove(self, key: CacheKey) -> int:
        matched = [k for k in self._entries if _matches(k, key, exact=False)]
        for k in matched:
            self.cancel_in_flight(k)
            del self._entries[k]
        return len(matched)

    def clear(self) -> None:
        for k in list(self._in_flight):
            self.cancel_in_flight(k)
        self._entries.clear()

    async def wait_idle(self) -> None:
        # Fetches can schedule more fetches (refetch on settle), so loop until quiet.
        while self._in_flight:
            await asyncio.gather(*list(self._in_flight.values()), return_exceptions=True)


# --- Module Notes -----------------------------------------------------------
# Directory-scope entries are written only by `DirectoryCacheCoordinator`; other code
# reads, fetches and invalidates.
