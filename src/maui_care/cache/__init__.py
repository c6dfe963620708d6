"""
maui_care.cache

Client-side query cache and the directory cache coordinator.

Responsibilities:
- Principal-scoped cache keys.
- An in-memory query cache with in-flight fetch tracking and invalidation.
- The optimistic-toggle protocol for directory listings.
- The query layer that routes reads and mutations through the cache.
"""

# Package marker.


# --- Module Notes -----------------------------------------------------------
# One `QueryCache` is created per client session and injected everywhere it is used.
