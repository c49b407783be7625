import asyncio
import copy
import threading
import time
from typing import Any, Callable, Optional

from cachetools import TTLCache

import logging

logger = logging.getLogger(__name__)


class TenantCache:
    """
    Process-local cache of per-tenant record lists.

    One entry per tenant, keyed as ``<namespace>:<tenant_id>``. Entries live
    for ``ttl_seconds`` after the last ``set`` and are dropped either lazily
    (an expired entry reads as a miss) or by ``sweep()``, which the app runs
    on a fixed interval so memory is reclaimed without reads.

    Features:
    - Deep copies on the way in and out, so callers can mutate results freely
    - ``None`` signals a miss; a cached empty list comes back as ``[]``
    - Invalidation is scoped to a single tenant key
    - Injectable timer for deterministic TTL tests
    - Thread-safe (cachetools caches are not)
    """

    def __init__(
        self,
        namespace: str,
        ttl_seconds: float = 300,
        maxsize: int = 1024,
        timer: Callable[[], float] = time.monotonic,
    ):
        self.namespace = namespace
        self.ttl_seconds = ttl_seconds
        self._entries = TTLCache(maxsize=maxsize, ttl=ttl_seconds, timer=timer)
        self._lock = threading.RLock()

        self.stats_counters = {
            "hits": 0,
            "misses": 0,
            "sets": 0,
            "invalidations": 0,
            "sweeps": 0,
            "expired": 0,
        }

    def cache_key(self, tenant_id: str) -> str:
        """Build the namespaced key for a tenant."""
        return f"{self.namespace}:{tenant_id}"

    def get(self, tenant_id: str) -> Optional[list[Any]]:
        """
        Return a copy of the tenant's cached list.

        Returns:
            The cached records, or None on a miss (absent or expired)
        """
        key = self.cache_key(tenant_id)
        with self._lock:
            records = self._entries.get(key)
            if records is None:
                self.stats_counters["misses"] += 1
                logger.debug(f"Cache miss for {key}")
                return None
            self.stats_counters["hits"] += 1
            snapshot = copy.deepcopy(records)

        logger.debug(f"Cache hit for {key}")
        return snapshot

    def set(self, tenant_id: str, records: list[Any]):
        """Replace the tenant's entry and restart its TTL."""
        key = self.cache_key(tenant_id)
        snapshot = copy.deepcopy(list(records))
        with self._lock:
            self._entries[key] = snapshot
            self.stats_counters["sets"] += 1
        logger.debug(f"Cached {len(snapshot)} records for {key}")

    def invalidate(self, tenant_id: str):
        """Drop the tenant's entry. Other tenants are untouched."""
        key = self.cache_key(tenant_id)
        with self._lock:
            removed = self._entries.pop(key, None) is not None
            self.stats_counters["invalidations"] += 1
        if removed:
            logger.debug(f"Cache invalidated for {key}")

    def sweep(self) -> int:
        """Evict every expired entry. Returns the number evicted."""
        with self._lock:
            evicted = len(self._entries.expire())
            self.stats_counters["sweeps"] += 1
            self.stats_counters["expired"] += evicted
        if evicted:
            logger.debug(f"Swept {evicted} expired entries from {self.namespace}")
        return evicted

    def clear(self):
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def stats(self) -> dict:
        """Counters plus current size and hit rate."""
        with self._lock:
            counters = dict(self.stats_counters)
            size = len(self._entries)

        lookups = counters["hits"] + counters["misses"]
        return {
            **counters,
            "namespace": self.namespace,
            "size": size,
            "maxsize": self._entries.maxsize,
            "ttl_seconds": self.ttl_seconds,
            "hit_rate": counters["hits"] / lookups if lookups > 0 else 0,
        }


async def run_sweeper(cache: TenantCache, interval_seconds: float):
    """Sweep ``cache`` every ``interval_seconds`` until cancelled."""
    logger.info(
        f"Cache sweeper started for {cache.namespace} (every {interval_seconds}s)"
    )
    try:
        while True:
            await asyncio.sleep(interval_seconds)
            cache.sweep()
    except asyncio.CancelledError:
        logger.info(f"Cache sweeper stopped for {cache.namespace}")
        raise
