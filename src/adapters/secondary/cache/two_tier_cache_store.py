from typing import Any

from src.adapters.secondary.cache.memory_tier import MemoryCacheTier
from src.adapters.secondary.cache.persistent_tier import PersistentCacheTier
from src.domain.cache.entities.cache_entry import CacheEntry
from src.domain.cache.value_objects.cache_lookup import MISS, CacheHit, CacheLookup
from src.domain.storage.exceptions import StorageError
from src.ports.secondary.cache_store import CacheStats, ICacheStore, Loader
from src.ports.secondary.key_value_storage import IKeyValueStorage
from src.ports.secondary.metrics import IMetrics
from src.shared.clock import Clock, now_ms
from src.shared.logger import get_logger

logger = get_logger(__name__)

DEFAULT_TTL_MS = 5 * 60 * 1000


class TwoTierCacheStore(ICacheStore):
    """
    Expiring key/value cache with a memory tier in front of local storage.

    Read path:
    1. Memory tier (fast path).
    2. Persistent tier; a live entry is promoted back into memory with its
       original expiry.
    3. Miss. Expired entries found on the way are deleted by the read itself.

    Writes go to memory first, then best-effort to storage. Every method is
    synchronous, so a write is never observable half-done by another task.
    """

    def __init__(
        self,
        storage: IKeyValueStorage,
        key_prefix: str = "cache_",
        default_ttl_ms: int = DEFAULT_TTL_MS,
        clock: Clock = now_ms,
        metrics: IMetrics | None = None,
    ):
        self._memory = MemoryCacheTier()
        self._persistent = PersistentCacheTier(storage, key_prefix=key_prefix)
        self._default_ttl_ms = default_ttl_ms
        self._clock = clock
        self._metrics = metrics

    def set(self, key: str, value: Any, ttl_ms: int | None = None) -> None:
        ttl = self._default_ttl_ms if ttl_ms is None else ttl_ms
        if ttl < 0:
            raise ValueError("ttl_ms cannot be negative")

        entry = CacheEntry(key=key, value=value, expires_at=self._clock() + ttl)
        self._memory.store(entry)

        try:
            self._persistent.store(entry)
        except (StorageError, TypeError, ValueError) as e:
            logger.warning("cache_persist_failed", key=key, error=str(e))
            # An older persisted copy must not outlive the value now in memory.
            try:
                self._persistent.remove(key)
            except StorageError as remove_error:
                logger.warning("cache_stale_slot_remove_failed", key=key, error=str(remove_error))

    def lookup(self, key: str) -> CacheLookup:
        now = self._clock()

        result = self._memory.lookup(key, now)
        self._record(self._memory.name, result)
        if isinstance(result, CacheHit):
            return result

        try:
            result, entry = self._persistent.lookup_entry(key, now)
        except StorageError as e:
            logger.warning("cache_storage_read_failed", key=key, error=str(e))
            return MISS

        self._record(self._persistent.name, result)
        if entry is not None:
            self._memory.store(entry)
        return result

    def get(self, key: str) -> Any | None:
        result = self.lookup(key)
        return result.value if isinstance(result, CacheHit) else None

    def has(self, key: str) -> bool:
        return isinstance(self.lookup(key), CacheHit)

    def delete(self, key: str) -> None:
        # Storage first: if it fails the old value stays visible everywhere,
        # never only in the tier a later read would promote from.
        self._persistent.remove(key)
        self._memory.remove(key)

    def clear(self) -> None:
        self._persistent.clear()
        self._memory.clear()

    async def get_or_load(self, key: str, loader: Loader, ttl_ms: int | None = None) -> Any:
        cached = self.lookup(key)
        if isinstance(cached, CacheHit):
            return cached.value

        value = await loader()
        self.set(key, value, ttl_ms)
        return value

    def stats(self) -> CacheStats:
        try:
            storage_size = len(self._persistent.keys())
        except StorageError as e:
            logger.warning("cache_storage_stats_failed", error=str(e))
            storage_size = 0
        return CacheStats(
            memory_size=len(self._memory),
            storage_size=storage_size,
            keys=self._memory.keys(),
        )

    def _record(self, tier: str, result: CacheLookup) -> None:
        if self._metrics:
            outcome = "hit" if isinstance(result, CacheHit) else result.reason
            self._metrics.record_cache_lookup(tier, outcome)
