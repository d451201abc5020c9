from src.domain.cache.entities.cache_entry import CacheEntry
from src.domain.cache.value_objects.cache_lookup import EXPIRED, MISS, CacheHit, CacheLookup


class MemoryCacheTier:
    """Volatile tier: authoritative for the current process."""

    name = "memory"

    def __init__(self):
        self._entries: dict[str, CacheEntry] = {}

    def lookup(self, key: str, now_ms: int) -> CacheLookup:
        entry = self._entries.get(key)
        if entry is None:
            return MISS
        if entry.is_expired(now_ms):
            del self._entries[key]
            return EXPIRED
        return CacheHit(entry.value)

    def store(self, entry: CacheEntry) -> None:
        self._entries[entry.key] = entry

    def remove(self, key: str) -> None:
        self._entries.pop(key, None)

    def clear(self) -> None:
        self._entries.clear()

    def keys(self) -> list[str]:
        return list(self._entries)

    def __len__(self) -> int:
        return len(self._entries)
