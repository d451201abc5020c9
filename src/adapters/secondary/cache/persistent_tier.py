import json

from src.domain.cache.entities.cache_entry import CacheEntry
from src.domain.cache.value_objects.cache_lookup import EXPIRED, MISS, CacheHit, CacheLookup, CacheMiss
from src.ports.secondary.key_value_storage import IKeyValueStorage
from src.shared.logger import get_logger

logger = get_logger(__name__)


class PersistentCacheTier:
    """
    Durable tier: one storage slot per key, wrapped as {data, expiresAt, version}.

    Lookup hands back the whole entry on a hit so the store can promote it
    into memory with its original expiry.
    """

    name = "persistent"

    def __init__(self, storage: IKeyValueStorage, key_prefix: str = "cache_"):
        self._storage = storage
        self._prefix = key_prefix

    def _slot(self, key: str) -> str:
        return f"{self._prefix}{key}"

    def lookup_entry(self, key: str, now_ms: int) -> tuple[CacheLookup, CacheEntry | None]:
        raw = self._storage.get_item(self._slot(key))
        if raw is None:
            return MISS, None
        try:
            entry = CacheEntry.from_envelope(key, json.loads(raw))
        except (ValueError, KeyError, TypeError) as e:
            logger.warning("cache_entry_corrupt", key=key, error=str(e))
            self._storage.remove_item(self._slot(key))
            return CacheMiss(reason="corrupt"), None
        if entry.is_expired(now_ms):
            self._storage.remove_item(self._slot(key))
            return EXPIRED, None
        return CacheHit(entry.value), entry

    def store(self, entry: CacheEntry) -> None:
        self._storage.set_item(self._slot(entry.key), json.dumps(entry.to_envelope()))

    def remove(self, key: str) -> None:
        self._storage.remove_item(self._slot(key))

    def clear(self) -> None:
        for slot in self._storage.keys():
            if slot.startswith(self._prefix):
                self._storage.remove_item(slot)

    def keys(self) -> list[str]:
        return [slot[len(self._prefix):] for slot in self._storage.keys() if slot.startswith(self._prefix)]
