import redis

from src.domain.storage.exceptions import StorageError, StorageQuotaExceededError
from src.ports.secondary.key_value_storage import IKeyValueStorage


def _decode(value) -> str:
    return value.decode() if isinstance(value, bytes) else value


class RedisKeyValueStorage(IKeyValueStorage):
    """
    Persistent tier backed by a local Redis instance.

    Uses the synchronous client: store writes must not yield to the event
    loop between the memory and the persistent tier. Capacity is governed by
    the server's maxmemory policy, so an OOM reply maps to a quota error.
    """

    def __init__(self, redis_client: redis.Redis, key_prefix: str = "orchestrator:"):
        self._redis = redis_client
        self._prefix = key_prefix

    @property
    def quota_bytes(self) -> int | None:
        return None

    def _key(self, key: str) -> str:
        return f"{self._prefix}{key}"

    def get_item(self, key: str) -> str | None:
        try:
            value = self._redis.get(self._key(key))
        except redis.RedisError as e:
            raise StorageError(f"Failed to read '{key}': {e}", key=key) from e
        return _decode(value) if value is not None else None

    def set_item(self, key: str, value: str) -> None:
        try:
            self._redis.set(self._key(key), value)
        except redis.exceptions.ResponseError as e:
            if str(e).startswith("OOM"):
                raise StorageQuotaExceededError(key, len(value.encode("utf-8")), 0) from e
            raise StorageError(f"Failed to write '{key}': {e}", key=key) from e
        except redis.RedisError as e:
            raise StorageError(f"Failed to write '{key}': {e}", key=key) from e

    def remove_item(self, key: str) -> None:
        try:
            self._redis.delete(self._key(key))
        except redis.RedisError as e:
            raise StorageError(f"Failed to remove '{key}': {e}", key=key) from e

    def keys(self) -> list[str]:
        try:
            raw_keys = list(self._redis.scan_iter(match=f"{self._prefix}*"))
        except redis.RedisError as e:
            raise StorageError(f"Failed to list keys: {e}") from e
        return sorted(_decode(k)[len(self._prefix):] for k in raw_keys)

    def size_bytes(self, key: str | None = None) -> int:
        try:
            if key is not None:
                return int(self._redis.strlen(self._key(key)))
            return sum(int(self._redis.strlen(self._key(k))) for k in self.keys())
        except redis.RedisError as e:
            raise StorageError(f"Failed to measure storage: {e}", key=key) from e
