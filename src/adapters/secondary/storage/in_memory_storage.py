from src.domain.storage.exceptions import StorageQuotaExceededError
from src.ports.secondary.key_value_storage import IKeyValueStorage


def _entry_size(key: str, value: str) -> int:
    return len(key.encode("utf-8")) + len(value.encode("utf-8"))


class InMemoryKeyValueStorage(IKeyValueStorage):
    """Process-local storage, used for tests and for STORAGE_BACKEND=memory."""

    def __init__(self, quota_bytes: int | None = None):
        self._items: dict[str, str] = {}
        self._quota_bytes = quota_bytes

    @property
    def quota_bytes(self) -> int | None:
        return self._quota_bytes

    def get_item(self, key: str) -> str | None:
        return self._items.get(key)

    def set_item(self, key: str, value: str) -> None:
        if self._quota_bytes is not None:
            current = self._items.get(key)
            used = self.size_bytes() - (_entry_size(key, current) if current is not None else 0)
            required = used + _entry_size(key, value)
            if required > self._quota_bytes:
                raise StorageQuotaExceededError(key, required, self._quota_bytes)
        self._items[key] = value

    def remove_item(self, key: str) -> None:
        self._items.pop(key, None)

    def keys(self) -> list[str]:
        return list(self._items)

    def size_bytes(self, key: str | None = None) -> int:
        if key is not None:
            value = self._items.get(key)
            return _entry_size(key, value) if value is not None else 0
        return sum(_entry_size(k, v) for k, v in self._items.items())
