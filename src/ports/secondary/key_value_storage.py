from abc import ABC, abstractmethod


class IKeyValueStorage(ABC):
    """
    Interface for the local persistent tier (browser-localStorage semantics).

    All methods are synchronous so that a store's memory-then-persistent write
    never spans an event-loop suspension point.
    """

    @abstractmethod
    def get_item(self, key: str) -> str | None:
        pass

    @abstractmethod
    def set_item(self, key: str, value: str) -> None:
        """Raises StorageQuotaExceededError when the write does not fit."""
        pass

    @abstractmethod
    def remove_item(self, key: str) -> None:
        pass

    @abstractmethod
    def keys(self) -> list[str]:
        pass

    @abstractmethod
    def size_bytes(self, key: str | None = None) -> int:
        """Bytes used by one key, or by the whole storage when key is None."""
        pass

    @property
    @abstractmethod
    def quota_bytes(self) -> int | None:
        pass
