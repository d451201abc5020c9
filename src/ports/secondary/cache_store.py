from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable

from src.domain.cache.value_objects.cache_lookup import CacheLookup

Loader = Callable[[], Awaitable[Any]]


@dataclass(frozen=True)
class CacheStats:
    memory_size: int
    storage_size: int
    keys: list[str] = field(default_factory=list)


class ICacheStore(ABC):
    """
    Interface for the two-tier expiring cache.

    An entry is never returned once its expiry has passed; expired entries are
    purged lazily by the read that finds them.
    """

    @abstractmethod
    def set(self, key: str, value: Any, ttl_ms: int | None = None) -> None:
        pass

    @abstractmethod
    def lookup(self, key: str) -> CacheLookup:
        pass

    @abstractmethod
    def get(self, key: str) -> Any | None:
        pass

    @abstractmethod
    def has(self, key: str) -> bool:
        pass

    @abstractmethod
    def delete(self, key: str) -> None:
        pass

    @abstractmethod
    def clear(self) -> None:
        pass

    @abstractmethod
    async def get_or_load(self, key: str, loader: Loader, ttl_ms: int | None = None) -> Any:
        pass

    @abstractmethod
    def stats(self) -> CacheStats:
        pass
