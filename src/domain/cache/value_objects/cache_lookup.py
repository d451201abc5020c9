from dataclasses import dataclass
from typing import Any, Union


@dataclass(frozen=True)
class CacheHit:
    value: Any


@dataclass(frozen=True)
class CacheMiss:
    reason: str = "absent"


# A cached None is still a hit; only CacheMiss means "not cached".
CacheLookup = Union[CacheHit, CacheMiss]

MISS = CacheMiss()
EXPIRED = CacheMiss(reason="expired")
