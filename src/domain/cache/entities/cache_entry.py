from dataclasses import dataclass
from typing import Any

CACHE_FORMAT_VERSION = "1.0.0"


@dataclass(frozen=True)
class CacheEntry:
    key: str
    value: Any
    expires_at: int

    def is_expired(self, now_ms: int) -> bool:
        return now_ms >= self.expires_at

    def to_envelope(self) -> dict[str, Any]:
        return {
            "data": self.value,
            "expiresAt": self.expires_at,
            "version": CACHE_FORMAT_VERSION,
        }

    @classmethod
    def from_envelope(cls, key: str, envelope: dict[str, Any]) -> "CacheEntry":
        return cls(key=key, value=envelope["data"], expires_at=int(envelope["expiresAt"]))
