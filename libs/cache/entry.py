from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Generic, TypeVar

T = TypeVar("T")

SCHEMA_VERSION = "1.0.0"


@dataclass
class CacheEntry(Generic[T]):
    data: T
    timestamp: int  # epoch milliseconds of the last write
    ttl: int  # milliseconds
    version: str = SCHEMA_VERSION
    hits: int = 0

    def age(self, now: int) -> int:
        return now - self.timestamp

    def is_expired(self, now: int) -> bool:
        # Strict comparison: a read at the write instant is still fresh.
        return now - self.timestamp > self.ttl

    def to_dict(self) -> Dict[str, Any]:
        return {
            "data": self.data,
            "timestamp": self.timestamp,
            "ttl": self.ttl,
            "version": self.version,
            "hits": self.hits,
        }

    @classmethod
    def from_dict(cls, payload: Dict[str, Any]) -> "CacheEntry[Any]":
        if not isinstance(payload, dict) or "data" not in payload:
            raise ValueError("cache entry payload must be a mapping with 'data'")
        return cls(
            data=payload["data"],
            timestamp=int(payload["timestamp"]),
            ttl=int(payload["ttl"]),
            version=str(payload.get("version", SCHEMA_VERSION)),
            hits=max(0, int(payload.get("hits", 0))),
        )


__all__ = ["CacheEntry", "SCHEMA_VERSION"]
