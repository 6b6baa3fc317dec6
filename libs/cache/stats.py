from __future__ import annotations

import json
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List

NEAR_CAPACITY_RATIO = 0.9
LOW_HIT_RATE_PCT = 50.0
LOW_HIT_RATE_MIN_LOOKUPS = 100
HIGH_MEMORY_BYTES = 10 * 1024 * 1024
TOP_ENTRIES_LIMIT = 10


@dataclass
class CacheCounters:
    hits: int = 0
    misses: int = 0
    writes: int = 0
    evictions: int = 0

    @property
    def lookups(self) -> int:
        return self.hits + self.misses

    def hit_rate(self) -> float:
        total = self.lookups
        if total <= 0:
            return 0.0
        return self.hits / total * 100

    def reset(self) -> None:
        self.hits = 0
        self.misses = 0
        self.writes = 0
        self.evictions = 0


@dataclass
class CacheStats:
    total_entries: int
    total_hits: int
    total_misses: int
    hit_rate: float
    memory_usage: int

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class HealthReport:
    is_healthy: bool
    issues: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {"is_healthy": self.is_healthy, "issues": list(self.issues)}


def estimate_size(value: Any) -> int:
    """Rough byte size of ``value`` once serialized to JSON.

    Best effort: payloads JSON cannot encode (cycles, runaway nesting) fall
    back to their ``repr`` length, or 0 when even that fails.
    """
    try:
        return len(json.dumps(value, ensure_ascii=False, default=str))
    except (TypeError, ValueError, RecursionError):
        pass
    try:
        return len(repr(value))
    except RecursionError:
        return 0


def evaluate_health(stats: CacheStats, *, max_entries: int) -> HealthReport:
    issues: List[str] = []
    if stats.total_entries > max_entries * NEAR_CAPACITY_RATIO:
        issues.append("Cache near capacity limit")
    lookups = stats.total_hits + stats.total_misses
    if lookups > LOW_HIT_RATE_MIN_LOOKUPS and stats.hit_rate < LOW_HIT_RATE_PCT:
        issues.append("Cache hit rate below 50%")
    if stats.memory_usage > HIGH_MEMORY_BYTES:
        issues.append("High memory usage")
    return HealthReport(is_healthy=not issues, issues=issues)


__all__ = [
    "CacheCounters",
    "CacheStats",
    "HealthReport",
    "estimate_size",
    "evaluate_health",
]
