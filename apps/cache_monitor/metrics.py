from __future__ import annotations

import psutil
from prometheus_client import CollectorRegistry, Gauge, generate_latest

from libs.cache import CacheService

REGISTRY = CollectorRegistry()

CACHE_ENTRIES = Gauge(
    "birthlink_cache_entries",
    "Entries currently held by the cache",
    registry=REGISTRY,
)

CACHE_MEMORY_BYTES = Gauge(
    "birthlink_cache_memory_bytes",
    "Estimated serialized size of the cache contents",
    registry=REGISTRY,
)

CACHE_HIT_RATE = Gauge(
    "birthlink_cache_hit_rate_percent",
    "Share of lookups served from the cache",
    registry=REGISTRY,
)

# Gauges rather than counters: clear() resets the underlying tallies.
CACHE_OPERATIONS = Gauge(
    "birthlink_cache_operations",
    "Cache operation tallies since the last clear",
    labelnames=("outcome",),
    registry=REGISTRY,
)

CACHE_HEALTHY = Gauge(
    "birthlink_cache_healthy",
    "1 when the cache health check reports no issues",
    registry=REGISTRY,
)

PROCESS_RSS_BYTES = Gauge(
    "birthlink_process_rss_bytes",
    "Resident memory of the monitor process",
    registry=REGISTRY,
)


def refresh_cache_gauges(cache: CacheService) -> None:
    """Copy the current cache statistics into the Prometheus gauges."""
    stats = cache.get_stats()
    counters = cache.counters
    CACHE_ENTRIES.set(stats.total_entries)
    CACHE_MEMORY_BYTES.set(stats.memory_usage)
    CACHE_HIT_RATE.set(stats.hit_rate)
    CACHE_OPERATIONS.labels(outcome="hit").set(counters.hits)
    CACHE_OPERATIONS.labels(outcome="miss").set(counters.misses)
    CACHE_OPERATIONS.labels(outcome="write").set(counters.writes)
    CACHE_OPERATIONS.labels(outcome="eviction").set(counters.evictions)
    CACHE_HEALTHY.set(1 if cache.health_check().is_healthy else 0)


def refresh_process_gauges() -> None:
    try:
        PROCESS_RSS_BYTES.set(psutil.Process().memory_info().rss)
    except Exception:  # pragma: no cover - best effort
        return


def render_prometheus(cache: CacheService) -> bytes:
    """Return the latest metrics payload encoded in Prometheus plaintext format."""
    refresh_cache_gauges(cache)
    refresh_process_gauges()
    return generate_latest(REGISTRY)


__all__ = ["refresh_cache_gauges", "refresh_process_gauges", "render_prometheus"]
