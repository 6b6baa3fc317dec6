from __future__ import annotations

import logging
import time
from typing import (
    Any,
    Callable,
    Dict,
    Iterable,
    List,
    Mapping,
    Optional,
    Sequence,
    Tuple,
    Union,
)

from libs.config.models import CacheSettings

from .analytics import CacheAnalytics
from .entry import CacheEntry
from .keys import compile_pattern, namespaced, obfuscate_key
from .persistence import CachePersistence, MemorySlotStorage, PersistenceError
from .stats import (
    TOP_ENTRIES_LIMIT,
    CacheCounters,
    CacheStats,
    HealthReport,
    estimate_size,
    evaluate_health,
)
from .store import OrderedStore
from .sweeper import ExpirationSweeper
from .warmup import DAY_MS, DEFAULT_WARMUP_SOURCES, HOUR_MS, WarmupSource

logger = logging.getLogger(__name__)

MINUTE_MS = 60 * 1000

BatchItem = Union[Tuple[str, Any], Tuple[str, Any, Optional[int]], Mapping[str, Any]]


def _now_ms() -> int:
    return int(time.time() * 1000)


class CacheService:
    """Capacity-bounded, expiring key/value cache with a durable snapshot.

    Operations are synchronous and never raise for storage faults. The
    instance is meant to be built once by the application and shared by
    reference; its lifecycle is ``construct -> start -> warm_cache -> destroy``.
    """

    def __init__(
        self,
        settings: Optional[CacheSettings] = None,
        *,
        persistence: Optional[CachePersistence] = None,
        analytics: Optional[CacheAnalytics] = None,
        clock: Callable[[], int] = _now_ms,
        warmup_sources: Sequence[WarmupSource] = DEFAULT_WARMUP_SOURCES,
    ) -> None:
        self._settings = settings or CacheSettings()
        self._persistence = persistence or CachePersistence(
            MemorySlotStorage(), self._settings.persistence_slot
        )
        self._analytics = analytics
        self._clock = clock
        self._warmup_sources = tuple(warmup_sources)
        self._store = OrderedStore()
        self._counters = CacheCounters()
        self._sweeper = ExpirationSweeper(
            self.purge_expired,
            interval=lambda: self._settings.sweep_interval_seconds,
        )
        self._destroyed = False
        self._load()

    @property
    def settings(self) -> CacheSettings:
        return self._settings

    @property
    def counters(self) -> CacheCounters:
        return self._counters

    def __len__(self) -> int:
        return len(self._store)

    # Core operations

    def set(self, key: str, data: Any, ttl: Optional[int] = None) -> None:
        settings = self._settings
        ttl_ms = settings.default_ttl_ms if ttl is None else int(ttl)
        if ttl_ms < 0:
            raise ValueError(f"ttl must be non-negative, got {ttl}")

        # Only growth can breach capacity; overwrites keep the store size.
        if key not in self._store:
            while len(self._store) >= settings.max_entries:
                if not self._evict_lru():
                    break

        entry: CacheEntry[Any] = CacheEntry(
            data=data,
            timestamp=self._clock(),
            ttl=ttl_ms,
            version=settings.schema_version,
        )
        self._store.put(key, entry)
        self._counters.writes += 1
        self._persist()
        if self._tracking:
            self._track(
                "cache_write",
                cache_key=obfuscate_key(key),
                data_size=estimate_size(data),
                ttl=ttl_ms,
            )

    def get(self, key: str, default: Any = None) -> Any:
        """Return the cached data for ``key`` or ``default`` on a miss.

        A stored ``None`` is indistinguishable from a miss with the default
        ``default``; pass a sentinel object when that matters.
        """
        entry = self._store.peek(key)
        if entry is None:
            self._counters.misses += 1
            self._track("cache_miss", cache_key=obfuscate_key(key))
            return default

        now = self._clock()
        if entry.is_expired(now):
            self._store.pop(key)
            self._counters.misses += 1
            self._track("cache_expired", cache_key=obfuscate_key(key), age=entry.age(now))
            return default

        self._store.touch(key)
        self._counters.hits += 1
        self._track(
            "cache_hit",
            cache_key=obfuscate_key(key),
            hit_count=entry.hits,
            age=entry.age(now),
        )
        return entry.data

    def delete(self, key: str) -> bool:
        if self._store.pop(key) is None:
            return False
        self._persist()
        return True

    def delete_pattern(self, pattern: str) -> int:
        keys = self._store.matching(compile_pattern(pattern))
        for key in keys:
            self._store.pop(key)
        if keys:
            self._persist()
        return len(keys)

    def clear(self) -> None:
        self._store.clear()
        self._counters.reset()
        if self._settings.enable_persistence:
            self._persistence.discard()

    def purge_expired(self) -> int:
        """Remove every expired entry; used by the background sweeper."""
        now = self._clock()
        expired = self._store.expired(now)
        for key in expired:
            self._store.pop(key)
        if expired:
            self._persist()
            self._track(
                "cache_cleanup",
                expired_entries=len(expired),
                remaining_entries=len(self._store),
            )
        return len(expired)

    def flush(self) -> None:
        """Write the current snapshot now (best effort)."""
        self._persist()

    # Batch forms

    def set_many(self, entries: Iterable[BatchItem]) -> None:
        for item in entries:
            if isinstance(item, Mapping):
                self.set(item["key"], item["data"], item.get("ttl"))
            else:
                self.set(*item)

    def get_many(self, keys: Iterable[str]) -> Dict[str, Any]:
        return {key: self.get(key) for key in keys}

    # Namespaced helpers for the registry's hot paths

    def cache_registration(
        self, registration_id: str, registration: Any, ttl: int = 30 * MINUTE_MS
    ) -> None:
        self.set(namespaced("registration", registration_id), registration, ttl)

    def get_cached_registration(self, registration_id: str) -> Any:
        return self.get(namespaced("registration", registration_id))

    def cache_user_profile(self, user_id: str, profile: Any, ttl: int = HOUR_MS) -> None:
        self.set(namespaced("user", user_id), profile, ttl)

    def get_cached_user_profile(self, user_id: str) -> Any:
        return self.get(namespaced("user", user_id))

    def cache_regional_stats(
        self, region: str, stats: Any, ttl: int = 10 * MINUTE_MS
    ) -> None:
        self.set(namespaced("regional_stats", region), stats, ttl)

    def get_cached_regional_stats(self, region: str) -> Any:
        return self.get(namespaced("regional_stats", region))

    def cache_translation(
        self, language: str, namespace: str, translations: Any, ttl: int = DAY_MS
    ) -> None:
        self.set(namespaced("translation", language, namespace), translations, ttl)

    def get_cached_translation(self, language: str, namespace: str) -> Any:
        return self.get(namespaced("translation", language, namespace))

    # Statistics and health

    def get_stats(self) -> CacheStats:
        counters = self._counters
        return CacheStats(
            total_entries=len(self._store),
            total_hits=counters.hits,
            total_misses=counters.misses,
            hit_rate=counters.hit_rate(),
            memory_usage=estimate_size(
                [[key, entry.to_dict()] for key, entry in self._store.items()]
            ),
        )

    def get_detailed_stats(self) -> Dict[str, Any]:
        now = self._clock()
        ranked = sorted(self._store.items(), key=lambda item: item[1].hits, reverse=True)
        top_entries: List[Dict[str, Any]] = [
            {
                "key": obfuscate_key(key),
                "hits": entry.hits,
                "age": entry.age(now),
                "ttl": entry.ttl,
                "size": estimate_size(entry.data),
            }
            for key, entry in ranked[:TOP_ENTRIES_LIMIT]
        ]
        payload = self.get_stats().to_dict()
        payload.update(
            {
                "total_writes": self._counters.writes,
                "total_evictions": self._counters.evictions,
                "top_entries": top_entries,
                "config": self._settings.model_dump(),
            }
        )
        return payload

    def health_check(self) -> HealthReport:
        return evaluate_health(self.get_stats(), max_entries=self._settings.max_entries)

    # Configuration and lifecycle

    def update_config(self, changes: Mapping[str, Any]) -> CacheSettings:
        """Merge ``changes`` into the live settings.

        The merged result is validated as a whole; on failure the previous
        settings stay active and ``pydantic.ValidationError`` propagates.
        Existing entries keep the TTL they were written with.
        """
        merged = self._settings.model_dump()
        merged.update(changes)
        self._settings = CacheSettings.model_validate(merged)
        self._persistence.slot = self._settings.persistence_slot
        logger.info("Cache configuration updated", extra={"changes": dict(changes)})
        self._track("cache_config_updated", new_config=dict(changes))
        return self._settings

    async def warm_cache(self, sources: Optional[Sequence[WarmupSource]] = None) -> int:
        preloaded = 0
        for source in sources if sources is not None else self._warmup_sources:
            try:
                data = await source.load(self._clock())
                self.set(source.key, data, source.ttl_ms)
            except Exception:
                logger.warning("Cache warm-up failed for %s", source.name, exc_info=True)
                continue
            preloaded += 1
        logger.info("Cache warm-up preloaded %d entries", preloaded)
        self._track("cache_warmed", preloaded_items=preloaded)
        return preloaded

    async def start(self) -> None:
        await self._sweeper.start()

    async def destroy(self) -> None:
        if self._destroyed:
            return
        self._destroyed = True
        await self._sweeper.stop()
        self._persist()
        self._store.clear()

    @property
    def sweeper(self) -> ExpirationSweeper:
        return self._sweeper

    # Internals

    def _evict_lru(self) -> bool:
        evicted = self._store.evict_oldest()
        if evicted is None:
            return False
        self._counters.evictions += 1
        return True

    def _load(self) -> None:
        if not self._settings.enable_persistence:
            return
        restored = self._persistence.load(self._clock())
        overflow = len(restored) - self._settings.max_entries
        if overflow > 0:
            restored = restored[overflow:]
        for key, entry in restored:
            self._store.put(key, entry)
        if restored:
            logger.info("Restored %d cache entries", len(restored))

    def _persist(self) -> None:
        if not self._settings.enable_persistence:
            return
        try:
            self._persistence.save(self._store.items())
            return
        except PersistenceError as exc:
            logger.warning("Failed to save cache to persistence: %s", exc)
        self._evict_lru()
        try:
            self._persistence.save(self._store.items())
        except PersistenceError as exc:
            logger.error("Cache persistence failed after retry: %s", exc)

    @property
    def _tracking(self) -> bool:
        return self._settings.enable_analytics and self._analytics is not None

    def _track(self, name: str, **params: Any) -> None:
        if not self._tracking:
            return
        try:
            self._analytics.track_event(name, params)
        except Exception:
            logger.debug("Analytics sink rejected %s", name, exc_info=True)


__all__ = ["CacheService"]
