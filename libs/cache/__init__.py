from .analytics import CacheAnalytics, LoggingAnalytics, TelemetryAnalytics
from .entry import CacheEntry
from .factory import CacheBundle, build_cache, build_storage
from .keys import compile_pattern, obfuscate_key
from .persistence import (
    CachePersistence,
    FileSlotStorage,
    MemorySlotStorage,
    PersistenceError,
    SlotStorage,
    StorageQuotaExceededError,
)
from .service import CacheService
from .stats import CacheStats, HealthReport
from .store import OrderedStore
from .sweeper import ExpirationSweeper
from .warmup import DEFAULT_WARMUP_SOURCES, WarmupSource

__all__ = [
    "CacheAnalytics",
    "CacheBundle",
    "CacheEntry",
    "CachePersistence",
    "CacheService",
    "CacheStats",
    "DEFAULT_WARMUP_SOURCES",
    "ExpirationSweeper",
    "FileSlotStorage",
    "HealthReport",
    "LoggingAnalytics",
    "MemorySlotStorage",
    "OrderedStore",
    "PersistenceError",
    "SlotStorage",
    "StorageQuotaExceededError",
    "TelemetryAnalytics",
    "WarmupSource",
    "build_cache",
    "build_storage",
    "compile_pattern",
    "obfuscate_key",
]
