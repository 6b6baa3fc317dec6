from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Optional, Union

from libs.config.models import AppSettings, StorageSettings
from libs.telemetry import TelemetryClient

from .analytics import LoggingAnalytics, TelemetryAnalytics
from .persistence import CachePersistence, FileSlotStorage, MemorySlotStorage, SlotStorage
from .service import CacheService

logger = logging.getLogger(__name__)


@dataclass
class CacheBundle:
    """A composed cache together with the resources it depends on."""

    service: CacheService
    analytics: Union[TelemetryAnalytics, LoggingAnalytics]

    async def aclose(self) -> None:
        await self.service.destroy()
        if isinstance(self.analytics, TelemetryAnalytics):
            await self.analytics.aclose()


def build_storage(settings: StorageSettings) -> SlotStorage:
    if settings.backend == "memory":
        return MemorySlotStorage(quota_bytes=settings.quota_bytes)
    return FileSlotStorage(Path(settings.directory), quota_bytes=settings.quota_bytes)


def build_cache(
    settings: AppSettings,
    *,
    telemetry: Optional[TelemetryClient] = None,
    clock: Optional[Callable[[], int]] = None,
) -> CacheBundle:
    """Compose a :class:`CacheService` from application settings."""
    storage = build_storage(settings.storage)
    persistence = CachePersistence(storage, settings.cache.persistence_slot)

    client = telemetry
    if client is None and settings.telemetry.api_url:
        client = TelemetryClient(
            settings.telemetry.api_url,
            api_key=settings.telemetry.api_key,
            source=settings.telemetry.source,
        )
    analytics: Union[TelemetryAnalytics, LoggingAnalytics]
    if client is not None:
        analytics = TelemetryAnalytics(client)
    else:
        logger.info("Cache analytics running without a telemetry endpoint")
        analytics = LoggingAnalytics()

    kwargs = {"clock": clock} if clock is not None else {}
    service = CacheService(
        settings.cache.model_copy(),
        persistence=persistence,
        analytics=analytics,
        **kwargs,
    )
    return CacheBundle(service=service, analytics=analytics)


__all__ = ["CacheBundle", "build_cache", "build_storage"]
