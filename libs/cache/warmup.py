from __future__ import annotations

import inspect
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional, Tuple, Union

from .keys import namespaced

HOUR_MS = 60 * 60 * 1000
DAY_MS = 24 * HOUR_MS

WarmupLoader = Callable[[], Union[Any, Awaitable[Any]]]


@dataclass(frozen=True)
class WarmupSource:
    """A known hot-path entry written at startup to avoid cold misses."""

    name: str
    ttl_ms: int
    loader: Optional[WarmupLoader] = None

    @property
    def key(self) -> str:
        return namespaced("warm", self.name)

    async def load(self, now: int) -> Any:
        if self.loader is None:
            return {"type": self.name, "preloaded": True, "timestamp": now}
        result = self.loader()
        if inspect.isawaitable(result):
            result = await result
        return result


DEFAULT_WARMUP_SOURCES: Tuple[WarmupSource, ...] = (
    WarmupSource("system_config", HOUR_MS),
    WarmupSource("region_list", DAY_MS),
    WarmupSource("translations", DAY_MS),
)


__all__ = ["WarmupSource", "DEFAULT_WARMUP_SOURCES", "HOUR_MS", "DAY_MS"]
