from __future__ import annotations

import asyncio
import logging
from typing import Callable

logger = logging.getLogger("birthlink.cache.sweeper")


class ExpirationSweeper:
    """Periodically purges expired entries, independent of reads.

    ``interval`` is consulted before every tick so configuration changes apply
    to the next sleep.
    """

    def __init__(self, purge: Callable[[], int], *, interval: Callable[[], float]) -> None:
        self._purge = purge
        self._interval = interval
        self._task: asyncio.Task[None] | None = None
        self._lock = asyncio.Lock()

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def start(self) -> None:
        async with self._lock:
            if self._task is not None:
                return
            self._task = asyncio.create_task(self._runner(), name="cache-sweeper")

    async def stop(self) -> None:
        async with self._lock:
            task = self._task
            self._task = None
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass

    def sweep_once(self) -> int:
        removed = self._purge()
        if removed:
            logger.debug("Sweep removed %d expired cache entries", removed)
        return removed

    async def _runner(self) -> None:
        while True:
            await asyncio.sleep(max(0.0, float(self._interval())))
            try:
                self.sweep_once()
            except Exception:  # pragma: no cover - keep the loop alive
                logger.exception("Cache sweep failed")


__all__ = ["ExpirationSweeper"]
