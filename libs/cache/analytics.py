"""Bridges synchronous cache events to the async telemetry API."""

from __future__ import annotations

import asyncio
import logging
from collections import deque
from typing import Any, Deque, Dict, Optional, Protocol, Tuple

from tenacity import AsyncRetrying, RetryError, stop_after_attempt, wait_fixed

from libs.telemetry import TelemetryClient

logger = logging.getLogger("birthlink.cache.analytics")


class CacheAnalytics(Protocol):
    def track_event(self, name: str, params: Dict[str, Any]) -> None: ...


class LoggingAnalytics:
    """Fallback sink used when no telemetry endpoint is configured."""

    def track_event(self, name: str, params: Dict[str, Any]) -> None:
        logger.debug("cache event %s", name, extra={"event": name, "params": params})


class TelemetryAnalytics:
    """Queues cache events and publishes them from a background task.

    ``track_event`` never blocks and never raises. Events recorded while no
    event loop is running stay queued until :meth:`drain` runs. The queue is
    bounded; the oldest events are dropped first.
    """

    def __init__(
        self,
        client: TelemetryClient,
        *,
        max_pending: int = 1000,
        retry_attempts: int = 3,
        retry_wait_seconds: float = 0.1,
    ) -> None:
        self._client = client
        self._pending: Deque[Tuple[str, Dict[str, Any]]] = deque(maxlen=max(1, max_pending))
        self._retry_attempts = max(1, retry_attempts)
        self._retry_wait = max(0.0, retry_wait_seconds)
        self._task: Optional[asyncio.Task[None]] = None
        self.dropped = 0

    @property
    def pending(self) -> int:
        return len(self._pending)

    def track_event(self, name: str, params: Dict[str, Any]) -> None:
        if len(self._pending) == self._pending.maxlen:
            self.dropped += 1
        self._pending.append((name, dict(params)))
        self._schedule()

    async def drain(self) -> None:
        while self._pending:
            name, params = self._pending.popleft()
            try:
                async for attempt in AsyncRetrying(
                    stop=stop_after_attempt(self._retry_attempts),
                    wait=wait_fixed(self._retry_wait),
                    reraise=False,
                ):
                    with attempt:
                        await self._client.publish(name, params)
            except RetryError as exc:
                logger.debug("Dropping cache event %s after retries: %s", name, exc)

    async def aclose(self) -> None:
        task = self._task
        self._task = None
        if task is not None and not task.done():
            await task
        await self.drain()
        await self._client.aclose()

    def _schedule(self) -> None:
        if self._task is not None and not self._task.done():
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            return
        self._task = loop.create_task(self.drain())


__all__ = ["CacheAnalytics", "LoggingAnalytics", "TelemetryAnalytics"]
