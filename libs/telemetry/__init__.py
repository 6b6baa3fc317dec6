from __future__ import annotations

import asyncio
import logging
import time
from typing import Any, Dict, Optional

import httpx

logger = logging.getLogger("birthlink.telemetry")

APP_VERSION = "1.0.0"


def _normalize_source(value: Optional[Any]) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


class TelemetryClient:
    """Async publisher for the analytics API consumed by the cache."""

    def __init__(
        self,
        base_url: str,
        *,
        api_key: Optional[str] = None,
        source: Optional[str] = None,
        app_version: str = APP_VERSION,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._api_key = api_key
        self._source = _normalize_source(source) or "unknown"
        self._app_version = app_version
        self._client = client
        self._lock = asyncio.Lock()

    async def publish(
        self,
        event_type: str,
        payload: Dict[str, Any],
        *,
        ts: Optional[float] = None,
    ) -> None:
        client = await self._ensure_client()
        headers: Dict[str, str] = {}
        if self._api_key:
            headers["X-API-Key"] = self._api_key
        timestamp = ts if isinstance(ts, (int, float)) else time.time()
        data = {
            "type": event_type,
            "ts": timestamp,
            "source": self._source,
            "app_version": self._app_version,
            "payload": payload,
        }
        request_kwargs: Dict[str, Any] = {"json": data}
        if headers:
            request_kwargs["headers"] = headers
        try:
            response = await client.post("/events", **request_kwargs)
            response.raise_for_status()
        except Exception as exc:
            logger.debug(
                "Failed to send telemetry %s: %s", event_type, exc, exc_info=True
            )
            raise

    async def aclose(self) -> None:
        if self._client is None:
            return
        await self._client.aclose()
        self._client = None

    async def _ensure_client(self) -> httpx.AsyncClient:
        if self._client is not None:
            return self._client
        async with self._lock:
            if self._client is None:
                timeout = httpx.Timeout(3.0, connect=3.0, read=3.0)
                self._client = httpx.AsyncClient(
                    base_url=self._base_url,
                    timeout=timeout,
                )
        assert self._client is not None
        return self._client


__all__ = ["TelemetryClient", "APP_VERSION"]
