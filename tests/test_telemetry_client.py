from __future__ import annotations

import json
from typing import Any, Dict

import httpx
import pytest

from libs.telemetry import TelemetryClient


@pytest.mark.asyncio()
async def test_publish_sends_source_version_and_api_key() -> None:
    captured: Dict[str, Any] = {}

    def handler(request: httpx.Request) -> httpx.Response:
        captured["path"] = request.url.path
        captured["headers"] = {k.lower(): v for k, v in request.headers.items()}
        captured["json"] = json.loads(request.content.decode())
        return httpx.Response(200, json={"ok": True})

    transport = httpx.MockTransport(handler)

    async with httpx.AsyncClient(
        base_url="https://telemetry.local", transport=transport
    ) as async_client:
        client = TelemetryClient(
            "https://telemetry.local",
            api_key="secret",
            source="cache",
            client=async_client,
        )
        await client.publish("cache_hit", {"cache_key": "abc", "hit_count": 2}, ts=12.5)

    assert captured["path"] == "/events"
    assert captured["headers"].get("x-api-key") == "secret"
    body = captured["json"]
    assert body == {
        "type": "cache_hit",
        "ts": 12.5,
        "source": "cache",
        "app_version": "1.0.0",
        "payload": {"cache_key": "abc", "hit_count": 2},
    }


@pytest.mark.asyncio()
async def test_publish_raises_on_http_error() -> None:
    transport = httpx.MockTransport(lambda request: httpx.Response(503))

    async with httpx.AsyncClient(
        base_url="https://telemetry.local", transport=transport
    ) as async_client:
        client = TelemetryClient("https://telemetry.local", client=async_client)
        with pytest.raises(httpx.HTTPStatusError):
            await client.publish("cache_miss", {"cache_key": "abc"})
