from __future__ import annotations

from typing import Optional

from fastapi import Header, HTTPException, status

from libs.cache import CacheService

_cache: Optional[CacheService] = None
_api_key: Optional[str] = None


def set_cache(cache: Optional[CacheService]) -> None:
    global _cache
    _cache = cache


def get_cache() -> CacheService:
    if _cache is None:  # pragma: no cover - should be initialised at startup
        raise RuntimeError("Cache service not initialised")
    return _cache


def set_api_key(value: Optional[str]) -> None:
    global _api_key
    if value is None:
        _api_key = None
        return
    stripped = value.strip()
    _api_key = stripped or None


def require_api_key(
    x_api_key: Optional[str] = Header(default=None, alias="X-API-Key"),
    authorization: Optional[str] = Header(default=None),
) -> None:
    if _api_key is None:
        return
    if x_api_key == _api_key:
        return
    if authorization:
        scheme, _, token = authorization.partition(" ")
        if scheme.lower() == "bearer" and token == _api_key:
            return
    raise HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Invalid or missing API key",
    )


__all__ = ["get_cache", "set_cache", "set_api_key", "require_api_key"]
