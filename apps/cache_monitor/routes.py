from __future__ import annotations

from typing import Any, Dict

from fastapi import APIRouter, Body, Depends, HTTPException, Query, status
from fastapi.responses import PlainTextResponse
from pydantic import ValidationError

from libs.cache import CacheService

from .deps import get_cache, require_api_key
from .metrics import render_prometheus

router = APIRouter()


@router.get("/health")
async def health(cache: CacheService = Depends(get_cache)) -> Dict[str, Any]:
    """Return the cache health verdict and the issues behind it."""
    return cache.health_check().to_dict()


@router.get("/stats")
async def stats(cache: CacheService = Depends(get_cache)) -> Dict[str, Any]:
    """Return detailed statistics; keys are reported as digests only."""
    return cache.get_detailed_stats()


@router.get("/metrics", response_class=PlainTextResponse)
async def metrics(cache: CacheService = Depends(get_cache)) -> PlainTextResponse:
    """Expose Prometheus-formatted metrics for scraper targets."""
    payload = render_prometheus(cache)
    return PlainTextResponse(payload, media_type="text/plain; version=0.0.4")


@router.patch("/config", dependencies=[Depends(require_api_key)])
async def update_config(
    changes: Dict[str, Any] = Body(...),
    cache: CacheService = Depends(get_cache),
) -> Dict[str, Any]:
    try:
        updated = cache.update_config(changes)
    except ValidationError as exc:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=exc.errors(include_url=False, include_context=False, include_input=False),
        ) from exc
    return updated.model_dump()


@router.delete("/entries", dependencies=[Depends(require_api_key)])
async def delete_entries(
    pattern: str = Query(..., min_length=1),
    cache: CacheService = Depends(get_cache),
) -> Dict[str, Any]:
    removed = cache.delete_pattern(pattern)
    return {"pattern": pattern, "removed": removed}


@router.post("/clear", dependencies=[Depends(require_api_key)])
async def clear(cache: CacheService = Depends(get_cache)) -> Dict[str, Any]:
    cache.clear()
    return {"cleared": True}
