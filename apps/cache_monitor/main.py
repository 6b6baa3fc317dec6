from __future__ import annotations

import contextlib
import logging
from typing import AsyncIterator

from fastapi import FastAPI

from libs.cache import build_cache
from libs.common import configure_json_logging
from libs.config import get_app_config

from . import deps
from .routes import router

logger = logging.getLogger(__name__)


@contextlib.asynccontextmanager
async def lifespan(_: FastAPI) -> AsyncIterator[None]:
    configure_json_logging("cache_monitor")
    settings = get_app_config()
    bundle = build_cache(settings)
    deps.set_cache(bundle.service)
    deps.set_api_key(settings.monitor.api_key)
    await bundle.service.start()
    if settings.monitor.warm_on_startup:
        await bundle.service.warm_cache()
    logger.info(
        "Cache monitor ready",
        extra={"entries": len(bundle.service), "slot": settings.cache.persistence_slot},
    )
    try:
        yield
    finally:
        deps.set_cache(None)
        await bundle.aclose()
        logger.info("Cache monitor stopped")


app = FastAPI(title="BirthLink Cache Monitor", lifespan=lifespan)
app.include_router(router)


def main() -> None:  # pragma: no cover - manual entrypoint
    import uvicorn

    monitor = get_app_config().monitor
    uvicorn.run(
        "apps.cache_monitor.main:app",
        host=monitor.bind_host,
        port=monitor.bind_port,
    )


if __name__ == "__main__":  # pragma: no cover
    main()
