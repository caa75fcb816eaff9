# app/main.py
from __future__ import annotations

from pathlib import Path
from typing import Optional

import redis.asyncio as aioredis
from fastapi import FastAPI
from fastapi.staticfiles import StaticFiles
from starlette.types import Scope

from app.config import STATIC_MAX_AGE_S, Settings, get_settings
from app.core.logging import configure_logging, get_logger
from app.core.request_id import RequestIdMiddleware
from app.core.response_cache import CacheStore, RedisCacheStore, ResponseCache
from app.core.security_headers import SecurityHeadersMiddleware
from api.routers.audio_proxy import router as audio_proxy_router
from api.routers.csp_report import router as csp_report_router
from api.routers.pages import build_pages_router

STATIC_DIR = Path(__file__).resolve().parent / "static"


class CachedStaticFiles(StaticFiles):
    """Static files with a fixed browser max-age."""

    def __init__(self, *args, max_age: int = STATIC_MAX_AGE_S, **kwargs):
        super().__init__(*args, **kwargs)
        self.max_age = max_age

    async def get_response(self, path: str, scope: Scope):
        response = await super().get_response(path, scope)
        if response.status_code in (200, 304):
            response.headers["Cache-Control"] = f"public, max-age={self.max_age}"
        return response


def create_app(
    settings: Optional[Settings] = None,
    *,
    cache_store: Optional[CacheStore] = None,
) -> FastAPI:
    settings = settings or get_settings()
    configure_logging(service_name="podpage", level=settings.LOG_LEVEL)
    logger = get_logger()

    app = FastAPI(
        title="podpage",
        version=settings.APP_VERSION,
        docs_url=None,
        redoc_url=None,
    )

    redis_store: Optional[RedisCacheStore] = None
    if cache_store is None and settings.REDIS_SERVER:
        redis_store = RedisCacheStore(aioredis.from_url(settings.REDIS_SERVER))
        cache_store = redis_store
    if cache_store is None:
        logger.warning("response_cache_disabled", reason="REDIS_SERVER not set")

    cache = ResponseCache(cache_store, prefix=settings.CACHE_KEY_PREFIX)
    app.state.settings = settings
    app.state.response_cache = cache

    @app.on_event("shutdown")
    async def _shutdown_cache() -> None:
        if redis_store is not None:
            await redis_store.close()

    # Last added = outermost: security headers also cover the 500s from RequestIdMiddleware
    app.add_middleware(RequestIdMiddleware)
    app.add_middleware(SecurityHeadersMiddleware)

    app.mount("/static", CachedStaticFiles(directory=str(STATIC_DIR)), name="static")
    app.include_router(audio_proxy_router)
    app.include_router(csp_report_router)
    app.include_router(build_pages_router(cache, settings))

    return app
