# app/core/response_cache.py
"""
Route-level HTTP response cache.

`ResponseCache.route(ttl)` wraps a request handler: the cache key is the
route path plus the raw query string, a hit replays the stored status,
headers and body without calling the handler, a miss runs the handler and
stores its 2xx response. The store is passed in explicitly; any store
failure degrades to uncached behaviour.
"""

from __future__ import annotations

import base64
import functools
import inspect
import json
from typing import Any, Awaitable, Callable, Optional, Protocol

from redis.exceptions import RedisError
from starlette.requests import Request
from starlette.responses import Response

from app.core.errors import CacheUnavailableError
from app.core.logging import get_logger
from app.models.feed import CachedResponse

logger = get_logger().bind(module="response_cache")

CACHE_STATUS_HEADER = "x-cache"


class CacheStore(Protocol):
    async def get(self, key: str) -> Optional[bytes]: ...

    async def set(self, key: str, value: bytes, ttl: int) -> None: ...


class RedisCacheStore:
    """CacheStore on top of a redis.asyncio client."""

    def __init__(self, client: Any):
        self._client = client

    async def get(self, key: str) -> Optional[bytes]:
        try:
            return await self._client.get(key)
        except (RedisError, OSError) as exc:
            raise CacheUnavailableError(str(exc)) from exc

    async def set(self, key: str, value: bytes, ttl: int) -> None:
        try:
            await self._client.set(key, value, ex=ttl)
        except (RedisError, OSError) as exc:
            raise CacheUnavailableError(str(exc)) from exc

    async def close(self) -> None:
        await self._client.aclose()


def encode_entry(entry: CachedResponse) -> bytes:
    return json.dumps(
        {
            "status": entry.status_code,
            "headers": [[k, v] for k, v in entry.headers],
            "body": base64.b64encode(entry.body).decode("ascii"),
        }
    ).encode("utf-8")


def decode_entry(raw: bytes | str) -> CachedResponse:
    try:
        data = json.loads(raw)
        return CachedResponse(
            status_code=int(data["status"]),
            headers=[(str(k), str(v)) for k, v in data["headers"]],
            body=base64.b64decode(data["body"]),
        )
    except (ValueError, KeyError, TypeError) as exc:
        raise CacheUnavailableError(f"corrupt cache entry: {exc}") from exc


def cache_key(request: Request, prefix: str = "") -> str:
    """Route path + raw query string, parameter order preserved."""
    key = prefix + request.url.path
    query = request.url.query
    if query:
        key += "?" + query
    return key


def _wants_fresh(request: Request) -> bool:
    return "no-cache" in request.headers.get("cache-control", "").lower()


def _snapshot(response: Response) -> Optional[CachedResponse]:
    body = getattr(response, "body", None)
    if not isinstance(body, (bytes, bytearray)):
        # streaming responses are never cached
        return None
    headers = [
        (k.decode("latin-1"), v.decode("latin-1"))
        for k, v in response.raw_headers
        if k.decode("latin-1").lower() != CACHE_STATUS_HEADER
    ]
    return CachedResponse(status_code=response.status_code, body=bytes(body), headers=headers)


def _replay(entry: CachedResponse) -> Response:
    response = Response(content=entry.body, status_code=entry.status_code)
    response.raw_headers = [(k.encode("latin-1"), v.encode("latin-1")) for k, v in entry.headers]
    return response


class ResponseCache:
    def __init__(self, store: Optional[CacheStore] = None, *, prefix: str = ""):
        self.store = store
        self.prefix = prefix

    @property
    def enabled(self) -> bool:
        return self.store is not None

    async def lookup(self, key: str) -> Optional[Response]:
        if self.store is None:
            return None
        try:
            raw = await self.store.get(key)
            if raw is None:
                return None
            return _replay(decode_entry(raw))
        except CacheUnavailableError as exc:
            logger.warning("response_cache_unavailable", op="get", key=key, error=exc.message)
            return None

    async def save(self, key: str, response: Response, ttl: int) -> None:
        if self.store is None or not 200 <= response.status_code < 300:
            return
        entry = _snapshot(response)
        if entry is None:
            return
        try:
            await self.store.set(key, encode_entry(entry), ttl)
        except CacheUnavailableError as exc:
            logger.warning("response_cache_unavailable", op="set", key=key, error=exc.message)

    def route(self, ttl: int) -> Callable[[Callable[..., Awaitable[Response]]], Callable[..., Awaitable[Response]]]:
        """
        Decorate an async handler that takes `request: Request` as a keyword
        argument (the way FastAPI calls endpoints).
        """

        def decorator(handler: Callable[..., Awaitable[Response]]) -> Callable[..., Awaitable[Response]]:
            @functools.wraps(handler)
            async def wrapper(*args: Any, **kwargs: Any) -> Response:
                request: Request = kwargs["request"]
                key = cache_key(request, self.prefix)

                if not _wants_fresh(request):
                    cached = await self.lookup(key)
                    if cached is not None:
                        logger.info("response_cache_hit", key=key)
                        cached.headers[CACHE_STATUS_HEADER] = "HIT"
                        return cached

                response = await handler(*args, **kwargs)
                await self.save(key, response, ttl)
                if self.enabled:
                    response.headers[CACHE_STATUS_HEADER] = "MISS"
                return response

            # resolve string annotations against the handler module, not this one
            wrapper.__signature__ = inspect.signature(handler, eval_str=True)  # type: ignore[attr-defined]
            return wrapper

        return decorator
