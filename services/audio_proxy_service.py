from __future__ import annotations

from typing import Dict, Optional
from urllib.parse import urlparse

import httpx
from starlette.background import BackgroundTask
from starlette.responses import StreamingResponse

from app.config import Settings, get_settings
from app.core.logging import get_logger

logger = get_logger().bind(module="audio_proxy_service")

# Upstream response headers relayed to the client
PASSTHROUGH_HEADERS = (
    "content-type",
    "content-length",
    "content-range",
    "accept-ranges",
    "last-modified",
    "etag",
    "cache-control",
)


def is_proxyable_url(url: Optional[str]) -> bool:
    if not url:
        return False
    parsed = urlparse(url)
    return parsed.scheme in ("http", "https") and bool(parsed.netloc)


async def open_audio_stream(
    url: str,
    *,
    range_header: Optional[str] = None,
    settings: Optional[Settings] = None,
) -> StreamingResponse:
    """
    Start streaming `url` back to the client. Status, byte-range headers and
    content type are relayed as received. Raises httpx.HTTPError when the
    upstream cannot be reached.
    """
    settings = settings or get_settings()
    # aiter_raw() relays bytes undecoded; upstream must not compress
    request_headers: Dict[str, str] = {
        "User-Agent": settings.USER_AGENT,
        "Accept-Encoding": "identity",
    }
    if range_header:
        request_headers["Range"] = range_header

    client = httpx.AsyncClient(timeout=settings.FETCH_TIMEOUT_S, follow_redirects=True)
    try:
        upstream = await client.send(client.build_request("GET", url, headers=request_headers), stream=True)
    except httpx.HTTPError:
        await client.aclose()
        raise

    async def _close() -> None:
        await upstream.aclose()
        await client.aclose()

    headers = {k: v for k, v in upstream.headers.items() if k.lower() in PASSTHROUGH_HEADERS}
    logger.info("audio_proxy_stream", url=url, status=upstream.status_code, ranged=bool(range_header))
    return StreamingResponse(
        upstream.aiter_raw(),
        status_code=upstream.status_code,
        headers=headers,
        background=BackgroundTask(_close),
    )
