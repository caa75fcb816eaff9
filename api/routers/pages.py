from __future__ import annotations

import dataclasses
import json
import re
from typing import Any, Optional
from urllib.parse import unquote

from fastapi import APIRouter, Path, Query, Request
from fastapi.responses import JSONResponse, RedirectResponse, Response

from app.config import DEFAULT_VERSION, FEED_CACHE_TTL_S, SEARCH_CACHE_TTL_S, Settings
from app.core.errors import FetchError, SearchError, ValidationError
from app.core.logging import get_logger
from app.core.response_cache import ResponseCache
from app.core.templates import render_view
from app.models.feed import ErrorView, FeedRequest
from services.feed_fetcher import fetch_feed
from services.feed_normalizer import normalize_feed
from services.search_service import search_podcasts

logger = get_logger().bind(module="pages")

INVALID_RSS_URL_MESSAGE = "Invalid RSS URL"

# Some clients double-encode the url parameter; only this prefix is undone
_ENCODED_SCHEME_RE = re.compile(r"^https?%3A%2F%2F", re.IGNORECASE)


class PrettyJSONResponse(JSONResponse):
    def render(self, content: Any) -> bytes:
        return json.dumps(content, ensure_ascii=False, indent=2).encode("utf-8")


def decode_feed_url(raw: str) -> str:
    """Percent-decode `raw` once when it starts with an encoded http(s):// scheme."""
    if _ENCODED_SCHEME_RE.match(raw):
        return unquote(raw)
    return raw


def _flag(value: Optional[str]) -> bool:
    return bool(value)


def parse_feed_request(
    version: str,
    *,
    url: Optional[str],
    size: Optional[str],
    debug: Optional[str],
    json_flag: Optional[str],
) -> FeedRequest:
    if not url:
        raise ValidationError(INVALID_RSS_URL_MESSAGE)
    kwargs = {"size": size} if size else {}
    return FeedRequest(
        version=version,
        url=decode_feed_url(url),
        debug=_flag(debug),
        json=_flag(json_flag),
        **kwargs,
    )


def _error_page(request: Request, error: ErrorView) -> Response:
    return render_view(request, "error", error.to_dict(), layout=error.layout, status_code=400)


def build_pages_router(cache: ResponseCache, settings: Settings) -> APIRouter:
    """Page routes; the search and feed handlers are wrapped by `cache`.

    Upstream calls use `settings`, the configuration the app was built with.
    """
    router = APIRouter(tags=["pages"])

    @router.get("/", include_in_schema=False)
    async def root_redirect() -> RedirectResponse:
        return RedirectResponse(url=f"/{DEFAULT_VERSION}/", status_code=302)

    @router.get("/{version}/search")
    @cache.route(SEARCH_CACHE_TTL_S)
    async def search_page(
        request: Request,
        version: str = Path(...),
        term: Optional[str] = Query(None),
        debug: Optional[str] = Query(None),
    ) -> Response:
        try:
            result = await search_podcasts(term, settings=settings)
        except SearchError as exc:
            logger.info("search_page_error", term=term, error=exc.message)
            return _error_page(request, ErrorView(message=exc.message, layout=version))

        result = dataclasses.replace(result, term=term or "", layout=version)
        return render_view(
            request,
            "search-debug" if _flag(debug) else "search",
            result.to_dict(),
            layout=version,
        )

    @router.get("/{version}/feed")
    @cache.route(FEED_CACHE_TTL_S)
    async def feed_page(
        request: Request,
        version: str = Path(...),
        url: Optional[str] = Query(None),
        size: Optional[str] = Query(None),
        debug: Optional[str] = Query(None),
        json_flag: Optional[str] = Query(None, alias="json"),
    ) -> Response:
        try:
            feed_request = parse_feed_request(version, url=url, size=size, debug=debug, json_flag=json_flag)
        except ValidationError as exc:
            return _error_page(request, ErrorView(message=exc.message, layout=version))

        try:
            parsed = await fetch_feed(feed_request.url, settings=settings)
        except FetchError as exc:
            logger.info("feed_page_error", url=feed_request.url, error=exc.message)
            return _error_page(
                request,
                ErrorView(message=exc.message, url=feed_request.url, layout=version),
            )

        result = normalize_feed(
            parsed,
            url=feed_request.url,
            layout=version,
            size=feed_request.size,
        )
        if feed_request.json:
            return PrettyJSONResponse(result.to_dict())
        return render_view(
            request,
            "feed-debug" if feed_request.debug else "feed",
            result.to_dict(),
            layout=version,
        )

    @router.get("/{version}")
    @router.get("/{version}/", include_in_schema=False)
    async def index_page(request: Request, version: str = Path(...)) -> Response:
        return render_view(request, "index", {}, layout=version)

    return router
