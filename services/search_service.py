"""
Podcast directory search.

Queries the iTunes Search API for podcasts and maps the hits to SearchHit
records. Hits without a feed URL are dropped: every hit links to the feed page.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

import httpx

from app.config import Settings, get_settings
from app.core.errors import SearchError
from app.core.logging import get_logger
from app.models.feed import SearchHit, SearchResult

logger = get_logger().bind(module="search_service")

EMPTY_TERM_MESSAGE = "Please enter a search term"


def _artwork(raw: Dict[str, Any]) -> Optional[str]:
    for key in ("artworkUrl600", "artworkUrl100", "artworkUrl60", "artworkUrl30"):
        value = raw.get(key)
        if isinstance(value, str) and value:
            return value
    return None


def _to_hit(raw: Dict[str, Any]) -> Optional[SearchHit]:
    feed_url = raw.get("feedUrl")
    if not isinstance(feed_url, str) or not feed_url.strip():
        return None
    track_count = raw.get("trackCount")
    return SearchHit(
        collection_name=str(raw.get("collectionName") or raw.get("trackName") or feed_url),
        feed_url=feed_url.strip(),
        artist_name=raw.get("artistName"),
        artwork_url=_artwork(raw),
        genre=raw.get("primaryGenreName"),
        track_count=track_count if isinstance(track_count, int) else None,
        collection_url=raw.get("collectionViewUrl"),
    )


def parse_search_payload(term: str, payload: Any) -> SearchResult:
    if not isinstance(payload, dict) or not isinstance(payload.get("results"), list):
        raise SearchError("Unexpected response from search service")
    hits: List[SearchHit] = []
    for raw in payload["results"]:
        if isinstance(raw, dict):
            hit = _to_hit(raw)
            if hit is not None:
                hits.append(hit)
    return SearchResult(term=term, result_count=len(hits), results=tuple(hits))


async def search_podcasts(term: Optional[str], *, settings: Optional[Settings] = None) -> SearchResult:
    """
    Search the podcast directory for `term`.
    Raises SearchError for an empty term or any upstream failure.
    """
    if term is None or not term.strip():
        raise SearchError(EMPTY_TERM_MESSAGE)

    settings = settings or get_settings()
    params = {
        "term": term.strip(),
        "media": "podcast",
        "entity": "podcast",
        "limit": settings.SEARCH_RESULT_LIMIT,
    }
    try:
        async with httpx.AsyncClient(timeout=settings.FETCH_TIMEOUT_S) as client:
            response = await client.get(
                settings.SEARCH_API_URL,
                params=params,
                headers={"User-Agent": settings.USER_AGENT},
                follow_redirects=True,
            )
            response.raise_for_status()
            payload = response.json()
    except (httpx.HTTPError, httpx.InvalidURL) as exc:
        logger.warning("search_upstream_failed", term=term, error=str(exc))
        raise SearchError(str(exc)) from exc
    except ValueError as exc:
        # body was not JSON
        logger.warning("search_bad_payload", term=term, error=str(exc))
        raise SearchError(str(exc)) from exc

    result = parse_search_payload(term, payload)
    logger.info("search_completed", term=term, results=result.result_count)
    return result
