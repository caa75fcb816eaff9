"""
Feed fetcher for the feed pages.

Downloads an RSS/Atom document and turns the feedparser output into a
ParsedFeed: feed metadata plus plain, JSON-serializable item dicts.
"""

from __future__ import annotations

import calendar
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import feedparser
import httpx

from app.config import Settings, get_settings
from app.core.errors import FetchError
from app.core.logging import get_logger
from app.models.feed import MEDIA_CONTENT_KEY, FeedMeta, ParsedFeed

logger = get_logger().bind(module="feed_fetcher")

NOT_A_FEED_MESSAGE = "Not a feed"


def _struct_time_to_iso(value: Any) -> Optional[str]:
    if value is None:
        return None
    try:
        timestamp = calendar.timegm(value)
        return datetime.fromtimestamp(timestamp, tz=timezone.utc).isoformat()
    except (TypeError, ValueError, OverflowError):
        return None


def _text(value: Any) -> Optional[str]:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


def _enclosures(entry: Dict[str, Any]) -> List[Dict[str, Any]]:
    out: List[Dict[str, Any]] = []
    for enc in entry.get("enclosures") or []:
        if not isinstance(enc, dict):
            continue
        url = _text(enc.get("href")) or _text(enc.get("url"))
        if not url:
            continue
        out.append(
            {
                "url": url,
                "type": enc.get("type"),
                "length": enc.get("length"),
            }
        )
    return out


def _media_content(entry: Dict[str, Any]) -> List[Dict[str, Any]]:
    out: List[Dict[str, Any]] = []
    for media in entry.get("media_content") or []:
        if not isinstance(media, dict) or not _text(media.get("url")):
            continue
        item = {str(k): v for k, v in media.items() if isinstance(v, (str, int, float))}
        out.append(item)
    return out


def _content_value(entry: Dict[str, Any]) -> Optional[str]:
    for block in entry.get("content") or []:
        if isinstance(block, dict):
            value = _text(block.get("value"))
            if value:
                return value
    return None


def _entry_to_item(entry: Dict[str, Any]) -> Dict[str, Any]:
    summary = _text(entry.get("summary"))
    item: Dict[str, Any] = {
        "title": _text(entry.get("title")) or "",
        "description": _content_value(entry) or summary,
        "summary": summary,
        "link": _text(entry.get("link")),
        "guid": _text(entry.get("id")) or _text(entry.get("link")),
        "author": _text(entry.get("author")),
        "date": _struct_time_to_iso(entry.get("published_parsed") or entry.get("updated_parsed")),
        "duration": _text(entry.get("itunes_duration")),
        "categories": [
            tag.get("term") for tag in entry.get("tags") or [] if isinstance(tag, dict) and tag.get("term")
        ],
    }
    image = entry.get("image")
    if isinstance(image, dict) and _text(image.get("href")):
        item["image"] = {"url": image["href"]}

    enclosures = _enclosures(entry)
    if enclosures:
        item["enclosures"] = enclosures
    media = _media_content(entry)
    if media:
        item[MEDIA_CONTENT_KEY] = media
    return item


def _feed_meta(feed: Dict[str, Any]) -> FeedMeta:
    image = feed.get("image")
    image_out = None
    if isinstance(image, dict):
        href = _text(image.get("href")) or _text(image.get("url"))
        if href:
            image_out = {"url": href, "title": _text(image.get("title"))}
    return FeedMeta(
        title=_text(feed.get("title")) or "",
        description=_text(feed.get("subtitle")) or _text(feed.get("description")),
        link=_text(feed.get("link")),
        image=image_out,
        author=_text(feed.get("author")),
        language=_text(feed.get("language")),
        copyright=_text(feed.get("rights")),
        generator=_text(feed.get("generator")),
        categories=tuple(
            tag.get("term") for tag in feed.get("tags") or [] if isinstance(tag, dict) and tag.get("term")
        ),
    )


def parse_feed(content: bytes | str, *, content_type: Optional[str] = None) -> ParsedFeed:
    """
    Parse raw feed content. Raises FetchError when the document is not a feed.
    """
    response_headers = {"content-type": content_type} if content_type else None
    parsed = feedparser.parse(content, response_headers=response_headers)
    entries = parsed.get("entries") or []

    if not parsed.get("version") and not entries:
        if parsed.get("bozo"):
            raise FetchError(str(parsed.get("bozo_exception") or NOT_A_FEED_MESSAGE))
        raise FetchError(NOT_A_FEED_MESSAGE)

    items = tuple(_entry_to_item(entry) for entry in entries)
    return ParsedFeed(meta=_feed_meta(parsed.get("feed") or {}), items=items)


async def fetch_feed(url: str, *, settings: Optional[Settings] = None) -> ParsedFeed:
    """
    Retrieve and parse the feed at `url`.

    Raises FetchError on network failure, non-2xx status or non-feed content.
    The message of the underlying error is kept as-is for display.
    """
    settings = settings or get_settings()
    try:
        async with httpx.AsyncClient(timeout=settings.FETCH_TIMEOUT_S) as client:
            response = await client.get(
                url,
                headers={"User-Agent": settings.USER_AGENT},
                follow_redirects=True,
            )
            response.raise_for_status()
            content = response.content
            content_type = response.headers.get("content-type")
    except (httpx.HTTPError, httpx.InvalidURL) as exc:
        logger.warning("feed_fetch_failed", url=url, error=str(exc))
        raise FetchError(str(exc), url=url) from exc

    try:
        feed = parse_feed(content, content_type=content_type)
    except FetchError as exc:
        logger.warning("feed_parse_failed", url=url, error=exc.message)
        raise FetchError(exc.message, url=url) from exc

    logger.info("feed_fetched", url=url, items=len(feed.items))
    return feed
