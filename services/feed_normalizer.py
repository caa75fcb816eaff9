from __future__ import annotations

from typing import Any, Dict, Optional

from app.config import DEFAULT_FEED_SIZE
from app.models.feed import MEDIA_CONTENT_KEY, FeedResult, ParsedFeed


def normalize_item(item: Dict[str, Any]) -> Dict[str, Any]:
    """
    Shallow-copy one feed item, promoting `enclosures` to `media:content`
    when the item has no media content of its own. The enclosure list is
    shared, not cloned, and `enclosures` stays on the item.
    """
    out = dict(item)
    if out.get("enclosures") is not None and MEDIA_CONTENT_KEY not in out:
        out[MEDIA_CONTENT_KEY] = out["enclosures"]
    return out


def normalize_feed(
    parsed: ParsedFeed,
    *,
    url: str,
    layout: str,
    size: Optional[str] = None,
) -> FeedResult:
    """Build the template-ready FeedResult. Never mutates `parsed`."""
    return FeedResult(
        meta=parsed.meta,
        items=tuple(normalize_item(item) for item in parsed.items),
        url=url,
        size=size or DEFAULT_FEED_SIZE,
        title=parsed.meta.title,
        layout=layout,
    )
