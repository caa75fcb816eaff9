from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from app.config import DEFAULT_FEED_SIZE

MEDIA_CONTENT_KEY = "media:content"


@dataclass(frozen=True)
class FeedRequest:
    """Parsed query of one /{version}/feed request."""

    version: str
    url: Optional[str] = None
    size: str = DEFAULT_FEED_SIZE
    debug: bool = False
    json: bool = False


@dataclass(frozen=True)
class FeedMeta:
    title: str = ""
    description: Optional[str] = None
    link: Optional[str] = None
    image: Optional[Dict[str, Any]] = None
    author: Optional[str] = None
    language: Optional[str] = None
    copyright: Optional[str] = None
    generator: Optional[str] = None
    categories: Tuple[str, ...] = ()


@dataclass(frozen=True)
class ParsedFeed:
    """
    Fetcher output: feed metadata plus one plain dict per entry.
    Item dicts only hold JSON-serializable values.
    """

    meta: FeedMeta
    items: Tuple[Dict[str, Any], ...] = ()


@dataclass(frozen=True)
class FeedResult:
    """Template-ready view of a feed, built by the normalizer."""

    meta: FeedMeta
    items: Tuple[Dict[str, Any], ...]
    url: str
    size: str
    title: str
    layout: str

    def to_dict(self) -> Dict[str, Any]:
        # asdict() deep-copies; items are rebuilt by hand so that shared
        # enclosure lists stay shared in the rendered context.
        meta = asdict(self.meta)
        meta["categories"] = list(self.meta.categories)
        return {
            "meta": meta,
            "items": list(self.items),
            "url": self.url,
            "size": self.size,
            "title": self.title,
            "layout": self.layout,
        }


@dataclass(frozen=True)
class ErrorView:
    message: str
    layout: str
    url: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"message": self.message, "layout": self.layout}
        if self.url is not None:
            data["url"] = self.url
        return data


@dataclass(frozen=True)
class SearchHit:
    collection_name: str
    feed_url: str
    artist_name: Optional[str] = None
    artwork_url: Optional[str] = None
    genre: Optional[str] = None
    track_count: Optional[int] = None
    collection_url: Optional[str] = None


@dataclass(frozen=True)
class SearchResult:
    term: str
    result_count: int = 0
    results: Tuple[SearchHit, ...] = ()
    layout: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "term": self.term,
            "layout": self.layout,
            "result_count": self.result_count,
            "results": [asdict(hit) for hit in self.results],
        }


@dataclass
class CachedResponse:
    """Serialized HTTP response as held by the response cache store."""

    status_code: int
    body: bytes
    headers: List[Tuple[str, str]] = field(default_factory=list)
