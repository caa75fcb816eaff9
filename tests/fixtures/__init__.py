# tests/fixtures/__init__.py
"""
Test fixtures for the page pipeline tests.

- PODCAST_RSS / MEDIA_RSS: inline feed documents
- make_parsed_feed(): ParsedFeed factory
- InMemoryCacheStore / FailingCacheStore: async CacheStore doubles
- make_settings(): Settings without a Redis URL
"""

from typing import Any, Dict, List, Optional, Tuple

from app.config import Settings
from app.core.errors import CacheUnavailableError
from app.models.feed import FeedMeta, ParsedFeed


PODCAST_RSS = """<?xml version="1.0" encoding="UTF-8"?>
<rss version="2.0" xmlns:itunes="http://www.itunes.com/dtds/podcast-1.0.dtd">
  <channel>
    <title>Example Podcast</title>
    <link>https://example.com/</link>
    <description>A show about examples</description>
    <language>en</language>
    <itunes:author>Jane Host</itunes:author>
    <itunes:image href="https://example.com/cover.jpg"/>
    <item>
      <title>Episode 2</title>
      <link>https://example.com/ep2</link>
      <guid>ep-2</guid>
      <description>Second episode</description>
      <pubDate>Tue, 02 Jan 2024 10:00:00 GMT</pubDate>
      <itunes:duration>00:42:00</itunes:duration>
      <enclosure url="https://cdn.example.com/ep2.mp3" type="audio/mpeg" length="52428800"/>
    </item>
    <item>
      <title>Episode 1</title>
      <link>https://example.com/ep1</link>
      <guid>ep-1</guid>
      <description>First episode</description>
      <pubDate>Mon, 01 Jan 2024 10:00:00 GMT</pubDate>
      <enclosure url="https://cdn.example.com/ep1.mp3" type="audio/mpeg" length="1048576"/>
    </item>
  </channel>
</rss>
"""

MEDIA_RSS = """<?xml version="1.0" encoding="UTF-8"?>
<rss version="2.0" xmlns:media="http://search.yahoo.com/mrss/">
  <channel>
    <title>Video Show</title>
    <item>
      <title>Clip</title>
      <guid>clip-1</guid>
      <media:content url="https://cdn.example.com/clip.mp4" type="video/mp4" medium="video"/>
      <enclosure url="https://cdn.example.com/clip-audio.mp3" type="audio/mpeg" length="1000"/>
    </item>
  </channel>
</rss>
"""


def make_parsed_feed(
    title: str = "Example Podcast",
    items: Optional[List[Dict[str, Any]]] = None,
) -> ParsedFeed:
    """Factory function to create a ParsedFeed with one enclosure-only item."""
    if items is None:
        items = [
            {
                "title": "Episode 1",
                "guid": "ep-1",
                "link": "https://example.com/ep1",
                "summary": "First episode",
                "enclosures": [
                    {"url": "https://cdn.example.com/ep1.mp3", "type": "audio/mpeg", "length": "1048576"},
                ],
            }
        ]
    return ParsedFeed(meta=FeedMeta(title=title), items=tuple(items))


def make_settings(**overrides: Any) -> Settings:
    values: Dict[str, Any] = {"REDIS_SERVER": None, "LOG_LEVEL": "WARNING"}
    values.update(overrides)
    return Settings(**values)


class InMemoryCacheStore:
    """Dict-backed CacheStore; records every set() call."""

    def __init__(self) -> None:
        self.data: Dict[str, bytes] = {}
        self.sets: List[Tuple[str, int]] = []

    async def get(self, key: str) -> Optional[bytes]:
        return self.data.get(key)

    async def set(self, key: str, value: bytes, ttl: int) -> None:
        self.data[key] = value
        self.sets.append((key, ttl))


class FailingCacheStore:
    """CacheStore whose backend is always down."""

    def __init__(self) -> None:
        self.calls = 0

    async def get(self, key: str) -> Optional[bytes]:
        self.calls += 1
        raise CacheUnavailableError("Connection refused")

    async def set(self, key: str, value: bytes, ttl: int) -> None:
        self.calls += 1
        raise CacheUnavailableError("Connection refused")
