"""Shared test fixtures for gator tests."""

import os
import tempfile
from datetime import datetime, timedelta, timezone

import httpx
import pytest

from gator.database import Database
from gator.models import FetchedFeed, FetchedItem


SAMPLE_RSS_XML = """<?xml version="1.0" encoding="UTF-8"?>
<rss version="2.0">
  <channel>
    <title>Test Feed</title>
    <link>https://example.com</link>
    <description>A test RSS feed</description>
    <item>
      <title>First Article</title>
      <link>https://example.com/article-1</link>
      <description>Description of the first article</description>
      <pubDate>2023/05/01</pubDate>
    </item>
    <item>
      <title>Second Article</title>
      <link>https://example.com/article-2</link>
      <description>Description of the second article</description>
      <pubDate>not-a-date</pubDate>
    </item>
  </channel>
</rss>"""

SAMPLE_ENTITY_RSS_XML = """<?xml version="1.0" encoding="UTF-8"?>
<rss version="2.0">
  <channel>
    <title>Q&amp;A Weekly</title>
    <link>https://example.com</link>
    <description>Questions &amp; answers</description>
    <item>
      <title>Tom &amp; Jerry</title>
      <link>https://example.com/tom-and-jerry</link>
      <description>Fish &amp; chips</description>
      <pubDate>Mon, 01 May 2023 10:00:00 GMT</pubDate>
    </item>
  </channel>
</rss>"""

SAMPLE_MALFORMED_XML = """<?xml version="1.0" encoding="UTF-8"?>
<rss version="2.0">
  <channel>
    <title>Malformed Feed</title>
    <link>https://example.com</link>
    <item>
      <title>Good Item</title>
    </item>
    <item>
      <title>Bad Item</title>
      <!-- Missing closing tags intentionally -->
"""

SAMPLE_NOT_A_FEED_XML = """<?xml version="1.0" encoding="UTF-8"?>
<html>
  <body>This is not a feed</body>
</html>"""

T0 = datetime(2026, 2, 13, 10, 0, 0, tzinfo=timezone.utc)


class FakeClock:
    """Returns T0, T0+1s, T0+2s, ... on successive calls."""

    def __init__(self, start: datetime = T0):
        self.now = start

    def __call__(self) -> datetime:
        current = self.now
        self.now += timedelta(seconds=1)
        return current


class FakeFetcher:
    """Stands in for FeedFetcher, serving canned results per URL."""

    def __init__(self, results: dict | None = None):
        self.results = results or {}
        self.calls: list[str] = []

    async def fetch(self, url: str) -> FetchedFeed:
        self.calls.append(url)
        result = self.results.get(url)
        if isinstance(result, Exception):
            raise result
        if result is None:
            return FetchedFeed(title="Empty", link=url, description="", items=[])
        return result


def make_feed(*links: str, pub_date: str = "2023/05/01") -> FetchedFeed:
    """Build a FetchedFeed with one item per link."""
    return FetchedFeed(
        title="Canned",
        link="https://example.com",
        description="",
        items=[
            FetchedItem(title=f"Post {i}", link=link, description="", pub_date=pub_date)
            for i, link in enumerate(links)
        ],
    )


def mock_client(handler) -> httpx.AsyncClient:
    """An AsyncClient whose requests are answered by ``handler``."""
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


@pytest.fixture
def tmp_db_path():
    """Provide a temporary SQLite database path."""
    with tempfile.NamedTemporaryFile(suffix=".db", delete=False) as f:
        path = f.name
    yield path
    for suffix in ("", "-wal", "-shm"):
        try:
            os.unlink(path + suffix)
        except OSError:
            pass


@pytest.fixture
def db(tmp_db_path):
    """A connected Database on a temporary file."""
    database = Database(tmp_db_path)
    database.connect()
    yield database
    database.close()


@pytest.fixture
def sample_rss_xml():
    """Sample valid RSS 2.0 XML."""
    return SAMPLE_RSS_XML


@pytest.fixture
def sample_entity_rss_xml():
    """RSS whose text fields contain HTML entities."""
    return SAMPLE_ENTITY_RSS_XML


@pytest.fixture
def sample_malformed_xml():
    """Sample malformed RSS XML."""
    return SAMPLE_MALFORMED_XML


@pytest.fixture
def sample_not_a_feed_xml():
    """Sample XML that is not a feed."""
    return SAMPLE_NOT_A_FEED_XML
