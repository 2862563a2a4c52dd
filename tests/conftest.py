# tests/conftest.py
"""Shared test fixtures and configuration."""

from pathlib import Path
from typing import Callable, Dict, Generator, Iterable, List, Optional, Union

import httpx
import pytest

from unfurl.core.article import FeedSource
from unfurl.core.config import Config, FeedConfig
from unfurl.database.connection import DatabaseConnection, init_database
from unfurl.database.feed_repository import FeedRepository
from unfurl.pipeline.resolvers.feed_url_resolver import FeedUrlResolver
from unfurl.security.url_validator import UrlValidator

PUBLIC_IP = "93.184.216.34"


class FakeDNS:
    """Host-to-address table standing in for the system resolver.

    Unknown hosts resolve to a public address; hosts mapped to an
    ``OSError`` instance raise it, like a failed lookup.
    """

    def __init__(self, table: Optional[Dict[str, Union[List[str], OSError]]] = None):
        self.table = dict(table or {})
        self.lookups: List[str] = []

    def __call__(self, host: str) -> Iterable[str]:
        self.lookups.append(host)
        entry = self.table.get(host, [PUBLIC_IP])
        if isinstance(entry, OSError):
            raise entry
        return entry


Route = Union[httpx.Response, Callable[[httpx.Request], httpx.Response]]


def make_transport(routes: Dict[str, Route]) -> httpx.MockTransport:
    """Build a mock transport answering by full URL; unknown URLs get a 404."""

    def handler(request: httpx.Request) -> httpx.Response:
        route = routes.get(str(request.url.copy_with(fragment=None)))
        if route is None:
            return httpx.Response(404, text="not found")
        if callable(route):
            return route(request)
        return route

    return httpx.MockTransport(handler)


@pytest.fixture
def test_config(tmp_path: Path) -> Config:
    """Test configuration with temporary paths and no retry jitter."""
    return Config(
        db_path=tmp_path / "test.db",
        feeds_file=tmp_path / "feeds.yaml",
        request_timeout_sec=2.0,
        connect_timeout_sec=1.0,
        max_redirects=5,
        retry_base_delay_sec=60.0,
        retry_max_delay_sec=3600.0,
        retry_max_jitter_sec=0.0,
        worker_concurrency=2,
    )


@pytest.fixture
def test_db(tmp_path: Path) -> Generator[DatabaseConnection, None, None]:
    """Temporary SQLite database with schema initialized."""
    db = init_database(tmp_path / "test.db")

    yield db

    db.close()


@pytest.fixture
def feed(test_db: DatabaseConnection) -> FeedSource:
    """A stored, enabled feed."""
    return FeedRepository(test_db).upsert_feed(
        FeedConfig(topic="technology", url="https://news.example.com/rss", result_limit=10)
    )


@pytest.fixture
def fake_dns() -> FakeDNS:
    return FakeDNS()


@pytest.fixture
def validator(fake_dns: FakeDNS) -> UrlValidator:
    return UrlValidator(resolver=fake_dns)


@pytest.fixture
def mock_transport():
    """Factory for httpx mock transports keyed by full URL."""
    return make_transport


@pytest.fixture
def make_resolver(validator: UrlValidator):
    """Factory for resolvers backed by a mock transport."""

    def factory(routes: Dict[str, Route], **kwargs) -> FeedUrlResolver:
        return FeedUrlResolver(
            validator,
            transport=make_transport(routes),
            timeout=2.0,
            connect_timeout=1.0,
            **kwargs,
        )

    return factory


@pytest.fixture
def sample_rss_feed() -> str:
    """Sample RSS feed XML."""
    return """<?xml version="1.0" encoding="UTF-8"?>
<rss version="2.0">
  <channel>
    <title>Test RSS Feed</title>
    <link>https://news.example.com</link>
    <description>Test feed</description>
    <item>
      <title>Test Article 1</title>
      <link>https://news.example.com/r/1</link>
      <description>Test description 1</description>
      <source url="https://publisher.example.org">Publisher One</source>
      <pubDate>Sat, 04 Jan 2026 10:00:00 +0000</pubDate>
    </item>
    <item>
      <title>Test Article 2</title>
      <link>https://news.example.com/r/2</link>
      <description>Test description 2</description>
      <pubDate>not a date</pubDate>
    </item>
    <item>
      <title>Entry Without Link</title>
      <description>Skipped</description>
    </item>
    <item>
      <title>Test Article 3</title>
      <link>https://news.example.com/r/3</link>
    </item>
  </channel>
</rss>"""


@pytest.fixture
def sample_article_html() -> str:
    """Sample article HTML with Open Graph, Twitter Card and article metadata."""
    return """<!DOCTYPE html>
<html>
<head>
    <title>Page Title | Example News</title>
    <meta property="og:title" content="Breaking News">
    <meta property="og:description" content="Something happened &amp; it matters.">
    <meta property="og:image" content="https://cdn.example.com/lead.jpg">
    <meta property="og:url" content="https://publisher.example.org/story">
    <meta property="og:site_name" content="Example News">
    <meta name="twitter:image" content="https://cdn.example.com/card.jpg">
    <meta property="article:author" content="Jane Reporter">
    <meta name="author" content="Generic Author">
    <meta property="article:published_time" content="2026-01-04T10:00:00Z">
    <meta property="article:section" content="Technology">
    <meta property="article:tag" content="Technology">
    <meta property="article:tag" content="AI">
    <style>body { color: red; }</style>
    <script>var tracking = "SCRIPT_MARKER";</script>
</head>
<body>
    <!-- COMMENT_MARKER -->
    <article>
        <h1>Breaking News</h1>
        <p>This is the article content.</p>
    </article>
    <script type="application/ld+json">{"@type": "NewsArticle"}</script>
</body>
</html>"""
