# tests/unit/test_rss_collector.py
"""Unit tests for the RSS collector."""

from datetime import UTC, datetime

import httpx
import pytest

from unfurl.core.article import FeedSource
from unfurl.pipeline.collectors import RSSCollector
from unfurl.utils.exceptions import CollectorError

FEED_URL = "https://news.example.com/rss"


def rss(body: str) -> httpx.Response:
    return httpx.Response(200, text=body, headers={"content-type": "application/rss+xml"})


def make_feed(url: str = FEED_URL, result_limit: int = 10) -> FeedSource:
    return FeedSource(id=1, topic="technology", url=url, result_limit=result_limit)


@pytest.mark.unit
@pytest.mark.asyncio
class TestRSSCollector:
    """Tests for RSSCollector."""

    async def test_collects_entries(self, make_resolver, sample_rss_feed):
        """Should return entries in feed order, skipping those without a link."""
        collector = RSSCollector(make_feed(), make_resolver({FEED_URL: rss(sample_rss_feed)}))

        entries = await collector.collect()

        assert [entry.source_url for entry in entries] == [
            "https://news.example.com/r/1",
            "https://news.example.com/r/2",
            "https://news.example.com/r/3",
        ]

    async def test_maps_entry_fields(self, make_resolver, sample_rss_feed):
        collector = RSSCollector(make_feed(), make_resolver({FEED_URL: rss(sample_rss_feed)}))

        first, second, third = await collector.collect()

        assert first.title == "Test Article 1"
        assert first.description == "Test description 1"
        assert first.source_name == "Publisher One"
        assert first.published_at == datetime(2026, 1, 4, 10, 0, tzinfo=UTC)
        assert second.published_at is None
        assert third.title == "Test Article 3"
        assert third.description is None

    async def test_honors_limit(self, make_resolver, sample_rss_feed):
        collector = RSSCollector(make_feed(), make_resolver({FEED_URL: rss(sample_rss_feed)}))

        entries = await collector.collect(limit=2)

        assert len(entries) == 2

    async def test_limit_capped_by_feed_result_limit(self, make_resolver, sample_rss_feed):
        """Should never return more than the feed's result limit."""
        collector = RSSCollector(
            make_feed(result_limit=1), make_resolver({FEED_URL: rss(sample_rss_feed)})
        )

        entries = await collector.collect(limit=5)

        assert len(entries) == 1

    async def test_follows_feed_redirect(self, make_resolver, sample_rss_feed):
        resolver = make_resolver(
            {
                FEED_URL: httpx.Response(301, headers={"location": "https://feeds.example.com/rss"}),
                "https://feeds.example.com/rss": rss(sample_rss_feed),
            }
        )

        entries = await RSSCollector(make_feed(), resolver).collect()

        assert len(entries) == 3

    async def test_malformed_feed_keeps_recovered_entries(self, make_resolver):
        """Should keep whatever feedparser recovers from a malformed feed."""
        body = (
            "<rss><channel><item><title>Only</title>"
            "<link>https://news.example.com/r/9</link></item>"
        )
        collector = RSSCollector(make_feed(), make_resolver({FEED_URL: rss(body)}))

        entries = await collector.collect()

        assert [entry.source_url for entry in entries] == ["https://news.example.com/r/9"]

    async def test_http_error_raises(self, make_resolver):
        collector = RSSCollector(make_feed(), make_resolver({}))

        with pytest.raises(CollectorError, match="404"):
            await collector.collect()

    async def test_private_feed_url_raises(self, make_resolver):
        """Should refuse a feed URL pointing at a private address."""
        collector = RSSCollector(make_feed(url="http://10.0.0.1/rss"), make_resolver({}))

        with pytest.raises(CollectorError, match="private address"):
            await collector.collect()
