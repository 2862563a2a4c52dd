"""RSS/Atom feed collector."""

from typing import List, Optional

import feedparser

from unfurl.core.article import FeedEntry, FeedSource
from unfurl.pipeline.collectors.base import BaseCollector
from unfurl.pipeline.resolvers.feed_url_resolver import FeedUrlResolver, ResolutionFailure
from unfurl.utils.date_utils import parse_date
from unfurl.utils.exceptions import CollectorError
from unfurl.utils.logging import get_logger
from unfurl.utils.text_utils import clean_optional

logger = get_logger(__name__)


class RSSCollector(BaseCollector):
    """Collector for RSS and Atom feeds.

    The feed document is fetched through the resolver, so the feed URL and
    each redirect it takes pass the same address checks as article URLs.
    """

    def __init__(self, feed: FeedSource, resolver: FeedUrlResolver):
        """Initialize RSS collector.

        Args:
            feed: Stored feed.
            resolver: Resolver used to fetch the feed document.
        """
        super().__init__(feed)
        self.resolver = resolver

    async def collect(self, limit: Optional[int] = None) -> List[FeedEntry]:
        """Collect entries from the feed.

        Args:
            limit: Maximum number of entries; capped by the feed's result limit.

        Returns:
            Feed entries in feed order.

        Raises:
            CollectorError: If the feed cannot be fetched.
        """
        logger.info("collecting_rss", feed_id=self.feed.id, topic=self.feed.topic, feed_url=self.feed.url)

        result = await self.resolver.fetch(self.feed.url, content_types=None)
        if isinstance(result, ResolutionFailure):
            logger.error(
                "rss_collection_failed",
                feed_id=self.feed.id,
                topic=self.feed.topic,
                error=result.describe(),
            )
            raise CollectorError(f"Failed to fetch feed {self.feed.topic}: {result.describe()}")

        feed = feedparser.parse(result.body)

        if feed.bozo:
            # feedparser recovers from most malformed feeds; keep what it found
            logger.warning(
                "rss_parse_warning",
                topic=self.feed.topic,
                exception=str(feed.get("bozo_exception")),
            )

        entries = self._extract_entries(feed, self._effective_limit(limit))

        logger.info(
            "rss_collection_complete",
            feed_id=self.feed.id,
            topic=self.feed.topic,
            entries_collected=len(entries),
        )

        return entries

    def _extract_entries(self, feed, limit: int) -> List[FeedEntry]:
        """Build feed entries from a parsed feedparser document.

        Args:
            feed: Parsed feedparser feed object.
            limit: Maximum number of entries.

        Returns:
            List of feed entries.
        """
        entries: List[FeedEntry] = []

        for entry in feed.entries:
            if len(entries) >= limit:
                break

            url = (entry.get("link") or "").strip()
            if not url:
                logger.debug("rss_entry_no_link", entry_title=entry.get("title", "Unknown"))
                continue

            source = entry.get("source") or {}

            entries.append(
                FeedEntry(
                    source_url=url,
                    title=clean_optional(entry.get("title")),
                    description=clean_optional(entry.get("summary")),
                    source_name=clean_optional(source.get("title")),
                    published_at=parse_date(entry.get("published") or entry.get("updated")),
                )
            )

        return entries
