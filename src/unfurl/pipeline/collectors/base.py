"""Base collector interface."""

from abc import ABC, abstractmethod
from typing import List, Optional

from unfurl.core.article import FeedEntry, FeedSource


class BaseCollector(ABC):
    """Abstract base class for feed collectors."""

    def __init__(self, feed: FeedSource):
        """Initialize collector with the stored feed.

        Args:
            feed: Feed with URL, topic and result limit.
        """
        self.feed = feed

    @abstractmethod
    async def collect(self, limit: Optional[int] = None) -> List[FeedEntry]:
        """Collect entries from the feed.

        Args:
            limit: Maximum number of entries; the feed's result limit when omitted.

        Returns:
            List of collected feed entries.

        Raises:
            CollectorError: If collection fails.
        """
        pass

    def _effective_limit(self, limit: Optional[int]) -> int:
        if limit is None:
            return self.feed.result_limit
        return min(limit, self.feed.result_limit)
