"""Feed repository for database operations."""

import sqlite3
from datetime import datetime
from typing import List, Optional

from unfurl.core.article import FeedSource
from unfurl.core.config import FeedConfig
from unfurl.database.connection import DatabaseConnection
from unfurl.utils.date_utils import from_db_timestamp, now_utc, to_db_timestamp
from unfurl.utils.exceptions import DatabaseError
from unfurl.utils.logging import get_logger

logger = get_logger(__name__)


class FeedRepository:
    """Repository for topic feed database operations."""

    def __init__(self, db: DatabaseConnection):
        """Initialize repository.

        Args:
            db: Database connection instance.
        """
        self.db = db

    def upsert_feed(self, feed: FeedConfig) -> FeedSource:
        """Insert a feed or update the one with the same topic.

        Args:
            feed: Feed configuration.

        Returns:
            Stored feed.

        Raises:
            DatabaseError: If database operation fails.
        """
        query = """
            INSERT INTO feeds (topic, url, result_limit, enabled, created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?)
            ON CONFLICT(topic) DO UPDATE SET
                url = excluded.url,
                result_limit = excluded.result_limit,
                enabled = excluded.enabled,
                updated_at = excluded.updated_at
        """
        now = to_db_timestamp(now_utc())

        try:
            with self.db.transaction() as conn:
                conn.execute(
                    query,
                    (feed.topic, str(feed.url), feed.result_limit, int(feed.enabled), now, now),
                )
        except sqlite3.Error as e:
            logger.error("upsert_feed_failed", topic=feed.topic, error=str(e))
            raise DatabaseError(f"Failed to save feed: {e}") from e

        stored = self.find_by_topic(feed.topic)
        if stored is None:
            raise DatabaseError(f"Feed disappeared after save: {feed.topic}")

        logger.debug("feed_upserted", feed_id=stored.id, topic=stored.topic)
        return stored

    def list_enabled_feeds(self) -> List[FeedSource]:
        """List feeds the pipeline should process."""
        return self._select("SELECT * FROM feeds WHERE enabled = 1 ORDER BY id")

    def list_feeds(self) -> List[FeedSource]:
        """List every feed, enabled or not."""
        return self._select("SELECT * FROM feeds ORDER BY id")

    def find_by_id(self, feed_id: int) -> Optional[FeedSource]:
        feeds = self._select("SELECT * FROM feeds WHERE id = ?", (feed_id,))
        return feeds[0] if feeds else None

    def find_by_topic(self, topic: str) -> Optional[FeedSource]:
        feeds = self._select("SELECT * FROM feeds WHERE topic = ?", (topic,))
        return feeds[0] if feeds else None

    def mark_processed(self, feed_id: int, timestamp: Optional[datetime] = None) -> None:
        """Record when a feed was last run through the pipeline.

        Raises:
            DatabaseError: If database operation fails.
        """
        ts = to_db_timestamp(timestamp or now_utc())
        try:
            with self.db.transaction() as conn:
                conn.execute(
                    "UPDATE feeds SET last_processed_at = ?, updated_at = ? WHERE id = ?",
                    (ts, ts, feed_id),
                )
        except sqlite3.Error as e:
            logger.error("mark_processed_failed", feed_id=feed_id, error=str(e))
            raise DatabaseError(f"Failed to mark feed processed: {e}") from e

    def _select(self, query: str, params: tuple = ()) -> List[FeedSource]:
        try:
            rows = self.db.execute(query, params).fetchall()
        except sqlite3.Error as e:
            logger.error("feed_query_failed", error=str(e))
            raise DatabaseError(f"Failed to query feeds: {e}") from e
        return [self._row_to_feed(row) for row in rows]

    @staticmethod
    def _row_to_feed(row) -> FeedSource:
        return FeedSource(
            id=row["id"],
            topic=row["topic"],
            url=row["url"],
            result_limit=row["result_limit"],
            enabled=bool(row["enabled"]),
            last_processed_at=from_db_timestamp(row["last_processed_at"]),
            created_at=from_db_timestamp(row["created_at"]),
            updated_at=from_db_timestamp(row["updated_at"]),
        )
