"""Article repository for database operations."""

import json
import sqlite3
import uuid
from datetime import datetime, timedelta
from typing import Dict, List, Optional, Tuple

from unfurl.core.article import Article, ExtractionResult, FeedEntry, FeedSource
from unfurl.core.enums import ArticleStatus
from unfurl.database.connection import DatabaseConnection
from unfurl.utils.date_utils import from_db_timestamp, now_utc, to_db_timestamp
from unfurl.utils.exceptions import DatabaseError, DuplicateArticleError
from unfurl.utils.logging import get_logger

logger = get_logger(__name__)

# Rows a worker may pick up: new entries and failures whose retry time has come.
# Successes and permanently failed rows (next_retry_at NULL) never match.
_ELIGIBLE = """
    (status = 'pending'
     OR (status = 'failed' AND next_retry_at IS NOT NULL AND next_retry_at <= ?))
    AND (claim_token IS NULL OR claimed_at <= ?)
"""


class ArticleRepository:
    """Repository for article database operations."""

    def __init__(self, db: DatabaseConnection, claim_ttl_sec: int = 600):
        """Initialize repository.

        Args:
            db: Database connection instance.
            claim_ttl_sec: Age after which a claim is considered abandoned.
        """
        self.db = db
        self.claim_ttl_sec = claim_ttl_sec

    def save_feed_entries(self, feed: FeedSource, entries: List[FeedEntry]) -> int:
        """Insert collected feed entries as pending articles.

        Entries the feed has already produced are skipped.

        Args:
            feed: Feed the entries came from.
            entries: Entries read from the feed.

        Returns:
            Number of articles created.

        Raises:
            DatabaseError: If database operation fails.
        """
        logger.info("saving_feed_entries", feed_id=feed.id, count=len(entries))

        query = """
            INSERT OR IGNORE INTO articles (
                feed_id, topic, source_url, rss_title, rss_description,
                rss_source, pub_date, status, created_at, updated_at
            ) VALUES (?, ?, ?, ?, ?, ?, ?, 'pending', ?, ?)
        """

        try:
            created = 0
            now = to_db_timestamp(now_utc())

            with self.db.transaction() as conn:
                for entry in entries:
                    cursor = conn.execute(
                        query,
                        (
                            feed.id,
                            feed.topic,
                            entry.source_url,
                            entry.title,
                            entry.description,
                            entry.source_name,
                            to_db_timestamp(entry.published_at),
                            now,
                            now,
                        ),
                    )
                    created += cursor.rowcount

            logger.info(
                "feed_entries_saved",
                feed_id=feed.id,
                created=created,
                skipped=len(entries) - created,
            )
            return created

        except sqlite3.Error as e:
            logger.error("save_feed_entries_failed", feed_id=feed.id, error=str(e))
            raise DatabaseError(f"Failed to save feed entries: {e}") from e

    def claim_batch(
        self, feed_id: int, limit: int, now: Optional[datetime] = None
    ) -> List[Article]:
        """Atomically claim up to ``limit`` eligible articles of a feed.

        Claimed rows carry a fresh claim token, so a concurrent worker
        cannot select them until the claim is released or goes stale.

        Args:
            feed_id: Feed whose articles to claim.
            limit: Maximum number of articles.
            now: Claim time (defaults to current UTC time).

        Returns:
            Claimed articles, oldest first.

        Raises:
            DatabaseError: If database operation fails.
        """
        if limit <= 0:
            return []

        now = now or now_utc()
        now_ts = to_db_timestamp(now)
        stale_ts = to_db_timestamp(now - timedelta(seconds=self.claim_ttl_sec))
        token = uuid.uuid4().hex

        try:
            with self.db.transaction() as conn:
                conn.execute(
                    f"""
                    UPDATE articles
                    SET claim_token = ?, claimed_at = ?
                    WHERE id IN (
                        SELECT id FROM articles
                        WHERE feed_id = ? AND {_ELIGIBLE}
                        ORDER BY created_at, id
                        LIMIT ?
                    )
                    """,
                    (token, now_ts, feed_id, now_ts, stale_ts, limit),
                )
                rows = conn.execute(
                    "SELECT * FROM articles WHERE claim_token = ? ORDER BY created_at, id",
                    (token,),
                ).fetchall()

            articles = [self._row_to_article(row) for row in rows]
            logger.debug("articles_claimed", feed_id=feed_id, count=len(articles))
            return articles

        except sqlite3.Error as e:
            logger.error("claim_batch_failed", feed_id=feed_id, error=str(e))
            raise DatabaseError(f"Failed to claim articles: {e}") from e

    def touch_claim(
        self, article_id: int, claim_token: str, now: Optional[datetime] = None
    ) -> bool:
        """Re-stamp a claim when work on the article actually starts.

        Args:
            article_id: Article ID.
            claim_token: Token returned with the claimed article.
            now: Start time (defaults to current UTC time).

        Returns:
            True if the claim is still held, False if it was taken over.

        Raises:
            DatabaseError: If database operation fails.
        """
        try:
            with self.db.transaction() as conn:
                cursor = conn.execute(
                    "UPDATE articles SET claimed_at = ? WHERE id = ? AND claim_token = ?",
                    (to_db_timestamp(now or now_utc()), article_id, claim_token),
                )
            return cursor.rowcount > 0
        except sqlite3.Error as e:
            logger.error("touch_claim_failed", article_id=article_id, error=str(e))
            raise DatabaseError(f"Failed to refresh claim: {e}") from e

    def release_claim(self, article_id: int, claim_token: Optional[str] = None) -> bool:
        """Give a claimed article back without changing its state.

        Args:
            article_id: Article ID.
            claim_token: Only release while this token still holds the claim.

        Returns:
            True if a claim was released.

        Raises:
            DatabaseError: If database operation fails.
        """
        where, params = _owned_by(article_id, claim_token)
        try:
            with self.db.transaction() as conn:
                cursor = conn.execute(
                    f"UPDATE articles SET claim_token = NULL, claimed_at = NULL WHERE {where}",
                    params,
                )
            return cursor.rowcount > 0
        except sqlite3.Error as e:
            logger.error("release_claim_failed", article_id=article_id, error=str(e))
            raise DatabaseError(f"Failed to release claim: {e}") from e

    def record_success(
        self,
        article_id: int,
        final_url: str,
        extraction: ExtractionResult,
        claim_token: Optional[str] = None,
    ) -> bool:
        """Store the resolved URL and extracted metadata and mark the article successful.

        Clears the retry schedule, last error and claim; ``retry_count`` is kept.

        Args:
            article_id: Article ID.
            final_url: Resolved article URL.
            extraction: Extracted metadata and content.
            claim_token: Only write while this token still holds the claim.

        Returns:
            True if updated, False if the article does not exist or its
            claim was taken over.

        Raises:
            DuplicateArticleError: If another article already owns ``final_url``.
            DatabaseError: If database operation fails.
        """
        where, owner = _owned_by(article_id, claim_token)
        query = f"""
            UPDATE articles
            SET final_url = ?,
                status = 'success',
                page_title = ?,
                og_title = ?,
                og_description = ?,
                og_image = ?,
                og_url = ?,
                og_site_name = ?,
                twitter_image = ?,
                author = ?,
                published_time = ?,
                section = ?,
                tags = ?,
                content = ?,
                word_count = ?,
                next_retry_at = NULL,
                last_error = NULL,
                claim_token = NULL,
                claimed_at = NULL,
                processed_at = ?,
                updated_at = ?
            WHERE {where}
        """
        now = to_db_timestamp(now_utc())
        params = (
            final_url,
            extraction.page_title,
            extraction.og_title,
            extraction.og_description,
            extraction.og_image,
            extraction.og_url,
            extraction.og_site_name,
            extraction.twitter_image,
            extraction.author,
            extraction.published_time,
            extraction.section,
            json.dumps(list(extraction.tags)),
            extraction.content,
            extraction.word_count,
            now,
            now,
            *owner,
        )

        try:
            with self.db.transaction() as conn:
                cursor = conn.execute(query, params)
            return cursor.rowcount > 0

        except sqlite3.IntegrityError as e:
            logger.info("final_url_conflict", article_id=article_id, final_url=final_url)
            raise DuplicateArticleError(final_url) from e
        except sqlite3.Error as e:
            logger.error("record_success_failed", article_id=article_id, error=str(e))
            raise DatabaseError(f"Failed to record success: {e}") from e

    def record_failure(
        self,
        article_id: int,
        retry_count: int,
        next_retry_at: Optional[datetime],
        error_message: str,
        terminal: bool,
        claim_token: Optional[str] = None,
    ) -> bool:
        """Mark an article failed and store its retry bookkeeping.

        A terminal failure never keeps a retry time, whatever was passed.

        Args:
            article_id: Article ID.
            retry_count: Retry count after this failure.
            next_retry_at: Next attempt time for a retryable failure.
            error_message: Description stored as the last error.
            terminal: Whether no further attempt is scheduled.
            claim_token: Only write while this token still holds the claim.

        Returns:
            True if updated, False if the article does not exist or its
            claim was taken over.

        Raises:
            DatabaseError: If database operation fails.
        """
        if terminal:
            next_retry_at = None

        where, owner = _owned_by(article_id, claim_token)
        query = f"""
            UPDATE articles
            SET status = 'failed',
                retry_count = MAX(retry_count, ?),
                next_retry_at = ?,
                last_error = ?,
                claim_token = NULL,
                claimed_at = NULL,
                processed_at = ?,
                updated_at = ?
            WHERE {where}
        """
        now = to_db_timestamp(now_utc())

        try:
            with self.db.transaction() as conn:
                cursor = conn.execute(
                    query,
                    (
                        retry_count,
                        to_db_timestamp(next_retry_at),
                        error_message,
                        now,
                        now,
                        *owner,
                    ),
                )
            return cursor.rowcount > 0

        except sqlite3.Error as e:
            logger.error("record_failure_failed", article_id=article_id, error=str(e))
            raise DatabaseError(f"Failed to record failure: {e}") from e

    def exists_by_final_url(self, url: str, exclude_id: Optional[int] = None) -> bool:
        """Check whether an article (other than ``exclude_id``) owns ``url``.

        Raises:
            DatabaseError: If database operation fails.
        """
        try:
            if exclude_id is None:
                cursor = self.db.execute(
                    "SELECT 1 FROM articles WHERE final_url = ? LIMIT 1", (url,)
                )
            else:
                cursor = self.db.execute(
                    "SELECT 1 FROM articles WHERE final_url = ? AND id != ? LIMIT 1",
                    (url, exclude_id),
                )
            return cursor.fetchone() is not None

        except sqlite3.Error as e:
            logger.error("exists_by_final_url_failed", url=url, error=str(e))
            raise DatabaseError(f"Failed to look up final URL: {e}") from e

    def find_by_id(self, article_id: int) -> Optional[Article]:
        """Find article by ID.

        Raises:
            DatabaseError: If database operation fails.
        """
        try:
            cursor = self.db.execute("SELECT * FROM articles WHERE id = ?", (article_id,))
            row = cursor.fetchone()
            return self._row_to_article(row) if row else None

        except sqlite3.Error as e:
            logger.error("find_by_id_failed", article_id=article_id, error=str(e))
            raise DatabaseError(f"Failed to find article: {e}") from e

    def count_by_status(self) -> Dict[str, int]:
        """Count articles per status.

        ``failed`` is split into ``retrying`` (a retry is scheduled) and
        ``failed`` (permanent).

        Returns:
            Mapping with keys pending, success, retrying, failed and total.
        """
        query = """
            SELECT
                CASE
                    WHEN status = 'failed' AND next_retry_at IS NOT NULL THEN 'retrying'
                    ELSE status
                END AS bucket,
                COUNT(*) AS count
            FROM articles
            GROUP BY bucket
        """
        try:
            counts = {"pending": 0, "success": 0, "retrying": 0, "failed": 0}
            for row in self.db.execute(query).fetchall():
                counts[row["bucket"]] = row["count"]
            counts["total"] = sum(counts.values())
            return counts

        except sqlite3.Error as e:
            logger.error("count_by_status_failed", error=str(e))
            raise DatabaseError(f"Failed to count articles: {e}") from e

    def list_articles(
        self,
        status: Optional[ArticleStatus] = None,
        topic: Optional[str] = None,
        limit: int = 20,
        feed_id: Optional[int] = None,
        offset: int = 0,
    ) -> List[Article]:
        """List the most recently updated articles.

        Args:
            status: Only articles in this status.
            topic: Only articles of this topic.
            limit: Maximum number of articles.
            feed_id: Only articles of this feed.
            offset: Number of matching articles to skip.

        Returns:
            Articles, newest first.
        """
        clauses = []
        params: list = []
        if status is not None:
            clauses.append("status = ?")
            params.append(ArticleStatus(status).value)
        if topic is not None:
            clauses.append("topic = ?")
            params.append(topic)
        if feed_id is not None:
            clauses.append("feed_id = ?")
            params.append(feed_id)

        where = f"WHERE {' AND '.join(clauses)}" if clauses else ""
        query = (
            f"SELECT * FROM articles {where} "
            "ORDER BY updated_at DESC, id DESC LIMIT ? OFFSET ?"
        )
        params.extend([limit, max(0, offset)])

        try:
            rows = self.db.execute(query, tuple(params)).fetchall()
            return [self._row_to_article(row) for row in rows]

        except sqlite3.Error as e:
            logger.error("list_articles_failed", error=str(e))
            raise DatabaseError(f"Failed to list articles: {e}") from e

    def _row_to_article(self, row) -> Article:
        """Convert database row to Article object.

        Args:
            row: SQLite row object.

        Returns:
            Article object.
        """
        tags: List[str] = []
        if row["tags"]:
            tags = json.loads(row["tags"])

        return Article(
            id=row["id"],
            feed_id=row["feed_id"],
            topic=row["topic"],
            source_url=row["source_url"],
            rss_title=row["rss_title"],
            rss_description=row["rss_description"],
            rss_source=row["rss_source"],
            pub_date=from_db_timestamp(row["pub_date"]),
            final_url=row["final_url"],
            status=ArticleStatus(row["status"]),
            page_title=row["page_title"],
            og_title=row["og_title"],
            og_description=row["og_description"],
            og_image=row["og_image"],
            og_url=row["og_url"],
            og_site_name=row["og_site_name"],
            twitter_image=row["twitter_image"],
            author=row["author"],
            published_time=row["published_time"],
            section=row["section"],
            tags=tags,
            content=row["content"],
            word_count=row["word_count"],
            retry_count=row["retry_count"],
            next_retry_at=from_db_timestamp(row["next_retry_at"]),
            last_error=row["last_error"],
            claim_token=row["claim_token"],
            processed_at=from_db_timestamp(row["processed_at"]),
            created_at=from_db_timestamp(row["created_at"]),
            updated_at=from_db_timestamp(row["updated_at"]),
        )


def _owned_by(article_id: int, claim_token: Optional[str]) -> Tuple[str, tuple]:
    """WHERE clause matching the article, and its claim when a token is given."""
    if claim_token is None:
        return "id = ?", (article_id,)
    return "id = ? AND claim_token = ?", (article_id, claim_token)
