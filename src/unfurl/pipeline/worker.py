"""Ingestion worker: resolve, extract and persist claimed articles."""

import asyncio
from collections import Counter
from datetime import datetime
from typing import Callable, Dict, Optional, Union

from unfurl.core.article import Article, FeedSource
from unfurl.core.enums import FailureKind, ProcessingOutcome
from unfurl.database.repository import ArticleRepository
from unfurl.pipeline.extractors.article_extractor import ArticleExtractor
from unfurl.pipeline.resolvers.feed_url_resolver import FeedUrlResolver, ResolutionFailure
from unfurl.pipeline.retry_policy import RetryPolicy
from unfurl.utils.date_utils import now_utc
from unfurl.utils.exceptions import DatabaseError, DuplicateArticleError
from unfurl.utils.logging import get_logger
from unfurl.utils.text_utils import extract_domain, truncate_text

logger = get_logger(__name__)


class IngestionWorker:
    """Process the pending and retry-eligible articles of a feed.

    Articles are claimed in one atomic step, then handled concurrently up to
    ``concurrency`` at a time. Every article is persisted through exactly one
    repository write (success or failure), so an interrupted article leaves
    no partial state behind; its claim is released or expires.

    One article's failure never aborts the rest of the batch.
    """

    def __init__(
        self,
        repository: ArticleRepository,
        resolver: FeedUrlResolver,
        extractor: Optional[ArticleExtractor] = None,
        retry_policy: Optional[RetryPolicy] = None,
        concurrency: int = 4,
        clock: Callable[[], datetime] = now_utc,
    ):
        """Initialize the worker.

        Args:
            repository: Article persistence.
            resolver: Redirect resolver and fetcher.
            extractor: HTML metadata extractor.
            retry_policy: Retry classification and backoff.
            concurrency: Articles processed at the same time.
            clock: Source of the current UTC time.
        """
        self.repository = repository
        self.resolver = resolver
        self.extractor = extractor or ArticleExtractor()
        self.retry_policy = retry_policy or RetryPolicy()
        self.concurrency = max(1, concurrency)
        self._clock = clock
        self._stop = asyncio.Event()

    def stop(self) -> None:
        """Ask the worker to stop before starting its next article."""
        logger.info("worker_stop_requested")
        self._stop.set()

    @property
    def stopped(self) -> bool:
        return self._stop.is_set()

    async def process_feed(self, feed: FeedSource, limit: Optional[int] = None) -> Dict[str, int]:
        """Claim and process one batch of a feed's articles.

        Args:
            feed: Feed whose articles to process.
            limit: Batch size; capped by the feed's result limit.

        Returns:
            Counts of claimed, succeeded, retrying, failed, duplicate, skipped
            (stop requested or claim taken over) and errored (not persisted)
            articles.
        """
        batch_size = feed.result_limit if limit is None else min(limit, feed.result_limit)
        articles = self.repository.claim_batch(feed.id, batch_size, now=self._clock())

        stats = Counter({outcome.value: 0 for outcome in ProcessingOutcome})
        stats["claimed"] = len(articles)
        stats["skipped"] = 0
        stats["errors"] = 0

        if not articles:
            logger.info("no_articles_to_process", feed_id=feed.id, topic=feed.topic)
            return self._summarize(stats)

        logger.info("processing_articles", feed_id=feed.id, topic=feed.topic, count=len(articles))

        semaphore = asyncio.Semaphore(self.concurrency)

        async def guarded(article: Article) -> Union[ProcessingOutcome, str, None]:
            async with semaphore:
                if self.stopped:
                    self._release(article)
                    return None
                try:
                    # Queued articles age behind the semaphore; restart the TTL
                    if not self.repository.touch_claim(
                        article.id, article.claim_token, now=self._clock()
                    ):
                        return self._claim_lost(article)
                    return await self.process_article(article)
                except DatabaseError as e:
                    logger.error("article_persist_failed", article_id=article.id, error=str(e))
                    self._release(article)
                    return "error"

        outcomes = await asyncio.gather(*(guarded(article) for article in articles))

        for outcome in outcomes:
            if outcome is None:
                stats["skipped"] += 1
            elif outcome == "error":
                stats["errors"] += 1
            else:
                stats[outcome.value] += 1

        summary = self._summarize(stats)
        logger.info("feed_processing_complete", feed_id=feed.id, topic=feed.topic, **summary)
        return summary

    async def process_article(self, article: Article) -> Optional[ProcessingOutcome]:
        """Resolve, extract and persist one claimed article.

        Args:
            article: Claimed article.

        Returns:
            How the attempt ended, or None when another worker took the
            claim over and the result was discarded.
        """
        try:
            return await self._process(article)
        except asyncio.CancelledError:
            self._release(article)
            raise
        except DatabaseError:
            raise
        except Exception as e:
            logger.exception("article_processing_error", article_id=article.id, error=str(e))
            return self._fail(
                article,
                f"unexpected_error: {type(e).__name__}: {e}",
                retryable=False,
            )

    async def _process(self, article: Article) -> Optional[ProcessingOutcome]:
        result = await self.resolver.resolve(article.source_url)

        if isinstance(result, ResolutionFailure):
            return self._fail(
                article,
                result.describe(),
                retryable=self.retry_policy.is_retryable(result),
                kind=result.kind,
            )

        extraction = self.extractor.extract(result.content, encoding=result.charset)

        if self.repository.exists_by_final_url(result.final_url, exclude_id=article.id):
            return self._duplicate(article, result.final_url)

        try:
            stored = self.repository.record_success(
                article.id, result.final_url, extraction, claim_token=article.claim_token
            )
        except DuplicateArticleError:
            # Another worker stored the same final URL after our check
            return self._duplicate(article, result.final_url)

        if not stored:
            return self._claim_lost(article)

        logger.info(
            "article_resolved",
            article_id=article.id,
            final_url=result.final_url,
            domain=extract_domain(result.final_url),
            redirects=len(result.redirects),
            word_count=extraction.word_count,
        )
        return ProcessingOutcome.SUCCEEDED

    def _duplicate(self, article: Article, final_url: str) -> Optional[ProcessingOutcome]:
        stored = self.repository.record_failure(
            article.id,
            retry_count=article.retry_count,
            next_retry_at=None,
            error_message=f"{FailureKind.DUPLICATE_URL.value}: {final_url}",
            terminal=True,
            claim_token=article.claim_token,
        )
        if not stored:
            return self._claim_lost(article)

        logger.info("article_duplicate", article_id=article.id, final_url=final_url)
        return ProcessingOutcome.DUPLICATE

    def _fail(
        self,
        article: Article,
        message: str,
        retryable: bool,
        kind: Optional[FailureKind] = None,
    ) -> Optional[ProcessingOutcome]:
        decision = self.retry_policy.decide(article.retry_count, retryable, self._clock())

        stored = self.repository.record_failure(
            article.id,
            retry_count=decision.retry_count,
            next_retry_at=decision.next_retry_at,
            error_message=truncate_text(message, 1000),
            terminal=decision.terminal,
            claim_token=article.claim_token,
        )
        if not stored:
            return self._claim_lost(article)

        if decision.terminal:
            logger.warning(
                "article_failed",
                article_id=article.id,
                kind=kind.value if kind else None,
                retry_count=decision.retry_count,
                error=message,
            )
            return ProcessingOutcome.FAILED

        logger.info(
            "article_retry_scheduled",
            article_id=article.id,
            kind=kind.value if kind else None,
            retry_count=decision.retry_count,
            next_retry_at=decision.next_retry_at.isoformat() if decision.next_retry_at else None,
            error=message,
        )
        return ProcessingOutcome.RETRY_SCHEDULED

    def _claim_lost(self, article: Article) -> None:
        logger.warning("article_claim_lost", article_id=article.id)
        return None

    def _release(self, article: Article) -> None:
        try:
            self.repository.release_claim(article.id, claim_token=article.claim_token)
        except DatabaseError as e:
            # The claim expires after the configured TTL
            logger.error("release_claim_failed", article_id=article.id, error=str(e))

    @staticmethod
    def _summarize(stats: Counter) -> Dict[str, int]:
        return {
            "claimed": stats["claimed"],
            "succeeded": stats[ProcessingOutcome.SUCCEEDED.value],
            "retrying": stats[ProcessingOutcome.RETRY_SCHEDULED.value],
            "failed": stats[ProcessingOutcome.FAILED.value],
            "duplicate": stats[ProcessingOutcome.DUPLICATE.value],
            "skipped": stats["skipped"],
            "errors": stats["errors"],
        }
