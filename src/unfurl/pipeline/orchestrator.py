"""Pipeline orchestrator coordinating collection and ingestion per feed."""

from typing import Dict, List, Optional

from unfurl.core.article import FeedSource
from unfurl.core.config import Config, PipelineConfig
from unfurl.database.connection import DatabaseConnection
from unfurl.database.feed_repository import FeedRepository
from unfurl.database.repository import ArticleRepository
from unfurl.pipeline.collectors import RSSCollector
from unfurl.pipeline.extractors import ArticleExtractor
from unfurl.pipeline.resolvers import FeedUrlResolver, create_resolver
from unfurl.pipeline.retry_policy import RetryPolicy
from unfurl.pipeline.worker import IngestionWorker
from unfurl.services.config_loader import load_feeds_config
from unfurl.utils.date_utils import now_utc
from unfurl.utils.exceptions import CollectorError, DatabaseError, PipelineError
from unfurl.utils.logging import get_logger

logger = get_logger(__name__)


class PipelineOrchestrator:
    """Orchestrates the ingestion pipeline.

    For every selected feed: Collection → Ingestion (resolve, extract,
    persist) → mark processed. A failing feed is logged and skipped.
    """

    def __init__(
        self,
        config: Config,
        db: DatabaseConnection,
        pipeline_config: Optional[PipelineConfig] = None,
        resolver: Optional[FeedUrlResolver] = None,
    ):
        """Initialize pipeline orchestrator.

        Args:
            config: Application configuration.
            db: Database connection.
            pipeline_config: Pipeline execution configuration.
            resolver: Resolver to use instead of one built from ``config``.
        """
        self.config = config
        self.db = db
        self.pipeline_config = pipeline_config or PipelineConfig()

        # Initialize repositories
        self.feed_repository = FeedRepository(db)
        self.repository = ArticleRepository(db, claim_ttl_sec=config.claim_ttl_sec)

        # Network access goes through one resolver and its SSRF validator
        self._owns_resolver = resolver is None
        self.resolver = resolver or create_resolver(config)

        self.worker = IngestionWorker(
            repository=self.repository,
            resolver=self.resolver,
            extractor=ArticleExtractor(),
            retry_policy=RetryPolicy(config.retry_policy),
            concurrency=config.worker_concurrency,
        )

    def stop(self) -> None:
        """Stop after the articles currently in flight."""
        self.worker.stop()

    async def aclose(self) -> None:
        """Release the HTTP client if the orchestrator created it."""
        if self._owns_resolver:
            await self.resolver.aclose()

    def sync_feeds(self) -> List[FeedSource]:
        """Upsert the feeds defined in the feeds file.

        Returns:
            Stored feeds, in file order.

        Raises:
            ConfigurationError: If the feeds file is missing or invalid.
        """
        feeds = load_feeds_config(self.config.feeds_file, self.config.default_result_limit)
        stored = [self.feed_repository.upsert_feed(feed) for feed in feeds]

        logger.info(
            "feeds_synced",
            path=str(self.config.feeds_file),
            total=len(stored),
            enabled=sum(1 for feed in stored if feed.enabled),
        )
        return stored

    async def run(self) -> Dict[str, int]:
        """Run the pipeline over the selected feeds.

        Returns:
            Statistics dict with counts for each stage.

        Raises:
            PipelineError: If the requested feed does not exist.
        """
        feeds = self._select_feeds()

        logger.info(
            "pipeline_starting",
            feeds=len(feeds),
            skip_collection=self.pipeline_config.skip_collection,
            limit=self.pipeline_config.limit,
        )

        stats = {
            "feeds_processed": 0,
            "feeds_failed": 0,
            "entries_collected": 0,
            "articles_created": 0,
            "articles_succeeded": 0,
            "articles_retrying": 0,
            "articles_failed": 0,
            "articles_duplicate": 0,
        }

        for index, feed in enumerate(feeds):
            if self.worker.stopped:
                logger.info("pipeline_stopped", remaining_feeds=len(feeds) - index)
                break

            try:
                await self._run_feed(feed, stats)
                stats["feeds_processed"] += 1
            except (CollectorError, DatabaseError) as e:
                stats["feeds_failed"] += 1
                logger.error("feed_processing_failed", feed_id=feed.id, topic=feed.topic, error=str(e))
                # Continue with other feeds

        logger.info("pipeline_completed", stats=stats)
        return stats

    async def _run_feed(self, feed: FeedSource, stats: Dict[str, int]) -> None:
        """Collect and ingest one feed, adding its counts to ``stats``."""
        limit = self.pipeline_config.limit

        # Stage 1: Collection
        if not self.pipeline_config.skip_collection:
            collector = RSSCollector(feed, self.resolver)
            entries = await collector.collect(limit=limit)
            stats["entries_collected"] += len(entries)
            stats["articles_created"] += self.repository.save_feed_entries(feed, entries)

        # Stage 2: Ingestion
        worker_stats = await self.worker.process_feed(feed, limit=limit)
        stats["articles_succeeded"] += worker_stats["succeeded"]
        stats["articles_retrying"] += worker_stats["retrying"]
        stats["articles_failed"] += worker_stats["failed"]
        stats["articles_duplicate"] += worker_stats["duplicate"]

        self.feed_repository.mark_processed(feed.id, now_utc())

    def _select_feeds(self) -> List[FeedSource]:
        """Resolve the run's feed selection to stored feeds."""
        if self.pipeline_config.feed_id is not None:
            feed = self.feed_repository.find_by_id(self.pipeline_config.feed_id)
            if feed is None:
                raise PipelineError(f"Feed not found: {self.pipeline_config.feed_id}")
            return [feed]

        if self.pipeline_config.topic is not None:
            feed = self.feed_repository.find_by_topic(self.pipeline_config.topic)
            if feed is None:
                raise PipelineError(f"Feed not found for topic: {self.pipeline_config.topic}")
            return [feed]

        return self.feed_repository.list_enabled_feeds()
