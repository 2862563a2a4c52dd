"""Run pipeline command."""

import asyncio
import signal
from typing import Dict, Optional

import click

from unfurl.core.config import Config, PipelineConfig
from unfurl.database.connection import DatabaseConnection, init_database
from unfurl.pipeline.orchestrator import PipelineOrchestrator
from unfurl.utils.exceptions import UnfurlError
from unfurl.utils.logging import setup_logging


@click.command()
@click.option("--feed-id", type=int, default=None, help="Process only this feed ID")
@click.option("--topic", type=str, default=None, help="Process only the feed with this topic")
@click.option(
    "--limit",
    type=click.IntRange(min=1),
    default=None,
    help="Articles per feed (capped by the feed's result limit)",
)
@click.option(
    "--skip-collection",
    is_flag=True,
    help="Skip feed collection; only retry stored articles",
)
@click.option(
    "--no-sync",
    is_flag=True,
    help="Do not load the feeds file before running",
)
def run(
    feed_id: Optional[int],
    topic: Optional[str],
    limit: Optional[int],
    skip_collection: bool,
    no_sync: bool,
) -> None:
    """Run the ingestion pipeline.

    Examples:
        unfurl run                          # All enabled feeds
        unfurl run --topic technology       # One feed by topic
        unfurl run --limit 3                # At most 3 articles per feed
        unfurl run --skip-collection        # Only process pending/retry articles
    """
    if feed_id is not None and topic is not None:
        raise click.UsageError("--feed-id and --topic are mutually exclusive")

    # Load configuration
    try:
        config = Config()  # type: ignore
        config.validate_paths()
    except Exception as e:
        click.echo(f"Error loading configuration: {e}", err=True)
        raise click.Abort()

    # Setup logging
    setup_logging(log_level=config.log_level, log_format=config.log_format, log_dir=config.log_dir)

    click.echo("Unfurl Pipeline")
    click.echo("=" * 50)
    click.echo(f"Database: {config.db_path}")
    click.echo(f"Feeds file: {config.feeds_file}")
    click.echo(f"Limit: {limit or 'feed result limit'}")
    click.echo("=" * 50)

    pipeline_config = PipelineConfig(
        feed_id=feed_id,
        topic=topic,
        limit=limit,
        skip_collection=skip_collection,
    )

    db = init_database(config.db_path)

    try:
        stats = asyncio.run(_run_pipeline(config, db, pipeline_config, sync=not no_sync))
        _display_results(stats)
        click.echo("\nPipeline completed successfully!")

    except KeyboardInterrupt:
        click.echo("\nPipeline interrupted by user.", err=True)
        raise click.Abort()

    except UnfurlError as e:
        click.echo(f"\nPipeline failed: {e}", err=True)
        raise click.Abort()

    finally:
        db.close()


async def _run_pipeline(
    config: Config, db: DatabaseConnection, pipeline_config: PipelineConfig, sync: bool
) -> Dict[str, int]:
    orchestrator = PipelineOrchestrator(config=config, db=db, pipeline_config=pipeline_config)

    loop = asyncio.get_running_loop()
    try:
        # SIGTERM stops after the articles in flight
        loop.add_signal_handler(signal.SIGTERM, orchestrator.stop)
    except NotImplementedError:
        pass  # Windows event loops have no signal handlers

    try:
        if sync:
            orchestrator.sync_feeds()
        return await orchestrator.run()
    finally:
        await orchestrator.aclose()


def _display_results(stats: Dict[str, int]) -> None:
    """Print the run statistics."""
    click.echo("\nPipeline Results:")
    click.echo("=" * 50)
    click.echo(f"  Feeds processed:   {stats['feeds_processed']:>6}")
    if stats.get("feeds_failed"):
        click.echo(f"  Feeds failed:      {stats['feeds_failed']:>6}")
    click.echo(f"  Entries collected: {stats['entries_collected']:>6}")
    click.echo(f"  Articles created:  {stats['articles_created']:>6}")
    click.echo("\nArticle Outcomes:")
    click.echo(f"  Succeeded:         {stats['articles_succeeded']:>6}")
    click.echo(f"  Retry scheduled:   {stats['articles_retrying']:>6}")
    click.echo(f"  Failed:            {stats['articles_failed']:>6}")
    click.echo(f"  Duplicates:        {stats['articles_duplicate']:>6}")
