"""Statistics command."""

import click

from unfurl.core.config import Config
from unfurl.core.enums import ArticleStatus
from unfurl.database import ArticleRepository, DatabaseConnection, init_database
from unfurl.utils.date_utils import format_datetime
from unfurl.utils.exceptions import UnfurlError
from unfurl.utils.logging import get_logger, setup_logging
from unfurl.utils.text_utils import truncate_text

logger = get_logger(__name__)


@click.command()
@click.option("--topic", type=str, default=None, help="Only list failures of this topic")
@click.option(
    "--failures",
    type=click.IntRange(min=0),
    default=10,
    help="Number of recent failures to list",
)
def stats(topic: str, failures: int) -> None:
    """Show article counts per status and recent failures.

    Examples:
        unfurl stats                       # Counts and 10 recent failures
        unfurl stats --failures 0          # Counts only
        unfurl stats --topic technology    # Failures of one topic
    """
    # Load configuration
    try:
        config = Config()  # type: ignore
        config.validate_paths()
    except Exception as e:
        click.echo(f"Error loading configuration: {e}", err=True)
        raise click.Abort()

    # Setup logging
    setup_logging(log_level=config.log_level, log_format=config.log_format)

    click.echo("Unfurl Statistics")
    click.echo("=" * 50)

    db = init_database(config.db_path)
    try:
        _display_stats(db, config, topic, failures)
    except UnfurlError as e:
        click.echo(f"\nFailed to load statistics: {e}", err=True)
        logger.error("stats_failed", error=str(e))
        raise click.Abort()
    finally:
        db.close()


def _display_stats(db: DatabaseConnection, config: Config, topic: str, failures: int) -> None:
    """Display article statistics.

    Args:
        db: Database connection.
        config: Configuration.
        topic: Optional topic filter for the failure list.
        failures: Number of failures to list.
    """
    repository = ArticleRepository(db, claim_ttl_sec=config.claim_ttl_sec)
    counts = repository.count_by_status()

    click.echo("\nArticles:")
    click.echo(f"  Pending:        {counts['pending']:>6}")
    click.echo(f"  Succeeded:      {counts['success']:>6}")
    click.echo(f"  Retrying:       {counts['retrying']:>6}")
    click.echo(f"  Failed:         {counts['failed']:>6}")
    click.echo(f"  Total:          {counts['total']:>6}")

    if failures == 0:
        return

    failed = repository.list_articles(status=ArticleStatus.FAILED, topic=topic, limit=failures)
    if not failed:
        return

    click.echo("\nRecent Failures:")
    for article in failed:
        state = "permanent" if article.is_permanently_failed else (
            f"retry at {format_datetime(article.next_retry_at)}"
        )
        click.echo(f"  #{article.id} [{article.topic}] retries={article.retry_count} ({state})")
        click.echo(f"    {truncate_text(article.source_url, 100)}")
        if article.last_error:
            click.echo(f"    {truncate_text(article.last_error, 100)}")
