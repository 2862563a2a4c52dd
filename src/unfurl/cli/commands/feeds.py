"""Feed management commands."""

import click

from unfurl.core.config import Config
from unfurl.database.connection import init_database
from unfurl.database.feed_repository import FeedRepository
from unfurl.services.config_loader import load_feeds_config
from unfurl.utils.date_utils import format_datetime
from unfurl.utils.exceptions import UnfurlError
from unfurl.utils.logging import get_logger, setup_logging

logger = get_logger(__name__)


@click.group()
def feeds() -> None:
    """Inspect and load topic feeds."""


@feeds.command("list")
@click.option("--all", "show_all", is_flag=True, help="Include disabled feeds")
def list_feeds(show_all: bool) -> None:
    """List stored feeds.

    Examples:
        unfurl feeds list          # Enabled feeds
        unfurl feeds list --all    # Every feed
    """
    config = _load_config()
    db = init_database(config.db_path)

    try:
        repository = FeedRepository(db)
        stored = repository.list_feeds() if show_all else repository.list_enabled_feeds()
    except UnfurlError as e:
        click.echo(f"Failed to list feeds: {e}", err=True)
        raise click.Abort()
    finally:
        db.close()

    if not stored:
        click.echo("No feeds stored. Run 'unfurl feeds sync' first.")
        return

    click.echo(f"{'ID':>4}  {'Topic':<20} {'Limit':>5}  {'Enabled':<7}  {'Last processed':<19}  URL")
    click.echo("-" * 90)
    for feed in stored:
        click.echo(
            f"{feed.id:>4}  {feed.topic:<20} {feed.result_limit:>5}  "
            f"{'yes' if feed.enabled else 'no':<7}  "
            f"{format_datetime(feed.last_processed_at) or 'never':<19}  {feed.url}"
        )


@feeds.command("sync")
def sync_feeds() -> None:
    """Load the feeds file into the database.

    Feeds are matched by topic; existing feeds are updated in place.
    """
    config = _load_config()

    try:
        configured = load_feeds_config(config.feeds_file, config.default_result_limit)
    except UnfurlError as e:
        click.echo(f"Invalid feeds file: {e}", err=True)
        raise click.Abort()

    db = init_database(config.db_path)
    try:
        repository = FeedRepository(db)
        for feed in configured:
            stored = repository.upsert_feed(feed)
            click.echo(f"  {stored.id:>4}  {stored.topic}")
    except UnfurlError as e:
        click.echo(f"Failed to sync feeds: {e}", err=True)
        raise click.Abort()
    finally:
        db.close()

    logger.info("feeds_synced", path=str(config.feeds_file), total=len(configured))
    click.echo(f"\nSynced {len(configured)} feed(s) from {config.feeds_file}")


def _load_config() -> Config:
    try:
        config = Config()  # type: ignore
        config.validate_paths()
    except Exception as e:
        click.echo(f"Error loading configuration: {e}", err=True)
        raise click.Abort()

    setup_logging(log_level=config.log_level, log_format=config.log_format, log_dir=config.log_dir)
    return config
