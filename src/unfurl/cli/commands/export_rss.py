"""RSS export command."""

from pathlib import Path
from typing import Optional

import click

from unfurl.core.config import Config
from unfurl.core.enums import ArticleStatus
from unfurl.database import ArticleRepository, init_database
from unfurl.services.rss_exporter import DEFAULT_LIMIT, MAX_LIMIT, RssExporter
from unfurl.utils.exceptions import UnfurlError
from unfurl.utils.logging import get_logger, setup_logging

logger = get_logger(__name__)


@click.command("export-rss")
@click.option("--topic", type=str, default=None, help="Only articles of this topic")
@click.option("--feed-id", type=int, default=None, help="Only articles of this feed")
@click.option(
    "--status",
    type=click.Choice([s.value for s in ArticleStatus]),
    default=ArticleStatus.SUCCESS.value,
    show_default=True,
    help="Only articles in this status",
)
@click.option(
    "--limit",
    type=click.IntRange(min=1, max=MAX_LIMIT),
    default=DEFAULT_LIMIT,
    show_default=True,
    help="Number of items",
)
@click.option("--offset", type=click.IntRange(min=0), default=0, help="Articles to skip")
@click.option(
    "--output",
    "-o",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Write the feed to this file instead of stdout",
)
def export_rss(
    topic: Optional[str],
    feed_id: Optional[int],
    status: str,
    limit: int,
    offset: int,
    output: Optional[Path],
) -> None:
    """Export stored articles as an RSS 2.0 feed.

    Examples:
        unfurl export-rss                              # 20 newest successes
        unfurl export-rss --topic technology -o tech.xml
        unfurl export-rss --feed-id 3 --limit 50 --offset 50
    """
    try:
        config = Config()  # type: ignore
        config.validate_paths()
    except Exception as e:
        click.echo(f"Error loading configuration: {e}", err=True)
        raise click.Abort()

    setup_logging(log_level=config.log_level, log_format=config.log_format)

    db = init_database(config.db_path)
    try:
        exporter = RssExporter(
            ArticleRepository(db, claim_ttl_sec=config.claim_ttl_sec),
            site_name=config.site_name,
            site_url=config.site_url,
        )
        xml = exporter.generate(
            topic=topic,
            feed_id=feed_id,
            status=ArticleStatus(status),
            limit=limit,
            offset=offset,
        )
    except UnfurlError as e:
        click.echo(f"RSS export failed: {e}", err=True)
        logger.error("rss_export_failed", error=str(e))
        raise click.Abort()
    finally:
        db.close()

    if output is None:
        click.echo(xml)
        return

    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_text(xml, encoding="utf-8")
    click.echo(f"Wrote RSS feed to {output}", err=True)
