"""Single URL extraction command."""

import asyncio
import json
from typing import Any, Dict

import click

from unfurl.core.config import Config
from unfurl.pipeline.extractors import ArticleExtractor
from unfurl.pipeline.resolvers import ResolutionFailure, create_resolver
from unfurl.security import UrlValidator
from unfurl.utils.exceptions import IngestionError
from unfurl.utils.logging import setup_logging


@click.command()
@click.argument("url")
@click.option("--content/--no-content", default=True, help="Include the plain-text content")
def extract(url: str, content: bool) -> None:
    """Resolve URL, extract its metadata and print it as JSON.

    Nothing is stored. Logs go to stderr, so the JSON on stdout can be piped.

    Examples:
        unfurl extract https://example.com/story
        unfurl extract --no-content https://example.com/story | jq .
    """
    try:
        config = Config()  # type: ignore
    except Exception as e:
        click.echo(f"Error loading configuration: {e}", err=True)
        raise click.Abort()

    setup_logging(log_level=config.log_level, log_format=config.log_format)

    try:
        UrlValidator(max_url_length=config.max_url_length).ensure_safe(url)
        payload = asyncio.run(_extract(config, url))
    except IngestionError as e:
        click.echo(f"Extraction failed: {e}", err=True)
        raise click.Abort()

    if not content:
        payload["metadata"].pop("content", None)

    click.echo(json.dumps(payload, indent=2, ensure_ascii=False))


async def _extract(config: Config, url: str) -> Dict[str, Any]:
    async with create_resolver(config) as resolver:
        result = await resolver.resolve(url)

    if isinstance(result, ResolutionFailure):
        raise result.to_error()

    extraction = ArticleExtractor().extract(result.content, encoding=result.charset)

    return {
        "source_url": url,
        "final_url": result.final_url,
        "redirects": result.redirects,
        "page_title": extraction.page_title,
        "metadata": extraction.to_metadata(),
    }
