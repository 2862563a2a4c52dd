"""CLI commands for Unfurl."""

from unfurl.cli.commands.export_rss import export_rss
from unfurl.cli.commands.extract import extract
from unfurl.cli.commands.feeds import feeds
from unfurl.cli.commands.run import run
from unfurl.cli.commands.stats import stats

__all__ = ["run", "feeds", "stats", "extract", "export_rss"]
