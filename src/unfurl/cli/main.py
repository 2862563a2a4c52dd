"""Command-line interface for Unfurl."""

import click

from unfurl.__version__ import __version__
from unfurl.cli.commands import export_rss, extract, feeds, run, stats


@click.group()
@click.version_option(version=__version__, prog_name="unfurl")
@click.pass_context
def cli(ctx: click.Context) -> None:
    """Unfurl - topic feed ingestion with safe URL resolution.

    Collects topic feeds, follows each entry's redirect to the real article,
    extracts Open Graph, Twitter Card and article metadata plus plain text,
    and stores the results with retries for transient failures.
    """
    ctx.ensure_object(dict)


# Register commands
cli.add_command(run)
cli.add_command(feeds)
cli.add_command(stats)
cli.add_command(extract)
cli.add_command(export_rss)


def main() -> None:
    """Main entry point for CLI."""
    cli(obj={})


if __name__ == "__main__":
    main()
