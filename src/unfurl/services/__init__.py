"""Business logic services."""

from unfurl.services.config_loader import load_feeds_config, load_yaml
from unfurl.services.rss_exporter import RssExporter

__all__ = [
    "load_yaml",
    "load_feeds_config",
    "RssExporter",
]
