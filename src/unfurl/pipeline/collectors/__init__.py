"""Feed collectors."""

from unfurl.pipeline.collectors.base import BaseCollector
from unfurl.pipeline.collectors.rss import RSSCollector

__all__ = [
    "BaseCollector",
    "RSSCollector",
]
