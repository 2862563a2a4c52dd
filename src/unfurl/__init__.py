"""Unfurl - topic feed ingestion with SSRF-safe URL resolution and metadata extraction."""

from unfurl.__version__ import __version__

__all__ = ["__version__"]
