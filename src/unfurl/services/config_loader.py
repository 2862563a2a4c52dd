"""Configuration loading from YAML files."""

from pathlib import Path
from typing import Any, Dict, List

import yaml
from pydantic import ValidationError as PydanticValidationError

from unfurl.core.config import FeedConfig
from unfurl.utils.exceptions import ConfigurationError


def load_yaml(file_path: Path) -> Dict[str, Any]:
    """Load YAML file.

    Args:
        file_path: Path to YAML file

    Returns:
        Parsed YAML data

    Raises:
        ConfigurationError: If file doesn't exist or is invalid
    """
    if not file_path.exists():
        raise ConfigurationError(f"Configuration file not found: {file_path}")

    try:
        with open(file_path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid YAML in {file_path}: {e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigurationError(f"Expected a mapping at the top of {file_path}")
    return data


def load_feeds_config(
    feeds_path: Path = Path("config/feeds.yaml"), default_result_limit: int = 10
) -> List[FeedConfig]:
    """Load topic feed configuration from YAML.

    The file holds a ``feeds:`` list; each item has ``topic``, ``url`` and
    optionally ``result_limit`` and ``enabled``.

    Args:
        feeds_path: Path to the feeds file
        default_result_limit: Result limit for feeds that do not set one

    Returns:
        List of FeedConfig objects

    Raises:
        ConfigurationError: If the file is missing, malformed or holds an
            invalid or repeated feed
    """
    data = load_yaml(feeds_path)
    feeds_data = data.get("feeds") or []

    if not isinstance(feeds_data, list):
        raise ConfigurationError(f"'feeds' must be a list in {feeds_path}")

    feeds = []
    seen_topics = set()
    for feed_data in feeds_data:
        if not isinstance(feed_data, dict):
            raise ConfigurationError(f"Invalid feed entry in {feeds_path}: {feed_data!r}")
        try:
            feed = FeedConfig(**{"result_limit": default_result_limit, **feed_data})
        except PydanticValidationError as e:
            raise ConfigurationError(
                f"Invalid feed configuration: {feed_data.get('topic', 'unknown')}: {e}"
            ) from e

        if feed.topic in seen_topics:
            raise ConfigurationError(f"Duplicate feed topic in {feeds_path}: {feed.topic}")
        seen_topics.add(feed.topic)
        feeds.append(feed)

    return feeds
