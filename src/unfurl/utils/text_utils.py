"""Text processing utilities."""

import re
from typing import Optional
from urllib.parse import urlparse

_WHITESPACE_RE = re.compile(r"\s+")


def clean_whitespace(text: str) -> str:
    """Collapse runs of whitespace to single spaces and trim.

    Args:
        text: Text to clean

    Returns:
        Cleaned text
    """
    return _WHITESPACE_RE.sub(" ", text).strip()


def clean_optional(text: Optional[str]) -> Optional[str]:
    """Like ``clean_whitespace`` but maps None and blank strings to None."""
    if text is None:
        return None
    cleaned = clean_whitespace(text)
    return cleaned or None


def count_words(text: str) -> int:
    """Count whitespace-delimited tokens in text.

    Args:
        text: Text to count

    Returns:
        Number of words
    """
    return len(text.split())


def truncate_text(text: str, max_length: int, suffix: str = "...") -> str:
    """Truncate text to maximum length.

    Args:
        text: Text to truncate
        max_length: Maximum length
        suffix: Suffix to add when truncating

    Returns:
        Truncated text
    """
    if len(text) <= max_length:
        return text

    return text[: max_length - len(suffix)] + suffix


def extract_domain(url: str) -> str:
    """Extract the lowercase host from a URL.

    Args:
        url: URL to parse

    Returns:
        Domain name
    """
    return (urlparse(url).hostname or "").lower()
