"""Offline decoding of old-style Google News article links.

Old-style links (``/rss/articles/CBM...`` or ``CWM...``) carry the
destination URL inside the article id: the id is URL-safe base64 of a small
protobuf message ``08 13 22 <varint length> <url bytes> ...``. Decoding it
saves a round trip through news.google.com. Newer ids are opaque and must be
resolved by following redirects instead.
"""

import base64
import binascii
import re
from typing import Optional, Tuple
from urllib.parse import urlsplit

from unfurl.utils.logging import get_logger

logger = get_logger(__name__)

GOOGLE_NEWS_HOST = "news.google.com"

# Longer ids are the new opaque format
MAX_OLD_STYLE_ID_LENGTH = 150

_OLD_STYLE_PREFIXES = ("CBM", "CWM")

_ARTICLE_ID_RE = re.compile(r"/articles/([^/?#]+)")

_PROTOBUF_URL_FIELD = b"\x08\x13\x22"

_EMBEDDED_URL_RE = re.compile(rb"[A-Za-z][A-Za-z0-9+.\-]*://[\x21-\x7e]+")


def is_google_news_url(url: str) -> bool:
    """Check whether the URL points at Google News."""
    try:
        host = (urlsplit(url).hostname or "").lower()
    except ValueError:
        return False
    return host == GOOGLE_NEWS_HOST or host.endswith("." + GOOGLE_NEWS_HOST)


def extract_article_id(url: str) -> Optional[str]:
    """Get the article id following ``/articles/`` in the path."""
    try:
        path = urlsplit(url).path
    except ValueError:
        return None
    match = _ARTICLE_ID_RE.search(path)
    return match.group(1) if match else None


def is_old_style_url(url: str) -> bool:
    """Check for a short ``/rss/articles/CBM|CWM...`` id that embeds the target."""
    if not is_google_news_url(url):
        return False

    article_id = extract_article_id(url)
    if not article_id or len(article_id) >= MAX_OLD_STYLE_ID_LENGTH:
        return False

    return "/rss/articles/" in urlsplit(url).path and article_id.upper().startswith(
        _OLD_STYLE_PREFIXES
    )


def decode_google_news_url(url: str) -> Optional[str]:
    """
    Decode an old-style Google News link to the article URL it wraps.

    The decoded URL is NOT validated here; callers must run it through
    the URL validator like any other hop.

    Args:
        url: Feed entry link

    Returns:
        The embedded URL, or None if the link is not old-style or nothing
        could be decoded
    """
    if not is_old_style_url(url):
        return None

    article_id = extract_article_id(url) or ""
    try:
        data = base64.urlsafe_b64decode(article_id + "=" * (-len(article_id) % 4))
    except (binascii.Error, ValueError):
        logger.debug("google_news_id_not_base64", url=url)
        return None

    embedded = _read_protobuf_url(data) or _search_embedded_url(data)
    if embedded is None:
        logger.debug("google_news_id_without_url", url=url)
        return None

    return embedded


def _read_protobuf_url(data: bytes) -> Optional[str]:
    if not data.startswith(_PROTOBUF_URL_FIELD):
        return None

    parsed = _read_varint(data, len(_PROTOBUF_URL_FIELD))
    if parsed is None:
        return None

    length, start = parsed
    raw = data[start:start + length]
    if len(raw) != length:
        return None

    try:
        text = raw.decode("utf-8")
    except UnicodeDecodeError:
        return None

    return text if "://" in text else None


def _read_varint(data: bytes, offset: int) -> Optional[Tuple[int, int]]:
    value = 0
    shift = 0
    while offset < len(data) and shift < 35:
        byte = data[offset]
        value |= (byte & 0x7F) << shift
        offset += 1
        if not byte & 0x80:
            return value, offset
        shift += 7
    return None


def _search_embedded_url(data: bytes) -> Optional[str]:
    match = _EMBEDDED_URL_RE.search(data)
    if match is None:
        return None
    return match.group(0).decode("ascii")
