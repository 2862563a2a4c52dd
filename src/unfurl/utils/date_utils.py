"""Date and time utilities."""

from datetime import datetime, timezone
from typing import Optional

from dateutil import parser as date_parser


def parse_date(date_string: Optional[str]) -> Optional[datetime]:
    """Parse a feed date string to a timezone-aware datetime.

    Handles RFC 822 (RSS ``pubDate``) as well as ISO-8601 (Atom).

    Args:
        date_string: Date string to parse

    Returns:
        Parsed datetime in UTC, or None if parsing fails
    """
    if not date_string:
        return None

    try:
        dt = date_parser.parse(date_string)
    except (ValueError, TypeError, OverflowError):
        return None

    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def now_utc() -> datetime:
    """Get current UTC datetime.

    Returns:
        Current UTC datetime (timezone-aware)
    """
    return datetime.now(timezone.utc)


def to_db_timestamp(dt: Optional[datetime]) -> Optional[str]:
    """Render a datetime as the UTC ISO string stored in SQLite.

    Naive datetimes are taken to be UTC already.
    """
    if dt is None:
        return None
    if dt.tzinfo is not None:
        dt = dt.astimezone(timezone.utc).replace(tzinfo=None)
    return dt.isoformat(sep=" ", timespec="seconds")


def from_db_timestamp(value: Optional[str]) -> Optional[datetime]:
    """Parse a stored timestamp back into an aware UTC datetime."""
    if not value:
        return None
    try:
        dt = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    except ValueError:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def format_datetime(dt: Optional[datetime], format_str: str = "%Y-%m-%d %H:%M:%S") -> str:
    """Format datetime to string, empty for None."""
    if dt is None:
        return ""
    return dt.strftime(format_str)
