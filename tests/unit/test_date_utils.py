# tests/unit/test_date_utils.py
"""Unit tests for date utilities."""

from datetime import UTC, datetime, timedelta, timezone

import pytest

from unfurl.utils.date_utils import (
    format_datetime,
    from_db_timestamp,
    now_utc,
    parse_date,
    to_db_timestamp,
)


@pytest.mark.unit
class TestNowUtc:
    """Tests for now_utc function."""

    def test_now_utc_has_utc_timezone(self):
        """Should return an aware datetime in UTC."""
        result = now_utc()
        assert isinstance(result, datetime)
        assert result.utcoffset() == timedelta(0)

    def test_now_utc_is_current_time(self):
        """Should return current time."""
        before = datetime.now(UTC)
        result = now_utc()
        after = datetime.now(UTC)
        assert before <= result <= after


@pytest.mark.unit
class TestParseDate:
    """Tests for parse_date function."""

    def test_parse_date_iso_format(self):
        """Should parse ISO 8601 format (Atom)."""
        result = parse_date("2026-01-04T10:30:00Z")
        assert result == datetime(2026, 1, 4, 10, 30, tzinfo=UTC)

    def test_parse_date_rfc_822_format(self):
        """Should parse RFC 822 format (RSS pubDate)."""
        result = parse_date("Sat, 04 Jan 2026 10:30:00 +0000")
        assert result == datetime(2026, 1, 4, 10, 30, tzinfo=UTC)

    def test_parse_date_converts_offset_to_utc(self):
        """Should normalize offsets to UTC."""
        result = parse_date("Sat, 04 Jan 2026 12:30:00 +0200")
        assert result == datetime(2026, 1, 4, 10, 30, tzinfo=UTC)
        assert result.utcoffset() == timedelta(0)

    def test_parse_date_naive_is_utc(self):
        """Should treat dates without offset as UTC."""
        result = parse_date("2026-01-04 10:30:00")
        assert result.tzinfo is not None
        assert result.hour == 10

    @pytest.mark.parametrize("value", [None, "", "not a date", "yesterday-ish"])
    def test_parse_date_invalid_returns_none(self, value):
        """Should return None for missing or unparseable input."""
        assert parse_date(value) is None


@pytest.mark.unit
class TestDbTimestamps:
    """Tests for the SQLite timestamp format."""

    def test_to_db_timestamp_is_utc_text(self):
        """Should render an aware datetime as UTC text without offset."""
        dt = datetime(2026, 1, 4, 12, 30, 15, 999, tzinfo=timezone(timedelta(hours=2)))
        assert to_db_timestamp(dt) == "2026-01-04 10:30:15"

    def test_to_db_timestamp_naive(self):
        """Should take naive datetimes to be UTC already."""
        assert to_db_timestamp(datetime(2026, 1, 4, 10, 0)) == "2026-01-04 10:00:00"

    def test_to_db_timestamp_none(self):
        assert to_db_timestamp(None) is None

    def test_from_db_timestamp_round_trip(self):
        """Should parse stored text back into an aware UTC datetime."""
        dt = datetime(2026, 1, 4, 10, 30, 15, tzinfo=UTC)
        assert from_db_timestamp(to_db_timestamp(dt)) == dt

    def test_from_db_timestamp_sqlite_default(self):
        """Should read the CURRENT_TIMESTAMP format SQLite writes."""
        result = from_db_timestamp("2026-01-04 10:30:15")
        assert result == datetime(2026, 1, 4, 10, 30, 15, tzinfo=UTC)

    @pytest.mark.parametrize("value", [None, "", "garbage"])
    def test_from_db_timestamp_invalid(self, value):
        assert from_db_timestamp(value) is None

    def test_stored_text_orders_chronologically(self):
        """Should compare as strings in time order."""
        earlier = to_db_timestamp(datetime(2026, 1, 4, 9, 59, 59, tzinfo=UTC))
        later = to_db_timestamp(datetime(2026, 1, 4, 10, 0, 0, tzinfo=UTC))
        assert earlier < later


@pytest.mark.unit
class TestFormatDatetime:
    """Tests for format_datetime function."""

    def test_default_format(self):
        assert format_datetime(datetime(2026, 1, 4, 10, 5, 0)) == "2026-01-04 10:05:00"

    def test_custom_format(self):
        assert format_datetime(datetime(2026, 1, 4), "%d.%m.%Y") == "04.01.2026"

    def test_none_is_empty(self):
        assert format_datetime(None) == ""
