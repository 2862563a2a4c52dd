# tests/integration/test_connection.py
"""Integration tests for the SQLite connection wrapper."""

import pytest

from unfurl.database.connection import DatabaseConnection

INSERT_FEED = "INSERT INTO feeds (topic, url) VALUES (?, ?)"
FEED_ROW = ("science", "https://news.example.com/rss?q=science")


@pytest.mark.integration
class TestTransaction:
    """Tests for the single write path."""

    def test_commits_on_success(self, test_db, tmp_path):
        with test_db.transaction() as conn:
            conn.execute(INSERT_FEED, FEED_ROW)

        reader = DatabaseConnection(tmp_path / "test.db")
        try:
            count = reader.execute("SELECT COUNT(*) FROM feeds").fetchone()[0]
        finally:
            reader.close()
        assert count == 1

    def test_rolls_back_on_error(self, test_db):
        with pytest.raises(RuntimeError):
            with test_db.transaction() as conn:
                conn.execute(INSERT_FEED, FEED_ROW)
                raise RuntimeError("boom")

        assert test_db.execute("SELECT COUNT(*) FROM feeds").fetchone()[0] == 0

    def test_writes_only_through_transactions(self):
        for name in ("commit", "rollback", "__enter__"):
            assert not hasattr(DatabaseConnection, name)
