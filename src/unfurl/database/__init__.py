"""Database layer."""

from unfurl.database.connection import DatabaseConnection, init_database
from unfurl.database.feed_repository import FeedRepository
from unfurl.database.repository import ArticleRepository

__all__ = [
    "DatabaseConnection",
    "init_database",
    "ArticleRepository",
    "FeedRepository",
]
