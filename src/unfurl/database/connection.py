"""Database connection management."""

import atexit
import sqlite3
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Optional, Union

import structlog

logger = structlog.get_logger(__name__)

SCHEMA_PATH = Path(__file__).parent / "schema.sql"

# Global registry of connections for cleanup
_active_connections: list["DatabaseConnection"] = []

# Global write lock to serialize all database writes across connections
_write_lock = threading.RLock()


def _cleanup_all_connections() -> None:
    """Close all active connections on exit."""
    for conn in _active_connections[:]:
        try:
            conn.close()
        except sqlite3.Error as e:
            logger.warning("database_close_failed", path=str(conn.db_path), error=str(e))


atexit.register(_cleanup_all_connections)


class DatabaseConnection:
    """SQLite database connection manager."""

    def __init__(self, db_path: Union[str, Path]) -> None:
        """Initialize database connection.

        Args:
            db_path: Path to SQLite database file (``:memory:`` for tests)
        """
        self.db_path = Path(db_path) if str(db_path) != ":memory:" else db_path
        self._connection: Optional[sqlite3.Connection] = None

    @property
    def conn(self) -> sqlite3.Connection:
        """Get database connection."""
        return self.connect()

    def connect(self) -> sqlite3.Connection:
        """Get or create database connection, applying the schema if needed.

        Returns:
            SQLite connection object
        """
        if self._connection is None:
            self._connection = sqlite3.connect(
                str(self.db_path),
                timeout=30.0,
                check_same_thread=False,
            )

            self._connection.execute("PRAGMA foreign_keys = ON")
            # WAL lets readers proceed while a worker holds the write lock
            self._connection.execute("PRAGMA journal_mode = WAL")
            self._connection.execute("PRAGMA synchronous = NORMAL")
            self._connection.execute("PRAGMA busy_timeout = 30000")
            self._connection.row_factory = sqlite3.Row

            # Schema statements are all IF NOT EXISTS
            self._connection.executescript(SCHEMA_PATH.read_text(encoding="utf-8"))

            _active_connections.append(self)

            logger.info("database_connected", path=str(self.db_path))

        return self._connection

    def close(self) -> None:
        """Close database connection with a WAL checkpoint."""
        if self._connection:
            try:
                self._connection.execute("PRAGMA wal_checkpoint(TRUNCATE)")
            except sqlite3.Error as e:
                logger.warning("wal_checkpoint_failed", error=str(e))

            self._connection.close()
            self._connection = None

            if self in _active_connections:
                _active_connections.remove(self)

            logger.info("database_closed")

    def execute(self, query: str, params: tuple = ()) -> sqlite3.Cursor:
        """Execute a database query with thread safety.

        Args:
            query: SQL query string
            params: Query parameters

        Returns:
            Cursor object
        """
        conn = self.connect()
        is_write = query.strip().upper().startswith(("INSERT", "UPDATE", "DELETE", "REPLACE"))
        if is_write:
            with _write_lock:
                return conn.execute(query, params)
        return conn.execute(query, params)

    @contextmanager
    def transaction(self) -> Iterator[sqlite3.Connection]:
        """Hold the write lock across several statements and commit once.

        Rolls back and re-raises on error.
        """
        conn = self.connect()
        with _write_lock:
            try:
                yield conn
                conn.commit()
            except BaseException:
                conn.rollback()
                raise


def init_database(db_path: Union[str, Path]) -> DatabaseConnection:
    """Create the database file and schema.

    Args:
        db_path: Path to SQLite database file

    Returns:
        DatabaseConnection object
    """
    if str(db_path) != ":memory:":
        Path(db_path).parent.mkdir(parents=True, exist_ok=True)

    db = DatabaseConnection(db_path)
    db.connect()

    logger.info("database_initialized", path=str(db_path))

    return db
