"""
Database connection management and initialization.
"""

import sqlite3
import threading
from pathlib import Path
from contextlib import contextmanager
from typing import Generator

from relay.config import settings


class Database:
    """
    Thread-safe SQLite database manager.

    Each thread that touches the database gets one long-lived connection,
    opened on first use and kept until close_all(). Store calls run on the
    event loop's worker threads, so this acts as a small connection pool.
    """

    _local = threading.local()
    _initialized = False
    _init_lock = threading.Lock()

    def __init__(self, db_path: str | None = None):
        self.db_path = str(db_path or settings.DATABASE_PATH)
        self._connections: set[sqlite3.Connection] = set()
        self._connections_lock = threading.Lock()
        self._ensure_directory()
        self._ensure_schema()

    def _ensure_directory(self) -> None:
        """Create database directory if it doesn't exist."""
        db_file = Path(self.db_path)
        db_file.parent.mkdir(parents=True, exist_ok=True)

    def _ensure_schema(self) -> None:
        """Initialize database schema (once per process)."""
        with Database._init_lock:
            if not Database._initialized:
                with self.get_connection() as conn:
                    self._create_tables(conn)
                Database._initialized = True

    @contextmanager
    def get_connection(self) -> Generator[sqlite3.Connection, None, None]:
        """
        Get a thread-local database connection.

        Usage:
            with db.get_connection() as conn:
                cursor = conn.execute("SELECT ...")

        The transaction is committed on success and rolled back on any
        exception; the connection itself stays open for reuse.
        """
        conn = getattr(self._local, "connection", None)
        # Connections from another Database or closed by close_all() are not reused
        if conn is None or conn not in self._connections:
            conn = self._create_connection()
            self._local.connection = conn

        try:
            yield conn
            conn.commit()
        except Exception:
            conn.rollback()
            raise

    def _create_connection(self) -> sqlite3.Connection:
        """Create a new database connection with optimal settings."""
        conn = sqlite3.connect(
            self.db_path,
            check_same_thread=False,
            timeout=30.0
        )

        # Use WAL mode for better concurrent access
        conn.execute("PRAGMA journal_mode = WAL")

        # Return rows as dictionaries
        conn.row_factory = sqlite3.Row

        with self._connections_lock:
            self._connections.add(conn)

        return conn

    def _create_tables(self, conn: sqlite3.Connection) -> None:
        """Create all database tables."""
        conn.executescript(SCHEMA_SQL)

    def close_all(self) -> None:
        """Close every connection opened by this database, on any thread."""
        with self._connections_lock:
            connections, self._connections = self._connections, set()
        for conn in connections:
            conn.close()


SCHEMA_SQL = """
-- Users table: primary account record, owned by the game backend
CREATE TABLE IF NOT EXISTS users (
    identity TEXT PRIMARY KEY,
    banned INTEGER NOT NULL DEFAULT 0,
    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
    updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
);

-- Banned users table: fast lookup consulted on every match request
CREATE TABLE IF NOT EXISTS banned_users (
    identity TEXT PRIMARY KEY,
    banned_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
);

CREATE INDEX IF NOT EXISTS idx_users_banned ON users(banned);
"""


# Global database instance
_db: Database | None = None


def get_database() -> Database:
    """Get or create the global database instance."""
    global _db
    if _db is None:
        _db = Database()
    return _db


def init_database(db_path: str | None = None) -> Database:
    """Initialize the database with optional custom path."""
    global _db
    # Reset the initialized flag for new database paths
    Database._initialized = False
    _db = Database(db_path)
    return _db
