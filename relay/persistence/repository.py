"""
Repository layer for ban persistence operations.

Handles all database CRUD operations on user and ban records.
"""

from relay.persistence.database import Database, get_database
from relay.persistence.models import UserRecord, BanRecord


class BanRepository:
    """
    Repository for user and ban records.

    All methods are synchronous; the async BanStore runs them on worker
    threads.
    """

    def __init__(self, database: Database | None = None):
        self.db = database or get_database()

    # =========================================================================
    # User Records
    # =========================================================================

    def create_user(self, identity: str, banned: bool = False) -> UserRecord:
        """Create a user record."""
        with self.db.get_connection() as conn:
            conn.execute(
                "INSERT INTO users (identity, banned) VALUES (?, ?)",
                (identity, int(banned))
            )
        return UserRecord(identity=identity, banned=banned)

    def get_user(self, identity: str) -> UserRecord | None:
        """Get a user by identity."""
        with self.db.get_connection() as conn:
            cursor = conn.execute(
                "SELECT * FROM users WHERE identity = ?",
                (identity,)
            )
            row = cursor.fetchone()

            if row:
                return UserRecord.from_row(dict(row))
            return None

    def set_banned(self, identity: str, banned: bool) -> int:
        """
        Set the banned flag on a user record.

        Returns the number of records actually modified: 0 when the user
        does not exist or is already in the requested state.
        """
        with self.db.get_connection() as conn:
            cursor = conn.execute(
                """
                UPDATE users
                SET banned = ?,
                    updated_at = CURRENT_TIMESTAMP
                WHERE identity = ? AND banned != ?
                """,
                (int(banned), identity, int(banned))
            )
            return cursor.rowcount

    def list_banned_users(self) -> list[UserRecord]:
        """List users flagged as banned."""
        with self.db.get_connection() as conn:
            cursor = conn.execute(
                "SELECT * FROM users WHERE banned = 1 ORDER BY identity"
            )
            return [UserRecord.from_row(dict(row)) for row in cursor.fetchall()]

    # =========================================================================
    # Ban Lookup Records
    # =========================================================================

    def find_ban(self, identity: str) -> BanRecord | None:
        """Get the ban-lookup record for an identity, if any."""
        with self.db.get_connection() as conn:
            cursor = conn.execute(
                "SELECT * FROM banned_users WHERE identity = ?",
                (identity,)
            )
            row = cursor.fetchone()

            if row:
                return BanRecord.from_row(dict(row))
            return None

    def add_ban(self, identity: str) -> bool:
        """Insert a ban-lookup record. Returns False if it already existed."""
        with self.db.get_connection() as conn:
            cursor = conn.execute(
                "INSERT OR IGNORE INTO banned_users (identity) VALUES (?)",
                (identity,)
            )
            return cursor.rowcount > 0

    def remove_ban(self, identity: str) -> bool:
        """Delete a ban-lookup record. Returns False if there was none."""
        with self.db.get_connection() as conn:
            cursor = conn.execute(
                "DELETE FROM banned_users WHERE identity = ?",
                (identity,)
            )
            return cursor.rowcount > 0
