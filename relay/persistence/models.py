"""
Data models for database operations.

These are simple dataclasses that map to database rows.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Any


@dataclass
class UserRecord:
    """Primary account record."""
    identity: str
    banned: bool = False
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> "UserRecord":
        """Create from database row."""
        return cls(
            identity=row["identity"],
            banned=bool(row["banned"]),
            created_at=row["created_at"],
            updated_at=row["updated_at"]
        )


@dataclass
class BanRecord:
    """Entry in the fast ban-lookup table."""
    identity: str
    banned_at: datetime | None = None

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> "BanRecord":
        """Create from database row."""
        return cls(
            identity=row["identity"],
            banned_at=row["banned_at"]
        )
