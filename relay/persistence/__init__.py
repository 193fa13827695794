"""
Persistence layer for the matchmaking relay.

Provides SQLite-based storage for user and ban records.
"""

from relay.persistence.database import (
    Database,
    get_database,
    init_database
)
from relay.persistence.models import (
    UserRecord,
    BanRecord
)
from relay.persistence.repository import BanRepository
from relay.persistence.store import BanStore, BanLookupStore, BanAdminStore


__all__ = [
    # Database
    "Database",
    "get_database",
    "init_database",

    # Models
    "UserRecord",
    "BanRecord",

    # Repository
    "BanRepository",

    # Async store
    "BanStore",
    "BanLookupStore",
    "BanAdminStore",
]
