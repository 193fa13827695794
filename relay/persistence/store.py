"""
Async facade over the ban repository.

SQLite calls block, so every operation runs on a worker thread and
surfaces failures as StoreUnavailable.
"""

import asyncio
import logging
import sqlite3
from typing import Callable, Protocol, TypeVar

from relay.errors import StoreUnavailable
from relay.persistence.models import BanRecord
from relay.persistence.repository import BanRepository


logger = logging.getLogger(__name__)

T = TypeVar("T")


class BanLookupStore(Protocol):
    """What the ban gate needs from a store."""

    async def find(self, identity: str) -> BanRecord | None: ...


class BanAdminStore(BanLookupStore, Protocol):
    """What ban administration needs from a store."""

    async def set_banned(self, identity: str, banned: bool) -> int: ...

    async def add_ban_record(self, identity: str) -> bool: ...

    async def remove_ban_record(self, identity: str) -> bool: ...


class BanStore:
    """sqlite-backed implementation of BanAdminStore."""

    def __init__(self, repository: BanRepository):
        self._repository = repository

    async def _run(self, operation: str, func: Callable[..., T], *args) -> T:
        try:
            return await asyncio.to_thread(func, *args)
        except sqlite3.Error as e:
            logger.error(f"Ban store {operation} failed: {e}")
            raise StoreUnavailable(operation, e) from e

    async def find(self, identity: str) -> BanRecord | None:
        return await self._run("find", self._repository.find_ban, identity)

    async def set_banned(self, identity: str, banned: bool) -> int:
        return await self._run("set_banned", self._repository.set_banned, identity, banned)

    async def add_ban_record(self, identity: str) -> bool:
        return await self._run("add_ban_record", self._repository.add_ban, identity)

    async def remove_ban_record(self, identity: str) -> bool:
        return await self._run("remove_ban_record", self._repository.remove_ban, identity)

    def close(self) -> None:
        self._repository.db.close_all()
