"""
Admission check consulted before a connection may join the match queue.
"""

import asyncio
import logging

from relay.errors import StoreUnavailable
from relay.persistence.store import BanLookupStore


logger = logging.getLogger(__name__)


class BanGate:
    """
    Answers whether an identity is banned.

    Every call is a fresh store query: nothing is cached and nothing is
    retried. A store failure or a query slower than `timeout` seconds
    raises StoreUnavailable; what that means for admission is the
    caller's policy.
    """

    def __init__(self, store: BanLookupStore, timeout: float | None = None):
        self._store = store
        self._timeout = timeout

    async def is_banned(self, identity: str) -> bool:
        try:
            record = await asyncio.wait_for(
                self._store.find(identity), timeout=self._timeout
            )
        except asyncio.TimeoutError as e:
            logger.error(f"Ban check for {identity} timed out after {self._timeout}s")
            raise StoreUnavailable("find", e) from e

        return record is not None
