"""
Ban administration: the operations behind the operator's ban/unban commands.
"""

import logging

from relay.errors import StoreUnavailable
from relay.notify import Notifier
from relay.persistence.store import BanAdminStore


logger = logging.getLogger(__name__)


class BanAdministration:
    """
    Bans and unbans identities.

    A change is applied to the primary user record first. Only when that
    actually modified a record is it mirrored into the ban-lookup table
    and announced through the notifier. The two writes are not atomic: if
    the mirror write fails the error is logged and re-raised, and the
    records stay out of step until the operator unbans and bans again.
    """

    def __init__(self, store: BanAdminStore, notifier: Notifier):
        self._store = store
        self._notifier = notifier

    async def ban(self, identity: str) -> int:
        """Ban an identity. Returns the number of user records modified."""
        return await self._apply(identity, banned=True)

    async def unban(self, identity: str) -> int:
        """Unban an identity. Returns the number of user records modified."""
        return await self._apply(identity, banned=False)

    async def _apply(self, identity: str, banned: bool) -> int:
        verb = "banned" if banned else "unbanned"

        affected = await self._store.set_banned(identity, banned)
        if not affected:
            logger.info(f"Identity {identity} not found or already {verb}.")
            return 0

        try:
            if banned:
                mirrored = await self._store.add_ban_record(identity)
            else:
                mirrored = await self._store.remove_ban_record(identity)
        except StoreUnavailable:
            logger.error(
                f"Identity {identity} {verb} in user records but the ban list "
                f"was not updated"
            )
            raise

        if mirrored:
            logger.info(f"Ban list updated for {identity}.")
        else:
            logger.warning(f"Ban list already up to date for {identity}.")

        logger.info(f"Identity {identity} {verb}.")
        await self._notifier.send(f"User {identity} has been {verb}.")
        return affected
