"""
Operator text console.

Reads one command per line:

    ban <identity>
    unban <identity>
    status
    help
"""

import asyncio
import json
import logging
import sys
from typing import Any, Callable

from relay.errors import StoreUnavailable
from relay.moderation.admin import BanAdministration


logger = logging.getLogger(__name__)

USAGE = (
    'Invalid command. Use "ban <identity>" to ban someone, '
    '"unban <identity>" to unban someone or "status" for relay status.'
)


class AdminConsole:
    """Parses operator commands and runs them against ban administration."""

    def __init__(
        self,
        admin: BanAdministration,
        status_provider: Callable[[], dict[str, Any]] | None = None,
        output: Callable[[str], None] = print,
    ):
        self._admin = admin
        self._status_provider = status_provider
        self._output = output

    async def handle_line(self, line: str) -> str | None:
        """Run one command line and return the reply for the operator."""
        parts = line.strip().split(maxsplit=1)
        if not parts:
            return None

        command = parts[0].lower()
        argument = parts[1].strip() if len(parts) > 1 else ""

        if command in ("ban", "unban"):
            if not argument:
                return f"Usage: {command} <identity>"
            return await self._moderate(command, argument)

        if command == "status":
            if self._status_provider is None:
                return "Status unavailable"
            return json.dumps(self._status_provider(), indent=2, default=str)

        if command == "help":
            return __doc__.strip()

        return USAGE

    async def _moderate(self, command: str, identity: str) -> str:
        action = self._admin.ban if command == "ban" else self._admin.unban
        try:
            affected = await action(identity)
        except StoreUnavailable as e:
            logger.error(f"Error running {command} {identity}: {e}")
            return f"Error running {command} for {identity}: store unavailable"

        if affected:
            return f"{identity} {command}ned."
        if command == "ban":
            return f"{identity} not found or already banned."
        return f"{identity} not found or already unbanned."

    async def run(self, reader: asyncio.StreamReader) -> None:
        """Process commands until the reader hits EOF."""
        while True:
            raw = await reader.readline()
            if not raw:
                logger.info("Admin console input closed")
                return

            reply = await self.handle_line(raw.decode(errors="replace"))
            if reply:
                self._output(reply)


async def open_stdin_reader() -> asyncio.StreamReader:
    """Wrap the process's stdin in an asyncio stream reader."""
    loop = asyncio.get_running_loop()
    reader = asyncio.StreamReader()
    protocol = asyncio.StreamReaderProtocol(reader)
    await loop.connect_read_pipe(lambda: protocol, sys.stdin)
    return reader
