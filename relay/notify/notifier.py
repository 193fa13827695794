"""
Outbound operator notifications.

Notifiers are fire-and-forget: send() never raises. Delivery failures are
logged and dropped.
"""

import asyncio
import contextlib
import logging
from typing import Protocol

import aiohttp

from relay.errors import NotificationFailure


logger = logging.getLogger(__name__)


class Notifier(Protocol):
    async def send(self, message: str) -> None: ...


class LogNotifier:
    """Notifier used when no webhook is configured."""

    async def send(self, message: str) -> None:
        logger.info(f"Notification: {message}")


class WebhookNotifier:
    """Posts messages to a Discord-style webhook as {"content": message}."""

    def __init__(self, url: str, timeout: float = 10.0, http_client=None):
        self._url = url
        self._timeout = aiohttp.ClientTimeout(total=timeout)
        # Shared session owned by the caller, used by the relay and tests
        self._http_client = http_client

    @contextlib.asynccontextmanager
    async def _client(self):
        if self._http_client is not None:
            yield self._http_client
            return

        async with aiohttp.ClientSession(timeout=self._timeout) as client:
            yield client

    async def _post(self, message: str) -> None:
        try:
            async with self._client() as client:
                async with client.post(
                    self._url, json={"content": message}, timeout=self._timeout
                ) as response:
                    if response.status >= 400:
                        body = await response.text()
                        raise NotificationFailure(
                            f"webhook answered {response.status}: {body[:200]}"
                        )
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise NotificationFailure(f"webhook unreachable: {e!r}") from e

    async def send(self, message: str) -> None:
        try:
            await self._post(message)
        except NotificationFailure as e:
            logger.error(f"Error sending notification {message!r}: {e}")
