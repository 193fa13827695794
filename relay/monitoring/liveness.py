"""
Liveness polling for the processes the relay depends on.

A monitored process is considered up when its well-known TCP port is
already taken: the probe tries to bind a listener there and treats
EADDRINUSE as "someone is listening".
"""

import asyncio
import errno
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable

from relay.enums import EndpointState
from relay.errors import ProbeError
from relay.notify import Notifier


logger = logging.getLogger(__name__)

GAME = "game"
BACKEND = "backend"

Probe = Callable[[str, int], Awaitable[bool]]


async def probe_port(host: str, port: int) -> bool:
    """
    Return True if something already listens on host:port.

    A successful bind means the port is free: the listener is closed again
    right away and the endpoint is reported down.
    """
    loop = asyncio.get_running_loop()
    try:
        server = await loop.create_server(asyncio.Protocol, host, port)
    except OSError as e:
        if e.errno == errno.EADDRINUSE:
            return True
        raise ProbeError(port, e) from e

    server.close()
    await server.wait_closed()
    return False


@dataclass
class MonitoredEndpoint:
    """A process watched through its listening port."""
    key: str
    component: str
    port: int
    interval: float


@dataclass
class LivenessRecord:
    """Last known state of one endpoint."""
    state: EndpointState = EndpointState.UNKNOWN
    previous: EndpointState = EndpointState.UNKNOWN
    changed_at: datetime | None = None
    checked_at: datetime | None = None

    @property
    def is_up(self) -> bool:
        return self.state is EndpointState.UP

    def observe(self, reachable: bool) -> bool:
        """
        Record a probe result.

        Returns True when the result is a transition that must be announced.
        Leaving UNKNOWN for DOWN is recorded but not announced: before the
        first probe the endpoint counts as down.
        """
        new_state = EndpointState.from_reachable(reachable)
        now = datetime.now(timezone.utc)
        self.checked_at = now

        if new_state is self.state:
            return False

        old_state = self.state
        self.previous = old_state
        self.state = new_state
        self.changed_at = now

        return not (old_state is EndpointState.UNKNOWN and new_state is EndpointState.DOWN)

    def to_dict(self) -> dict[str, Any]:
        return {
            "state": self.state.value,
            "previous": self.previous.value,
            "changed_at": self.changed_at.isoformat() if self.changed_at else None,
            "checked_at": self.checked_at.isoformat() if self.checked_at else None,
        }


class LivenessMonitor:
    """
    Polls every endpoint on its own interval and announces state changes.

    Only the monitor writes the records; everyone else reads them through
    is_eligible() and snapshot().
    """

    def __init__(
        self,
        endpoints: list[MonitoredEndpoint],
        notifier: Notifier,
        host: str = "0.0.0.0",
        probe: Probe = probe_port,
    ):
        self._endpoints: dict[str, MonitoredEndpoint] = {e.key: e for e in endpoints}
        self._records: dict[str, LivenessRecord] = {e.key: LivenessRecord() for e in endpoints}
        self._notifier = notifier
        self._host = host
        self._probe = probe
        self._tasks: list[asyncio.Task] = []

    # =========================================================================
    # Queries
    # =========================================================================

    def is_eligible(self, key: str = GAME) -> bool:
        """Whether the endpoint is currently up."""
        record = self._records.get(key)
        return record is not None and record.is_up

    def snapshot(self) -> dict[str, dict[str, Any]]:
        """Current state of every endpoint, keyed by endpoint key."""
        return {
            key: {
                "component": self._endpoints[key].component,
                "port": self._endpoints[key].port,
                **record.to_dict(),
            }
            for key, record in self._records.items()
        }

    # =========================================================================
    # Polling
    # =========================================================================

    async def poll_once(self, key: str) -> bool:
        """
        Probe one endpoint and update its record.

        Returns True if the probe produced a notification.
        """
        endpoint = self._endpoints[key]
        record = self._records[key]

        try:
            reachable = await self._probe(self._host, endpoint.port)
        except ProbeError as e:
            logger.warning(f"{endpoint.component} probe failed, treating as down: {e}")
            reachable = False
        except Exception:
            logger.exception(f"Unexpected error probing {endpoint.component}, treating as down")
            reachable = False

        if not record.observe(reachable):
            return False

        message = f"{endpoint.component} is {record.state.label}"
        logger.info(message)
        await self._notifier.send(message)
        return True

    async def _poll_forever(self, endpoint: MonitoredEndpoint) -> None:
        while True:
            try:
                await self.poll_once(endpoint.key)
            except Exception:
                logger.exception(f"Polling {endpoint.component} failed")
            await asyncio.sleep(endpoint.interval)

    def start(self) -> None:
        """Start one polling task per endpoint."""
        if self._tasks:
            return
        for endpoint in self._endpoints.values():
            logger.info(
                f"Monitoring {endpoint.component} on port {endpoint.port} "
                f"every {endpoint.interval}s"
            )
            self._tasks.append(
                asyncio.create_task(
                    self._poll_forever(endpoint), name=f"liveness-{endpoint.key}"
                )
            )

    async def stop(self) -> None:
        """Cancel the polling tasks and wait for them to finish."""
        tasks, self._tasks = self._tasks, []
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
