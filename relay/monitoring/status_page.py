"""
Read-only HTTP status page.

GET /        short HTML summary for humans
GET /status  JSON with liveness records and relay statistics
"""

import html
import logging
from typing import Any, Callable

import aiohttp.web

from relay.enums import EndpointState
from relay.monitoring.liveness import LivenessMonitor


logger = logging.getLogger(__name__)


def html_response(text):
    return aiohttp.web.Response(
        text=text, content_type="text/html", charset="utf-8"
    )


class StatusPage:
    """aiohttp application serving the relay's liveness summary."""

    def __init__(
        self,
        monitor: LivenessMonitor,
        stats_provider: Callable[[], dict[str, Any]] | None = None,
        title: str = "Matchmaker",
    ):
        self._monitor = monitor
        self._stats_provider = stats_provider
        self._title = title
        self._runner: aiohttp.web.AppRunner | None = None

        self.app = aiohttp.web.Application()
        self.app.add_routes(
            [
                aiohttp.web.get("/", self.index_handler),
                aiohttp.web.get("/status", self.status_handler),
            ]
        )

    async def index_handler(self, request):
        """Plain HTML summary, one line per component."""
        lines = [f"{html.escape(self._title)} Status:", "Matchmaker is Online!!!"]
        for endpoint in self._monitor.snapshot().values():
            state = EndpointState(endpoint["state"])
            lines.append(f"{html.escape(endpoint['component'])} is {state.label}")
        return html_response("<br>".join(lines))

    async def status_handler(self, request):
        """Liveness records and relay statistics as JSON."""
        body = {"liveness": self._monitor.snapshot()}
        if self._stats_provider is not None:
            body["relay"] = self._stats_provider()
        return aiohttp.web.json_response(body)

    async def start(self, host: str, port: int) -> None:
        """Serve the application on host:port."""
        self._runner = aiohttp.web.AppRunner(self.app)
        await self._runner.setup()
        site = aiohttp.web.TCPSite(self._runner, host, port)
        await site.start()
        logger.info(f"Status page available on http://{host}:{port}/")

    async def stop(self) -> None:
        if self._runner is not None:
            await self._runner.cleanup()
            self._runner = None
