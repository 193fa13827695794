"""
WebSocket server for the matchmaking relay.

Main entry point that ties together connection management, the ban
store, liveness monitoring, the status page and the operator console.
"""

import asyncio
import logging
import signal
from typing import Any

import aiohttp
import websockets
from websockets.asyncio.server import ServerConnection, serve

from relay.config import settings
from relay.exit_log import write_exit_log
from relay.moderation import AdminConsole, BanAdministration, BanGate
from relay.moderation.console import open_stdin_reader
from relay.monitoring import (
    BACKEND,
    GAME,
    LivenessMonitor,
    MonitoredEndpoint,
    StatusPage,
    probe_port,
)
from relay.monitoring.liveness import Probe
from relay.network.connection_manager import ConnectionManager
from relay.notify import LogNotifier, Notifier, WebhookNotifier
from relay.persistence import BanRepository, BanStore, init_database


logger = logging.getLogger(__name__)


def default_endpoints() -> list[MonitoredEndpoint]:
    """The two processes the relay watches, in status page order."""
    return [
        MonitoredEndpoint(
            key=BACKEND,
            component="Backend",
            port=settings.BACKEND_PORT,
            interval=settings.BACKEND_POLL_INTERVAL,
        ),
        MonitoredEndpoint(
            key=GAME,
            component="Gameserver",
            port=settings.GAME_PORT,
            interval=settings.GAME_POLL_INTERVAL,
        ),
    ]


class RelayServer:
    """
    WebSocket matchmaking relay.

    Everything runs on one event loop: client handlers, the liveness
    polls, the status page and the operator console.
    """

    def __init__(
        self,
        host: str = None,
        port: int = None,
        db_path: str = None,
        webhook_url: str = None,
        console: bool = None,
        probe: Probe = probe_port,
    ):
        self.host = host or settings.HOST
        self.port = port or settings.PORT
        self._webhook_url = settings.WEBHOOK_URL if webhook_url is None else webhook_url
        self._console_enabled = settings.ADMIN_CONSOLE if console is None else console
        self._probe = probe

        # Ban store: one database, one long-lived connection per worker thread
        db = init_database(db_path)
        self._store = BanStore(BanRepository(db))

        # Created in start(), they need a running loop
        self._http_client: aiohttp.ClientSession | None = None
        self._notifier: Notifier = LogNotifier()

        self._monitor: LivenessMonitor | None = None
        self._connections: ConnectionManager | None = None
        self._status_page: StatusPage | None = None
        self._console_task: asyncio.Task | None = None
        self._stop_task: asyncio.Task | None = None

        # Server state
        self._server = None
        self._running = False
        self._shutdown_event = asyncio.Event()

    def _build(self) -> None:
        if self._webhook_url:
            self._http_client = aiohttp.ClientSession()
            self._notifier = WebhookNotifier(
                self._webhook_url,
                timeout=settings.NOTIFY_TIMEOUT,
                http_client=self._http_client,
            )

        self._monitor = LivenessMonitor(
            default_endpoints(), self._notifier, host=settings.PROBE_HOST, probe=self._probe
        )
        self._connections = ConnectionManager(
            BanGate(self._store, timeout=settings.BAN_CHECK_TIMEOUT),
            is_game_ready=lambda: self._monitor.is_eligible(GAME),
            fail_open=settings.BAN_CHECK_FAIL_OPEN,
        )
        self._status_page = StatusPage(
            self._monitor, self._connections.get_stats, title=settings.STATUS_TITLE
        )

    async def start(self) -> None:
        """Start every service and wait until shutdown is requested."""
        self._running = True
        self._shutdown_event.clear()
        self._build()

        await self._status_page.start(settings.STATUS_HOST, settings.STATUS_PORT)
        self._monitor.start()

        self._server = await serve(
            self._handle_client,
            self.host,
            self.port,
            ping_interval=30,
            ping_timeout=10,
        )

        logger.info(f"WebSocket server started on ws://{self.host}:{self.port}")

        if self._console_enabled:
            self._console_task = asyncio.create_task(self._run_console(), name="admin-console")

        # Wait for shutdown signal
        await self._shutdown_event.wait()

    async def stop(self) -> None:
        """Stop the server gracefully."""
        logger.info("Shutting down relay...")
        self._running = False

        if self._console_task:
            self._console_task.cancel()
            await asyncio.gather(self._console_task, return_exceptions=True)

        if self._server:
            self._server.close()
            await self._server.wait_closed()

        if self._monitor:
            await self._monitor.stop()

        if self._status_page:
            await self._status_page.stop()

        if self._http_client:
            await self._http_client.close()

        self._store.close()

        self._shutdown_event.set()
        logger.info("Relay stopped")

    def request_shutdown(self) -> None:
        """Request server shutdown (can be called from signal handler)."""
        if self._stop_task is None or self._stop_task.done():
            self._stop_task = asyncio.create_task(self.stop(), name="relay-stop")
            self._stop_task.add_done_callback(self._on_stopped)

    def _on_stopped(self, task: asyncio.Task) -> None:
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            logger.error("Shutdown failed", exc_info=error)
            self._shutdown_event.set()

    async def _run_console(self) -> None:
        console = AdminConsole(
            BanAdministration(self._store, self._notifier),
            status_provider=self.get_stats,
        )
        try:
            reader = await open_stdin_reader()
        except (OSError, ValueError) as e:
            logger.warning(f"Admin console disabled, stdin unusable: {e}")
            return
        await console.run(reader)

    async def _handle_client(self, websocket: ServerConnection) -> None:
        """Handle a client connection until it goes away."""
        connection = self._connections.on_connect(websocket)

        try:
            async for raw_message in websocket:
                if not self._running:
                    break

                await self._connections.on_message(connection, raw_message)

        except websockets.ConnectionClosed:
            logger.debug(f"Connection closed for {connection.connection_id}")
        except Exception as e:
            logger.exception(f"Error handling client {connection.connection_id}: {e}")
        finally:
            self._connections.on_disconnect(connection)

    def get_stats(self) -> dict[str, Any]:
        """Get server statistics."""
        return {
            "running": self._running,
            "liveness": self._monitor.snapshot() if self._monitor else {},
            "connections": self._connections.get_stats() if self._connections else {},
        }


async def run_server(host: str = None, port: int = None, db_path: str = None) -> None:
    """
    Run the relay.

    Sets up signal handlers for graceful shutdown and writes the exit log
    once the relay has stopped.
    """
    server = RelayServer(host, port, db_path)

    # Set up signal handlers
    loop = asyncio.get_running_loop()

    for sig in (signal.SIGTERM, signal.SIGINT):
        loop.add_signal_handler(sig, server.request_shutdown)

    try:
        await server.start()
    finally:
        # Clean up signal handlers
        for sig in (signal.SIGTERM, signal.SIGINT):
            loop.remove_signal_handler(sig)
        path = write_exit_log(settings.LOG_DIR)
        logger.info(f"Exit log written to {path}")


def main():
    """Entry point for running the relay."""
    # Configure logging
    logging.basicConfig(
        level=getattr(logging, settings.LOG_LEVEL),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )

    settings.ensure_directories()

    print(f"Starting matchmaking relay on ws://{settings.HOST}:{settings.PORT}")
    print(f"Status page on http://{settings.STATUS_HOST}:{settings.STATUS_PORT}/")
    print("Press Ctrl+C to stop")

    try:
        asyncio.run(run_server())
    except KeyboardInterrupt:
        print("\nRelay stopped")


if __name__ == "__main__":
    main()
