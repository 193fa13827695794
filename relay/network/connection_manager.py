"""
Connection manager for WebSocket clients.

Tracks connected clients and their protocol state, parses inbound
messages, runs match requests through the ban gate and the match queue,
and delivers session assignments.
"""

import logging
import uuid
from dataclasses import dataclass, field
from typing import Any, Callable

from websockets.asyncio.server import ServerConnection

from relay.enums import Action, ConnectionState
from relay.errors import ProtocolError, StoreUnavailable
from relay.moderation.ban_gate import BanGate
from relay.network.match_queue import MatchQueue
from relay.protocol import (
    BannedMessage,
    Message,
    OutboundMessage,
    SessionAssignment,
    StatusUpdateMessage,
    parse_message,
)


logger = logging.getLogger(__name__)


# Allowed protocol state transitions; CLOSED is reachable from anywhere
_TRANSITIONS: dict[ConnectionState, set[ConnectionState]] = {
    ConnectionState.CONNECTED: {ConnectionState.QUEUED},
    ConnectionState.QUEUED: {ConnectionState.ASSIGNED},
    ConnectionState.ASSIGNED: {ConnectionState.QUEUED},
    ConnectionState.CLOSED: set(),
}


@dataclass(eq=False)
class Connection:
    """Tracks one client channel and its protocol state."""
    websocket: ServerConnection
    connection_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    state: ConnectionState = ConnectionState.CONNECTED
    identity: str | None = None
    match_id: str | None = None

    def transition(self, new_state: ConnectionState) -> None:
        if new_state is ConnectionState.CLOSED:
            self.state = new_state
            return
        if new_state not in _TRANSITIONS[self.state]:
            raise ValueError(f"Connection cannot go from {self.state.value} to {new_state.value}")
        self.state = new_state

    @property
    def is_closed(self) -> bool:
        return self.state is ConnectionState.CLOSED


class ConnectionManager:
    """
    Owns every live connection and the match queue.

    The queue is only touched between suspension points: the ban check is
    awaited before the push, and the assignment is sent after the pop, so
    no other handler can observe a half-done push/pop sequence.
    """

    def __init__(
        self,
        ban_gate: BanGate,
        is_game_ready: Callable[[], bool],
        fail_open: bool = True,
    ):
        self._ban_gate = ban_gate
        self._is_game_ready = is_game_ready
        self._fail_open = fail_open

        # websocket -> Connection
        self._connections: dict[ServerConnection, Connection] = {}

        self._queue = MatchQueue()
        self._assignments_sent = 0

    # =========================================================================
    # Connection Lifecycle
    # =========================================================================

    def on_connect(self, websocket: ServerConnection) -> Connection:
        """Register a new client connection."""
        connection = Connection(websocket=websocket)
        self._connections[websocket] = connection
        logger.info(f"Client connected ({connection.connection_id})")
        return connection

    def on_disconnect(self, connection: Connection) -> bool:
        """
        Close a connection and drop it from the queue.

        Returns True if it was still waiting in the queue.
        """
        was_queued = self._queue.remove(connection)
        connection.transition(ConnectionState.CLOSED)
        self._connections.pop(connection.websocket, None)

        if was_queued:
            logger.info(f"Client disconnected while queued ({connection.connection_id})")
        else:
            logger.info(f"Client disconnected ({connection.connection_id})")

        return was_queued

    async def on_message(self, connection: Connection, raw_message: str | bytes) -> None:
        """
        Handle one inbound frame.

        Nothing is ever sent back for a bad frame: malformed messages and
        unsupported actions are logged and dropped, and the connection
        stays open.
        """
        logger.debug(f"Received from {connection.connection_id}: {raw_message!r}")

        try:
            message = parse_message(raw_message)
        except ProtocolError as e:
            logger.warning(f"Dropping message from {connection.connection_id}: {e}")
            return

        handler = self._get_handler(message.action)
        if not handler:
            logger.warning(
                f"Invalid action {message.action!r} from {connection.connection_id}"
            )
            return

        try:
            await handler(connection, message)
        except ProtocolError as e:
            logger.warning(f"Dropping {message.action} from {connection.connection_id}: {e}")

    def _get_handler(self, action: str):
        """Get the handler method for an action."""
        handlers = {
            Action.MATCH.value: self._handle_match,
        }
        return handlers.get(action)

    # =========================================================================
    # Matchmaking
    # =========================================================================

    async def _handle_match(self, connection: Connection, message: Message) -> None:
        """Handle a match request: ban check, enqueue, assign if the game server is up."""
        identity = message.require_identity()

        if connection.state is ConnectionState.QUEUED:
            logger.info(f"{identity} is already queued, ignoring match request")
            return

        try:
            banned = await self._ban_gate.is_banned(identity)
        except StoreUnavailable as e:
            if not self._fail_open:
                logger.error(f"Ban check failed for {identity}, refusing match request: {e}")
                return
            logger.error(f"Ban check failed for {identity}, admitting anyway: {e}")
            banned = False

        if banned:
            logger.info(f"Refused match request from banned identity {identity}")
            await self.send(connection, BannedMessage())
            return

        # The ban check suspended; the client may have gone or re-queued meanwhile
        if connection.is_closed:
            logger.info(f"{identity} disconnected during ban check")
            return
        if connection.state is ConnectionState.QUEUED:
            return

        connection.identity = identity
        self._queue.push(connection)
        connection.transition(ConnectionState.QUEUED)
        logger.info(f"Player {identity} added to the queue ({len(self._queue)} waiting)")

        if self._is_game_ready():
            await self._assign_head()

    async def _assign_head(self) -> SessionAssignment | None:
        """Pop the head of the queue and send it a fresh session assignment."""
        player = self._queue.pop_front()
        if player is None:
            return None

        assignment = SessionAssignment.generate()
        player.transition(ConnectionState.ASSIGNED)
        player.match_id = assignment.match_id
        self._assignments_sent += 1

        if await self.send(player, StatusUpdateMessage(assignment)):
            logger.info(f"Player {player.identity} assigned to session {assignment.match_id}")
        else:
            logger.warning(
                f"Session {assignment.match_id} could not be delivered to {player.identity}"
            )
        return assignment

    # =========================================================================
    # Queries
    # =========================================================================

    @property
    def queue(self) -> MatchQueue:
        return self._queue

    def get_connection(self, websocket: ServerConnection) -> Connection | None:
        """Get connection info for a websocket."""
        return self._connections.get(websocket)

    def get_stats(self) -> dict[str, Any]:
        """Get connection statistics."""
        states: dict[str, int] = {}
        for connection in self._connections.values():
            states[connection.state.value] = states.get(connection.state.value, 0) + 1

        return {
            "total_connections": len(self._connections),
            "queued": len(self._queue),
            "assignments_sent": self._assignments_sent,
            "connections_by_state": states,
        }

    # =========================================================================
    # Messaging
    # =========================================================================

    async def send(self, connection: Connection, message: OutboundMessage) -> bool:
        """
        Send a message to a connection.

        Returns:
            True if sent successfully, False on error
        """
        try:
            await connection.websocket.send(message.to_json())
            return True
        except Exception as e:
            logger.error(f"Failed to send message to {connection.connection_id}: {e}")
            return False
