"""
Network layer for the matchmaking relay.

Provides the WebSocket server, connection management and the match queue.
"""

from relay.network.connection_manager import Connection, ConnectionManager
from relay.network.match_queue import MatchQueue
from relay.network.server import RelayServer, run_server


__all__ = [
    "Connection",
    "ConnectionManager",
    "MatchQueue",
    "RelayServer",
    "run_server",
]
