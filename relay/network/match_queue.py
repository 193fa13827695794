"""
FIFO queue of connections waiting for a session.
"""

from collections import OrderedDict
from typing import TYPE_CHECKING

from relay.enums import ConnectionState

if TYPE_CHECKING:
    from relay.network.connection_manager import Connection


class MatchQueue:
    """
    Connections in arrival order.

    Keyed by connection id, so a connection is never queued twice and
    removal from the middle is O(1) without reordering the rest.
    Mutations never await; callers on the event loop get them as
    indivisible steps.
    """

    def __init__(self):
        self._entries: "OrderedDict[str, Connection]" = OrderedDict()

    def push(self, connection: "Connection") -> bool:
        """Append to the tail. Returns False if already queued."""
        if connection.connection_id in self._entries:
            return False
        self._entries[connection.connection_id] = connection
        return True

    def pop_front(self) -> "Connection | None":
        """Remove and return the head, or None if nothing is waiting."""
        while self._entries:
            _, connection = self._entries.popitem(last=False)
            # Closed connections should already be gone; skip any leftover
            if connection.state is not ConnectionState.CLOSED:
                return connection
        return None

    def remove(self, connection: "Connection") -> bool:
        """Remove a specific connection. Returns False if it was not queued."""
        return self._entries.pop(connection.connection_id, None) is not None

    def __contains__(self, connection: "Connection") -> bool:
        return connection.connection_id in self._entries

    def __len__(self) -> int:
        return len(self._entries)
