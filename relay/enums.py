"""
Enumerations used throughout the relay.
"""
from enum import Enum


class Action(str, Enum):
    """Actions carried in the message envelope."""
    # Client -> Relay
    MATCH = "match"

    # Relay -> Client
    BANNED = "banned"


class OutboundName(str, Enum):
    """Named relay -> client updates."""
    STATUS_UPDATE = "StatusUpdate"


class AssignmentState(str, Enum):
    """State field of a StatusUpdate payload."""
    SESSION_ASSIGNMENT = "SessionAssignment"


class ConnectionState(str, Enum):
    """Protocol state of a client connection."""
    CONNECTED = "CONNECTED"
    QUEUED = "QUEUED"
    ASSIGNED = "ASSIGNED"
    CLOSED = "CLOSED"


class EndpointState(str, Enum):
    """Last known liveness of a monitored endpoint."""
    UNKNOWN = "UNKNOWN"
    UP = "UP"
    DOWN = "DOWN"

    @classmethod
    def from_reachable(cls, reachable: bool) -> "EndpointState":
        return cls.UP if reachable else cls.DOWN

    @property
    def label(self) -> str:
        """Human readable form used in notifications and the status page."""
        return {
            EndpointState.UP: "ON",
            EndpointState.DOWN: "OFF",
            EndpointState.UNKNOWN: "Not Detected",
        }[self]
