"""
Message protocol for client-relay communication.

Inbound messages are JSON objects with an "action" field and a "payload"
object. Older clients send the payload under "data" and the identity as
"email"; both spellings are accepted.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any
import json
import uuid

from relay.enums import Action, AssignmentState, OutboundName
from relay.errors import ProtocolError


BANNED_TEXT = "You are banned!"


@dataclass
class Message:
    """Inbound message envelope."""
    action: str
    payload: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_json(cls, json_str: str | bytes) -> "Message":
        """Deserialize message from JSON string."""
        try:
            raw = json.loads(json_str)
        except (ValueError, RecursionError) as e:
            raise ProtocolError(f"Invalid JSON: {e}") from e
        return cls.from_dict(raw)

    @classmethod
    def from_dict(cls, raw: Any) -> "Message":
        """Create message from dictionary."""
        if not isinstance(raw, dict):
            raise ProtocolError("Message must be a JSON object")

        action = raw.get("action")
        if not isinstance(action, str):
            raise ProtocolError("Message has no action")

        payload = raw.get("payload", raw.get("data"))
        if payload is None:
            payload = {}
        if not isinstance(payload, dict):
            raise ProtocolError("Message payload must be an object")

        return cls(action=action, payload=payload)

    def require_identity(self) -> str:
        """Return the identity carried by a match request."""
        identity = self.payload.get("identity", self.payload.get("email"))
        if not isinstance(identity, str) or not identity.strip():
            raise ProtocolError(f"{self.action} request without identity")
        return identity.strip()


@dataclass
class SessionAssignment:
    """A session id handed to exactly one matched connection."""
    match_id: str
    assigned_at: datetime

    @classmethod
    def generate(cls) -> "SessionAssignment":
        return cls(
            match_id=uuid.uuid4().hex,
            assigned_at=datetime.now(timezone.utc),
        )


# =============================================================================
# Relay -> Client Messages
# =============================================================================

@dataclass
class BannedMessage:
    """Tells a client its match request was refused."""
    message: str = BANNED_TEXT

    def to_dict(self) -> dict:
        return {"action": Action.BANNED.value, "message": self.message}

    def to_json(self) -> str:
        return json.dumps(self.to_dict())


@dataclass
class StatusUpdateMessage:
    """Delivers a session assignment to the head of the queue."""
    assignment: SessionAssignment

    def to_dict(self) -> dict:
        return {
            "payload": {
                "matchId": self.assignment.match_id,
                "state": AssignmentState.SESSION_ASSIGNMENT.value,
            },
            "name": OutboundName.STATUS_UPDATE.value,
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict())


OutboundMessage = BannedMessage | StatusUpdateMessage


def parse_message(raw: str | bytes) -> Message:
    """
    Parse a raw WebSocket frame into a Message.

    Raises ProtocolError for anything that is not a JSON object with an
    action. Payload validation is left to the action's handler.
    """
    return Message.from_json(raw)
