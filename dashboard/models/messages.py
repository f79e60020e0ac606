"""Chat message data models."""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum


class MessageKind(str, Enum):
    """Kinds of chat messages."""

    TEXT = "text"
    COMMAND = "command"
    DIRECT = "direct"
    OWNER_CALL = "owner-call"
    AGENT_RESPONSE = "agent-response"


@dataclass
class Message:
    """A single chat message. recipient_id of None means broadcast."""

    id: str
    sender_id: str
    recipient_id: str | None
    content: str
    kind: MessageKind
    timestamp: datetime
    read: bool = False

    @property
    def is_broadcast(self) -> bool:
        return self.recipient_id is None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "sender_id": self.sender_id,
            "recipient_id": self.recipient_id,
            "content": self.content,
            "kind": self.kind.value,
            "timestamp": self.timestamp.isoformat(),
            "read": self.read,
        }
