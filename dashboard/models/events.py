"""Fan-out event models."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum


class EventName(str, Enum):
    """Events delivered to observers."""

    INIT = "init"
    PARTICIPANT_UPDATED = "participant-updated"
    MESSAGE_NEW = "message-new"
    MESSAGE_READ = "message-read"
    ACTIVITY_NEW = "activity-new"
    # Push channel only
    MESSAGE_DIRECT = "message-direct"
    AGENT_COMMAND = "agent-command"
    TYPING = "typing"
    ACK = "ack"
    ERROR = "error"


@dataclass
class BusEvent:
    """An event queued for delivery to one observer."""

    name: EventName
    payload: dict
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_frame(self) -> dict:
        """Wire frame sent over the push channel."""
        return {"event": self.name.value, "data": self.payload}
