"""Activity log data models."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum


class ActivityType(str, Enum):
    """Kinds of audit records."""

    LOGIN = "login"
    LOGOUT = "logout"
    MESSAGE = "message"
    TASK = "task"
    COMMAND = "command"
    DISCONNECT = "disconnect"


@dataclass(frozen=True)
class Activity:
    """A human-readable record of a state-affecting event."""

    id: str
    actor_id: str
    type: ActivityType
    description: str
    timestamp: datetime
    metadata: dict = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "actor_id": self.actor_id,
            "type": self.type.value,
            "description": self.description,
            "timestamp": self.timestamp.isoformat(),
            "metadata": dict(self.metadata),
        }
