"""Participant data models."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import ClassVar


class ParticipantStatus(str, Enum):
    """Presence status of a participant."""

    ONLINE = "online"
    OFFLINE = "offline"
    BUSY = "busy"
    AWAY = "away"


class Role(str, Enum):
    """Participant roles."""

    AGENT = "agent"
    OWNER = "owner"


@dataclass
class Participant:
    """A chat identity shared by agents and the owner."""

    role: ClassVar[Role]

    id: str
    name: str
    color: str
    avatar: str
    status: ParticipantStatus = ParticipantStatus.OFFLINE
    current_task: str | None = None
    last_activity: datetime | None = None
    session_id: str | None = field(default=None, repr=False)  # bound push session

    @property
    def is_owner(self) -> bool:
        return self.role is Role.OWNER

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "color": self.color,
            "avatar": self.avatar,
            "status": self.status.value,
            "current_task": self.current_task,
            "last_activity": self.last_activity.isoformat() if self.last_activity else None,
            "role": self.role.value,
        }


@dataclass
class Agent(Participant):
    """An agent persona."""

    role: ClassVar[Role] = Role.AGENT


@dataclass
class Owner(Participant):
    """The single privileged user allowed to call any agent directly."""

    role: ClassVar[Role] = Role.OWNER

    status: ParticipantStatus = ParticipantStatus.ONLINE
    role_label: str = "Owner"
    can_manage_agents: bool = True
    can_call_agents: bool = True

    def to_dict(self) -> dict:
        data = super().to_dict()
        data.update(
            {
                "role_label": self.role_label,
                "can_manage_agents": self.can_manage_agents,
                "can_call_agents": self.can_call_agents,
            }
        )
        return data
