"""Core data models for the agent dashboard."""

from .activities import Activity, ActivityType
from .events import BusEvent, EventName
from .messages import Message, MessageKind
from .participants import Agent, Owner, Participant, ParticipantStatus, Role

__all__ = [
    # Participants
    "Participant",
    "Agent",
    "Owner",
    "ParticipantStatus",
    "Role",
    # Messages
    "Message",
    "MessageKind",
    # Activities
    "Activity",
    "ActivityType",
    # Events
    "BusEvent",
    "EventName",
]
