"""Agent team dashboard."""

from .app import Application, IApplication
from .broadcast import (
    IBroadcaster,
    PollingBroadcaster,
    PushBroadcaster,
    RelayBroadcaster,
)
from .client import DashboardView, PollingReconciler
from .config import Settings
from .dispatch import CommandDispatcher, ICommandDispatcher
from .errors import (
    DashboardError,
    EmptyContent,
    Forbidden,
    GatewayFailure,
    GatewayTimeout,
    InvalidSender,
    NotFound,
)
from .gateway import AgentGateway, IAgentResponder
from .health import HttpHealthProbe, IHealthProbe
from .models import (
    Activity,
    ActivityType,
    Agent,
    BusEvent,
    EventName,
    Message,
    MessageKind,
    Owner,
    Participant,
    ParticipantStatus,
)
from .store import EntityStore, IEntityStore

__all__ = [
    # Application
    "Application",
    "IApplication",
    "Settings",
    # Models
    "Participant",
    "Agent",
    "Owner",
    "ParticipantStatus",
    "Message",
    "MessageKind",
    "Activity",
    "ActivityType",
    "BusEvent",
    "EventName",
    # Errors
    "DashboardError",
    "NotFound",
    "InvalidSender",
    "EmptyContent",
    "Forbidden",
    "GatewayTimeout",
    "GatewayFailure",
    # Components
    "IEntityStore",
    "EntityStore",
    "IBroadcaster",
    "PushBroadcaster",
    "RelayBroadcaster",
    "PollingBroadcaster",
    "IAgentResponder",
    "AgentGateway",
    "ICommandDispatcher",
    "CommandDispatcher",
    "IHealthProbe",
    "HttpHealthProbe",
    "DashboardView",
    "PollingReconciler",
]
