"""Fan-out broadcasters."""

from .broadcaster import IBroadcaster
from .polling import PollingBroadcaster
from .push import PushBroadcaster, PushSession
from .relay import RelayBroadcaster

__all__ = [
    "IBroadcaster",
    "PollingBroadcaster",
    "PushBroadcaster",
    "PushSession",
    "RelayBroadcaster",
]
