"""Polling broadcaster: nothing is pushed, observers diff snapshots."""

from ..logging_config import get_logger
from ..models import EventName

logger = get_logger(__name__)


class PollingBroadcaster:
    """No-op transport for deployments where clients poll the REST surface."""

    mode = "polling"

    def __init__(self, poll_interval: float = 2.0):
        self._poll_interval = poll_interval
        self.emitted = 0

    async def emit(self, event: EventName, payload: dict) -> None:
        self.emitted += 1
        logger.debug("Event %s left for pollers", event.value)

    def client_config(self) -> dict:
        return {"mode": self.mode, "interval_seconds": self._poll_interval}
