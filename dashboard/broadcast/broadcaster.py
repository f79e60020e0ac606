"""Broadcaster interface shared by every fan-out transport."""

from typing import Protocol

from ..models import EventName


class IBroadcaster(Protocol):
    """Delivers store-generated events to every connected observer."""

    mode: str

    async def emit(self, event: EventName, payload: dict) -> None:
        """Fan out one event. Must preserve emission order per observer."""
        ...

    def client_config(self) -> dict:
        """Describe how clients should observe this transport."""
        ...
