"""Relay broadcaster: publishes events to a hosted Pusher channel."""

import asyncio
from typing import Any

import pusher

from ..config import Settings
from ..logging_config import get_logger
from ..models import EventName

logger = get_logger(__name__)


class RelayBroadcaster:
    """Publishes every event to one shared channel.

    The relay delivers at least once per subscriber with no cross-subscriber
    ordering, so subscribers deduplicate by the entity id carried in each payload.
    """

    mode = "relay"

    def __init__(self, client: Any, key: str, cluster: str, channel: str = "dashboard"):
        self._client = client
        self._key = key
        self._cluster = cluster
        self._channel = channel
        self.failures = 0

    @classmethod
    def from_settings(cls, settings: Settings) -> "RelayBroadcaster":
        """Create a broadcaster backed by a real Pusher client."""
        if not (settings.pusher_app_id and settings.pusher_key and settings.pusher_secret):
            raise ValueError("PUSHER_APP_ID, PUSHER_KEY and PUSHER_SECRET must be set for relay mode")

        client = pusher.Pusher(
            app_id=settings.pusher_app_id,
            key=settings.pusher_key,
            secret=settings.pusher_secret,
            cluster=settings.pusher_cluster,
            ssl=True,
        )
        return cls(client, settings.pusher_key, settings.pusher_cluster, settings.pusher_channel)

    @property
    def channel(self) -> str:
        return self._channel

    async def emit(self, event: EventName, payload: dict) -> None:
        """Publish one event. Failures are logged; the store mutation stands."""
        try:
            # The pusher client is blocking
            await asyncio.to_thread(self._client.trigger, self._channel, event.value, payload)
        except Exception as e:
            self.failures += 1
            logger.error(
                "Relay publish of %s to %s failed: %s",
                event.value,
                self._channel,
                e,
                extra={"context": {"channel": self._channel, "event": event.value, "failures": self.failures}},
            )

    def client_config(self) -> dict:
        return {
            "mode": self.mode,
            "key": self._key,
            "cluster": self._cluster,
            "channel": self._channel,
        }
