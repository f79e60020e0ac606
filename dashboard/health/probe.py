"""Optional agent liveness probe and the status overlay it informs."""

import copy
from dataclasses import dataclass
from typing import Protocol

import httpx

from ..logging_config import get_logger
from ..models import Participant, ParticipantStatus

logger = get_logger(__name__)

ONLINE_WINDOW_MS = 5 * 60 * 1000
AWAY_WINDOW_MS = 30 * 60 * 1000


@dataclass
class AgentHealth:
    """Liveness reported by the agent backend for one agent."""

    recent_session_age_ms: float | None
    heartbeat_enabled: bool = False


class IHealthProbe(Protocol):
    """Reports per-agent liveness."""

    async def probe(self) -> dict[str, AgentHealth]:
        """Return liveness keyed by agent id."""
        ...


class HttpHealthProbe:
    """Fetches liveness JSON from the agent backend.

    Expected body: {"<agent_id>": {"recentSessionAgeMs": 1234, "heartbeatEnabled": false}}
    """

    def __init__(self, url: str, timeout: float = 3.0):
        self._url = url
        self._timeout = timeout

    async def probe(self) -> dict[str, AgentHealth]:
        async with httpx.AsyncClient(timeout=self._timeout) as client:
            response = await client.get(self._url)
            response.raise_for_status()
            data = response.json()

        return {
            agent_id: AgentHealth(
                recent_session_age_ms=entry.get("recentSessionAgeMs"),
                heartbeat_enabled=bool(entry.get("heartbeatEnabled", False)),
            )
            for agent_id, entry in data.items()
            if isinstance(entry, dict)
        }


def computed_status(health: AgentHealth) -> ParticipantStatus:
    """Map reported liveness onto a presence status."""
    if health.heartbeat_enabled:
        return ParticipantStatus.ONLINE
    age = health.recent_session_age_ms
    if age is None:
        return ParticipantStatus.OFFLINE
    if age <= ONLINE_WINDOW_MS:
        return ParticipantStatus.ONLINE
    if age <= AWAY_WINDOW_MS:
        return ParticipantStatus.AWAY
    return ParticipantStatus.OFFLINE


def overlay_status(
    participants: list[Participant], health: dict[str, AgentHealth]
) -> list[Participant]:
    """Return copies of the participants with probe-computed status applied.

    Busy agents keep their status; the overlay never overrides an in-flight call.
    """
    result = []
    for participant in participants:
        entry = health.get(participant.id)
        if entry is None or participant.is_owner or participant.status is ParticipantStatus.BUSY:
            result.append(participant)
            continue
        overlaid = copy.copy(participant)
        overlaid.status = computed_status(entry)
        if overlaid.status is ParticipantStatus.OFFLINE:
            overlaid.current_task = None
        result.append(overlaid)
    return result


async def probe_overlay(
    probe: IHealthProbe | None, participants: list[Participant]
) -> list[Participant]:
    """Apply the probe opportunistically; probe errors leave the store's view as is."""
    if probe is None:
        return participants
    try:
        health = await probe.probe()
    except Exception as e:
        logger.warning("Health probe failed: %s", e)
        return participants
    return overlay_status(participants, health)
