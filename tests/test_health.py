"""Tests for the health probe and status overlay."""

from unittest.mock import AsyncMock, Mock

import httpx
import pytest

from dashboard.health import (
    AgentHealth,
    HttpHealthProbe,
    computed_status,
    overlay_status,
    probe_overlay,
)
from dashboard.models import ParticipantStatus

MINUTE_MS = 60 * 1000


class TestComputedStatus:
    """Tests for computed_status()."""

    @pytest.mark.parametrize(
        "health, expected",
        [
            (AgentHealth(recent_session_age_ms=None, heartbeat_enabled=True), ParticipantStatus.ONLINE),
            (AgentHealth(recent_session_age_ms=1 * MINUTE_MS), ParticipantStatus.ONLINE),
            (AgentHealth(recent_session_age_ms=5 * MINUTE_MS), ParticipantStatus.ONLINE),
            (AgentHealth(recent_session_age_ms=10 * MINUTE_MS), ParticipantStatus.AWAY),
            (AgentHealth(recent_session_age_ms=31 * MINUTE_MS), ParticipantStatus.OFFLINE),
            (AgentHealth(recent_session_age_ms=None), ParticipantStatus.OFFLINE),
        ],
    )
    def test_windows(self, health, expected):
        """Test the liveness windows."""
        assert computed_status(health) is expected


class TestOverlay:
    """Tests for overlay_status()."""

    def test_overlay_never_touches_store(self, store):
        """Test that overlaid participants are copies."""
        participants = store.list_participants()

        overlaid = overlay_status(participants, {"jarvis": AgentHealth(recent_session_age_ms=0)})

        jarvis = next(p for p in overlaid if p.id == "jarvis")
        assert jarvis.status is ParticipantStatus.ONLINE
        assert store.get_participant("jarvis").status is ParticipantStatus.OFFLINE

    @pytest.mark.asyncio
    async def test_busy_and_owner_not_overridden(self, store):
        """Test that busy agents and the owner keep their status."""
        await store.set_status("glass", "busy", "Audit")
        health = {
            "glass": AgentHealth(recent_session_age_ms=None),
            "ferry": AgentHealth(recent_session_age_ms=None),
        }

        overlaid = {p.id: p for p in overlay_status(store.list_participants(), health)}

        assert overlaid["glass"].status is ParticipantStatus.BUSY
        assert overlaid["ferry"].status is ParticipantStatus.ONLINE

    @pytest.mark.asyncio
    async def test_probe_errors_ignored(self, store):
        """Test that a failing probe leaves participants unchanged."""
        probe = Mock()
        probe.probe = AsyncMock(side_effect=httpx.ConnectError("refused"))
        participants = store.list_participants()

        assert await probe_overlay(probe, participants) is participants

    @pytest.mark.asyncio
    async def test_no_probe(self, store):
        """Test that no probe means no overlay."""
        participants = store.list_participants()

        assert await probe_overlay(None, participants) is participants


class TestHttpHealthProbe:
    """Tests for HttpHealthProbe."""

    @pytest.mark.asyncio
    async def test_parses_backend_body(self, monkeypatch):
        """Test JSON parsing of the backend health document."""
        body = {
            "jarvis": {"recentSessionAgeMs": 1000, "heartbeatEnabled": False},
            "glass": {"heartbeatEnabled": True},
            "meta": "ignored",
        }
        transport = httpx.MockTransport(lambda request: httpx.Response(200, json=body))
        real_client = httpx.AsyncClient

        monkeypatch.setattr(
            "dashboard.health.probe.httpx.AsyncClient",
            lambda **kwargs: real_client(transport=transport, **kwargs),
        )

        health = await HttpHealthProbe("http://backend/health").probe()

        assert health["jarvis"] == AgentHealth(recent_session_age_ms=1000, heartbeat_enabled=False)
        assert health["glass"].heartbeat_enabled is True
        assert "meta" not in health
