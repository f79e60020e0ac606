"""Tests for Application."""

from unittest.mock import patch

import pytest

from dashboard.app import Application, create_broadcaster, create_responder
from dashboard.broadcast import PollingBroadcaster, PushBroadcaster, RelayBroadcaster
from dashboard.config import Settings
from dashboard.gateway import CannedResponder, CommandResponder, LLMResponder
from dashboard.health import AgentHealth
from dashboard.models import ParticipantStatus

from conftest import StaticProbe


class TestApplicationStart:
    """Tests for Application.start()."""

    @pytest.mark.asyncio
    async def test_start_initializes_components(self, application):
        """Test that start wires every component."""
        assert isinstance(application.broadcaster, PushBroadcaster)
        assert application.store is not None
        assert application.dispatcher is not None
        assert application.store._broadcaster is application.broadcaster

    def test_properties_before_start(self):
        """Test that components are unavailable before start."""
        app = Application(settings=Settings())

        with pytest.raises(RuntimeError, match="Application not started"):
            app.store

    @pytest.mark.asyncio
    async def test_caps_from_settings(self):
        """Test that log caps come from settings."""
        app = Application(settings=Settings(message_log_cap=7, activity_log_cap=3))
        await app.start()

        assert app.store.message_cap == 7
        assert app.store.activity_cap == 3
        await app.stop()


class TestApplicationSnapshot:
    """Tests for snapshot and overlay."""

    @pytest.mark.asyncio
    async def test_snapshot_respects_init_limits(self):
        """Test that init returns the newest entries only."""
        app = Application(settings=Settings(init_message_limit=2, init_activity_limit=1))
        await app.start()
        for i in range(4):
            await app.store.post_message("yuri", None, f"m{i}")

        snapshot = await app.get_snapshot()

        assert [m.content for m in snapshot.messages] == ["m2", "m3"]
        assert len(snapshot.activities) == 1
        assert snapshot.activities[0].metadata["message_id"] == snapshot.messages[-1].id
        await app.stop()

    @pytest.mark.asyncio
    async def test_overlay_applied_to_snapshot_only(self):
        """Test that probe results never reach the store."""
        probe = StaticProbe({"jarvis": AgentHealth(recent_session_age_ms=0)})
        app = Application(settings=Settings(), health_probe=probe)
        await app.start()

        participants = {p.id: p for p in await app.list_participants()}

        assert participants["jarvis"].status is ParticipantStatus.ONLINE
        assert app.store.get_participant("jarvis").status is ParticipantStatus.OFFLINE
        await app.stop()

    @pytest.mark.asyncio
    async def test_single_participant_matches_list(self):
        """Test that one participant gets the same overlay as the full list."""
        probe = StaticProbe({"glass": AgentHealth(recent_session_age_ms=10 * 60 * 1000)})
        app = Application(settings=Settings(), health_probe=probe)
        await app.start()

        listed = {p.id: p for p in await app.list_participants()}
        single = await app.get_participant("glass")

        assert single.status is ParticipantStatus.AWAY
        assert single.status is listed["glass"].status
        assert app.store.get_participant("glass").status is ParticipantStatus.OFFLINE
        await app.stop()


class TestApplicationLifecycle:
    """Tests for stop() and reset()."""

    @pytest.mark.asyncio
    async def test_stop_closes_push_sessions(self, application):
        """Test that stop closes every open session."""
        session = application.broadcaster.open_session()

        await application.stop()

        assert session.closed

    @pytest.mark.asyncio
    async def test_reset_clears_state(self, application):
        """Test reset."""
        await application.store.post_message("yuri", None, "hello")

        await application.reset()

        assert application.store.list_messages() == []


class TestFactories:
    """Tests for transport and responder selection."""

    def test_broadcaster_per_mode(self):
        """Test that exactly one transport is chosen per deployment."""
        assert isinstance(create_broadcaster(Settings()), PushBroadcaster)
        assert isinstance(create_broadcaster(Settings(realtime="polling")), PollingBroadcaster)
        with patch("dashboard.broadcast.relay.pusher.Pusher"):
            relay = create_broadcaster(
                Settings(realtime="relay", pusher_app_id="1", pusher_key="k", pusher_secret="s")
            )
        assert isinstance(relay, RelayBroadcaster)

    def test_responder_precedence(self):
        """Test command backend, then Claude, then canned replies."""
        assert isinstance(create_responder(Settings(agent_command="agentctl {agent}")), CommandResponder)
        with patch("dashboard.gateway.llm_responder.anthropic.AsyncAnthropic"):
            assert isinstance(create_responder(Settings(anthropic_api_key="key")), LLMResponder)
        assert isinstance(create_responder(Settings()), CannedResponder)
