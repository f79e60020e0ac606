"""Tests for CommandDispatcher."""

import asyncio

import pytest

from dashboard.dispatch import FALLBACK_REPLY, CommandDispatcher
from dashboard.errors import EmptyContent, Forbidden, InvalidSender, NotFound
from dashboard.gateway import AgentGateway
from dashboard.models import Agent, MessageKind, Owner, ParticipantStatus
from dashboard.store import OWNER_ID, EntityStore

from conftest import RecordingBroadcaster, ScriptedResponder, YieldingBroadcaster


def alice_and_bob():
    return [
        Agent(id="alice", name="Alice", color="#000000", avatar="A"),
        Owner(id="bob", name="Bob", color="#FFFFFF", avatar="B"),
    ]


class TestOwnerCallEndToEnd:
    """Owner calls an agent and the reply settles through fan-out."""

    @pytest.mark.asyncio
    async def test_owner_call_round_trip(self):
        """Test that exactly one call and one reply are observed and status restores."""
        broadcaster = RecordingBroadcaster()
        store = EntityStore(broadcaster, roster=alice_and_bob)
        dispatcher = CommandDispatcher(store, AgentGateway(ScriptedResponder(reply="All good."), timeout=1))
        before = store.get_participant("alice")

        accepted = await dispatcher.dispatch_owner_command("alice", "status?", "bob")
        await dispatcher.wait_idle()

        assert accepted.to_dict()["success"] is True
        assert accepted.owner_call is True

        messages = [payload for name, payload in broadcaster.events if name == "message-new"]
        assert len(messages) == 2
        call, reply = messages
        assert (call["sender_id"], call["recipient_id"], call["kind"]) == ("bob", "alice", "owner-call")
        assert call["id"] == accepted.command_message_id
        assert (reply["sender_id"], reply["recipient_id"], reply["kind"]) == (
            "alice",
            "bob",
            "agent-response",
        )
        assert reply["content"] == "All good."

        after = store.get_participant("alice")
        assert after.status is before.status
        assert after.current_task == before.current_task

    @pytest.mark.asyncio
    async def test_agent_is_busy_while_dispatched(self, store, dispatcher, responder):
        """Test the busy window between dispatch and settlement."""
        responder.hold = True

        await dispatcher.dispatch_owner_command("jarvis", "analyze logs", OWNER_ID)

        jarvis = store.get_participant("jarvis")
        assert jarvis.status is ParticipantStatus.BUSY
        assert jarvis.current_task == "Responding to Ferry: analyze logs"

        responder.release.set()
        await dispatcher.wait_idle()
        assert store.get_participant("jarvis").status is ParticipantStatus.OFFLINE

    @pytest.mark.asyncio
    async def test_call_history_records_owner_calls(self, store, dispatcher):
        """Test that both the call and the reply appear in call history."""
        await dispatcher.dispatch_owner_command("glass", "scan", OWNER_ID)
        await dispatcher.wait_idle()

        history = store.call_history()
        assert [a.description for a in history] == [
            "Responded to Owner Ferry's call",
            "Owner Ferry called with: scan",
        ]


class TestOwnerCallValidation:
    """Tests for dispatch_owner_command() rejections."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("caller", ["jarvis", "nobody"])
    async def test_non_owner_forbidden_without_mutation(self, store, broadcaster, dispatcher, caller):
        """Test that non-owners are rejected before anything is written."""
        with pytest.raises(Forbidden):
            await dispatcher.dispatch_owner_command("glass", "status?", caller)

        assert store.list_messages() == []
        assert store.list_activities() == []
        assert broadcaster.events == []

    @pytest.mark.asyncio
    async def test_unknown_agent(self, dispatcher):
        """Test NotFound for unknown agents."""
        with pytest.raises(NotFound):
            await dispatcher.dispatch_owner_command("hal", "status?", OWNER_ID)

    @pytest.mark.asyncio
    async def test_owner_is_not_an_agent(self, dispatcher):
        """Test that the owner cannot be called as an agent."""
        with pytest.raises(NotFound):
            await dispatcher.dispatch_owner_command(OWNER_ID, "status?", OWNER_ID)


class TestAgentCommand:
    """Tests for dispatch_agent_command()."""

    @pytest.mark.asyncio
    async def test_command_and_reply_messages(self, store, dispatcher, responder):
        """Test the plain command flow."""
        accepted = await dispatcher.dispatch_agent_command("friday", "summarize", "yuri", "--today")
        await dispatcher.wait_idle()

        command, reply = store.list_messages()
        assert command.id == accepted.command_message_id
        assert command.kind is MessageKind.COMMAND
        assert command.content == "/friday summarize --today"
        assert reply.kind is MessageKind.TEXT
        assert (reply.sender_id, reply.recipient_id) == ("friday", "yuri")
        assert responder.calls == [("friday", "summarize", "Yuri")]

    @pytest.mark.asyncio
    async def test_logged_before_dispatch(self, store, broadcaster, dispatcher, responder):
        """Test that the command activity precedes the command message."""
        responder.hold = True
        await dispatcher.dispatch_agent_command("friday", "summarize", OWNER_ID)

        names = broadcaster.names()
        assert names[:3] == ["activity-new", "message-new", "activity-new"]
        assert names[3] == "participant-updated"
        first_activity = broadcaster.events[0][1]
        assert first_activity["description"] == "Received command from Ferry: summarize"

        responder.release.set()
        await dispatcher.wait_idle()

    @pytest.mark.asyncio
    async def test_unknown_caller(self, store, dispatcher):
        """Test InvalidSender for unknown callers."""
        with pytest.raises(InvalidSender):
            await dispatcher.dispatch_agent_command("friday", "summarize", "mallory")

        assert store.list_activities() == []

    @pytest.mark.asyncio
    async def test_blank_command(self, store, dispatcher):
        """Test EmptyContent for blank commands."""
        with pytest.raises(EmptyContent):
            await dispatcher.dispatch_agent_command("friday", "   ", OWNER_ID)

        assert store.list_messages() == []


class TestSettlement:
    """Tests for fallback and status restoration."""

    @pytest.mark.asyncio
    async def test_failure_settles_with_fallback(self, store, dispatcher, responder):
        """Test that a responder error becomes the fallback reply."""
        responder.error = RuntimeError("backend down")

        await dispatcher.dispatch_owner_command("epstein", "thoughts?", OWNER_ID)
        await dispatcher.wait_idle()

        reply = store.list_messages()[-1]
        assert reply.content == FALLBACK_REPLY.format(caller="Ferry")
        assert reply.kind is MessageKind.AGENT_RESPONSE
        assert store.list_activities(1)[0].metadata["fallback"] is True
        assert store.get_participant("epstein").status is ParticipantStatus.OFFLINE

    @pytest.mark.asyncio
    async def test_timeout_settles_with_fallback(self, store, dispatcher, responder):
        """Test that the gateway timeout bounds settlement."""
        responder.delay = 5

        await dispatcher.dispatch_agent_command("epstein", "thoughts?", OWNER_ID)
        await asyncio.wait_for(dispatcher.wait_idle(), timeout=3)

        assert store.list_messages()[-1].content == FALLBACK_REPLY.format(caller="Ferry")

    @pytest.mark.asyncio
    async def test_restores_prior_status_and_task(self, store, dispatcher):
        """Test that the exact pre-call status and task come back."""
        await store.set_status("glass", "away", "Reviewing PRs")

        await dispatcher.dispatch_owner_command("glass", "status?", OWNER_ID)
        await dispatcher.wait_idle()

        glass = store.get_participant("glass")
        assert glass.status is ParticipantStatus.AWAY
        assert glass.current_task == "Reviewing PRs"

    @pytest.mark.asyncio
    async def test_concurrent_calls_restore_once(self, store, dispatcher, responder):
        """Test that overlapping calls to one agent restore the prior status."""
        await store.record_login("glass")
        responder.hold = True

        await dispatcher.dispatch_owner_command("glass", "first", OWNER_ID)
        await dispatcher.dispatch_agent_command("glass", "second", "yuri")
        assert dispatcher.in_flight == 2

        responder.release.set()
        await dispatcher.wait_idle()

        glass = store.get_participant("glass")
        assert glass.status is ParticipantStatus.ONLINE
        assert glass.current_task is None
        replies = [m for m in store.list_messages() if m.sender_id == "glass"]
        assert len(replies) == 2

    @pytest.mark.asyncio
    async def test_stop_cancels_outstanding(self, store, gateway, responder):
        """Test that stop() leaves no running settlements."""
        responder.hold = True
        dispatcher = CommandDispatcher(store, gateway)
        await dispatcher.dispatch_owner_command("yuri", "go", OWNER_ID)

        await dispatcher.stop()

        assert dispatcher.in_flight == 0

    @pytest.mark.asyncio
    async def test_stop_restores_busy_agent(self, store, gateway, responder):
        """Test that cancelling a settlement still undoes the busy status."""
        await store.record_login("yuri")
        responder.hold = True
        dispatcher = CommandDispatcher(store, gateway)
        await dispatcher.dispatch_owner_command("yuri", "go", OWNER_ID)
        assert store.get_participant("yuri").status is ParticipantStatus.BUSY

        await dispatcher.stop()

        yuri = store.get_participant("yuri")
        assert yuri.status is ParticipantStatus.ONLINE
        assert yuri.current_task is None
        assert store.busy_holds("yuri") == 0
        assert [m for m in store.list_messages() if m.sender_id == "yuri"] == []


class TestUnderContention:
    """Dispatch and settlement when every emit suspends, as the relay's does."""

    @pytest.fixture
    def slow_store(self):
        return EntityStore(YieldingBroadcaster())

    @pytest.mark.asyncio
    @pytest.mark.parametrize("yields", range(40))
    async def test_call_arriving_during_settlement_restores(self, slow_store, responder, yields):
        """Test that a second call landing mid-settlement never saves busy as the prior status."""
        dispatcher = CommandDispatcher(slow_store, AgentGateway(responder, timeout=1))
        responder.hold = True
        await dispatcher.dispatch_owner_command("glass", "first", OWNER_ID)

        responder.release.set()
        for _ in range(yields):
            await asyncio.sleep(0)
        await dispatcher.dispatch_agent_command("glass", "second", "yuri")
        await asyncio.wait_for(dispatcher.wait_idle(), timeout=3)

        glass = slow_store.get_participant("glass")
        assert glass.status is ParticipantStatus.OFFLINE
        assert glass.current_task is None
        assert slow_store.busy_holds("glass") == 0

    @pytest.mark.asyncio
    async def test_overlapping_calls_share_saved_status(self, slow_store, responder):
        """Test that concurrent calls to one agent all restore to the pre-call value."""
        await slow_store.set_status("glass", "away", "Reviewing PRs")
        dispatcher = CommandDispatcher(slow_store, AgentGateway(responder, timeout=1))
        responder.hold = True

        await asyncio.gather(
            *(dispatcher.dispatch_agent_command("glass", f"job {i}", "yuri") for i in range(5))
        )
        assert slow_store.busy_holds("glass") == 5

        responder.release.set()
        await asyncio.wait_for(dispatcher.wait_idle(), timeout=3)

        glass = slow_store.get_participant("glass")
        assert glass.status is ParticipantStatus.AWAY
        assert glass.current_task == "Reviewing PRs"
        assert len([m for m in slow_store.list_messages() if m.sender_id == "glass"]) == 5

    @pytest.mark.asyncio
    async def test_message_precedes_its_activity(self, slow_store, responder):
        """Test that each message-new is followed directly by its derived activity."""
        broadcaster = slow_store._broadcaster
        dispatcher = CommandDispatcher(slow_store, AgentGateway(responder, timeout=1))

        await asyncio.gather(
            dispatcher.dispatch_owner_command("jarvis", "report", OWNER_ID),
            dispatcher.dispatch_agent_command("friday", "summarize", "glass"),
            *(slow_store.post_message(sender, None, f"hi from {sender}") for sender in ("yuri", "epstein", "glass")),
            slow_store.post_message("jarvis", "friday", "ping"),
        )
        await asyncio.wait_for(dispatcher.wait_idle(), timeout=3)

        events = broadcaster.events
        message_positions = [i for i, (name, _) in enumerate(events) if name == "message-new"]
        assert len(message_positions) == 8
        for i in message_positions:
            name, activity = events[i + 1]
            assert name == "activity-new"
            assert activity["metadata"]["message_id"] == events[i][1]["id"]
        assert slow_store.busy_holds("jarvis") == 0
        assert slow_store.busy_holds("friday") == 0
