"""Pytest configuration and fixtures."""

import asyncio
import sys
from pathlib import Path

import pytest
import pytest_asyncio

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from dashboard.models import EventName  # noqa: E402


class RecordingBroadcaster:
    """Broadcaster that remembers every emitted event, in order."""

    mode = "recording"

    def __init__(self):
        self.events: list[tuple[str, dict]] = []

    async def emit(self, event: EventName, payload: dict) -> None:
        self.events.append((event.value, payload))

    def client_config(self) -> dict:
        return {"mode": self.mode}

    def names(self) -> list[str]:
        return [name for name, _ in self.events]

    def clear(self) -> None:
        self.events.clear()


class YieldingBroadcaster(RecordingBroadcaster):
    """Recording broadcaster whose emit suspends, like a relay publish does."""

    mode = "yielding"

    def __init__(self, delay: float = 0.001):
        super().__init__()
        self.delay = delay

    async def emit(self, event: EventName, payload: dict) -> None:
        await asyncio.sleep(self.delay)
        self.events.append((event.value, payload))


class StaticProbe:
    """Health probe that always reports the same readings."""

    def __init__(self, health):
        self.health = health

    async def probe(self):
        return self.health


class ScriptedResponder:
    """Responder whose replies and delays are set per test."""

    def __init__(self, reply: str = "On it.", delay: float = 0.0, error: Exception | None = None):
        self.reply = reply
        self.delay = delay
        self.error = error
        self.calls: list[tuple[str, str, str]] = []
        self.release = asyncio.Event()
        self.hold = False

    async def respond(self, agent_id: str, input_text: str, caller: str) -> str:
        self.calls.append((agent_id, input_text, caller))
        if self.hold:
            await self.release.wait()
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error:
            raise self.error
        return self.reply


@pytest.fixture
def broadcaster():
    """Create a recording broadcaster."""
    return RecordingBroadcaster()


@pytest.fixture
def store(broadcaster):
    """Create a freshly seeded entity store."""
    from dashboard.store import EntityStore

    return EntityStore(broadcaster)


@pytest.fixture
def responder():
    """Create a scripted agent responder."""
    return ScriptedResponder()


@pytest.fixture
def gateway(responder):
    """Create a gateway with a short timeout."""
    from dashboard.gateway import AgentGateway

    return AgentGateway(responder, timeout=0.5)


@pytest_asyncio.fixture
async def dispatcher(store, gateway):
    """Create a command dispatcher and cancel leftovers after the test."""
    from dashboard.dispatch import CommandDispatcher

    d = CommandDispatcher(store, gateway)
    yield d
    await d.stop()


@pytest.fixture
def push_broadcaster():
    """Create a push broadcaster with a small queue."""
    from dashboard.broadcast import PushBroadcaster

    return PushBroadcaster(max_queue_size=50)


@pytest.fixture
def settings(tmp_path):
    """Settings for an in-process application."""
    from dashboard.config import Settings

    return Settings(agent_response_timeout=0.5)


@pytest_asyncio.fixture
async def application(settings, responder):
    """Create and start an application with a push broadcaster."""
    from dashboard.app import Application

    app = Application(settings=settings, responder=responder)
    await app.start()
    yield app
    await app.stop()
