"""Application bootstrap and lifecycle management."""

from typing import Protocol

from .broadcast import IBroadcaster, PollingBroadcaster, PushBroadcaster, RelayBroadcaster
from .config import Settings
from .dispatch import CommandDispatcher
from .gateway import (
    AgentGateway,
    CannedResponder,
    CommandResponder,
    IAgentResponder,
    LLMResponder,
)
from .health import HttpHealthProbe, IHealthProbe, probe_overlay
from .logging_config import get_logger
from .models import Participant
from .store import EntityStore, Snapshot

logger = get_logger(__name__)


class IApplication(Protocol):
    """Bootstrap and lifecycle."""

    async def start(self) -> None:
        """Initialize components in dependency order."""
        ...

    async def stop(self) -> None:
        """Shutdown in reverse order."""
        ...

    async def reset(self) -> None:
        """Clear all in-memory state and reseed the roster."""
        ...


def create_broadcaster(settings: Settings) -> IBroadcaster:
    """Build the single fan-out transport for this deployment."""
    if settings.realtime == "relay":
        return RelayBroadcaster.from_settings(settings)
    if settings.realtime == "polling":
        return PollingBroadcaster(poll_interval=settings.poll_interval)
    return PushBroadcaster()


def create_responder(settings: Settings) -> IAgentResponder:
    """Pick the agent backend: external command, then Claude, then canned replies."""
    if settings.agent_command:
        return CommandResponder(settings.agent_command)
    if settings.anthropic_api_key:
        return LLMResponder(api_key=settings.anthropic_api_key, model=settings.anthropic_model)
    logger.warning("No agent backend configured, agents will answer with canned replies")
    return CannedResponder()


class Application:
    """Main application bootstrap."""

    def __init__(
        self,
        settings: Settings | None = None,
        broadcaster: IBroadcaster | None = None,
        responder: IAgentResponder | None = None,
        health_probe: IHealthProbe | None = None,
    ):
        self._settings = settings or Settings.from_env()
        self._broadcaster_override = broadcaster
        self._responder_override = responder
        self._health_probe_override = health_probe

        # Components (will be initialized in start())
        self._broadcaster: IBroadcaster | None = None
        self._store: EntityStore | None = None
        self._gateway: AgentGateway | None = None
        self._dispatcher: CommandDispatcher | None = None
        self._health_probe: IHealthProbe | None = None

    async def start(self) -> None:
        """Initialize components in dependency order."""
        logger.info("Starting application")

        # 1. Broadcaster (no dependencies)
        self._broadcaster = self._broadcaster_override or create_broadcaster(self._settings)
        logger.info("Broadcaster initialized in %s mode", self._broadcaster.mode)

        # 2. Store (depends on Broadcaster)
        self._store = EntityStore(
            self._broadcaster,
            message_cap=self._settings.message_log_cap,
            activity_cap=self._settings.activity_log_cap,
        )
        logger.info("Store seeded with %s participants", len(self._store.list_participants()))

        # 3. Gateway (no internal dependencies)
        responder = self._responder_override or create_responder(self._settings)
        self._gateway = AgentGateway(responder, timeout=self._settings.agent_response_timeout)

        # 4. Dispatcher (depends on Store + Gateway)
        self._dispatcher = CommandDispatcher(self._store, self._gateway)

        # 5. Health probe (optional)
        self._health_probe = self._health_probe_override
        if self._health_probe is None and self._settings.health_probe_url:
            self._health_probe = HttpHealthProbe(self._settings.health_probe_url)

        logger.info("All components initialized successfully")

    async def stop(self) -> None:
        """Shutdown in reverse order."""
        if self._dispatcher:
            await self._dispatcher.stop()
            logger.info("Dispatcher stopped")
        if isinstance(self._broadcaster, PushBroadcaster):
            self._broadcaster.close_all()

    async def reset(self) -> None:
        """Clear all in-memory state and reseed the roster."""
        if self._dispatcher:
            await self._dispatcher.stop()
        if self._store:
            await self._store.clear()
            logger.info("Reset complete")

    async def get_snapshot(self) -> Snapshot:
        """Snapshot for a (re)connecting observer, with the health overlay applied."""
        snapshot = self.store.snapshot(
            message_limit=self._settings.init_message_limit,
            activity_limit=self._settings.init_activity_limit,
        )
        snapshot.participants = await probe_overlay(self._health_probe, snapshot.participants)
        return snapshot

    async def list_participants(self) -> list[Participant]:
        return await probe_overlay(self._health_probe, self.store.list_participants())

    async def get_participant(self, participant_id: str) -> Participant:
        """One participant with the same health overlay as the list."""
        participant = self.store.get_participant(participant_id)
        return (await probe_overlay(self._health_probe, [participant]))[0]

    @property
    def settings(self) -> Settings:
        return self._settings

    @property
    def store(self) -> EntityStore:
        """Get store instance."""
        if not self._store:
            raise RuntimeError("Application not started")
        return self._store

    @property
    def broadcaster(self) -> IBroadcaster:
        """Get broadcaster instance."""
        if not self._broadcaster:
            raise RuntimeError("Application not started")
        return self._broadcaster

    @property
    def dispatcher(self) -> CommandDispatcher:
        """Get dispatcher instance."""
        if not self._dispatcher:
            raise RuntimeError("Application not started")
        return self._dispatcher
