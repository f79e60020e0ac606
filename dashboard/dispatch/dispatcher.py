"""Command dispatch: log the command, call the agent, settle the reply."""

import asyncio
from dataclasses import dataclass
from enum import Enum
from typing import Protocol

from ..errors import DashboardError, EmptyContent, Forbidden, InvalidSender, NotFound
from ..gateway import AgentGateway
from ..logging_config import get_logger
from ..models import ActivityType, MessageKind, Participant
from ..store import EntityStore

logger = get_logger(__name__)

FALLBACK_REPLY = "Sorry {caller}, I'm having trouble connecting right now. Please try again."


class DispatchState(str, Enum):
    """Lifecycle of one command invocation. SETTLED is the only terminal state."""

    RECEIVED = "received"
    LOGGED = "logged"
    DISPATCHED = "dispatched"
    SETTLED = "settled"


@dataclass
class Accepted:
    """Returned as soon as a command is dispatched; settlement is observed via fan-out."""

    command_message_id: str
    agent_id: str
    agent_name: str
    owner_call: bool = False

    def to_dict(self) -> dict:
        return {
            "success": True,
            "command_message_id": self.command_message_id,
            "agent_id": self.agent_id,
            "message": f"{'Called' if self.owner_call else 'Command sent to'} {self.agent_name}",
            "owner_call": self.owner_call,
        }


@dataclass
class _Invocation:
    agent: Participant
    caller: Participant
    command: str
    params: str | None
    owner_call: bool
    state: DispatchState = DispatchState.RECEIVED


class ICommandDispatcher(Protocol):
    """Routes user commands to agents."""

    async def dispatch_agent_command(
        self, agent_id: str, command: str, caller_id: str, params: str | None = None
    ) -> Accepted:
        """Send a command to an agent on behalf of any participant."""
        ...

    async def dispatch_owner_command(
        self, agent_id: str, command: str, owner_id: str, params: str | None = None
    ) -> Accepted:
        """Owner-only direct call of an agent."""
        ...


class CommandDispatcher:
    """Drives Received -> Logged -> Dispatched -> Settled for every command."""

    def __init__(self, store: EntityStore, gateway: AgentGateway):
        self._store = store
        self._gateway = gateway
        self._tasks: set[asyncio.Task] = set()

    @property
    def in_flight(self) -> int:
        return len(self._tasks)

    async def dispatch_agent_command(
        self, agent_id: str, command: str, caller_id: str, params: str | None = None
    ) -> Accepted:
        agent = self._require_agent(agent_id)
        if not self._store.has_participant(caller_id):
            raise InvalidSender(f"Unknown caller: {caller_id}")
        caller = self._store.get_participant(caller_id)
        invocation = _Invocation(agent, caller, self._require_command(command), params, owner_call=False)
        return await self._start(invocation)

    async def dispatch_owner_command(
        self, agent_id: str, command: str, owner_id: str, params: str | None = None
    ) -> Accepted:
        # Role check comes first so a rejected call leaves no trace
        if not self._store.has_participant(owner_id) or not self._store.get_participant(owner_id).is_owner:
            raise Forbidden("Only the owner can call agents directly")
        owner = self._store.get_participant(owner_id)
        agent = self._require_agent(agent_id)
        invocation = _Invocation(agent, owner, self._require_command(command), params, owner_call=True)
        return await self._start(invocation)

    async def wait_idle(self) -> None:
        """Wait until every dispatched command has settled."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def stop(self) -> None:
        """Cancel outstanding settlements."""
        for task in list(self._tasks):
            task.cancel()
        if self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def _start(self, invocation: _Invocation) -> Accepted:
        agent, caller = invocation.agent, invocation.caller
        command_line = " ".join(part for part in (invocation.command, invocation.params) if part)

        # Logged
        if invocation.owner_call:
            await self._store.record_activity(
                agent.id,
                ActivityType.COMMAND,
                f"Owner {caller.name} called with: {invocation.command}",
                {
                    "from_owner": caller.id,
                    "params": invocation.params,
                    "command_type": MessageKind.OWNER_CALL.value,
                },
            )
            command_message = await self._store.post_message(
                caller.id, agent.id, f"/call {agent.id}: {command_line}", MessageKind.OWNER_CALL
            )
        else:
            await self._store.record_activity(
                agent.id,
                ActivityType.COMMAND,
                f"Received command from {caller.name}: {invocation.command}",
                {"from_user": caller.id, "params": invocation.params},
            )
            command_message = await self._store.post_message(
                caller.id, agent.id, f"/{agent.id} {command_line}", MessageKind.COMMAND
            )
        invocation.state = DispatchState.LOGGED

        # Dispatched
        await self._store.mark_busy(agent.id, f"Responding to {caller.name}: {invocation.command}")
        task = asyncio.create_task(self._settle(invocation))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        invocation.state = DispatchState.DISPATCHED

        logger.info(
            "Dispatched %s from %s to %s",
            "owner call" if invocation.owner_call else "command",
            caller.id,
            agent.id,
            extra={
                "context": {
                    "agent_id": agent.id,
                    "caller_id": caller.id,
                    "command_message_id": command_message.id,
                    "in_flight": len(self._tasks),
                }
            },
        )
        return Accepted(
            command_message_id=command_message.id,
            agent_id=agent.id,
            agent_name=agent.name,
            owner_call=invocation.owner_call,
        )

    async def _settle(self, invocation: _Invocation) -> None:
        agent, caller = invocation.agent, invocation.caller
        try:
            fallback = False
            try:
                reply = await self._gateway.respond(agent.id, invocation.command, caller.name)
            except DashboardError as e:
                logger.warning(
                    "Agent %s call settled with fallback: %s",
                    agent.id,
                    e,
                    extra={"context": {"agent_id": agent.id, "caller_id": caller.id, "error": e.code}},
                )
                reply = FALLBACK_REPLY.format(caller=caller.name)
                fallback = True

            try:
                kind = MessageKind.AGENT_RESPONSE if invocation.owner_call else MessageKind.TEXT
                response = await self._store.post_message(agent.id, caller.id, reply, kind)

                metadata = {
                    "command": invocation.command,
                    "response_id": response.id,
                    "fallback": fallback,
                }
                if invocation.owner_call:
                    metadata["command_type"] = MessageKind.OWNER_CALL.value
                    description = f"Responded to Owner {caller.name}'s call"
                else:
                    description = f"Responded to {caller.name}'s command"
                await self._store.record_activity(agent.id, ActivityType.MESSAGE, description, metadata)
            except Exception as e:
                logger.error("Failed to record reply from %s: %s", agent.id, e, exc_info=True)
        finally:
            # Also runs when stop() cancels the settlement
            await self._store.release_busy(agent.id)
            invocation.state = DispatchState.SETTLED

    def _require_agent(self, agent_id: str) -> Participant:
        if not self._store.has_participant(agent_id):
            raise NotFound(f"Agent not found: {agent_id}")
        agent = self._store.get_participant(agent_id)
        if agent.is_owner:
            raise NotFound(f"Agent not found: {agent_id}")
        return agent

    @staticmethod
    def _require_command(command: str) -> str:
        if not command or not command.strip():
            raise EmptyContent("Command is empty")
        return command.strip()
