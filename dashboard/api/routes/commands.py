"""Agent command API routes."""

from fastapi import APIRouter
from pydantic import BaseModel

from ...app import Application
from ...store import OWNER_ID


class AgentCommandRequest(BaseModel):
    """Request model for a /agent command."""

    agent_id: str
    command: str
    params: str | None = None
    caller_id: str = OWNER_ID


class OwnerCallRequest(BaseModel):
    """Request model for an owner calling an agent directly."""

    agent_id: str
    command: str
    params: str | None = None
    owner_id: str = OWNER_ID


class AcceptedResponse(BaseModel):
    """Response model for an accepted command."""

    success: bool
    command_message_id: str
    agent_id: str
    message: str
    owner_call: bool


def create_commands_router(app: Application) -> APIRouter:
    """Create commands router."""
    router = APIRouter(prefix="/api", tags=["commands"])

    @router.post("/agent-command", status_code=202, response_model=AcceptedResponse)
    async def agent_command(request: AgentCommandRequest) -> dict:
        """Send a command to an agent. The reply arrives through fan-out."""
        accepted = await app.dispatcher.dispatch_agent_command(
            request.agent_id, request.command, request.caller_id, request.params
        )
        return accepted.to_dict()

    @router.post("/owner/call-agent", status_code=202, response_model=AcceptedResponse)
    async def owner_call(request: OwnerCallRequest) -> dict:
        """Owner-only direct call of an agent."""
        accepted = await app.dispatcher.dispatch_owner_command(
            request.agent_id, request.command, request.owner_id, request.params
        )
        return accepted.to_dict()

    @router.get("/owner/call-history")
    async def call_history() -> list[dict]:
        return [a.to_dict() for a in app.store.call_history()]

    @router.get("/agent-commands/list")
    async def command_list() -> list[dict]:
        """Agents available for /agent autocomplete."""
        return [
            {
                "id": p.id,
                "name": p.name,
                "avatar": p.avatar,
                "color": p.color,
                "prefix": f"/{p.id}",
                "status": p.status.value,
            }
            for p in app.store.list_participants()
            if not p.is_owner
        ]

    return router
