"""Participant API routes."""

from fastapi import APIRouter
from pydantic import BaseModel

from ...app import Application
from ...models import ParticipantStatus
from ...store import UNSET


class StatusRequest(BaseModel):
    """Request model for a status/task update. Omit task to leave it unchanged."""

    status: ParticipantStatus | None = None
    task: str | None = None


def create_participants_router(app: Application) -> APIRouter:
    """Create participants router."""
    router = APIRouter(prefix="/api", tags=["participants"])

    @router.get("/participants")
    async def list_participants() -> list[dict]:
        """All participants, agents and owner."""
        return [p.to_dict() for p in await app.list_participants()]

    @router.get("/agents")
    async def list_agents() -> list[dict]:
        """Agents only."""
        return [p.to_dict() for p in await app.list_participants() if not p.is_owner]

    @router.get("/agents/{participant_id}")
    async def get_participant(participant_id: str) -> dict:
        participant = await app.get_participant(participant_id)
        return participant.to_dict()

    @router.post("/agents/{participant_id}/login")
    async def login(participant_id: str) -> dict:
        participant = await app.store.record_login(participant_id)
        return participant.to_dict()

    @router.post("/agents/{participant_id}/logout")
    async def logout(participant_id: str) -> dict:
        participant = await app.store.record_logout(participant_id)
        return participant.to_dict()

    @router.put("/agents/{participant_id}/status")
    async def set_status(participant_id: str, request: StatusRequest) -> dict:
        task = request.task if "task" in request.model_fields_set else UNSET
        participant = await app.store.set_status(participant_id, request.status, task)
        return participant.to_dict()

    return router
