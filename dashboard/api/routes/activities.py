"""Activity log API routes."""

from typing import Any

from fastapi import APIRouter, Query
from pydantic import BaseModel

from ...app import Application
from ...models import ActivityType


class ActivityRequest(BaseModel):
    """Request model for recording an activity directly."""

    actor_id: str
    type: ActivityType
    description: str
    metadata: dict[str, Any] | None = None


def create_activities_router(app: Application) -> APIRouter:
    """Create activities router."""
    router = APIRouter(prefix="/api", tags=["activities"])

    @router.get("/activities")
    async def list_activities(limit: int = Query(20, ge=1, le=1000)) -> list[dict]:
        """Newest activities first."""
        return [a.to_dict() for a in app.store.list_activities(limit)]

    @router.post("/activities", status_code=201)
    async def record_activity(request: ActivityRequest) -> dict:
        activity = await app.store.record_activity(
            request.actor_id, request.type, request.description, request.metadata
        )
        return activity.to_dict()

    return router
