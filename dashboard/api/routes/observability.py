"""Snapshot and health API routes."""

from datetime import datetime, timezone

from fastapi import APIRouter
from pydantic import BaseModel

from ...app import Application


class HealthResponse(BaseModel):
    """Response model for health checks."""

    status: str
    timestamp: datetime
    agents_online: int
    realtime: str


def create_observability_router(app: Application) -> APIRouter:
    """Create observability router."""
    router = APIRouter(tags=["observability"])

    @router.get("/api/init")
    async def init() -> dict:
        """Full snapshot for a (re)connecting or polling client."""
        snapshot = await app.get_snapshot()
        data = snapshot.to_dict()
        data["realtime"] = app.broadcaster.client_config()
        return data

    @router.get("/health", response_model=HealthResponse)
    @router.get("/api/health", response_model=HealthResponse)
    async def health() -> dict:
        return {
            "status": "ok",
            "timestamp": datetime.now(timezone.utc),
            "agents_online": app.store.agents_online(),
            "realtime": app.broadcaster.mode,
        }

    return router
