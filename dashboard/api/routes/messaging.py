"""Messaging API routes."""

from fastapi import APIRouter, Query
from pydantic import BaseModel

from ...app import Application
from ...models import MessageKind


class MessageRequest(BaseModel):
    """Request model for sending a message. recipient_id None broadcasts."""

    sender_id: str
    recipient_id: str | None = None
    content: str
    kind: MessageKind = MessageKind.TEXT


def create_messaging_router(app: Application) -> APIRouter:
    """Create messaging router."""
    router = APIRouter(prefix="/api", tags=["messaging"])

    @router.get("/messages")
    async def list_messages(
        limit: int = Query(50, ge=1, le=1000),
        participant_id: str | None = Query(None, description="Only messages to, from or broadcast"),
    ) -> list[dict]:
        """Most recent messages in send order."""
        return [m.to_dict() for m in app.store.list_messages(limit, participant_id)]

    @router.post("/messages", status_code=201)
    async def send_message(request: MessageRequest) -> dict:
        message = await app.store.post_message(
            request.sender_id, request.recipient_id, request.content, request.kind
        )
        return message.to_dict()

    @router.put("/messages/{message_id}/read")
    async def mark_read(message_id: str) -> dict:
        message = await app.store.mark_read(message_id)
        return message.to_dict()

    return router
