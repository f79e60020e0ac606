"""WebSocket push channel.

Frames are JSON objects {"event": ..., "data": ..., "ref": ...}. The server
registers the session before taking the init snapshot, so nothing emitted in
between is lost; anything delivered twice is dropped by client-side dedup.
Every client request is answered with an ack or error frame through the same
session queue, after the events that request caused.
"""

import asyncio
import json
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from ...app import Application
from ...broadcast import PushBroadcaster, PushSession
from ...errors import DashboardError, InvalidSender
from ...logging_config import get_logger
from ...models import ActivityType, EventName
from ...store import UNSET

logger = get_logger(__name__)

NON_PUSH_CLOSE_CODE = 4400
SESSION_DROPPED_CLOSE_CODE = 1013

RequestHandler = Callable[[dict, PushSession], Awaitable[Any]]


class PushChannel:
    """Handles client requests arriving over one push session."""

    def __init__(self, app: Application, broadcaster: PushBroadcaster):
        self._app = app
        self._broadcaster = broadcaster
        self._handlers: dict[str, RequestHandler] = {
            "login": self._login,
            "logout": self._logout,
            "status": self._status,
            "message": self._message,
            "read": self._read,
            "command": self._command,
            "dispatch": self._dispatch,
            "call": self._call,
            "typing": self._typing,
        }

    async def handle_frame(self, raw: str, session: PushSession) -> None:
        ref = None
        request = None
        try:
            frame = json.loads(raw)
            if not isinstance(frame, dict):
                raise ValueError("Frame must be a JSON object")
            ref = frame.get("ref")
            request = frame.get("event")
            handler = self._handlers.get(request)
            if handler is None:
                self._reply_error(session, ref, request, "unknown_event", f"Unknown event: {request}")
                return
            result = await handler(frame.get("data") or {}, session)
        except DashboardError as e:
            self._reply_error(session, ref, request, e.code, str(e))
            return
        except (AttributeError, KeyError, TypeError, ValueError) as e:
            self._reply_error(session, ref, request, "bad_request", str(e))
            return

        self._broadcaster.send_to_session(
            session.id, EventName.ACK, {"ref": ref, "request": request, "result": result}
        )

    def _reply_error(
        self, session: PushSession, ref: Any, request: Any, code: str, detail: str
    ) -> None:
        logger.info(
            "Request %s on push session %s rejected: %s",
            request,
            session.id,
            code,
            extra={
                "context": {
                    "session_id": session.id,
                    "participant_id": session.participant_id,
                    "request": request,
                    "ref": ref,
                    "error": code,
                }
            },
        )
        self._broadcaster.send_to_session(
            session.id,
            EventName.ERROR,
            {"ref": ref, "request": request, "error": code, "detail": detail},
        )

    @staticmethod
    def _identity(data: dict, key: str, session: PushSession) -> str:
        participant_id = data.get(key) or session.participant_id
        if not participant_id:
            raise InvalidSender(f"Log in first or pass {key}")
        return participant_id

    async def _login(self, data: dict, session: PushSession) -> dict:
        participant = await self._app.store.record_login(data["participant_id"], session.id)
        self._broadcaster.bind(session.id, participant.id)
        return participant.to_dict()

    async def _logout(self, data: dict, session: PushSession) -> dict:
        participant_id = self._identity(data, "participant_id", session)
        participant = await self._app.store.record_logout(participant_id)
        if session.participant_id == participant_id:
            self._broadcaster.bind(session.id, None)
        return participant.to_dict()

    async def _status(self, data: dict, session: PushSession) -> dict:
        participant_id = self._identity(data, "participant_id", session)
        task = data["task"] if "task" in data else UNSET
        participant = await self._app.store.set_status(participant_id, data.get("status"), task)
        return participant.to_dict()

    async def _message(self, data: dict, session: PushSession) -> dict:
        sender_id = self._identity(data, "sender_id", session)
        message = await self._app.store.post_message(
            sender_id, data.get("recipient_id"), data["content"], data.get("kind", "text")
        )
        return message.to_dict()

    async def _read(self, data: dict, session: PushSession) -> dict:
        message = await self._app.store.mark_read(data["id"])
        return message.to_dict()

    async def _command(self, data: dict, session: PushSession) -> dict:
        """Agent-to-agent command: logged, then forwarded to the target's sessions."""
        from_id = self._identity(data, "from_id", session)
        to_id = data.get("to_id")
        command = data["command"]
        params = data.get("params")
        await self._app.store.record_activity(
            from_id,
            ActivityType.COMMAND,
            f"Executed command: {command}",
            {"to_id": to_id, "params": params},
        )
        delivered = 0
        if to_id:
            delivered = self._broadcaster.send_to_participant(
                to_id,
                EventName.AGENT_COMMAND,
                {
                    "from_id": from_id,
                    "command": command,
                    "params": params,
                    "timestamp": datetime.now(timezone.utc).isoformat(),
                },
            )
        return {"delivered": delivered}

    async def _dispatch(self, data: dict, session: PushSession) -> dict:
        caller_id = self._identity(data, "caller_id", session)
        accepted = await self._app.dispatcher.dispatch_agent_command(
            data["agent_id"], data["command"], caller_id, data.get("params")
        )
        return accepted.to_dict()

    async def _call(self, data: dict, session: PushSession) -> dict:
        owner_id = self._identity(data, "owner_id", session)
        accepted = await self._app.dispatcher.dispatch_owner_command(
            data["agent_id"], data["command"], owner_id, data.get("params")
        )
        return accepted.to_dict()

    async def _typing(self, data: dict, session: PushSession) -> dict:
        participant_id = self._identity(data, "participant_id", session)
        is_typing = bool(data.get("is_typing", True))
        self._broadcaster.broadcast_except(
            session.id,
            EventName.TYPING,
            {"participant_id": participant_id, "is_typing": is_typing},
        )
        return {"is_typing": is_typing}


async def _pump(websocket: WebSocket, session: PushSession) -> None:
    """Drain the session queue onto the socket in order."""
    while True:
        event = await session.next_event()
        if event is None:
            await websocket.close(code=SESSION_DROPPED_CLOSE_CODE)
            return
        await websocket.send_json(event.to_frame())


async def _receive(websocket: WebSocket, session: PushSession, channel: PushChannel) -> None:
    while True:
        raw = await websocket.receive_text()
        await channel.handle_frame(raw, session)


def create_realtime_router(app: Application) -> APIRouter:
    """Create realtime router."""
    router = APIRouter(tags=["realtime"])

    @router.websocket("/ws")
    async def push_channel(websocket: WebSocket) -> None:
        await websocket.accept()
        broadcaster = app.broadcaster
        if not isinstance(broadcaster, PushBroadcaster):
            await websocket.close(
                code=NON_PUSH_CLOSE_CODE, reason=f"Realtime mode is {broadcaster.mode}"
            )
            return

        channel = PushChannel(app, broadcaster)
        session = broadcaster.open_session()
        try:
            snapshot = await app.get_snapshot()
            init = snapshot.to_dict()
            init["realtime"] = broadcaster.client_config()
            init["session_id"] = session.id
            await websocket.send_json({"event": EventName.INIT.value, "data": init})

            tasks = {
                asyncio.create_task(_pump(websocket, session)),
                asyncio.create_task(_receive(websocket, session, channel)),
            }
            done, pending = await asyncio.wait(tasks, return_when=asyncio.FIRST_COMPLETED)
            for task in pending:
                task.cancel()
            await asyncio.gather(*pending, return_exceptions=True)
            for task in done:
                error = task.exception()
                if error and not isinstance(error, WebSocketDisconnect):
                    logger.error(
                        "Push session %s failed: %s",
                        session.id,
                        error,
                        exc_info=error,
                        extra={"context": {"session_id": session.id, "participant_id": session.participant_id}},
                    )
        except WebSocketDisconnect:
            pass
        finally:
            broadcaster.close_session(session.id)
            if session.participant_id:
                await app.store.record_disconnect(session.participant_id, session.id)

    return router
