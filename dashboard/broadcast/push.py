"""Push broadcaster: per-session queues drained by the WebSocket channel."""

import asyncio
import uuid

from ..logging_config import get_logger
from ..models import BusEvent, EventName

logger = get_logger(__name__)


class PushSession:
    """One connected observer and its outbound queue."""

    def __init__(self, session_id: str, max_queue_size: int):
        self.id = session_id
        self.participant_id: str | None = None
        self._queue: asyncio.Queue[BusEvent | None] = asyncio.Queue(maxsize=max_queue_size)
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def deliver(self, event: BusEvent) -> bool:
        """Queue an event. Returns False if the session is closed or full."""
        if self._closed:
            return False
        try:
            self._queue.put_nowait(event)
        except asyncio.QueueFull:
            return False
        return True

    async def next_event(self) -> BusEvent | None:
        """Wait for the next event. None means the session was closed."""
        return await self._queue.get()

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        while not self._queue.empty():
            self._queue.get_nowait()
        self._queue.put_nowait(None)


class PushBroadcaster:
    """Pushes every event to every open session as soon as it is emitted."""

    mode = "push"

    def __init__(self, max_queue_size: int = 1000):
        self._max_queue_size = max_queue_size
        self._sessions: dict[str, PushSession] = {}

    @property
    def session_count(self) -> int:
        return len(self._sessions)

    def open_session(self) -> PushSession:
        """Register a new observer. Events emitted from now on are queued for it."""
        session = PushSession(str(uuid.uuid4()), self._max_queue_size)
        self._sessions[session.id] = session
        logger.info(
            "Push session %s opened (%s total)",
            session.id,
            len(self._sessions),
            extra={"context": self._context(session)},
        )
        return session

    def close_session(self, session_id: str) -> PushSession | None:
        session = self._sessions.pop(session_id, None)
        if session:
            session.close()
            logger.info(
                "Push session %s closed (%s total)",
                session_id,
                len(self._sessions),
                extra={"context": self._context(session)},
            )
        return session

    def close_all(self) -> None:
        for session_id in list(self._sessions):
            self.close_session(session_id)

    def bind(self, session_id: str, participant_id: str | None) -> None:
        """Associate a session with the participant that logged in from it."""
        session = self._sessions.get(session_id)
        if session:
            session.participant_id = participant_id
            logger.debug("Push session %s bound", session_id, extra={"context": self._context(session)})

    def get_session(self, session_id: str) -> PushSession | None:
        return self._sessions.get(session_id)

    async def emit(self, event: EventName, payload: dict) -> None:
        """Queue the event for every session, in emission order."""
        bus_event = BusEvent(name=event, payload=payload)
        for session in list(self._sessions.values()):
            self._deliver(session, bus_event)

        # Direct messages are also flagged to the recipient's own sessions
        recipient_id = payload.get("recipient_id") if event is EventName.MESSAGE_NEW else None
        if recipient_id:
            self.send_to_participant(recipient_id, EventName.MESSAGE_DIRECT, payload)

    def send_to_session(self, session_id: str, event: EventName, payload: dict) -> bool:
        session = self._sessions.get(session_id)
        if not session:
            return False
        return self._deliver(session, BusEvent(name=event, payload=payload))

    def send_to_participant(self, participant_id: str, event: EventName, payload: dict) -> int:
        """Deliver to every session bound to a participant. Returns delivery count."""
        delivered = 0
        for session in list(self._sessions.values()):
            if session.participant_id == participant_id:
                if self._deliver(session, BusEvent(name=event, payload=payload)):
                    delivered += 1
        return delivered

    def broadcast_except(self, session_id: str, event: EventName, payload: dict) -> None:
        for session in list(self._sessions.values()):
            if session.id != session_id:
                self._deliver(session, BusEvent(name=event, payload=payload))

    def client_config(self) -> dict:
        return {"mode": self.mode, "path": "/ws"}

    def _context(self, session: PushSession) -> dict:
        return {
            "session_id": session.id,
            "participant_id": session.participant_id,
            "sessions": len(self._sessions),
        }

    def _deliver(self, session: PushSession, event: BusEvent) -> bool:
        if session.deliver(event):
            return True
        if not session.closed:
            # Slow observer: drop it, it resyncs from init on reconnect
            logger.warning(
                "Push session %s queue overflow, dropping session",
                session.id,
                extra={"context": self._context(session)},
            )
            self.close_session(session.id)
        return False
