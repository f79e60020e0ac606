"""In-memory entity store: participants, bounded message and activity logs."""

import asyncio
import copy
import uuid
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable, Protocol

from ..broadcast import IBroadcaster
from ..errors import EmptyContent, InvalidSender, NotFound
from ..logging_config import get_logger
from ..models import (
    Activity,
    ActivityType,
    EventName,
    Message,
    MessageKind,
    Participant,
    ParticipantStatus,
)
from .roster import default_roster

logger = get_logger(__name__)

# Marks "task not supplied" so that None can mean "clear the task"
UNSET = object()

DEFAULT_MESSAGE_CAP = 500
DEFAULT_ACTIVITY_CAP = 100


@dataclass
class Snapshot:
    """Full current state handed to an observer on (re)connect."""

    participants: list[Participant] = field(default_factory=list)
    messages: list[Message] = field(default_factory=list)
    activities: list[Activity] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "participants": [p.to_dict() for p in self.participants],
            "messages": [m.to_dict() for m in self.messages],
            "activities": [a.to_dict() for a in self.activities],
        }


@dataclass
class _BusyHold:
    status: ParticipantStatus
    task: str | None
    count: int = 1


class IEntityStore(Protocol):
    """Canonical state. Every mutation goes through these methods."""

    def get_participant(self, participant_id: str) -> Participant:
        """Get a participant by id. Raises NotFound."""
        ...

    def list_participants(self) -> list[Participant]:
        """All participants in roster order."""
        ...

    def list_messages(self, limit: int = 50, participant_id: str | None = None) -> list[Message]:
        """Most recent messages in append order, optionally filtered."""
        ...

    def list_activities(self, limit: int = 20) -> list[Activity]:
        """Newest activities, newest first."""
        ...

    def snapshot(self, message_limit: int = 50, activity_limit: int = 20) -> Snapshot:
        """Participants plus recent messages and activities."""
        ...

    async def set_status(self, participant_id: str, status=None, task=UNSET) -> Participant:
        """Update status and/or task."""
        ...

    async def mark_busy(self, participant_id: str, task: str) -> Participant:
        """Set busy with a task, saving the prior status on the first hold."""
        ...

    async def release_busy(self, participant_id: str) -> Participant:
        """Drop one busy hold; the last one puts back the saved status."""
        ...

    async def record_login(self, participant_id: str, session_id: str | None = None) -> Participant:
        """Mark a participant online."""
        ...

    async def record_logout(self, participant_id: str) -> Participant:
        """Mark a participant offline."""
        ...

    async def post_message(
        self,
        sender_id: str,
        recipient_id: str | None,
        content: str,
        kind: MessageKind = MessageKind.TEXT,
    ) -> Message:
        """Append a message and its derived activity."""
        ...

    async def mark_read(self, message_id: str) -> Message:
        """Flag a message as read."""
        ...

    async def record_activity(
        self,
        actor_id: str,
        activity_type: ActivityType,
        description: str,
        metadata: dict | None = None,
    ) -> Activity:
        """Append an activity directly."""
        ...


class EntityStore:
    """Owns all participants, messages and activities.

    Each mutator validates first, applies its whole change without suspending,
    then emits its events while still holding the store lock. Emission order
    therefore equals mutation order, and a message-new always precedes the
    activity-new derived from it.
    """

    def __init__(
        self,
        broadcaster: IBroadcaster,
        message_cap: int = DEFAULT_MESSAGE_CAP,
        activity_cap: int = DEFAULT_ACTIVITY_CAP,
        roster: Callable[[], list[Participant]] = default_roster,
    ):
        if message_cap < 1 or activity_cap < 1:
            raise ValueError("Log caps must be positive")

        self._broadcaster = broadcaster
        self._message_cap = message_cap
        self._activity_cap = activity_cap
        self._roster = roster
        self._lock = asyncio.Lock()

        self._participants: dict[str, Participant] = {}
        self._messages: deque[Message] = deque()
        self._message_index: dict[str, Message] = {}
        self._activities: deque[Activity] = deque()  # newest first
        self._busy_holds: dict[str, _BusyHold] = {}
        self._seed()

    def _seed(self) -> None:
        self._participants = {}
        for participant in self._roster():
            if participant.id in self._participants:
                raise ValueError(f"Duplicate participant id in roster: {participant.id}")
            self._participants[participant.id] = participant
        self._messages.clear()
        self._message_index.clear()
        self._activities.clear()
        self._busy_holds.clear()

    @property
    def message_cap(self) -> int:
        return self._message_cap

    @property
    def activity_cap(self) -> int:
        return self._activity_cap

    # Queries

    def get_participant(self, participant_id: str) -> Participant:
        return copy.copy(self._require_participant(participant_id))

    def has_participant(self, participant_id: str) -> bool:
        return participant_id in self._participants

    def list_participants(self) -> list[Participant]:
        return [copy.copy(p) for p in self._participants.values()]

    def get_message(self, message_id: str) -> Message:
        message = self._message_index.get(message_id)
        if not message:
            raise NotFound(f"Message not found: {message_id}")
        return copy.copy(message)

    def list_messages(self, limit: int = 50, participant_id: str | None = None) -> list[Message]:
        if limit <= 0:
            return []
        messages = list(self._messages)
        if participant_id:
            messages = [
                m
                for m in messages
                if m.sender_id == participant_id
                or m.recipient_id == participant_id
                or m.recipient_id is None
            ]
        return [copy.copy(m) for m in messages[-limit:]]

    def list_activities(self, limit: int = 20) -> list[Activity]:
        if limit <= 0:
            return []
        return list(self._activities)[:limit]

    def snapshot(self, message_limit: int = 50, activity_limit: int = 20) -> Snapshot:
        return Snapshot(
            participants=self.list_participants(),
            messages=self.list_messages(message_limit),
            activities=self.list_activities(activity_limit),
        )

    def call_history(self) -> list[Activity]:
        """Activities recorded for owner calls, newest first."""
        return [
            a
            for a in self._activities
            if a.metadata.get("command_type") == MessageKind.OWNER_CALL.value
            or a.metadata.get("from_owner")
        ]

    def agents_online(self) -> int:
        return sum(
            1
            for p in self._participants.values()
            if not p.is_owner and p.status is ParticipantStatus.ONLINE
        )

    def display_name(self, participant_id: str | None) -> str:
        """Participant name, or the raw id when unknown."""
        if participant_id is None:
            return "everyone"
        participant = self._participants.get(participant_id)
        return participant.name if participant else participant_id

    # Mutators

    async def set_status(
        self,
        participant_id: str,
        status: ParticipantStatus | str | None = None,
        task=UNSET,
    ) -> Participant:
        """Update status and/or task; a non-empty task is logged as an activity."""
        new_status = ParticipantStatus(status) if status is not None else None

        async with self._lock:
            participant = self._require_participant(participant_id)

            if new_status is not None:
                participant.status = new_status
            task_set = task is not UNSET
            if task_set:
                participant.current_task = task or None
            if participant.status is ParticipantStatus.OFFLINE:
                participant.current_task = None
            participant.last_activity = _now()

            activity = None
            if task_set and participant.current_task:
                activity = self._append_activity(
                    participant.id, ActivityType.TASK, f"Working on: {participant.current_task}"
                )

            await self._emit(EventName.PARTICIPANT_UPDATED, participant.to_dict())
            if activity:
                await self._emit(EventName.ACTIVITY_NEW, activity.to_dict())
            return copy.copy(participant)

    async def mark_busy(self, participant_id: str, task: str) -> Participant:
        """Take a busy hold on a participant for the duration of a call.

        Holds are counted. The first one saves the status and task in effect
        right now, under the same lock that sets busy, so overlapping holds
        always share the value from before any of them.
        """
        async with self._lock:
            participant = self._require_participant(participant_id)

            hold = self._busy_holds.get(participant.id)
            if hold is None:
                self._busy_holds[participant.id] = _BusyHold(
                    participant.status, participant.current_task
                )
            else:
                hold.count += 1

            participant.status = ParticipantStatus.BUSY
            participant.current_task = task
            participant.last_activity = _now()
            activity = self._append_activity(participant.id, ActivityType.TASK, f"Working on: {task}")

            await self._emit(EventName.PARTICIPANT_UPDATED, participant.to_dict())
            await self._emit(EventName.ACTIVITY_NEW, activity.to_dict())
            return copy.copy(participant)

    async def release_busy(self, participant_id: str) -> Participant:
        """Release one busy hold. Releasing the last one restores the saved status."""
        async with self._lock:
            participant = self._require_participant(participant_id)
            hold = self._busy_holds.get(participant.id)
            if hold is None:
                raise ValueError(f"No busy hold on {participant_id}")

            hold.count -= 1
            if hold.count > 0:
                return copy.copy(participant)

            del self._busy_holds[participant.id]
            participant.status = hold.status
            participant.current_task = (
                None if participant.status is ParticipantStatus.OFFLINE else hold.task
            )
            participant.last_activity = _now()

            await self._emit(EventName.PARTICIPANT_UPDATED, participant.to_dict())
            return copy.copy(participant)

    def busy_holds(self, participant_id: str) -> int:
        hold = self._busy_holds.get(participant_id)
        return hold.count if hold else 0

    async def record_login(self, participant_id: str, session_id: str | None = None) -> Participant:
        async with self._lock:
            participant = self._require_participant(participant_id)
            participant.status = ParticipantStatus.ONLINE
            participant.last_activity = _now()
            participant.session_id = session_id

            activity = self._append_activity(
                participant.id, ActivityType.LOGIN, f"{participant.name} is now online"
            )
            logger.info("Participant %s logged in", participant.id)

            await self._emit(EventName.PARTICIPANT_UPDATED, participant.to_dict())
            await self._emit(EventName.ACTIVITY_NEW, activity.to_dict())
            return copy.copy(participant)

    async def record_logout(self, participant_id: str) -> Participant:
        async with self._lock:
            participant = self._require_participant(participant_id)
            self._set_offline(participant)

            activity = self._append_activity(
                participant.id, ActivityType.LOGOUT, f"{participant.name} went offline"
            )
            logger.info("Participant %s logged out", participant.id)

            await self._emit(EventName.PARTICIPANT_UPDATED, participant.to_dict())
            await self._emit(EventName.ACTIVITY_NEW, activity.to_dict())
            return copy.copy(participant)

    async def record_disconnect(self, participant_id: str, session_id: str) -> bool:
        """Take a participant offline when the session it logged in from drops.

        Returns False if the participant has since bound another session.
        """
        async with self._lock:
            participant = self._require_participant(participant_id)
            if participant.session_id != session_id:
                return False
            self._set_offline(participant)

            activity = self._append_activity(
                participant.id, ActivityType.DISCONNECT, f"{participant.name} disconnected"
            )
            logger.info("Participant %s disconnected", participant.id)

            await self._emit(EventName.PARTICIPANT_UPDATED, participant.to_dict())
            await self._emit(EventName.ACTIVITY_NEW, activity.to_dict())
            return True

    async def post_message(
        self,
        sender_id: str,
        recipient_id: str | None,
        content: str,
        kind: MessageKind | str = MessageKind.TEXT,
    ) -> Message:
        message_kind = MessageKind(kind)

        async with self._lock:
            sender = self._participants.get(sender_id)
            if sender is None:
                raise InvalidSender(f"Unknown sender: {sender_id}")
            if not content or not content.strip():
                raise EmptyContent("Message content is empty")

            message = Message(
                id=str(uuid.uuid4()),
                sender_id=sender_id,
                recipient_id=recipient_id or None,
                content=content,
                kind=message_kind,
                timestamp=_now(),
            )
            self._messages.append(message)
            self._message_index[message.id] = message
            while len(self._messages) > self._message_cap:
                evicted = self._messages.popleft()
                self._message_index.pop(evicted.id, None)

            activity = self._append_activity(
                sender_id,
                ActivityType.MESSAGE,
                f"{sender.name} sent message to {self.display_name(message.recipient_id)}",
                {"message_id": message.id},
            )

            await self._emit(EventName.MESSAGE_NEW, message.to_dict())
            await self._emit(EventName.ACTIVITY_NEW, activity.to_dict())
            return copy.copy(message)

    async def mark_read(self, message_id: str) -> Message:
        async with self._lock:
            message = self._message_index.get(message_id)
            if not message:
                raise NotFound(f"Message not found: {message_id}")
            message.read = True

            await self._emit(EventName.MESSAGE_READ, {"id": message_id})
            return copy.copy(message)

    async def record_activity(
        self,
        actor_id: str,
        activity_type: ActivityType | str,
        description: str,
        metadata: dict | None = None,
    ) -> Activity:
        """Direct-write path for dispatch and external instrumentation."""
        kind = ActivityType(activity_type)

        async with self._lock:
            self._require_participant(actor_id)
            activity = self._append_activity(actor_id, kind, description, metadata)

            await self._emit(EventName.ACTIVITY_NEW, activity.to_dict())
            return activity

    async def clear(self) -> None:
        """Drop all messages and activities and reseed the roster."""
        async with self._lock:
            self._seed()
            logger.info("Store cleared")

    # Internals

    def _require_participant(self, participant_id: str) -> Participant:
        participant = self._participants.get(participant_id)
        if participant is None:
            raise NotFound(f"Participant not found: {participant_id}")
        return participant

    def _set_offline(self, participant: Participant) -> None:
        participant.status = ParticipantStatus.OFFLINE
        participant.current_task = None
        participant.session_id = None

    def _append_activity(
        self,
        actor_id: str,
        activity_type: ActivityType,
        description: str,
        metadata: dict | None = None,
    ) -> Activity:
        activity = Activity(
            id=str(uuid.uuid4()),
            actor_id=actor_id,
            type=activity_type,
            description=description,
            timestamp=_now(),
            metadata=dict(metadata or {}),
        )
        self._activities.appendleft(activity)
        while len(self._activities) > self._activity_cap:
            self._activities.pop()
        return activity

    async def _emit(self, event: EventName, payload: dict) -> None:
        await self._broadcaster.emit(event, payload)


def _now() -> datetime:
    return datetime.now(timezone.utc)
