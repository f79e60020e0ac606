"""Client-side view model that applies fan-out events idempotently."""

from collections import deque

from ..models import EventName


class _EvictedIds:
    """Bounded memory of ids that aged out of a capped list."""

    def __init__(self, size: int):
        self._order: deque[str] = deque()
        self._ids: set[str] = set()
        self._size = size

    def __contains__(self, item_id: str) -> bool:
        return item_id in self._ids

    def add(self, item_id: str) -> None:
        self._order.append(item_id)
        self._ids.add(item_id)
        while len(self._order) > self._size:
            self._ids.discard(self._order.popleft())

    def clear(self) -> None:
        self._order.clear()
        self._ids.clear()


class DashboardView:
    """Local copy of dashboard state as seen by one observer.

    Works on wire payloads (plain dicts). Applying the same event twice
    leaves the view as if it were applied once: messages and activities are
    deduplicated by id, participant records are replaced wholesale.
    Ids evicted by the caps are remembered for a while, so a late redelivery
    of an old message or activity does not bring it back.
    """

    def __init__(self, message_cap: int = 500, activity_cap: int = 100):
        self._message_cap = message_cap
        self._activity_cap = activity_cap
        self.participants: dict[str, dict] = {}
        self.messages: list[dict] = []
        self.activities: list[dict] = []  # newest first
        self._messages_by_id: dict[str, dict] = {}
        self._activity_ids: set[str] = set()
        self._evicted_messages = _EvictedIds(message_cap)
        self._evicted_activities = _EvictedIds(activity_cap)
        self.initialized = False

    def has_message(self, message_id: str) -> bool:
        return message_id in self._messages_by_id

    def get_message(self, message_id: str) -> dict | None:
        return self._messages_by_id.get(message_id)

    def has_activity(self, activity_id: str) -> bool:
        return activity_id in self._activity_ids

    def apply_init(self, snapshot: dict) -> None:
        """Replace the whole view with a snapshot."""
        self.participants = {p["id"]: dict(p) for p in snapshot.get("participants", [])}
        self.messages = []
        self._messages_by_id = {}
        self._evicted_messages.clear()
        for message in snapshot.get("messages", []):
            self._add_message(message)
        self.activities = []
        self._activity_ids = set()
        self._evicted_activities.clear()
        for activity in reversed(snapshot.get("activities", [])):
            self._add_activity(activity)
        self.initialized = True

    def apply(self, event: str, payload) -> bool:
        """Apply one event. Returns True if the view changed."""
        try:
            name = EventName(event)
        except ValueError:
            return False

        if name is EventName.INIT:
            self.apply_init(payload)
            return True
        if name is EventName.PARTICIPANT_UPDATED:
            if self.participants.get(payload["id"]) == payload:
                return False
            self.participants[payload["id"]] = dict(payload)
            return True
        if name in (EventName.MESSAGE_NEW, EventName.MESSAGE_DIRECT):
            return self._add_message(payload)
        if name is EventName.MESSAGE_READ:
            message = self._messages_by_id.get(payload["id"])
            if message is None or message.get("read"):
                return False
            message["read"] = True
            return True
        if name is EventName.ACTIVITY_NEW:
            return self._add_activity(payload)
        return False

    def _add_message(self, message: dict) -> bool:
        if message["id"] in self._messages_by_id or message["id"] in self._evicted_messages:
            return False
        record = dict(message)
        self.messages.append(record)
        self._messages_by_id[record["id"]] = record
        while len(self.messages) > self._message_cap:
            evicted = self.messages.pop(0)
            self._messages_by_id.pop(evicted["id"], None)
            self._evicted_messages.add(evicted["id"])
        return True

    def _add_activity(self, activity: dict) -> bool:
        if activity["id"] in self._activity_ids or activity["id"] in self._evicted_activities:
            return False
        # Relays may deliver out of order; keep newest first by timestamp
        index = 0
        timestamp = activity.get("timestamp") or ""
        while index < len(self.activities) and (self.activities[index].get("timestamp") or "") > timestamp:
            index += 1
        self.activities.insert(index, dict(activity))
        self._activity_ids.add(activity["id"])
        while len(self.activities) > self._activity_cap:
            evicted = self.activities.pop()
            self._activity_ids.discard(evicted["id"])
            self._evicted_activities.add(evicted["id"])
        return activity["id"] in self._activity_ids
