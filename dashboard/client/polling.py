"""Polling reconciliation: turn successive snapshots into events."""

from ..models import EventName
from .view import DashboardView


class PollingReconciler:
    """Diffs freshly fetched state against a view and applies the delta.

    Messages are compared by the last seen message id (the fetched list is a
    tail of the log); activities by the newest seen activity id (the fetched
    list is a head of the newest-first log). Anything already in the view is
    skipped, so overlapping polls never double-apply.
    """

    def __init__(self, view: DashboardView):
        self.view = view

    def reconcile(
        self,
        participants: list[dict],
        messages: list[dict],
        activities: list[dict],
    ) -> list[tuple[str, dict]]:
        """Apply one poll cycle. Returns the events that changed the view, in application order."""
        events: list[tuple[str, dict]] = []

        for participant in participants:
            if self.view.participants.get(participant["id"]) != participant:
                events.append((EventName.PARTICIPANT_UPDATED.value, participant))

        for message in self._new_messages(messages):
            events.append((EventName.MESSAGE_NEW.value, message))

        for message in messages:
            known = self.view.get_message(message["id"])
            if known is not None and message.get("read") and not known.get("read"):
                events.append((EventName.MESSAGE_READ.value, {"id": message["id"]}))

        # Oldest first so the view ends up newest first
        for activity in reversed(self._new_activities(activities)):
            events.append((EventName.ACTIVITY_NEW.value, activity))

        # The view drops anything it has already seen, evicted entries included
        return [(event, payload) for event, payload in events if self.view.apply(event, payload)]

    def _new_messages(self, messages: list[dict]) -> list[dict]:
        candidates = messages
        if self.view.messages:
            last_seen = self.view.messages[-1]["id"]
            for index, message in enumerate(messages):
                if message["id"] == last_seen:
                    candidates = messages[index + 1:]
                    break
        return [m for m in candidates if not self.view.has_message(m["id"])]

    def _new_activities(self, activities: list[dict]) -> list[dict]:
        candidates = activities
        if self.view.activities:
            newest_seen = self.view.activities[0]["id"]
            for index, activity in enumerate(activities):
                if activity["id"] == newest_seen:
                    candidates = activities[:index]
                    break
        return [a for a in candidates if not self.view.has_activity(a["id"])]
