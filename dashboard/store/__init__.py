"""Entity store module."""

from .roster import OWNER_ID, default_roster
from .store import UNSET, EntityStore, IEntityStore, Snapshot

__all__ = [
    "OWNER_ID",
    "UNSET",
    "EntityStore",
    "IEntityStore",
    "Snapshot",
    "default_roster",
]
