"""Command dispatch module."""

from .dispatcher import (
    FALLBACK_REPLY,
    Accepted,
    CommandDispatcher,
    DispatchState,
    ICommandDispatcher,
)

__all__ = [
    "FALLBACK_REPLY",
    "Accepted",
    "CommandDispatcher",
    "DispatchState",
    "ICommandDispatcher",
]
