"""Agent health probe module."""

from .probe import (
    AgentHealth,
    HttpHealthProbe,
    IHealthProbe,
    computed_status,
    overlay_status,
    probe_overlay,
)

__all__ = [
    "AgentHealth",
    "HttpHealthProbe",
    "IHealthProbe",
    "computed_status",
    "overlay_status",
    "probe_overlay",
]
