"""Agent responder gateway module."""

from .gateway import AgentGateway
from .llm_responder import AGENT_PERSONALITIES, LLMResponder
from .responders import CannedResponder, CommandResponder, IAgentResponder

__all__ = [
    "AGENT_PERSONALITIES",
    "AgentGateway",
    "CannedResponder",
    "CommandResponder",
    "IAgentResponder",
    "LLMResponder",
]
