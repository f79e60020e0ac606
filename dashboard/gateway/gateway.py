"""Agent responder gateway with a hard upper bound on every call."""

import asyncio

from ..errors import GatewayFailure, GatewayTimeout
from ..logging_config import get_logger
from .responders import IAgentResponder

logger = get_logger(__name__)

DEFAULT_TIMEOUT = 120.0


class AgentGateway:
    """Calls a responder and normalizes every failure into a gateway error."""

    def __init__(self, responder: IAgentResponder, timeout: float = DEFAULT_TIMEOUT):
        if timeout <= 0:
            raise ValueError("Gateway timeout must be positive")
        self._responder = responder
        self._timeout = timeout

    @property
    def timeout(self) -> float:
        return self._timeout

    async def respond(self, agent_id: str, input_text: str, caller: str) -> str:
        """Return the agent's reply text.

        Raises GatewayTimeout if the responder takes longer than the timeout
        and GatewayFailure if it errors or returns a blank reply.
        """
        try:
            reply = await asyncio.wait_for(
                self._responder.respond(agent_id, input_text, caller),
                timeout=self._timeout,
            )
        except asyncio.TimeoutError:
            logger.warning("Agent %s did not answer within %ss", agent_id, self._timeout)
            raise GatewayTimeout(
                f"Agent {agent_id} did not answer within {self._timeout}s"
            ) from None
        except Exception as e:
            logger.error("Agent %s responder failed: %s", agent_id, e)
            raise GatewayFailure(f"Agent {agent_id} failed: {e}") from e

        if not reply or not reply.strip():
            raise GatewayFailure(f"Agent {agent_id} returned an empty reply")
        return reply.strip()
