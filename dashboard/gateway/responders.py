"""Agent responder implementations that do not need an LLM."""

import asyncio
import shlex
from typing import Protocol

from ..logging_config import get_logger

logger = get_logger(__name__)


class IAgentResponder(Protocol):
    """Produces a reply for an agent given some input text."""

    async def respond(self, agent_id: str, input_text: str, caller: str) -> str:
        """Return the agent's reply. May raise on failure."""
        ...


CANNED_REPLIES = {
    "jarvis": "Hello {caller}! I'm Jarvis, your AI assistant. How can I help you today?",
    "friday": "Hi {caller}! Friday here. I'm ready to assist you with any tasks.",
    "glass": "Greetings {caller}. Glass analyzing... What would you like me to investigate?",
    "epstein": "Hello {caller}. Epstein here. Ready for knowledge sharing and deep discussions.",
    "yuri": "Hey {caller}! Yuri reporting for duty. What mission are we on today?",
}


class CannedResponder:
    """Fixed per-agent greetings, used when no real backend is configured."""

    def __init__(self, delay: float = 0.0):
        self._delay = delay

    async def respond(self, agent_id: str, input_text: str, caller: str) -> str:
        if self._delay:
            await asyncio.sleep(self._delay)
        template = CANNED_REPLIES.get(agent_id, "Hello {caller}! {agent} is ready to help.")
        return template.format(caller=caller, agent=agent_id)


class CommandResponder:
    """Runs an external agent backend once per call and returns its stdout.

    The command template may use {agent}, {message} and {caller}; each
    placeholder is substituted into a single argument, never through a shell.
    """

    def __init__(self, command_template: str):
        self._argv_template = shlex.split(command_template)
        if not self._argv_template:
            raise ValueError("Agent command template is empty")

    def build_argv(self, agent_id: str, input_text: str, caller: str) -> list[str]:
        return [
            arg.replace("{agent}", agent_id)
            .replace("{message}", input_text)
            .replace("{caller}", caller)
            for arg in self._argv_template
        ]

    async def respond(self, agent_id: str, input_text: str, caller: str) -> str:
        argv = self.build_argv(agent_id, input_text, caller)
        process = await asyncio.create_subprocess_exec(
            *argv,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
        try:
            stdout, stderr = await process.communicate()
        except asyncio.CancelledError:
            # Bounded wait expired upstream; don't leave the backend running
            if process.returncode is None:
                process.kill()
                await process.wait()
            raise

        if process.returncode != 0:
            detail = stderr.decode("utf-8", errors="replace").strip()[:200]
            raise RuntimeError(
                f"Agent backend exited with code {process.returncode}: {detail}"
            )

        logger.debug("Agent backend for %s returned %s bytes", agent_id, len(stdout))
        return stdout.decode("utf-8", errors="replace").strip()
