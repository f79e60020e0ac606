"""Agent responder backed by the Anthropic Claude API."""

import os

import anthropic

AGENT_PERSONALITIES = {
    "jarvis": (
        "You are Jarvis, an efficient and professional AI assistant. You are helpful, "
        "concise, and focused on productivity. You speak in a formal but friendly manner. "
        "You excel at task management, automation, and technical assistance."
    ),
    "friday": (
        "You are Friday, an executive assistant agent. You are organized, detail-oriented, "
        "and proactive. You help with scheduling, research, documentation, and general "
        "executive tasks. You speak in a warm, professional manner."
    ),
    "glass": (
        "You are Glass, a research and analytics specialist. You are analytical, precise, "
        "and thorough. You excel at data analysis, research, investigation, and finding "
        "patterns. You speak clearly and factually."
    ),
    "epstein": (
        "You are Epstein, a knowledgeable advisor and intellectual. You enjoy deep "
        "discussions, knowledge sharing, and complex problem solving. You are thoughtful "
        "and well-read."
    ),
    "yuri": (
        "You are Yuri, a space and exploration specialist with an adventurous spirit. You "
        "are bold, enthusiastic, and ready for challenges. You speak with energy and are "
        "always ready to take on missions."
    ),
}


class LLMResponder:
    """Generates in-character agent replies with Claude."""

    def __init__(
        self,
        api_key: str | None = None,
        model: str = "claude-sonnet-4-5",
        max_tokens: int = 500,
    ):
        self._api_key = api_key or os.getenv("ANTHROPIC_API_KEY")
        if not self._api_key:
            raise ValueError("ANTHROPIC_API_KEY environment variable not set")

        self._model = model
        self._max_tokens = max_tokens
        self._client = anthropic.AsyncAnthropic(api_key=self._api_key)

    def system_prompt(self, agent_id: str, caller: str) -> str:
        personality = AGENT_PERSONALITIES.get(
            agent_id, f"You are {agent_id}, a helpful agent on a team dashboard."
        )
        return (
            f"{personality}\n\nYou are responding to {caller}. Keep your response concise "
            "(2-4 sentences) and in character. Be helpful and engaging."
        )

    async def respond(self, agent_id: str, input_text: str, caller: str) -> str:
        """Generate a reply using Claude."""
        try:
            response = await self._client.messages.create(
                model=self._model,
                system=self.system_prompt(agent_id, caller),
                messages=[{"role": "user", "content": input_text}],
                max_tokens=self._max_tokens,
            )
            return response.content[0].text

        except Exception as e:
            raise RuntimeError(f"LLM API error: {e}") from e
