"""Static participant roster seeded at process start."""

from ..models import Agent, Owner, Participant

OWNER_ID = "ferry"


def default_roster() -> list[Participant]:
    """Fresh participant records for the five agents and the owner."""
    return [
        Agent(id="yuri", name="Yuri", color="#FF6B6B", avatar="👨‍🚀"),
        Agent(id="jarvis", name="Jarvis", color="#4ECDC4", avatar="🤖"),
        Agent(id="friday", name="Friday", color="#45B7D1", avatar="👩‍💼"),
        Agent(id="glass", name="Glass", color="#96CEB4", avatar="🔍"),
        Agent(id="epstein", name="Epstein", color="#DDA0DD", avatar="🧠"),
        Owner(id=OWNER_ID, name="Ferry", color="#FFD700", avatar="👤"),
    ]
