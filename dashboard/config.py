"""Project-level configuration and path helpers."""

import os
from dataclasses import dataclass, field
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parent.parent
LOGS_DIR = PROJECT_ROOT / "logs"
DEFAULT_LOG_PATH = LOGS_DIR / "dashboard.log"
DEFAULT_CLI_SESSION_PATH = Path.home() / ".agent-dashboard" / "session"

REALTIME_MODES = ("push", "relay", "polling")


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    return int(value) if value else default


def _env_float(name: str, default: float) -> float:
    value = os.getenv(name)
    return float(value) if value else default


@dataclass
class Settings:
    """Runtime settings resolved from the environment."""

    api_host: str = "localhost"
    api_port: int = 3000
    realtime: str = "push"
    message_log_cap: int = 500
    activity_log_cap: int = 100
    init_message_limit: int = 50
    init_activity_limit: int = 20
    poll_interval: float = 2.0
    agent_response_timeout: float = 120.0
    agent_command: str | None = None
    anthropic_api_key: str | None = None
    anthropic_model: str = "claude-sonnet-4-5"
    pusher_app_id: str | None = None
    pusher_key: str | None = None
    pusher_secret: str | None = None
    pusher_cluster: str = "ap1"
    pusher_channel: str = "dashboard"
    health_probe_url: str | None = None
    cors_origins: list[str] = field(default_factory=lambda: ["*"])

    @classmethod
    def from_env(cls) -> "Settings":
        """Build settings from environment variables."""
        realtime = os.getenv("DASHBOARD_REALTIME", "push").lower()
        if realtime not in REALTIME_MODES:
            raise ValueError(
                f"DASHBOARD_REALTIME must be one of {', '.join(REALTIME_MODES)}, got {realtime!r}"
            )

        origins = os.getenv("CORS_ORIGINS", "*")

        return cls(
            api_host=os.getenv("API_HOST", "localhost"),
            api_port=_env_int("API_PORT", 3000),
            realtime=realtime,
            message_log_cap=_env_int("MESSAGE_LOG_CAP", 500),
            activity_log_cap=_env_int("ACTIVITY_LOG_CAP", 100),
            poll_interval=_env_float("POLL_INTERVAL", 2.0),
            agent_response_timeout=_env_float("AGENT_RESPONSE_TIMEOUT", 120.0),
            agent_command=os.getenv("AGENT_COMMAND") or None,
            anthropic_api_key=os.getenv("ANTHROPIC_API_KEY") or None,
            anthropic_model=os.getenv("ANTHROPIC_MODEL", "claude-sonnet-4-5"),
            pusher_app_id=os.getenv("PUSHER_APP_ID") or None,
            pusher_key=os.getenv("PUSHER_KEY") or None,
            pusher_secret=os.getenv("PUSHER_SECRET") or None,
            pusher_cluster=os.getenv("PUSHER_CLUSTER", "ap1"),
            pusher_channel=os.getenv("PUSHER_CHANNEL", "dashboard"),
            health_probe_url=os.getenv("HEALTH_PROBE_URL") or None,
            cors_origins=[o.strip() for o in origins.split(",") if o.strip()],
        )
