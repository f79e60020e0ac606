"""Tests for settings and logging setup."""

import json
import logging

import pytest

from dashboard.config import Settings
from dashboard.logging_config import JSONFormatter, get_logger


class TestSettings:
    """Tests for Settings.from_env()."""

    def test_defaults(self, monkeypatch):
        """Test defaults with an empty environment."""
        for name in ("API_PORT", "DASHBOARD_REALTIME", "MESSAGE_LOG_CAP", "CORS_ORIGINS"):
            monkeypatch.delenv(name, raising=False)

        settings = Settings.from_env()

        assert settings.api_port == 3000
        assert settings.realtime == "push"
        assert settings.message_log_cap == 500
        assert settings.cors_origins == ["*"]

    def test_reads_environment(self, monkeypatch):
        """Test overrides from the environment."""
        monkeypatch.setenv("DASHBOARD_REALTIME", "Polling")
        monkeypatch.setenv("AGENT_RESPONSE_TIMEOUT", "30")
        monkeypatch.setenv("CORS_ORIGINS", "http://a.test, http://b.test")

        settings = Settings.from_env()

        assert settings.realtime == "polling"
        assert settings.agent_response_timeout == 30.0
        assert settings.cors_origins == ["http://a.test", "http://b.test"]

    def test_unknown_realtime_mode(self, monkeypatch):
        """Test that an unknown strategy is rejected at startup."""
        monkeypatch.setenv("DASHBOARD_REALTIME", "carrier-pigeon")

        with pytest.raises(ValueError):
            Settings.from_env()


class TestLogging:
    """Tests for the JSON log formatter."""

    def test_json_formatter(self):
        """Test that records render as JSON with context."""
        record = logging.LogRecord("dashboard.store", logging.INFO, __file__, 1, "hello %s", ("x",), None)
        record.context = {"agent": "glass"}

        data = json.loads(JSONFormatter().format(record))

        assert data["message"] == "hello x"
        assert data["level"] == "INFO"
        assert data["context"] == {"agent": "glass"}

    def test_get_logger(self):
        """Test named loggers."""
        assert get_logger("dashboard.test").name == "dashboard.test"
