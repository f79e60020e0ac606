"""Structured logging configuration for the agent dashboard."""

import json
import logging
import logging.config
import logging.handlers
import os
from datetime import datetime, timezone
from pathlib import Path

from .config import DEFAULT_LOG_PATH

# Libraries whose INFO output would drown the dashboard's own records
QUIET_LOGGERS = ("uvicorn.access", "httpx", "httpcore", "urllib3")


class JSONFormatter(logging.Formatter):
    """One JSON object per record.

    Structured fields go in ``extra={"context": {...}}``; they are emitted
    under ``context`` next to the standard fields.
    """

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        context = getattr(record, "context", None)
        if context:
            log_data["context"] = context

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data, default=str)


def build_logging_config(log_level: str, log_file: str | None) -> dict:
    """dictConfig for stdout plus an optional rotating file."""
    handlers = {
        "console": {
            "class": "logging.StreamHandler",
            "formatter": "json",
            "stream": "ext://sys.stdout",
        },
    }
    if log_file:
        handlers["file"] = {
            "class": "logging.handlers.RotatingFileHandler",
            "filename": log_file,
            "maxBytes": 10 * 1024 * 1024,  # 10 MB
            "backupCount": 5,
            "formatter": "json",
            "encoding": "utf-8",
        }

    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "json": {
                "()": "dashboard.logging_config.JSONFormatter",
            },
        },
        "handlers": handlers,
        "loggers": {name: {"level": "WARNING"} for name in QUIET_LOGGERS},
        "root": {
            "level": log_level.upper(),
            "handlers": list(handlers),
        },
    }


def setup_logging(
    log_level: str | None = None,
    log_file: str | None = None,
) -> None:
    """
    Setup structured logging for the dashboard server.

    Args:
        log_level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
                   Defaults to LOG_LEVEL env var or INFO.
        log_file: Path to log file. Defaults to LOG_FILE env var or
                  logs/dashboard.log; an empty LOG_FILE logs to stdout only.
    """
    if log_level is None:
        log_level = os.getenv("LOG_LEVEL", "INFO")

    if log_file is None:
        log_file = os.getenv("LOG_FILE", str(DEFAULT_LOG_PATH))

    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)

    logging.config.dictConfig(build_logging_config(log_level, log_file or None))


def get_logger(name: str) -> logging.Logger:
    """Get a logger instance (typically for __name__)."""
    return logging.getLogger(name)
