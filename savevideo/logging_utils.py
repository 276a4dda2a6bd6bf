"""Logging setup: human-readable console output plus a rotating JSON event log."""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from logging.handlers import TimedRotatingFileHandler
from typing import Any

from .config import AppConfig

_STANDARD_ATTRS = frozenset(vars(logging.LogRecord("", 0, "", 0, "", None, None))) | {"message", "asctime"}

# httpx logs every request at INFO; probes alone would flood the console.
NOISY_LOGGERS = ("httpx", "httpcore")


def _event_fields(message: str) -> dict[str, Any] | None:
    """Decode messages produced by the ``_log_event`` helpers."""
    if not message.startswith('{"event":'):
        return None
    try:
        fields = json.loads(message)
    except ValueError:
        return None
    return fields if isinstance(fields, dict) else None


class JsonFormatter(logging.Formatter):
    """One JSON object per line; structured pipeline events are flattened into it."""

    def format(self, record: logging.LogRecord) -> str:
        message = record.getMessage()
        payload: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": message,
            "event": getattr(record, "event", record.funcName),
            "environment": getattr(record, "environment", "unknown"),
        }
        fields = _event_fields(message)
        if fields is not None:
            payload.update(fields)
        for key, value in record.__dict__.items():
            if key not in _STANDARD_ATTRS and key not in payload:
                payload[key] = value
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str)


class ContextFilter(logging.Filter):
    """Stamps the deployment environment on every record."""

    def __init__(self, environment: str) -> None:
        super().__init__()
        self._environment = environment

    def filter(self, record: logging.LogRecord) -> bool:
        record.environment = self._environment
        record.event = getattr(record, "event", record.funcName)
        return True


def configure_logging(config: AppConfig) -> logging.Logger:
    """Replace root handlers with console and rotating JSON file outputs."""
    root = logging.getLogger()
    root.setLevel(config.log_level)
    for handler in list(root.handlers):
        root.removeHandler(handler)
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    context_filter = ContextFilter(config.environment)

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(
        logging.Formatter(
            "%(asctime)s | %(levelname)s | %(name)s | %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
    )
    console_handler.addFilter(context_filter)
    root.addHandler(console_handler)

    config.log_path.parent.mkdir(parents=True, exist_ok=True)
    file_handler = TimedRotatingFileHandler(
        filename=str(config.log_path),
        when="midnight",
        backupCount=7,
        utc=True,
        encoding="utf-8",
    )
    file_handler.setFormatter(JsonFormatter())
    file_handler.addFilter(context_filter)
    root.addHandler(file_handler)
    return logging.getLogger("savevideo")
