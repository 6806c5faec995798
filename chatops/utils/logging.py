# chatops/utils/logging.py
"""Structured logging with JSON format and correlation ID support.

Provides:
- JSON-formatted log output for structured logging
- Dispatch correlation ID via ContextVar, so every log line of one event
  carries the same request_id
- Centralized logger configuration
"""

import json
import logging
import uuid
from contextvars import ContextVar
from typing import Any

# Request correlation ID for tracking one dispatch event across async contexts
request_id_var: ContextVar[str] = ContextVar("request_id", default="")


def set_request_id(request_id: str | None = None) -> str:
    """Set the request correlation ID for the current context.

    Args:
        request_id: Identifier for the event; a random one is generated
            when empty.

    Returns:
        The request ID that was set.
    """
    request_id = request_id or uuid.uuid4().hex[:12]
    request_id_var.set(request_id)
    return request_id


def get_request_id() -> str:
    """Get the correlation ID of the event being dispatched, or ""."""
    return request_id_var.get()


# Dispatch attributes copied from `extra=` into JSON lines
DISPATCH_FIELDS = ("command", "group", "interaction_id", "user_id", "channel_id")


class StructuredFormatter(logging.Formatter):
    """JSON formatter for dispatch logs.

    Each line carries timestamp, level, logger and message, the request_id
    of the current event, and the DISPATCH_FIELDS a call site passed with
    `extra=`. Non-ASCII message text is written as UTF-8.

    Usage:
        logger.error("Command failed", extra={"command": "deploy", "user_id": "U1"})
    """

    def format(self, record: logging.LogRecord) -> str:
        log_data: dict[str, Any] = {
            "timestamp": self.formatTime(record),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        request_id = request_id_var.get()
        if request_id:
            log_data["request_id"] = request_id

        for name in DISPATCH_FIELDS:
            value = getattr(record, name, None)
            if value:
                log_data[name] = value

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data, ensure_ascii=False)


def configure_logging(level: str | int = logging.INFO, fmt: str = "text") -> None:
    """Configure root logging for the application.

    Args:
        level: Logging level name or number.
        fmt: "json" for StructuredFormatter output, anything else for
            plain text.
    """
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO

    if fmt == "json":
        handler = logging.StreamHandler()
        handler.setFormatter(StructuredFormatter())
        logging.root.addHandler(handler)
        logging.root.setLevel(level)
        return

    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
