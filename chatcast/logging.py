"""
Logging setup for the chat service.

Every record is tagged with the correlation id of the HTTP request or
WebSocket connection that produced it. Inside a connection the log context
also carries the ``client_id``.

Handlers:
- console: human-readable, all levels
- file: JSON lines, errors only
- Loki: JSON lines, info and above (``LOKI_ENABLED``)
"""

import json
import logging
import os
import sys
from contextvars import ContextVar
from typing import Any

from chatcast.constants import LOKI_MAX_LOG_SIZE_BYTES
from chatcast.middlewares.correlation_id import get_correlation_id
from chatcast.settings import app_settings

log_context: ContextVar[dict[str, Any] | None] = ContextVar(
    "log_context", default=None
)

# Attributes every LogRecord has; anything else was passed via ``extra=``
_RECORD_ATTRIBUTES = frozenset(logging.makeLogRecord({}).__dict__) | {
    "message",
    "correlation_id",
    "client_tag",
}

_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
_TRUNCATED_SUFFIX = "... [TRUNCATED]"


def set_log_context(**kwargs: Any) -> None:
    """
    Add fields to the log context of the current task.

    A new dict is stored on every call, so a connection task never mutates
    the context it inherited from its parent.

    Example:
        >>> set_log_context(client_id="42")
        >>> logger.info("Message received")  # JSON output has client_id
    """
    log_context.set({**get_log_context(), **kwargs})


def get_log_context() -> dict[str, Any]:
    return log_context.get() or {}


def clear_log_context() -> None:
    log_context.set(None)


class StructuredJSONFormatter(logging.Formatter):
    """
    One JSON object per record.

    Carries level, logger, message and source location, plus the
    correlation id, the log context fields, any ``extra=`` fields and the
    formatted exception. Oversized messages are cut so that the serialized
    record stays under Loki's entry size limit.
    """

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "timestamp": self.formatTime(record, _DATE_FORMAT),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "location": f"{record.module}.{record.funcName}:{record.lineno}",
            "environment": app_settings.ENVIRONMENT.value,
        }

        if correlation_id := get_correlation_id():
            entry["correlation_id"] = correlation_id

        entry.update(get_log_context())
        entry.update(
            {
                key: value
                for key, value in record.__dict__.items()
                if key not in _RECORD_ATTRIBUTES
            }
        )

        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)

        serialized = json.dumps(entry, default=str)
        overflow = len(serialized) - LOKI_MAX_LOG_SIZE_BYTES
        if overflow > 0:
            keep = max(len(entry["message"]) - overflow - len(_TRUNCATED_SUFFIX), 0)
            entry["message"] = entry["message"][:keep] + _TRUNCATED_SUFFIX
            serialized = json.dumps(entry, default=str)

        return serialized


class HumanReadableFormatter(logging.Formatter):
    """
    Console formatter.

    INFO lines are short; every other level also shows where the record
    was emitted. The bracket holds the correlation id and, inside a
    connection, the client id: ``[1a2b3c4d #42]``.
    """

    SHORT_FMT = "%(asctime)s - [%(correlation_id)s%(client_tag)s] %(levelname)s: %(message)s"
    LONG_FMT = "%(asctime)s - [%(correlation_id)s%(client_tag)s] %(levelname)s: %(module)s.%(funcName)s:%(lineno)d - %(message)s"

    def __init__(self) -> None:
        super().__init__()
        self._short = logging.Formatter(self.SHORT_FMT, datefmt=_DATE_FORMAT)
        self._long = logging.Formatter(self.LONG_FMT, datefmt=_DATE_FORMAT)

    def format(self, record: logging.LogRecord) -> str:
        record.correlation_id = get_correlation_id() or "-"

        client_id = get_log_context().get("client_id")
        record.client_tag = f" #{client_id}" if client_id is not None else ""

        if record.levelno == logging.INFO:
            return self._short.format(record)
        return self._long.format(record)


def _error_file_handler() -> logging.Handler | None:
    try:
        log_dir = os.path.dirname(app_settings.LOG_FILE_PATH)
        if log_dir:
            os.makedirs(log_dir, exist_ok=True)
        handler = logging.FileHandler(app_settings.LOG_FILE_PATH)
    except OSError as e:
        logging.getLogger().warning(f"Could not create file handler: {e}")
        return None

    handler.setLevel(logging.ERROR)
    handler.setFormatter(StructuredJSONFormatter())
    return handler


def _loki_handler() -> logging.Handler | None:
    # Optional dependency, installed with the ``loki`` extra
    try:
        from logging_loki import LokiHandler

        handler = LokiHandler(
            url=f"{app_settings.LOKI_URL}/loki/api/v{app_settings.LOKI_VERSION}/push",
            tags={
                "application": "chatcast",
                "environment": app_settings.ENVIRONMENT.value,
            },
            version=app_settings.LOKI_VERSION,
        )
    except (ImportError, ValueError) as e:
        logging.getLogger().warning(f"Could not configure Loki handler: {e}")
        return None

    handler.setLevel(logging.INFO)
    handler.setFormatter(StructuredJSONFormatter())
    return handler


def setup_logging() -> logging.Logger:
    """Configure the root logger from settings and return it."""
    logger = logging.getLogger()
    logger.setLevel(getattr(logging, app_settings.LOG_LEVEL.upper()))
    logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(logging.DEBUG)
    console_handler.setFormatter(HumanReadableFormatter())
    logger.addHandler(console_handler)

    if file_handler := _error_file_handler():
        logger.addHandler(file_handler)

    if app_settings.LOKI_ENABLED and (loki_handler := _loki_handler()):
        logger.addHandler(loki_handler)
        logger.info("Loki handler configured")

    return logger


logger = setup_logging()
