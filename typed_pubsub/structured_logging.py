"""
Structured Logging — Per-subsystem structured logging with JSON output.

Every record emitted by the multiplexer carries a subsystem tag and, while a
message is being dispatched, the channel / event kind / registration it was
dispatched for.
"""

import json
import logging
import sys
import uuid
from contextlib import contextmanager
from contextvars import ContextVar
from enum import Enum
from typing import Any, Dict, Iterator, Optional

# Context variables for dispatch correlation
channel_var: ContextVar[str] = ContextVar("channel", default="")
event_var: ContextVar[str] = ContextVar("event", default="")
registration_id_var: ContextVar[str] = ContextVar("registration_id", default="")

ROOT_LOGGER = "typed_pubsub"


class Subsystem(str, Enum):
    MULTIPLEXER = "multiplexer"
    REGISTRY = "registry"
    TRANSPORT = "transport"


class StructuredFormatter(logging.Formatter):
    """JSON structured log formatter."""

    def format(self, record: logging.LogRecord) -> str:
        log_entry = {
            "timestamp": self.formatTime(record),
            "level": record.levelname,
            "subsystem": getattr(record, "subsystem", "general"),
            "message": record.getMessage(),
            "logger": record.name,
        }

        # Add context vars if set
        channel = channel_var.get("")
        if channel:
            log_entry["channel"] = channel
        event = event_var.get("")
        if event:
            log_entry["event"] = event
        reg_id = registration_id_var.get("")
        if reg_id:
            log_entry["registration_id"] = reg_id

        # Add extra fields
        extra = getattr(record, "extra_data", None)
        if extra:
            log_entry["data"] = extra

        # Add exception info
        if record.exc_info and record.exc_info[0]:
            log_entry["exception"] = {
                "type": record.exc_info[0].__name__,
                "message": str(record.exc_info[1]),
            }

        return json.dumps(log_entry, default=str)


class SubsystemLogger:
    """Logger wrapper that adds subsystem context."""

    def __init__(self, subsystem: Subsystem, logger: logging.Logger):
        self._subsystem = subsystem
        self._logger = logger

    @property
    def name(self) -> str:
        return self._logger.name

    def _log(self, level: int, msg: str, extra_data: Any = None, **kwargs):
        extra = {"subsystem": self._subsystem.value}
        if extra_data:
            extra["extra_data"] = extra_data
        self._logger.log(level, msg, extra=extra, **kwargs)

    def debug(self, msg: str, data: Any = None, **kwargs):
        self._log(logging.DEBUG, msg, data, **kwargs)

    def info(self, msg: str, data: Any = None, **kwargs):
        self._log(logging.INFO, msg, data, **kwargs)

    def warning(self, msg: str, data: Any = None, **kwargs):
        self._log(logging.WARNING, msg, data, **kwargs)

    def error(self, msg: str, data: Any = None, **kwargs):
        self._log(logging.ERROR, msg, data, **kwargs)


# ── Logger Registry ──
_loggers: Dict[str, SubsystemLogger] = {}
_structured_handler: Optional[logging.Handler] = None


def get_subsystem_logger(subsystem: Subsystem) -> SubsystemLogger:
    """Get a structured logger for a subsystem."""
    key = subsystem.value
    if key not in _loggers:
        logger = logging.getLogger(f"{ROOT_LOGGER}.{key}")
        _loggers[key] = SubsystemLogger(subsystem, logger)
    return _loggers[key]


def enable_structured_logging(level: int = logging.INFO) -> logging.Handler:
    """Enable JSON structured logging for the typed_pubsub namespace."""
    global _structured_handler
    root = logging.getLogger(ROOT_LOGGER)
    root.setLevel(level)
    if _structured_handler is not None:
        return _structured_handler

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(StructuredFormatter())
    root.addHandler(handler)
    _structured_handler = handler
    return handler


def configure_logging(settings=None) -> None:
    """Apply the logging section of Settings."""
    if settings is None:
        from typed_pubsub.config import get_settings
        settings = get_settings()

    level = logging.getLevelName(settings.log_level.upper())
    if not isinstance(level, int):
        raise ValueError(f"Unknown log level: {settings.log_level!r}")

    if settings.structured_logging:
        enable_structured_logging(level)
    else:
        logging.getLogger(ROOT_LOGGER).setLevel(level)


@contextmanager
def dispatch_context(channel: str = "", event: str = "", registration_id: str = "") -> Iterator[None]:
    """Bind the dispatch being processed to every record logged inside the block."""
    tokens = [
        channel_var.set(channel),
        event_var.set(event),
        registration_id_var.set(registration_id),
    ]
    try:
        yield
    finally:
        registration_id_var.reset(tokens[2])
        event_var.reset(tokens[1])
        channel_var.reset(tokens[0])


def generate_registration_id() -> str:
    """Generate a unique registration ID."""
    return str(uuid.uuid4())[:12]


# ── Convenience loggers ──
multiplexer_log = get_subsystem_logger(Subsystem.MULTIPLEXER)
transport_log = get_subsystem_logger(Subsystem.TRANSPORT)
