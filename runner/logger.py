"""
Structured JSON logging for the runner container.

Outputs one JSON object per line, consumable by log shippers. Each entry has
exactly these fields, in this order:
- timestamp: UTC ISO 8601 timestamp with milliseconds
- level: DEBUG, INFO, WARN, ERROR or FATAL
- message: Log message
- context: Object built from key=value pairs / extra fields
- service: Always "github-actions-runner"
- host: Hostname of the container
"""

import json
import logging
import os
import re
import socket
import sys
from collections.abc import Iterable, Mapping, MutableMapping
from datetime import datetime, timezone
from typing import Any, TextIO

from config.defaults import SERVICE_NAME
from core.console import BLUE, GREEN, NC, RED, YELLOW
from core.exceptions import InvalidLogLevelError

# Fixed level enum, in increasing severity
LOG_LEVELS: dict[str, int] = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARN": logging.WARNING,
    "ERROR": logging.ERROR,
    "FATAL": logging.CRITICAL,
}
LEVEL_NAMES: dict[int, str] = {num: name for name, num in LOG_LEVELS.items()}
VALID_LEVELS: tuple[str, ...] = tuple(LOG_LEVELS)
DEFAULT_LEVEL = "INFO"

_PAIR_RE = re.compile(r"^([^=]+)=(.+)$", re.DOTALL)
_NUMERIC_RE = re.compile(r"^[0-9]+(\.[0-9]+)?$")

# LogRecord attributes that are never treated as context
_RECORD_FIELDS = {
    "name", "msg", "args", "created", "filename", "funcName",
    "levelname", "levelno", "lineno", "module", "msecs",
    "message", "pathname", "process", "processName", "relativeCreated",
    "thread", "threadName", "exc_info", "exc_text", "stack_info",
    "taskName", "asctime", "context",
}

_LEVEL_COLORS = {
    "DEBUG": BLUE,
    "INFO": GREEN,
    "WARN": YELLOW,
    "ERROR": RED,
    "FATAL": RED,
}


def level_name(levelno: int) -> str:
    """Enum spelling for a numeric level (WARNING -> WARN, CRITICAL -> FATAL)."""
    if levelno in LEVEL_NAMES:
        return LEVEL_NAMES[levelno]
    for num in sorted(LEVEL_NAMES, reverse=True):
        if levelno >= num:
            return LEVEL_NAMES[num]
    return "DEBUG"


def resolve_threshold(name: str | None) -> int:
    """Numeric threshold for a LOG_LEVEL value; unknown names fall back to INFO."""
    key = (name or DEFAULT_LEVEL).strip().upper()
    key = {"WARNING": "WARN", "CRITICAL": "FATAL"}.get(key, key)
    return LOG_LEVELS.get(key, LOG_LEVELS[DEFAULT_LEVEL])


def coerce_value(value: str) -> Any:
    """Numeric-looking strings become numbers; everything else stays a string."""
    if _NUMERIC_RE.match(value):
        return float(value) if "." in value else int(value)
    return value


def parse_context(pairs: Iterable[str]) -> dict[str, Any]:
    """
    Build a context mapping from key=value strings.

    Pairs without "=" or with an empty value are skipped, matching how the
    log wrapper has always treated malformed arguments.
    """
    context: dict[str, Any] = {}
    for pair in pairs:
        match = _PAIR_RE.match(pair)
        if not match:
            continue
        key, value = match.group(1), match.group(2)
        context[key] = coerce_value(value)
    return context


def _dump(value: Any) -> str:
    return json.dumps(value, ensure_ascii=False, default=str)


class StructuredFormatter(logging.Formatter):
    """
    Custom formatter that outputs JSON logs with structured fields.

    Context comes from a `context` mapping passed via extra={}, merged with
    any other non-standard extra attributes on the record.
    """

    def __init__(self, service: str = SERVICE_NAME, host: str | None = None):
        super().__init__()
        self.service = service
        self.host = host or socket.gethostname()

    def _timestamp(self, record: logging.LogRecord) -> str:
        created = datetime.fromtimestamp(record.created, tz=timezone.utc)
        return created.strftime("%Y-%m-%dT%H:%M:%S.") + f"{created.microsecond // 1000:03d}Z"

    def _context(self, record: logging.LogRecord) -> dict[str, Any]:
        context: dict[str, Any] = {}
        explicit = getattr(record, "context", None)
        if isinstance(explicit, Mapping):
            context.update(explicit)

        for key, value in record.__dict__.items():
            if key not in _RECORD_FIELDS and value is not None:
                context.setdefault(key, value)

        if record.exc_info and record.exc_info[1] is not None:
            context["error"] = str(record.exc_info[1])
        return context

    def format(self, record: logging.LogRecord) -> str:
        """Format a log record as a single JSON line."""
        fields = [
            ("timestamp", _dump(self._timestamp(record))),
            ("level", _dump(level_name(record.levelno))),
            ("message", _dump(record.getMessage())),
            # context keeps the ": " spacing of the original wrapper output
            (
                "context",
                json.dumps(
                    self._context(record),
                    ensure_ascii=False,
                    separators=(",", ": "),
                    default=str,
                ),
            ),
            ("service", _dump(self.service)),
            ("host", _dump(self.host)),
        ]
        return "{" + ",".join(f"{_dump(k)}:{v}" for k, v in fields) + "}"


class ConsoleFormatter(logging.Formatter):
    """Colored `[LEVEL] message` lines for interactive terminals."""

    def __init__(self, color: bool = True):
        super().__init__()
        self.color = color

    def format(self, record: logging.LogRecord) -> str:
        name = level_name(record.levelno)
        tag = f"[{name}]"
        if self.color:
            tag = f"{_LEVEL_COLORS[name]}{tag}{NC}"
        line = f"{tag} {record.getMessage()}"
        if record.exc_info:
            line = f"{line}\n{self.formatException(record.exc_info)}"
        return line


class ContextAdapter(logging.LoggerAdapter):
    """LoggerAdapter that merges fixed context (e.g. component=entrypoint) into every record."""

    def process(self, msg: Any, kwargs: MutableMapping[str, Any]) -> tuple[Any, MutableMapping[str, Any]]:
        extra = dict(kwargs.get("extra") or {})
        context = dict(self.extra or {})
        context.update(extra.pop("context", {}) or {})
        extra["context"] = context
        kwargs["extra"] = extra
        return msg, kwargs


def configure_logging(
    level: str | None = None,
    json_logs: bool = True,
    stream: TextIO | None = None,
) -> logging.Handler:
    """
    Configure the root logger for structured JSON or colored console output.

    Args:
        level: Minimum level name (defaults to LOG_LEVEL env var, then INFO)
        json_logs: JSON lines when True, colored console lines otherwise
        stream: Output stream (defaults to stdout)

    Returns:
        The installed handler
    """
    handler = logging.StreamHandler(stream or sys.stdout)
    handler.setFormatter(StructuredFormatter() if json_logs else ConsoleFormatter())

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(resolve_threshold(level or os.environ.get("LOG_LEVEL")))
    return handler


def get_logger(name: str, **context: Any) -> logging.Logger | ContextAdapter:
    """
    Get a logger instance with the given name.

    Keyword arguments become fixed context on every record it emits.
    """
    logger = logging.getLogger(name)
    if context:
        return ContextAdapter(logger, context)
    return logger


def log_json(
    logger: logging.Logger | logging.LoggerAdapter,
    level: str,
    message: str,
    *pairs: str,
) -> None:
    """
    Emit one record from a level name, a message and key=value pairs.

    Raises:
        InvalidLogLevelError: If level is not one of DEBUG, INFO, WARN, ERROR, FATAL
        SystemExit: With status 1 after emitting a FATAL record
    """
    if level not in LOG_LEVELS:
        raise InvalidLogLevelError(level, VALID_LEVELS)

    logger.log(LOG_LEVELS[level], message, extra={"context": parse_context(pairs)})

    if level == "FATAL":
        raise SystemExit(1)
