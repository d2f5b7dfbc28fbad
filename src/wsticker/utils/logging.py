"""
Logging setup and request-scoped loggers.

Handlers are configured once at process start by setup_logging(). Request
handling code never mutates global logging state; it receives a
ContextLogger carrying the request's fields and passes it along.
"""

import json
import logging
import sys
from collections.abc import Mapping, MutableMapping
from datetime import UTC, datetime
from types import MappingProxyType
from typing import Any

TEXT_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Libraries that log every frame/handshake at debug level
NOISY_LOGGERS = ("websockets", "asyncio")


def _context_of(record: logging.LogRecord) -> Mapping[str, Any]:
    return getattr(record, "context", None) or {}


class TextFormatter(logging.Formatter):
    """Plain text formatter that appends bound context as key=value pairs."""

    def __init__(self) -> None:
        super().__init__(TEXT_FORMAT, datefmt=DATE_FORMAT)

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        context = _context_of(record)
        if not context:
            return line
        fields = " ".join(f"{key}={value}" for key, value in context.items())
        # Keep tracebacks on their own lines after the fields
        first, sep, rest = line.partition("\n")
        return f"{first} | {fields}{sep}{rest}"


class JsonFormatter(logging.Formatter):
    """One JSON object per line, context fields merged at the top level."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "time": datetime.fromtimestamp(record.created, UTC).isoformat(),
            "level": record.levelname.lower(),
            "logger": record.name,
            "message": record.getMessage(),
        }
        for key, value in _context_of(record).items():
            payload.setdefault(key, value)
        if record.exc_info:
            payload["error"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str)


class ContextLogger(logging.LoggerAdapter):  # type: ignore[type-arg]
    """
    Logger adapter bound to an immutable set of fields.

    Example:
        ```python
        log = ContextLogger(logger).bind(method="GET", uri="/ticker")
        log.info("Received request")
        ```
    """

    def __init__(self, logger: logging.Logger, fields: Mapping[str, Any] | None = None):
        super().__init__(logger, MappingProxyType(dict(fields or {})))

    @property
    def fields(self) -> Mapping[str, Any]:
        return self.extra  # type: ignore[return-value]

    def bind(self, **fields: Any) -> "ContextLogger":
        """Return a new logger with additional fields; this one is unchanged."""
        return ContextLogger(self.logger, {**self.fields, **fields})

    def process(
        self, msg: Any, kwargs: MutableMapping[str, Any]
    ) -> tuple[Any, MutableMapping[str, Any]]:
        extra = dict(kwargs.get("extra") or {})
        extra["context"] = dict(self.fields)
        kwargs["extra"] = extra
        return msg, kwargs


def setup_logging(level: str | int = "info", fmt: str = "text") -> None:
    """
    Configure the root logger to write to stdout.

    Args:
        level: Level name ("debug", "info", ...) or logging constant
        fmt: "text" or "json"
    """
    if isinstance(level, str):
        resolved = logging.getLevelName(level.upper())
        if not isinstance(resolved, int):
            raise ValueError(f"Unknown log level: {level}")
        level = resolved

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JsonFormatter() if fmt == "json" else TextFormatter())

    root = logging.getLogger()
    for existing in list(root.handlers):
        root.removeHandler(existing)
    root.addHandler(handler)
    root.setLevel(level)

    # Silence noisy third-party loggers
    noisy_level = logging.DEBUG if level <= logging.DEBUG else logging.WARNING
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(noisy_level)
