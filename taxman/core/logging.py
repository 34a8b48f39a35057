"""Structured logging with Loguru.

Two output formats are supported:

- **console**: human-readable lines with request context inlined (development)
- **json**: one JSON object per line for log collectors (staging, production)

Standard library logging (uvicorn, SQLAlchemy, asyncpg) is intercepted and
forwarded to Loguru so every line shares one format and carries the same
request context fields.
"""

from __future__ import annotations

import json
import logging
import sys
from typing import TYPE_CHECKING, Any, Final, cast

from loguru import logger

from taxman.core.error_context import is_sensitive_field

if TYPE_CHECKING:
    from taxman.core.config import Settings


class _LoggingState:
    """Tracks whether logging has been configured."""

    def __init__(self) -> None:
        self.configured = False


_state = _LoggingState()

CORRELATION_ID_DISPLAY_LENGTH: Final[int] = 8
MAX_FIELD_VALUE_LENGTH: Final[int] = 100

# Shown first, in this order, by the console formatter
PRIORITY_FIELDS: Final[tuple[str, ...]] = (
    "correlation_id",
    "request_id",
    "method",
    "path",
    "status_code",
    "duration_ms",
    "municipality",
)

# LogRecord attributes that are not user-supplied context
_SKIP_RECORD_FIELDS: Final[frozenset[str]] = frozenset(
    {
        "name",
        "msg",
        "args",
        "created",
        "msecs",
        "relativeCreated",
        "thread",
        "threadName",
        "processName",
        "process",
        "pathname",
        "filename",
        "module",
        "lineno",
        "funcName",
        "stack_info",
        "exc_text",
        "exc_info",
        "levelname",
        "levelno",
        "color_message",
        "taskName",
    }
)


def _escape(value: object) -> str:
    """Escape braces so Loguru does not treat them as format fields."""
    return str(value).replace("{", "{{").replace("}", "}}")


def _format_field(key: str, value: object) -> str:
    """Render one context field for the console formatter."""
    if key == "correlation_id":
        str_value = str(value)[:CORRELATION_ID_DISPLAY_LENGTH]
    elif key == "duration_ms":
        str_value = f"{value}ms"
    elif is_sensitive_field(key):
        str_value = "[REDACTED]"
    else:
        str_value = str(value)
        if len(str_value) > MAX_FIELD_VALUE_LENGTH:
            str_value = str_value[: MAX_FIELD_VALUE_LENGTH - 3] + "..."
    return f"{_escape(key)}={_escape(str_value)}"


def format_console_with_context(record: dict[str, Any]) -> str:
    """Format a log record for the console with context fields inlined.

    Args:
        record: Loguru record to format.

    Returns:
        str: Loguru format string for this record.
    """
    extra: dict[str, Any] = record.get("extra", {})
    location = f"{record['name']}:{record['function']}:{record['line']}"
    parts = [
        "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green>",
        "<level>{level: <8}</level>",
        f"<cyan>{_escape(location)}</cyan>",
    ]

    context_parts = [
        f"<yellow>{_format_field(key, extra[key])}</yellow>"
        for key in PRIORITY_FIELDS
        if extra.get(key) is not None
    ]
    context_parts.extend(
        f"<dim>{_format_field(key, value)}</dim>"
        for key, value in extra.items()
        if key not in PRIORITY_FIELDS and not key.startswith("_") and value is not None
    )
    if context_parts:
        parts.append(" ".join(f"[{part}]" for part in context_parts))

    parts.append(_escape(record["message"]))
    line = " | ".join(parts) + "\n"
    if record.get("exception"):
        line += "{exception}"
    return line


def serialize_for_json(record: dict[str, Any]) -> str:
    """Format a log record as a single JSON line.

    Args:
        record: Loguru record to format.

    Returns:
        str: JSON-formatted log entry with newline.
    """
    log_entry: dict[str, Any] = {
        "timestamp": record["time"].isoformat(),
        "level": record["level"].name,
        "message": record["message"],
        "logger": record["name"],
        "function": record["function"],
        "line": record["line"],
    }

    if extra := record.get("extra", {}):
        log_entry.update(
            {
                k: "[REDACTED]" if is_sensitive_field(k) else v
                for k, v in extra.items()
                if not k.startswith("_")
            }
        )

    if exc := record.get("exception"):
        log_entry["exception"] = {
            "type": exc.type.__name__ if exc.type else None,
            "value": str(exc.value) if exc.value else None,
        }

    return json.dumps(log_entry, default=str) + "\n"


class InterceptHandler(logging.Handler):
    """Forward standard library log records to Loguru."""

    def emit(self, record: logging.LogRecord) -> None:
        """Forward a log record to Loguru at the matching level.

        Args:
            record: Standard library LogRecord to forward.
        """
        try:
            level: str | int = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        # Find the caller outside the logging module
        try:
            frame, depth = sys._getframe(6), 6  # noqa: SLF001
        except ValueError:
            frame, depth = None, 1
        while frame and frame.f_code.co_filename == logging.__file__:
            if frame.f_back is None:
                break
            frame = frame.f_back
            depth += 1

        extra = {
            key: value
            for key, value in record.__dict__.items()
            if key not in _SKIP_RECORD_FIELDS and not key.startswith("_")
        }
        # uvicorn passes the ASGI scope on access log records
        scope = extra.pop("scope", None)
        if isinstance(scope, dict):
            extra["method"] = scope.get("method", "")
            extra["path"] = scope.get("path", "")

        logger.opt(depth=depth, exception=record.exc_info).bind(**extra).log(
            level, record.getMessage()
        )


def setup_logging(settings: Settings) -> None:
    """Configure Loguru and route standard logging through it.

    Safe to call more than once; only the first call has an effect.

    Args:
        settings: Application settings containing log configuration.
    """
    if _state.configured:
        return

    logger.remove()

    formatter_type = settings.log_config.log_formatter_type or "console"

    if formatter_type == "json":

        def structured_sink(message: object) -> None:
            """Write each record as a JSON line."""
            sys.stdout.write(serialize_for_json(cast("Any", message).record))
            sys.stdout.flush()

        logger.add(
            structured_sink,
            level=settings.log_config.log_level,
            enqueue=True,
            diagnose=False,
            backtrace=False,
        )
    else:
        logger.add(
            sys.stdout,
            format=cast("Any", format_console_with_context),
            level=settings.log_config.log_level,
            enqueue=True,
            colorize=True,
            diagnose=settings.debug,
            backtrace=settings.debug,
        )

    logging.basicConfig(handlers=[InterceptHandler()], level=0, force=True)

    for logger_name in ("uvicorn", "uvicorn.error", "uvicorn.access"):
        std_logger = logging.getLogger(logger_name)
        std_logger.handlers = [InterceptHandler()]
        std_logger.propagate = False

    logger.info(
        "Logging configured with {} formatter",
        formatter_type,
        log_level=settings.log_config.log_level,
    )

    _state.configured = True
