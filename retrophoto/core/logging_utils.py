from __future__ import annotations

import datetime as dt
import json
import logging
import os
import sys
import uuid
from typing import Any

from loguru import logger as loguru_logger

UTC = dt.UTC

# Attributes every LogRecord carries; anything else came in through ``extra``.
_STANDARD_FIELDS = frozenset(
    {
        "args",
        "msg",
        "name",
        "levelno",
        "levelname",
        "pathname",
        "filename",
        "module",
        "exc_info",
        "exc_text",
        "stack_info",
        "lineno",
        "funcName",
        "created",
        "msecs",
        "relativeCreated",
        "thread",
        "threadName",
        "processName",
        "process",
        "taskName",
        "getMessage",
        "message",
    }
)

# Fields grouped under "queue" in JSON output so drain logs stay greppable.
_QUEUE_FIELDS = frozenset(
    {
        "item_id",
        "attempts",
        "status",
        "tag",
        "items_attempted",
        "items_delivered",
        "items_failed",
        "items_expired",
    }
)


def _extra_fields(record: logging.LogRecord) -> dict[str, Any]:
    return {
        key: value
        for key, value in record.__dict__.items()
        if not key.startswith("_") and key not in _STANDARD_FIELDS
    }


class EnhancedJsonFormatter(logging.Formatter):
    """JSON formatter for stdlib handlers with queue-aware field grouping."""

    def __init__(self, include_location: bool = True, include_process_info: bool = False):
        super().__init__()
        self.include_location = include_location
        self.include_process_info = include_process_info
        self.hostname = os.uname().nodename if hasattr(os, "uname") else "unknown"

    def format(self, record: logging.LogRecord) -> str:
        base: dict[str, Any] = {
            "timestamp": dt.datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "hostname": self.hostname,
        }

        if self.include_location:
            base.update(
                {
                    "module": record.module,
                    "function": record.funcName,
                    "line": record.lineno,
                }
            )

        if self.include_process_info:
            base.update({"process": record.process, "thread": record.thread})

        if record.exc_info:
            base["exception"] = {
                "type": record.exc_info[0].__name__ if record.exc_info[0] else None,
                "message": str(record.exc_info[1]) if record.exc_info[1] else None,
                "traceback": self.formatException(record.exc_info),
            }

        queue_fields: dict[str, Any] = {}
        extra_fields: dict[str, Any] = {}
        for key, value in _extra_fields(record).items():
            if key in base:
                continue
            if key == "correlation_id":
                base["correlation_id"] = value
            elif key in _QUEUE_FIELDS:
                queue_fields[key] = value
            else:
                extra_fields[key] = value

        if queue_fields:
            base["queue"] = queue_fields
        if extra_fields:
            base["extra"] = extra_fields

        return json.dumps(
            base, ensure_ascii=False, default=self._json_serializer, separators=(",", ":")
        )

    def _json_serializer(self, obj: Any) -> str:
        if isinstance(obj, bytes):
            return f"<{len(obj)} bytes>"
        if hasattr(obj, "isoformat"):
            return obj.isoformat()
        return str(obj)


class InterceptHandler(logging.Handler):
    """Forward stdlib records into loguru, keeping ``extra`` fields bound."""

    def emit(self, record: logging.LogRecord) -> None:
        level_to_use: int | str
        try:
            level_to_use = loguru_logger.level(record.levelname).name
        except ValueError:
            level_to_use = record.levelno

        loguru_logger.bind(**_extra_fields(record)).opt(depth=6, exception=record.exc_info).log(
            level_to_use, record.getMessage()
        )


def setup_json_logging(
    level: str = "INFO",
    include_location: bool = True,
    use_loguru: bool = True,
    log_file: str | None = None,
    max_file_size: str = "50 MB",
    retention: str = "14 days",
) -> None:
    """Configure JSON logging for the worker and API processes.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        include_location: Include module/function/line in stdlib JSON output
        use_loguru: Route stdlib logging through loguru serialized sinks
        log_file: Optional log file path (rotated by loguru)
        max_file_size: Rotation size for the file sink (loguru format)
        retention: Retention period for rotated files (loguru format)
    """
    lvl = getattr(logging, level.upper(), logging.INFO)
    root = logging.getLogger()

    if use_loguru:
        loguru_logger.remove()
        loguru_logger.add(
            sys.stdout,
            level=level.upper(),
            serialize=True,
            enqueue=True,
            backtrace=True,
            diagnose=False,
        )
        if log_file:
            loguru_logger.add(
                log_file,
                level=level.upper(),
                serialize=True,
                rotation=max_file_size,
                retention=retention,
                compression="gz",
                enqueue=True,
            )

        root.handlers.clear()
        root.setLevel(lvl)
        root.addHandler(InterceptHandler())
        logging.getLogger("peewee").setLevel(logging.WARNING)
        logging.getLogger("httpx").setLevel(logging.WARNING)
        loguru_logger.info("json_logging_initialized", backend="loguru", level=level.upper())
        return

    root.setLevel(lvl)
    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(EnhancedJsonFormatter(include_location=include_location))
    root.handlers.clear()
    root.addHandler(console_handler)

    if log_file:
        from logging.handlers import RotatingFileHandler

        file_handler = RotatingFileHandler(log_file, maxBytes=50 * 1024 * 1024, backupCount=5)
        file_handler.setFormatter(EnhancedJsonFormatter(include_location=include_location))
        root.addHandler(file_handler)

    logging.getLogger("peewee").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.info(
        "json_logging_initialized",
        extra={"backend": "stdlib", "level": level.upper(), "log_file": log_file},
    )


def get_logger(name: str) -> logging.Logger:
    """Get a logger instance by name."""
    return logging.getLogger(name)


def generate_correlation_id() -> str:
    """Generate a short correlation ID for tracing a drain cycle across logs."""
    return uuid.uuid4().hex[:12]


__all__ = [
    "EnhancedJsonFormatter",
    "InterceptHandler",
    "generate_correlation_id",
    "get_logger",
    "setup_json_logging",
]
