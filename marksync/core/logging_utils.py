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

# Attributes every LogRecord carries; anything else arrived through ``extra``.
_STANDARD_FIELDS = {
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

# Extra keys that must never reach a log sink verbatim.
_REDACTED_FIELDS = {"password", "api_key", "apiKeys", "authorization"}

_NOISY_LOGGERS = ("httpx", "httpcore", "peewee")


def _redact(key: str, value: Any) -> Any:
    if key in _REDACTED_FIELDS and value:
        return "***"
    return value


class EnhancedJsonFormatter(logging.Formatter):
    """JSON formatter that groups ``extra`` fields and sync timing fields."""

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

        extra_fields: dict[str, Any] = {}
        performance_fields: dict[str, Any] = {}
        for key, value in record.__dict__.items():
            if key.startswith("_") or key in _STANDARD_FIELDS or key in base:
                continue
            if key in ("duration_seconds", "latency_ms", "payload_bytes"):
                performance_fields[key] = value
            elif key == "correlation_id":
                base["correlation_id"] = value
            else:
                extra_fields[key] = _redact(key, value)

        if performance_fields:
            base["performance"] = performance_fields
        if extra_fields:
            base["extra"] = extra_fields

        return json.dumps(
            base, ensure_ascii=False, default=self._json_serializer, separators=(",", ":")
        )

    def _json_serializer(self, obj: Any) -> str:
        """Custom JSON serializer for non-standard types."""
        if hasattr(obj, "model_dump"):
            return f"<{obj.__class__.__name__}>"
        return str(obj)


class InterceptHandler(logging.Handler):
    """Forward stdlib records (and their ``extra`` fields) to loguru."""

    def emit(self, record: logging.LogRecord) -> None:
        level_to_use: int | str
        try:
            level_to_use = loguru_logger.level(record.levelname).name
        except ValueError:
            level_to_use = record.levelno

        extra = {
            key: _redact(key, value)
            for key, value in record.__dict__.items()
            if not key.startswith("_") and key not in _STANDARD_FIELDS
        }
        loguru_logger.bind(**extra).opt(depth=6, exception=record.exc_info).log(
            level_to_use, record.getMessage()
        )


def setup_json_logging(
    level: str = "INFO",
    *,
    use_loguru: bool = True,
    include_location: bool = True,
    log_file: str | None = None,
    max_file_size: str = "20 MB",
    retention: str = "14 days",
) -> None:
    """Configure structured logging for the sync engine.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        use_loguru: Route records through loguru sinks; otherwise use the
            stdlib ``EnhancedJsonFormatter``
        include_location: Include module/function/line in stdlib JSON output
        log_file: Optional log file path for persistent logging
        max_file_size: Rotation size for the loguru file sink
        retention: Retention period for the loguru file sink
    """
    lvl = getattr(logging, level.upper(), logging.INFO)
    root = logging.getLogger()
    root.handlers.clear()
    root.setLevel(lvl)

    if use_loguru:
        loguru_logger.remove()
        loguru_logger.add(sys.stderr, level=level.upper(), serialize=True, backtrace=False)
        if log_file:
            loguru_logger.add(
                log_file,
                level=level.upper(),
                serialize=True,
                rotation=max_file_size,
                retention=retention,
                compression="gz",
            )
        root.addHandler(InterceptHandler())
    else:
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setFormatter(EnhancedJsonFormatter(include_location=include_location))
        root.addHandler(console_handler)
        if log_file:
            from logging.handlers import RotatingFileHandler

            file_handler = RotatingFileHandler(
                log_file, maxBytes=20 * 1024 * 1024, backupCount=5
            )
            file_handler.setFormatter(EnhancedJsonFormatter(include_location=include_location))
            root.addHandler(file_handler)

    for noisy_logger in _NOISY_LOGGERS:
        logging.getLogger(noisy_logger).setLevel(max(lvl, logging.WARNING))

    logging.getLogger(__name__).debug(
        "logging_initialized",
        extra={"level": level, "use_loguru": use_loguru, "log_file": log_file},
    )


def generate_correlation_id() -> str:
    """Generate a short correlation ID for tracing one sync run across logs."""
    return uuid.uuid4().hex[:12]


__all__ = [
    "EnhancedJsonFormatter",
    "InterceptHandler",
    "generate_correlation_id",
    "setup_json_logging",
]
