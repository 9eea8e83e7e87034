"""Logging utilities: secret masking, correlation IDs, JSON output and timing.

This module provides:
- Masking of API keys and credentials before records reach a handler
- Correlation ID support for following one HTTP request through the logs
- SanitizingFormatter, which also masks exception tracebacks
- JSONFormatter for structured logging
- TimingContext for measuring generator calls and log reads
"""

from __future__ import annotations

import contextvars
import json
import logging
import re
import time
from datetime import UTC, datetime
from typing import Any, ClassVar

correlation_id: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "correlation_id", default=None
)

SENSITIVE_PATTERNS: list[tuple[re.Pattern[str], str]] = [
    # Google API keys (Gemini)
    (re.compile(r"AIza[0-9A-Za-z_\-]{35}"), "***GOOGLE_API_KEY***"),
    # key=... query parameters
    (re.compile(r"([?&]key=)[^&\s'\"]+"), r"\1***"),
    # API keys and tokens in assignments or headers
    (
        re.compile(
            r"(api[_-]?key|x-goog-api-key|access[_-]?token|channel[_-]?secret|token)"
            r"['\"]?\s*[:=]\s*['\"]?([A-Za-z0-9_\-\.]{16,})",
            re.IGNORECASE,
        ),
        r"\1=***TOKEN***",
    ),
    (re.compile(r"(Authorization|Bearer)\s*:?\s*([A-Za-z0-9_\-\.=]{8,})"), r"\1: ***AUTH***"),
    (
        re.compile(r"(password|passwd|pwd)['\"]?\s*[:=]\s*['\"]?([^\s'\"]{3,})", re.IGNORECASE),
        r"\1=***PASSWORD***",
    ),
    (re.compile(r"([a-zA-Z0-9._%+-]+)@([a-zA-Z0-9.-]+\.[a-zA-Z]{2,})"), r"***@\2"),
]


def sanitize_text(text: str) -> str:
    """Apply all sanitization patterns to text.

    Args:
        text: The text to sanitize

    Returns:
        Sanitized text with secrets masked
    """
    for pattern, replacement in SENSITIVE_PATTERNS:
        text = pattern.sub(replacement, text)
    return text


class LogSanitizer(logging.Filter):
    """Filter that masks secrets in log record messages and args.

    Exception tracebacks are masked later by SanitizingFormatter.
    """

    PATTERNS: ClassVar[list[tuple[re.Pattern[str], str]]] = SENSITIVE_PATTERNS

    def filter(self, record: logging.LogRecord) -> bool:
        if record.msg:
            record.msg = sanitize_text(str(record.msg))

        if record.args:
            if isinstance(record.args, dict):
                record.args = {k: self._sanitize_value(v) for k, v in record.args.items()}
            elif isinstance(record.args, tuple):
                record.args = tuple(self._sanitize_value(arg) for arg in record.args)

        return True

    def _sanitize_value(self, value: Any) -> Any:
        if isinstance(value, str):
            return sanitize_text(value)
        elif isinstance(value, dict):
            return {k: self._sanitize_value(v) for k, v in value.items()}
        elif isinstance(value, list | tuple):
            return type(value)(self._sanitize_value(item) for item in value)
        return value


class SanitizingFormatter(logging.Formatter):
    """Formatter that masks secrets in the final output, tracebacks included."""

    def format(self, record: logging.LogRecord) -> str:
        return sanitize_text(super().format(record))


class CorrelationIDFilter(logging.Filter):
    """Filter that adds the current correlation ID to log records ("-" if unset)."""

    def filter(self, record: logging.LogRecord) -> bool:
        cid = correlation_id.get()
        record.correlation_id = cid if cid else "-"
        return True


def get_correlation_id() -> str | None:
    return correlation_id.get()


def set_correlation_id(cid: str) -> None:
    correlation_id.set(cid)


def clear_correlation_id() -> None:
    correlation_id.set(None)


# LogRecord attributes that are not copied into JSON output as extra fields
_STANDARD_ATTRS = frozenset(
    {
        "name",
        "msg",
        "args",
        "created",
        "filename",
        "funcName",
        "levelname",
        "levelno",
        "lineno",
        "module",
        "msecs",
        "pathname",
        "process",
        "processName",
        "relativeCreated",
        "stack_info",
        "exc_info",
        "exc_text",
        "thread",
        "threadName",
        "taskName",
        "correlation_id",
        "message",
    }
)


class JSONFormatter(logging.Formatter):
    """Formatter that outputs one JSON object per log line.

    Each entry includes timestamp, level, logger, message, correlation_id,
    the exception (if any) and any ``extra`` fields of the record.
    """

    def __init__(self, sanitize: bool = True) -> None:
        super().__init__()
        self.sanitize = sanitize

    def format(self, record: logging.LogRecord) -> str:
        log_entry: dict[str, Any] = {
            "timestamp": datetime.now(UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        if hasattr(record, "correlation_id"):
            log_entry["correlation_id"] = record.correlation_id

        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)

        for key, value in record.__dict__.items():
            if key not in _STANDARD_ATTRS and not key.startswith("_"):
                try:
                    json.dumps(value)
                    log_entry[key] = value
                except (TypeError, ValueError):
                    log_entry[key] = str(value)

        if self.sanitize:
            log_entry = self._sanitize(log_entry)

        return json.dumps(log_entry, ensure_ascii=False, default=str)

    def _sanitize(self, value: Any) -> Any:
        if isinstance(value, str):
            return sanitize_text(value)
        if isinstance(value, dict):
            return {k: self._sanitize(v) for k, v in value.items()}
        if isinstance(value, list):
            return [self._sanitize(item) for item in value]
        return value


class TimingContext:
    """Context manager for measuring operation duration.

    Usage:
        with TimingContext("generate_answer", logger) as timing:
            ...
        timing.duration_ms
    """

    def __init__(self, operation_name: str, logger: logging.Logger | None = None) -> None:
        self.operation_name = operation_name
        self.logger = logger
        self.start_time: float | None = None
        self.end_time: float | None = None

    def __enter__(self) -> TimingContext:
        self.start_time = time.perf_counter()
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.end_time = time.perf_counter()
        if self.logger:
            level = logging.WARNING if exc_type else logging.DEBUG
            self.logger.log(
                level,
                f"{self.operation_name} completed in {self.duration_ms:.0f}ms",
                extra={
                    "operation": self.operation_name,
                    "duration_ms": self.duration_ms,
                    "success": exc_type is None,
                },
            )

    @property
    def duration_ms(self) -> float:
        """Duration in milliseconds (running total while still inside the block)."""
        if self.start_time is None:
            return 0.0
        end = self.end_time if self.end_time else time.perf_counter()
        return (end - self.start_time) * 1000


def set_module_log_level(module_name: str, level: str | int) -> None:
    """Set log level for a specific module.

    Args:
        module_name: Module name (e.g., "chatanalyzer.generator")
        level: Log level (string like "DEBUG" or int like logging.DEBUG)
    """
    if isinstance(level, str):
        level = getattr(logging, level.upper(), logging.INFO)
    logging.getLogger(module_name).setLevel(level)


def configure_module_levels(config: dict[str, str]) -> None:
    """Configure log levels for multiple modules.

    Args:
        config: Dict mapping module names to log levels
               Example: {"chatanalyzer.generator": "DEBUG", "chatanalyzer.web": "WARNING"}
    """
    for module_name, level in config.items():
        set_module_log_level(module_name, level)
