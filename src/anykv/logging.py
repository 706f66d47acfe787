"""
Structured Logging for anykv.

This module provides:
- Structured JSON logging with consistent fields
- Per-operation records with trace correlation
- Timing helpers
- Credential redaction
"""

from __future__ import annotations

import json
import logging
import sys
import time
import uuid
from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from .types import as_basic_auth

# =============================================================================
# Log Record Types
# =============================================================================


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass
class LogContext:
    """Context information attached to log records."""

    trace_id: str | None = None
    request_id: str | None = None
    backend: str | None = None
    operation: str | None = None
    key: str | None = None
    extra: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        d = {k: v for k, v in asdict(self).items() if v is not None and k != "extra"}
        d.update(self.extra)
        return d

    def with_update(self, **kwargs) -> LogContext:
        """Create a new context with updated values."""
        return LogContext(
            trace_id=kwargs.get("trace_id", self.trace_id),
            request_id=kwargs.get("request_id", self.request_id),
            backend=kwargs.get("backend", self.backend),
            operation=kwargs.get("operation", self.operation),
            key=kwargs.get("key", self.key),
            extra={**self.extra, **kwargs.get("extra", {})},
        )


@dataclass
class OperationLog:
    """Log record for one contract operation."""

    request_id: str
    backend: str
    operation: str
    key: str

    timestamp: str = field(default_factory=_now)
    duration_ms: float | None = None

    success: bool = True
    error: str | None = None
    error_code: str | None = None
    result_count: int | None = None

    def to_dict(self) -> dict[str, Any]:
        return {k: v for k, v in asdict(self).items() if v is not None}


# =============================================================================
# Structured Logger
# =============================================================================


class StructuredLogger:
    """
    Logger with structured JSON output and context tracking.

    Example:
        ```python
        logger = StructuredLogger("anykv")

        with logger.trace_context(backend="sqlite"):
            logger.log_operation(OperationLog(generate_request_id(), "sqlite", "list", "user:1"))
        ```
    """

    def __init__(
        self,
        name: str = "anykv",
        level: str = "INFO",
        json_output: bool = True,
        log_file: Path | str | None = None,
    ):
        self.name = name
        self.json_output = json_output

        self._logger = logging.getLogger(name)
        self._logger.setLevel(getattr(logging, level.upper()))

        # Task-local, so concurrent operations never see each other's context.
        self._context: ContextVar[LogContext] = ContextVar(f"{name}.log_context", default=LogContext())

        if not self._logger.handlers:
            handler: logging.Handler
            if log_file is not None:
                handler = logging.FileHandler(log_file, encoding="utf-8")
            else:
                handler = logging.StreamHandler(sys.stdout)
            handler.setFormatter(JSONFormatter() if json_output else TextFormatter())
            self._logger.addHandler(handler)

    @property
    def context(self) -> LogContext:
        return self._context.get()

    @contextmanager
    def trace_context(self, trace_id: str | None = None, **kwargs) -> Iterator[str]:
        """
        Context manager for trace correlation.

        Args:
            trace_id: Trace ID (auto-generated if not provided)
            **kwargs: Additional context fields

        Yields:
            The trace ID
        """
        trace_id = trace_id or self.context.trace_id or generate_trace_id()
        token = self._context.set(self.context.with_update(trace_id=trace_id, **kwargs))
        try:
            yield trace_id
        finally:
            self._context.reset(token)

    def _log(
        self,
        level: int,
        message: str,
        event_type: str | None = None,
        data: dict[str, Any] | None = None,
    ) -> None:
        if not self._logger.isEnabledFor(level):
            return

        record_data = {"message": message, **self.context.to_dict()}
        if event_type:
            record_data["event_type"] = event_type
        if data:
            record_data.update(data)

        if self.json_output:
            self._logger.log(level, json.dumps(record_data, default=str))
        else:
            extras = " ".join(f"{k}={v}" for k, v in record_data.items() if k != "message")
            self._logger.log(level, f"{message} {extras}")

    def info(self, message: str, **kwargs) -> None:
        self._log(logging.INFO, message, data=kwargs)

    def log_operation(self, record: OperationLog) -> None:
        """Log a finished operation. Failures go out at WARNING."""
        level = logging.DEBUG if record.success else logging.WARNING
        message = f"{record.backend}.{record.operation} {record.key}"
        if record.duration_ms is not None:
            message += f" ({record.duration_ms:.1f}ms)"
        self._log(level, message, event_type="operation", data=record.to_dict())

    def log_error(self, error: Exception, message: str | None = None, **kwargs) -> None:
        """Log an error with context."""
        error_data = {
            "error_type": type(error).__name__,
            "error_message": str(error),
            **kwargs,
        }
        code = getattr(error, "code", None)
        if hasattr(code, "value"):
            error_data["error_code"] = str(code.value)
        if hasattr(error, "context") and error.context:
            error_data["error_context"] = error.context.to_dict()

        self._log(logging.ERROR, message or f"Error: {error}", event_type="error", data=error_data)


# =============================================================================
# Formatters
# =============================================================================


class JSONFormatter(logging.Formatter):
    """JSON log formatter."""

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": _now(),
            "level": record.levelname,
            "logger": record.name,
        }

        try:
            message_data = json.loads(record.getMessage())
        except (json.JSONDecodeError, TypeError):
            message_data = None
        if isinstance(message_data, dict):
            log_data.update(message_data)
        else:
            log_data["message"] = record.getMessage()

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data)


class TextFormatter(logging.Formatter):
    """Human-readable text formatter."""

    LEVEL_COLORS = {
        "DEBUG": "\033[36m",  # Cyan
        "INFO": "\033[32m",  # Green
        "WARNING": "\033[33m",  # Yellow
        "ERROR": "\033[31m",  # Red
        "CRITICAL": "\033[35m",  # Magenta
    }
    RESET = "\033[0m"

    def format(self, record: logging.LogRecord) -> str:
        timestamp = datetime.now(timezone.utc).strftime("%H:%M:%S.%f")[:-3]
        color = self.LEVEL_COLORS.get(record.levelname, "")
        reset = self.RESET if color else ""
        return f"{timestamp} {color}{record.levelname:8}{reset} {record.getMessage()}"


# =============================================================================
# Utilities
# =============================================================================


def generate_trace_id() -> str:
    """Generate a unique trace ID."""
    return f"trace_{uuid.uuid4().hex[:16]}"


def generate_request_id() -> str:
    """Generate a unique request ID."""
    return f"req_{uuid.uuid4().hex[:12]}"


def redact_auth(auth: Any) -> str:
    """Describe an auth value without leaking the secret."""
    if auth is None:
        return "<not set>"
    basic = as_basic_auth(auth)
    if basic is not None:
        return f"basic:{basic.user}:***"
    if isinstance(auth, str):
        if len(auth) <= 8:
            return "bearer:***"
        return f"bearer:{auth[:4]}...{auth[-4:]}"
    return f"<{type(auth).__name__}>"


def truncate_for_log(text: str, max_length: int = 200) -> str:
    """Truncate text for logging."""
    if len(text) <= max_length:
        return text
    return text[:max_length] + f"... ({len(text)} chars total)"


# =============================================================================
# Timing Utilities
# =============================================================================


@dataclass
class Timer:
    """Simple timer for measuring durations."""

    start_time: float = field(default_factory=time.perf_counter)
    end_time: float | None = None

    def stop(self) -> float:
        """Stop the timer and return duration in milliseconds."""
        self.end_time = time.perf_counter()
        return self.elapsed_ms

    @property
    def elapsed_ms(self) -> float:
        end = self.end_time or time.perf_counter()
        return (end - self.start_time) * 1000


@contextmanager
def timed() -> Iterator[Timer]:
    """Context manager for timing operations."""
    timer = Timer()
    try:
        yield timer
    finally:
        timer.stop()


# =============================================================================
# Global Logger
# =============================================================================

_default_logger: StructuredLogger | None = None


def get_logger(name: str = "anykv") -> StructuredLogger:
    """Get or create a structured logger."""
    global _default_logger
    if _default_logger is None or _default_logger.name != name:
        _default_logger = StructuredLogger(name)
    return _default_logger


def configure_logging(
    level: str = "INFO",
    json_output: bool = True,
    **kwargs: Any,
) -> StructuredLogger:
    """Configure the default logger."""
    global _default_logger
    _default_logger = StructuredLogger(level=level, json_output=json_output, **kwargs)
    return _default_logger


__all__ = [
    "LogContext",
    "OperationLog",
    "StructuredLogger",
    "JSONFormatter",
    "TextFormatter",
    "Timer",
    "timed",
    "generate_trace_id",
    "generate_request_id",
    "redact_auth",
    "truncate_for_log",
    "get_logger",
    "configure_logging",
]
