"""Structured logging utilities for Lambda functions.

This module provides JSON-formatted logging with request context,
suitable for CloudWatch Logs Insights queries.

Filter expressions and account numbers are public record lookups and are
logged in full so a failed search can be replayed against the upstream.
"""

from __future__ import annotations

import json
import logging
import os
import sys
import traceback
from contextvars import ContextVar
from datetime import datetime
from datetime import timezone
from typing import Any
from typing import MutableMapping
from typing import Optional

# Context variable for request tracking
request_id: ContextVar[str] = ContextVar("request_id", default="")

# Keys added to every LogRecord by the logging module itself
_RESERVED_RECORD_KEYS = frozenset(
    vars(logging.LogRecord("", 0, "", 0, "", None, None)).keys()
) | {"message", "asctime"}


class StructuredLogFormatter(logging.Formatter):
    """JSON formatter for structured logging.

    Produces log entries compatible with CloudWatch Logs Insights,
    including request context and exception details.
    """

    def format(self, record: logging.LogRecord) -> str:
        """Format a log record as JSON."""
        log_data: dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        req_id = request_id.get()
        if req_id:
            log_data["request_id"] = req_id

        if record.levelno >= logging.WARNING:
            log_data["source"] = {
                "file": record.filename,
                "line": record.lineno,
                "function": record.funcName,
            }

        if record.exc_info:
            log_data["exception"] = {
                "type": record.exc_info[0].__name__ if record.exc_info[0] else None,
                "message": str(record.exc_info[1]) if record.exc_info[1] else None,
                "traceback": traceback.format_exception(*record.exc_info),
            }

        # Fields passed through ``extra=`` land directly on the record
        extra = {
            key: value
            for key, value in vars(record).items()
            if key not in _RESERVED_RECORD_KEYS and not key.startswith("_")
        }
        if extra:
            log_data["extra"] = extra

        return json.dumps(log_data, default=str)


class ContextLogger(logging.LoggerAdapter):
    """Logger adapter that automatically includes context variables."""

    def process(
        self,
        msg: str,
        kwargs: MutableMapping[str, Any],
    ) -> tuple[str, MutableMapping[str, Any]]:
        """Process log message to include extra context."""
        extra = kwargs.get("extra", {})

        if self.extra:
            extra.update(self.extra)

        kwargs["extra"] = extra
        return msg, kwargs


def configure_logging(level: Optional[str] = None) -> None:
    """Configure structured logging for Lambda execution.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR). Defaults to
               LOG_LEVEL environment variable or INFO.
    """
    log_level: str = (level or os.getenv("LOG_LEVEL") or "INFO").upper()

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(StructuredLogFormatter())
    root_logger.addHandler(handler)


def get_logger(name: str, **extra: Any) -> ContextLogger:
    """Get a context-aware logger.

    Args:
        name: Logger name (typically __name__).
        **extra: Additional context to include in all log messages.

    Returns:
        A ContextLogger instance.
    """
    logger = logging.getLogger(name)
    return ContextLogger(logger, extra)


def set_request_context(req_id: Optional[str] = None) -> None:
    """Set request context for logging.

    Call this at the start of each Lambda invocation to set
    context that will be included in all log messages.

    Args:
        req_id: API Gateway request ID.
    """
    if req_id:
        request_id.set(req_id)


def clear_request_context() -> None:
    """Clear request context after Lambda invocation."""
    request_id.set("")


def safe_log(
    logger: ContextLogger,
    level: int,
    message: str,
    **extra: Any,
) -> None:
    """Emit a diagnostic log line without letting logging break a response.

    The proxy logs every query, upstream URL and outcome; a broken handler,
    an unserializable extra or a closed stream must not change what the
    caller receives.
    """
    try:
        logger.log(level, message, extra=extra)
    except Exception:  # nosec B110 - diagnostics are best-effort
        pass


def log_lambda_event(
    logger: ContextLogger,
    event: dict[str, Any],
) -> None:
    """Log Lambda event details at DEBUG level.

    Args:
        logger: The logger to use.
        event: The Lambda event dictionary.
    """
    log_data = {
        "http_method": event.get("httpMethod")
        or (event.get("requestContext") or {}).get("http", {}).get("method"),
        "path": event.get("path") or event.get("rawPath"),
        "query_params": event.get("queryStringParameters"),
    }
    safe_log(logger, logging.DEBUG, "Lambda event received", event=log_data)


def log_response(
    logger: ContextLogger,
    status_code: int,
    duration_ms: Optional[float] = None,
) -> None:
    """Log Lambda response details.

    Args:
        logger: The logger to use.
        status_code: HTTP status code of the response.
        duration_ms: Request duration in milliseconds.
    """
    log_data: dict[str, Any] = {"status_code": status_code}
    if duration_ms is not None:
        log_data["duration_ms"] = round(duration_ms, 2)

    level = logging.INFO if status_code < 400 else logging.WARNING
    safe_log(logger, level, "Lambda response", response=log_data)
