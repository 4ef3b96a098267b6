"""Custom exception classes for the application.

This module provides domain-specific exception classes that carry
appropriate HTTP status codes. Handlers turn them into failure
envelopes with ``ProxyEnvelope.failure``. Each upstream failure class
has its own status so callers can tell a slow upstream (504) from a
broken one (502).
"""

from __future__ import annotations

from typing import Optional


class AppError(Exception):
    """Base exception for application errors.

    All application-specific exceptions should inherit from this class.
    Each exception carries an HTTP status code.

    Attributes:
        message: Human-readable error message.
        status_code: HTTP status code (default 500).
    """

    def __init__(
        self,
        message: str,
        status_code: int = 500,
    ):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class ValidationError(AppError):
    """Raised when input validation fails.

    Use for missing query parameters and malformed account numbers.
    """

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message, status_code=400)
        self.field = field


class MethodNotAllowedError(AppError):
    """Raised when a request uses a method outside the allowed set."""

    def __init__(self, method: str, message: str = "Method not allowed"):
        super().__init__(message, status_code=405)
        self.method = method


class ConfigurationError(AppError):
    """Raised when required configuration is missing or invalid.

    Use when environment variables or settings are not properly configured.
    """

    def __init__(self, config_name: str, reason: Optional[str] = None):
        message = f"Invalid configuration: {config_name}"
        if reason:
            message = f"{message} ({reason})"
        super().__init__(message, status_code=500)
        self.config_name = config_name


class UpstreamError(AppError):
    """Base class for failures talking to the ArcGIS feature service."""

    def __init__(self, message: str, status_code: int = 502):
        super().__init__(message, status_code=status_code)


class UpstreamHTTPError(UpstreamError):
    """Raised when the upstream answers with a non-success HTTP status."""

    def __init__(self, upstream_status: int, reason: str = "", body: str = ""):
        text = f"ArcGIS API returned {upstream_status}"
        if reason:
            text = f"{text}: {reason}"
        super().__init__(text)
        self.upstream_status = upstream_status
        self.reason = reason
        self.body = body


class UpstreamDataError(UpstreamError):
    """Raised when a 2xx upstream body carries an error or is unreadable."""


class UpstreamTimeoutError(UpstreamError):
    """Raised when the bounded wait for a response elapses."""

    def __init__(self, message: str, timeout_seconds: Optional[float] = None):
        super().__init__(message, status_code=504)
        self.timeout_seconds = timeout_seconds


class UpstreamTransportError(UpstreamError):
    """Raised on network-level failures (DNS, refused connection, TLS)."""
