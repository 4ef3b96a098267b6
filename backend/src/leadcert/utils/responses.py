"""Shared response utilities for Lambda handlers."""

from __future__ import annotations

import json
from dataclasses import asdict
from typing import Any
from typing import Optional

from pydantic import BaseModel

from leadcert.config import CorsPolicy

_DEFAULT_CORS = CorsPolicy()


def get_security_headers() -> dict[str, str]:
    """Get security headers for all responses.

    SECURITY: These headers protect against common web vulnerabilities:
    - X-Content-Type-Options: Prevents MIME type sniffing
    - X-Frame-Options: Prevents clickjacking
    - Cache-Control: Lookups are live reads, never served from a cache

    Returns:
        Dictionary of security headers.
    """
    return {
        "X-Content-Type-Options": "nosniff",
        "X-Frame-Options": "DENY",
        "Cache-Control": "no-store, no-cache, must-revalidate",
        "Pragma": "no-cache",
    }


def get_cors_headers(cors: Optional[CorsPolicy] = None) -> dict[str, str]:
    """Get CORS headers for the response.

    Args:
        cors: The policy to apply; the open ``*`` policy when omitted.

    Returns:
        Dictionary of CORS headers to include in the response.
    """
    return (cors or _DEFAULT_CORS).headers()


def json_response(
    status_code: int,
    body: Any,
    headers: Optional[dict[str, str]] = None,
    cors: Optional[CorsPolicy] = None,
) -> dict[str, Any]:
    """Create a JSON API Gateway response.

    Args:
        status_code: HTTP status code.
        body: Response body (dict, Pydantic model, or dataclass).
        headers: Optional additional headers to include.
        cors: CORS policy to attach.

    Returns:
        API Gateway response dictionary.
    """
    response_headers = {
        "Content-Type": "application/json",
    }
    response_headers.update(get_security_headers())
    response_headers.update(get_cors_headers(cors))

    if headers:
        response_headers.update(headers)

    payload = _serialize_body(body)

    return {
        "statusCode": status_code,
        "headers": response_headers,
        "body": json.dumps(payload, default=str),
    }


def empty_response(
    status_code: int = 200,
    cors: Optional[CorsPolicy] = None,
) -> dict[str, Any]:
    """Create a body-less response, used for CORS preflight."""
    return {
        "statusCode": status_code,
        "headers": get_cors_headers(cors),
        "body": "",
    }


def html_response(
    status_code: int,
    html: str,
    cors: Optional[CorsPolicy] = None,
) -> dict[str, Any]:
    """Create a text/html API Gateway response."""
    response_headers = {"Content-Type": "text/html; charset=utf-8"}
    response_headers.update(get_security_headers())
    response_headers.update(get_cors_headers(cors))
    return {
        "statusCode": status_code,
        "headers": response_headers,
        "body": html,
    }


def _serialize_body(body: Any) -> Any:
    """Serialize response body to JSON-compatible format.

    Args:
        body: The body to serialize.

    Returns:
        JSON-serializable representation of the body.
    """
    if hasattr(body, "to_body"):
        return body.to_body()

    if isinstance(body, BaseModel):
        return body.model_dump()

    if hasattr(body, "__dataclass_fields__"):
        return asdict(body)

    return body


def error_response(
    status_code: int,
    message: str,
    cors: Optional[CorsPolicy] = None,
) -> dict[str, Any]:
    """Create a failure envelope response.

    Args:
        status_code: HTTP status code.
        message: Error message.
        cors: CORS policy to attach.

    Returns:
        API Gateway response dictionary.
    """
    return json_response(
        status_code, {"success": False, "error": message}, cors=cors
    )
