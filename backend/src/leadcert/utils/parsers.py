"""Shared parsing utilities for request handling."""

from __future__ import annotations

from typing import Any
from typing import Mapping
from typing import Optional


def first_param(params: dict[str, list[str]], key: str) -> Optional[str]:
    """Return the first query parameter value for a key.

    Args:
        params: Dictionary of parameter name to list of values.
        key: The parameter name to look up.

    Returns:
        The first value for the key, or None if not present.
    """
    values = params.get(key, [])
    return values[0] if values else None


def collect_query_params(event: Mapping[str, Any]) -> dict[str, list[str]]:
    """Collect query parameters from API Gateway events.

    Handles both single and multi-value query string parameters. API
    Gateway sends the same value in both maps, so duplicates coming from
    the multi-value map are skipped.

    Args:
        event: The API Gateway event dictionary.

    Returns:
        Dictionary mapping parameter names to lists of values.
    """
    params: dict[str, list[str]] = {}
    single = event.get("queryStringParameters") or {}
    multi = event.get("multiValueQueryStringParameters") or {}

    for key, values in multi.items():
        if not values:
            continue
        for value in values:
            if value is None:
                continue
            params.setdefault(key, []).append(value)

    for key, value in single.items():
        if value is None:
            continue
        if key in params:
            continue
        params.setdefault(key, []).append(value)

    return params


def get_http_method(event: Mapping[str, Any]) -> str:
    """Return the upper-cased request method for REST or HTTP API events."""
    method = event.get("httpMethod")
    if not method:
        method = ((event.get("requestContext") or {}).get("http") or {}).get(
            "method"
        )
    return str(method or "").upper()


def get_header(event: Mapping[str, Any], name: str) -> str:
    """Return a request header value, matching the name case-insensitively."""
    headers = event.get("headers") or {}
    for key, value in headers.items():
        if key.lower() == name.lower():
            return str(value)
    return ""


def get_request_id(event: Mapping[str, Any]) -> str:
    return str((event.get("requestContext") or {}).get("requestId") or "")
