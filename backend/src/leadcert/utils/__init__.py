"""Utility modules for the backend application."""

from leadcert.utils.parsers import (
    collect_query_params,
    first_param,
    get_header,
    get_http_method,
    get_request_id,
)
from leadcert.utils.responses import (
    empty_response,
    error_response,
    html_response,
    json_response,
)
from leadcert.utils.validators import (
    sanitize_account_number,
    validate_account_number,
)
from leadcert.utils.logging import (
    configure_logging,
    get_logger,
    safe_log,
    set_request_context,
    clear_request_context,
)

__all__ = [
    "clear_request_context",
    "collect_query_params",
    "configure_logging",
    "empty_response",
    "error_response",
    "first_param",
    "get_header",
    "get_http_method",
    "get_logger",
    "get_request_id",
    "html_response",
    "json_response",
    "safe_log",
    "sanitize_account_number",
    "set_request_context",
    "validate_account_number",
]
