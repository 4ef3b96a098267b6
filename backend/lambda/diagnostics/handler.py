"""Lambda entrypoint for the diagnostics self-test endpoint."""

from __future__ import annotations

from typing import Any
from typing import Mapping

from leadcert.api.diagnostics import lambda_handler as _handler


def lambda_handler(event: Mapping[str, Any], context: Any) -> dict[str, Any]:
    """Delegate to the diagnostics handler."""
    return _handler(event, context)
