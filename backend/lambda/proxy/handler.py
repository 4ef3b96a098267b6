"""Lambda entrypoint for the lead certification proxy.

Forwards ``GET /proxy?query=<where clause>`` to the ArcGIS feature
service and returns the normalized envelope.
"""

from __future__ import annotations

from typing import Any
from typing import Mapping

from leadcert.api.proxy import lambda_handler as _handler


def lambda_handler(event: Mapping[str, Any], context: Any) -> dict[str, Any]:
    """Delegate to the proxy handler."""

    return _handler(event, context)
