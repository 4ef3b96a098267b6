"""Lambda handler for the lead certification proxy.

Forwards a caller-supplied ``where`` clause to the ArcGIS feature service
and answers with a normalized envelope:

    {"success": true, "data": [...features], "metadata": {"count", "timestamp", "query"}}
    {"success": false, "error": "..."}

Status codes: 200 success, 400 missing query, 405 disallowed method,
502 upstream failure, 504 upstream timeout, 500 anything else. CORS
headers are attached to every response, including preflight.
"""

from __future__ import annotations

import logging
import time
from typing import Any
from typing import Mapping
from typing import Optional

from leadcert.api.schemas import ProxyEnvelope
from leadcert.config import ProxySettings
from leadcert.exceptions import AppError
from leadcert.exceptions import ConfigurationError
from leadcert.exceptions import MethodNotAllowedError
from leadcert.exceptions import UpstreamError
from leadcert.exceptions import ValidationError
from leadcert.services.arcgis import ArcGISClient
from leadcert.utils import empty_response, json_response
from leadcert.utils.logging import configure_logging
from leadcert.utils.logging import get_logger
from leadcert.utils.logging import log_lambda_event
from leadcert.utils.logging import log_response
from leadcert.utils.logging import safe_log
from leadcert.utils.logging import set_request_context
from leadcert.utils.parsers import collect_query_params
from leadcert.utils.parsers import first_param
from leadcert.utils.parsers import get_http_method
from leadcert.utils.parsers import get_request_id

configure_logging()
logger = get_logger(__name__)

QUERY_PARAM = "query"
MISSING_QUERY_MESSAGE = "Query parameter is required"
INTERNAL_ERROR_MESSAGE = "Internal server error"


class ProxyHandler:
    """Stateless request handler configured at construction time."""

    def __init__(
        self,
        settings: Optional[ProxySettings] = None,
        client: Optional[ArcGISClient] = None,
    ) -> None:
        self.settings = settings or ProxySettings()
        self.client = client or ArcGISClient(
            query_url=self.settings.upstream_url,
            timeout_seconds=self.settings.timeout_seconds,
            user_agent=self.settings.user_agent,
            result_record_count=self.settings.result_record_count,
        )

    def __call__(self, event: Mapping[str, Any], context: Any) -> dict[str, Any]:
        set_request_context(req_id=get_request_id(event))
        log_lambda_event(logger, dict(event))
        started = time.perf_counter()

        response = self.handle(event)

        log_response(
            logger,
            response["statusCode"],
            duration_ms=(time.perf_counter() - started) * 1000,
        )
        return response

    def handle(self, event: Mapping[str, Any]) -> dict[str, Any]:
        """Validate, forward and classify one request."""
        cors = self.settings.cors
        method = get_http_method(event)

        try:
            if method not in self.settings.allowed_methods:
                raise MethodNotAllowedError(method)
            if method == "OPTIONS":
                return empty_response(200, cors=cors)

            query = self.parse_query(event)
            envelope = self.forward(query)
            return json_response(200, envelope, cors=cors)
        except ValidationError as exc:
            safe_log(
                logger,
                logging.WARNING,
                f"Validation error: {exc.message}",
                field=exc.field,
            )
            return self._failure(exc)
        except MethodNotAllowedError as exc:
            safe_log(logger, logging.WARNING, f"Blocked method: {exc.method or '-'}")
            return self._failure(exc)
        except UpstreamError as exc:
            safe_log(
                logger,
                logging.WARNING,
                "Upstream query failed",
                outcome=type(exc).__name__,
                status_code=exc.status_code,
                error=exc.message,
            )
            return self._failure(exc)
        except Exception:
            try:
                logger.exception("Unexpected error in proxy")
            except Exception:  # nosec B110 - logging must not change the response
                pass
            return json_response(
                500, ProxyEnvelope.failure(INTERNAL_ERROR_MESSAGE), cors=cors
            )

    def parse_query(self, event: Mapping[str, Any]) -> str:
        params = collect_query_params(event)
        query = first_param(params, QUERY_PARAM)
        if query is None or not query.strip():
            raise ValidationError(MISSING_QUERY_MESSAGE, field=QUERY_PARAM)
        return query

    def forward(self, query: str) -> ProxyEnvelope:
        """Send the query upstream and wrap the features in an envelope."""
        safe_log(
            logger,
            logging.INFO,
            "Proxy query received",
            query=query,
            upstream_url=self.client.build_query_url(query),
        )
        result = self.client.query(query)
        safe_log(
            logger,
            logging.INFO,
            f"Upstream query succeeded: {len(result.features)} features",
            outcome="success",
            count=len(result.features),
            upstream_ms=round(result.duration_ms, 2),
        )
        return ProxyEnvelope.ok(
            result.features,
            query=query if self.settings.include_query_in_metadata else None,
        )

    def _failure(self, exc: AppError) -> dict[str, Any]:
        return json_response(
            exc.status_code,
            ProxyEnvelope.failure(exc.message),
            cors=self.settings.cors,
        )


_default_handler: ProxyHandler | None = None


def get_default_handler() -> ProxyHandler:
    """Return the handler configured from the environment, built once."""
    global _default_handler
    if _default_handler is None:
        _default_handler = ProxyHandler(ProxySettings.from_env())
    return _default_handler


def reset_default_handler() -> None:
    """Drop the cached handler (useful in tests)."""
    global _default_handler
    _default_handler = None


def lambda_handler(event: Mapping[str, Any], context: Any) -> dict[str, Any]:
    """Handle API Gateway request for the proxy."""
    try:
        handler = get_default_handler()
    except ConfigurationError as exc:
        logger.error(exc.message)
        return json_response(500, ProxyEnvelope.failure(INTERNAL_ERROR_MESSAGE))
    return handler(event, context)
