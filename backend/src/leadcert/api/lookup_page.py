"""Lambda handler for the lookup form page."""

from __future__ import annotations

from typing import Any
from typing import Mapping
from typing import Optional

from leadcert.config import CorsPolicy
from leadcert.config import LookupClientSettings
from leadcert.exceptions import ConfigurationError
from leadcert.services.lookup_client import LookupClient
from leadcert.services.lookup_client import LookupSession
from leadcert.templates import render_lookup_page
from leadcert.utils import empty_response, error_response, html_response
from leadcert.utils.logging import configure_logging, get_logger, set_request_context
from leadcert.utils.parsers import collect_query_params
from leadcert.utils.parsers import first_param
from leadcert.utils.parsers import get_http_method
from leadcert.utils.parsers import get_request_id

configure_logging()
logger = get_logger(__name__)

ACCOUNT_PARAM = "opa"
INTERNAL_ERROR_MESSAGE = "Internal server error"


class LookupPageHandler:
    """Render the form, running a lookup when an account number is given."""

    def __init__(
        self,
        client: LookupClient,
        cors: Optional[CorsPolicy] = None,
        action: str = "/lookup",
    ) -> None:
        self.client = client
        self.cors = cors or CorsPolicy()
        self.action = action

    def __call__(self, event: Mapping[str, Any], context: Any) -> dict[str, Any]:
        set_request_context(req_id=get_request_id(event))
        method = get_http_method(event)
        if method == "OPTIONS":
            return empty_response(200, cors=self.cors)
        if method != "GET":
            return error_response(405, "Method not allowed", cors=self.cors)

        try:
            return self.render(event)
        except Exception:
            try:
                logger.exception("Unexpected error rendering lookup page")
            except Exception:  # nosec B110 - logging must not change the response
                pass
            return error_response(500, INTERNAL_ERROR_MESSAGE, cors=self.cors)

    def render(self, event: Mapping[str, Any]) -> dict[str, Any]:
        params = collect_query_params(event)
        account_input = first_param(params, ACCOUNT_PARAM) or ""

        # A fresh session per request; the page itself holds no state
        session = LookupSession(self.client)
        session.set_input(account_input)
        state = session.search() if session.can_search else session.state
        if state.error:
            logger.info(f"Lookup page error: {state.error}")

        return html_response(200, render_lookup_page(state, self.action), cors=self.cors)


_default_handler: LookupPageHandler | None = None


def get_default_handler() -> LookupPageHandler:
    global _default_handler
    if _default_handler is None:
        settings = LookupClientSettings.from_env()
        _default_handler = LookupPageHandler(
            LookupClient.from_settings(settings), cors=CorsPolicy.from_env()
        )
    return _default_handler


def reset_default_handler() -> None:
    """Drop the cached handler (useful in tests)."""
    global _default_handler
    _default_handler = None


def lambda_handler(event: Mapping[str, Any], context: Any) -> dict[str, Any]:
    """Handle API Gateway request for the lookup page."""
    try:
        handler = get_default_handler()
    except ConfigurationError as exc:
        logger.error(exc.message)
        return error_response(500, INTERNAL_ERROR_MESSAGE)
    return handler(event, context)
