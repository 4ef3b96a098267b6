"""Account number lookup client.

Turns what a user typed into a certification lookup:

1. strip non-digits and require 8-10 digits (no network call otherwise);
2. build a ``where`` clause covering every account field spelling the
   upstream layer has used;
3. fetch through the proxy, or straight from the feature service;
4. keep the first matching record.

``LookupSession`` holds the render state for one form and runs at most one
search at a time.
"""

from __future__ import annotations

import json
import threading
from dataclasses import dataclass
from typing import Any
from typing import Optional
from typing import Protocol
from urllib.parse import urlencode

from pydantic import ValidationError as SchemaValidationError

from leadcert.api.schemas import CertificationRecord
from leadcert.api.schemas import ProxyEnvelope
from leadcert.config import DEFAULT_DIRECT_CLIENT_TIMEOUT_SECONDS
from leadcert.config import DEFAULT_PROXY_CLIENT_TIMEOUT_SECONDS
from leadcert.config import DEFAULT_USER_AGENT
from leadcert.config import LookupClientSettings
from leadcert.exceptions import AppError
from leadcert.exceptions import UpstreamDataError
from leadcert.exceptions import UpstreamError
from leadcert.exceptions import UpstreamHTTPError
from leadcert.exceptions import ValidationError
from leadcert.services.arcgis import ArcGISClient
from leadcert.services.arcgis import fetch_text
from leadcert.utils.logging import get_logger
from leadcert.utils.validators import INVALID_ACCOUNT_MESSAGE
from leadcert.utils.validators import validate_account_number

logger = get_logger(__name__)

NOT_FOUND_MESSAGE = (
    "Unknown OPA number - no property record found in the Philadelphia database"
)
PROXY_TIMEOUT_MESSAGE = "Search timed out - please try again."
DIRECT_TIMEOUT_MESSAGE = "Search timed out - the API may be slow. Please try again."
GENERIC_FAILURE_MESSAGE = "Failed to connect to the lead certification service"

# Field spellings seen across published versions of the layer
ACCOUNT_FIELDS = ("opa_account", "opa_account_num")


def build_account_filter(raw: str) -> str:
    """Build the ``where`` clause for an account number.

    The quoted comparisons cover text-typed account fields; the trailing
    unquoted comparison covers layers that store the account as a number.

    Raises:
        ValidationError: If the input does not hold 8-10 digits.
    """
    digits = validate_account_number(raw)
    clauses = [f"{name} = '{digits}'" for name in ACCOUNT_FIELDS]
    clauses.append(f"{ACCOUNT_FIELDS[0]} = {digits}")
    return " OR ".join(clauses)


class Transport(Protocol):
    def fetch(self, query: str) -> list[Any]: ...


class ProxyTransport:
    """Fetch features through the proxy endpoint."""

    def __init__(
        self,
        proxy_url: str,
        timeout_seconds: float = DEFAULT_PROXY_CLIENT_TIMEOUT_SECONDS,
        user_agent: str = DEFAULT_USER_AGENT,
    ) -> None:
        self.proxy_url = proxy_url
        self.timeout_seconds = timeout_seconds
        self.user_agent = user_agent

    def build_url(self, query: str) -> str:
        separator = "&" if "?" in self.proxy_url else "?"
        return f"{self.proxy_url}{separator}{urlencode({'query': query})}"

    def fetch(self, query: str) -> list[Any]:
        url = self.build_url(query)
        logger.debug("Proxy lookup", extra={"query": query, "url": url})
        try:
            body = fetch_text(
                url,
                headers={"Accept": "application/json", "User-Agent": self.user_agent},
                timeout=self.timeout_seconds,
                timeout_message=PROXY_TIMEOUT_MESSAGE,
                transport_message=GENERIC_FAILURE_MESSAGE,
            )
        except UpstreamHTTPError as exc:
            envelope = _parse_envelope(exc.body)
            if envelope is not None and envelope.error:
                raise UpstreamError(envelope.error, exc.upstream_status) from exc
            message = f"Proxy returned {exc.upstream_status}"
            if exc.reason:
                message = f"{message}: {exc.reason}"
            raise UpstreamError(message, exc.upstream_status) from exc

        envelope = _parse_envelope(body)
        if envelope is None:
            raise UpstreamDataError(GENERIC_FAILURE_MESSAGE)
        if not envelope.success:
            raise UpstreamError(envelope.error or GENERIC_FAILURE_MESSAGE)
        return list(envelope.data or [])


class DirectTransport:
    """Fetch features straight from the feature service."""

    def __init__(self, client: ArcGISClient) -> None:
        self.client = client

    @classmethod
    def from_url(
        cls,
        query_url: str,
        timeout_seconds: float = DEFAULT_DIRECT_CLIENT_TIMEOUT_SECONDS,
        user_agent: str = DEFAULT_USER_AGENT,
    ) -> DirectTransport:
        return cls(
            ArcGISClient(
                query_url=query_url,
                timeout_seconds=timeout_seconds,
                user_agent=user_agent,
                timeout_message=DIRECT_TIMEOUT_MESSAGE,
                transport_message=GENERIC_FAILURE_MESSAGE,
            )
        )

    def fetch(self, query: str) -> list[Any]:
        return self.client.query(query).features


def _parse_envelope(body: str) -> Optional[ProxyEnvelope]:
    if not body:
        return None
    try:
        return ProxyEnvelope.model_validate(json.loads(body))
    except (json.JSONDecodeError, SchemaValidationError):
        return None


@dataclass
class LookupOutcome:
    """Result of one search: a record, a not-found notice, or an error."""

    account_number: str
    record: Optional[CertificationRecord] = None
    not_found: bool = False
    error: Optional[str] = None
    match_count: int = 0

    @property
    def found(self) -> bool:
        return self.record is not None


class LookupClient:
    """Validate, query and pick the first matching record."""

    def __init__(self, transport: Transport) -> None:
        self.transport = transport

    @classmethod
    def from_settings(cls, settings: LookupClientSettings) -> LookupClient:
        transport: Transport
        if settings.proxy_url:
            transport = ProxyTransport(
                settings.proxy_url,
                timeout_seconds=settings.effective_timeout,
                user_agent=settings.user_agent,
            )
        else:
            transport = DirectTransport.from_url(
                settings.upstream_url,
                timeout_seconds=settings.effective_timeout,
                user_agent=settings.user_agent,
            )
        return cls(transport)

    def search(self, raw: str) -> LookupOutcome:
        """Look up one account number.

        Only the first feature is used when several match; the rest are
        counted in ``match_count`` and otherwise ignored.
        """
        try:
            query = build_account_filter(raw)
        except ValidationError as exc:
            return LookupOutcome(account_number=raw, error=exc.message)

        digits = validate_account_number(raw)
        logger.info("Searching certification records", extra={"query": query})
        try:
            features = self.transport.fetch(query)
            if not features:
                logger.info(f"No record found for account {digits}")
                return LookupOutcome(account_number=digits, not_found=True)
            record = _record_from_feature(features[0])
        except AppError as exc:
            logger.warning(f"Lookup failed: {exc.message}")
            return LookupOutcome(
                account_number=digits,
                error=exc.message or GENERIC_FAILURE_MESSAGE,
            )

        return LookupOutcome(
            account_number=digits, record=record, match_count=len(features)
        )


def _record_from_feature(feature: Any) -> CertificationRecord:
    attributes = feature.get("attributes") if isinstance(feature, dict) else None
    if not isinstance(attributes, dict):
        raise UpstreamDataError("ArcGIS API returned an invalid response")
    try:
        return CertificationRecord.model_validate(attributes)
    except SchemaValidationError as exc:
        raise UpstreamDataError("ArcGIS API returned an invalid response") from exc


@dataclass
class LookupState:
    """What the lookup form shows."""

    account_input: str = ""
    loading: bool = False
    result: Optional[CertificationRecord] = None
    error: Optional[str] = None
    not_found: bool = False
    notice: Optional[str] = None


class LookupSession:
    """Form state for one user; searches are serialized."""

    def __init__(self, client: LookupClient) -> None:
        self.client = client
        self.state = LookupState()
        self._lock = threading.Lock()

    @property
    def can_search(self) -> bool:
        return not self.state.loading and bool(self.state.account_input.strip())

    def set_input(self, value: str) -> None:
        self.state.account_input = value

    def search(self) -> LookupState:
        """Run a search for the current input.

        A call made while another search is pending returns the current
        state without issuing a request. Blank input clears the previous
        outcome and reports the validation message.
        """
        if not self._lock.acquire(blocking=False):
            return self.state
        try:
            self.state.error = None
            self.state.result = None
            self.state.not_found = False
            self.state.notice = None
            if not self.state.account_input.strip():
                self.state.error = INVALID_ACCOUNT_MESSAGE
                return self.state
            self.state.loading = True

            outcome = self.client.search(self.state.account_input)
            if outcome.error:
                self.state.error = outcome.error
            elif outcome.not_found:
                self.state.not_found = True
                self.state.notice = NOT_FOUND_MESSAGE
            else:
                self.state.result = outcome.record
            return self.state
        finally:
            self.state.loading = False
            self._lock.release()

    def reset(self) -> LookupState:
        """Clear input, result and error back to the initial state."""
        with self._lock:
            self.state = LookupState()
        return self.state
