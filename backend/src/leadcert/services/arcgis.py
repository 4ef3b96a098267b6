"""ArcGIS FeatureServer query client.

Builds ``/query`` URLs for the lead certification layer and performs the
bounded outbound call. Every failure surfaces as one of the typed
``Upstream*`` errors so callers only have to map exception classes to
responses.

The bound is applied twice: as the socket timeout, which limits the connect
and every single read, and as a total deadline checked between body reads,
so an upstream that trickles bytes cannot hold a Lambda until its own hard
limit either. The overshoot past the deadline is at most one socket timeout.
"""

from __future__ import annotations

import http.client
import json
import time
import urllib.error
import urllib.request
from dataclasses import dataclass
from typing import Any
from typing import Optional
from urllib.parse import urlencode

from leadcert.config import DEFAULT_ARCGIS_QUERY_URL
from leadcert.config import DEFAULT_USER_AGENT
from leadcert.exceptions import UpstreamDataError
from leadcert.exceptions import UpstreamHTTPError
from leadcert.exceptions import UpstreamTimeoutError
from leadcert.exceptions import UpstreamTransportError
from leadcert.utils.logging import get_logger

logger = get_logger(__name__)

TIMEOUT_MESSAGE = "The lead certification service timed out. Please try again."
TRANSPORT_MESSAGE = (
    "Unable to reach the lead certification service. Please try again later."
)
INVALID_RESPONSE_MESSAGE = "ArcGIS API returned an invalid response"
READ_CHUNK_SIZE = 64 * 1024


@dataclass
class QueryResult:
    """Features from one query plus timing, for logging."""

    features: list[Any]
    duration_ms: float


class ArcGISClient:
    """Thin client for one FeatureServer layer's ``/query`` operation."""

    def __init__(
        self,
        query_url: str = DEFAULT_ARCGIS_QUERY_URL,
        timeout_seconds: float = 25.0,
        user_agent: str = DEFAULT_USER_AGENT,
        result_record_count: Optional[int] = None,
        timeout_message: str = TIMEOUT_MESSAGE,
        transport_message: str = TRANSPORT_MESSAGE,
    ) -> None:
        self.query_url = query_url
        self.timeout_seconds = timeout_seconds
        self.user_agent = user_agent
        self.result_record_count = result_record_count
        self.timeout_message = timeout_message
        self.transport_message = transport_message

    def build_query_url(self, where: str) -> str:
        """Return the upstream URL for a ``where`` clause, passed verbatim."""
        params: dict[str, str] = {
            "where": where,
            "outFields": "*",
            "f": "json",
            "returnGeometry": "false",
        }
        if self.result_record_count is not None:
            params["resultRecordCount"] = str(self.result_record_count)
        return f"{self.query_url}?{urlencode(params)}"

    def build_count_url(self, where: str = "1=1") -> str:
        params = {"where": where, "returnCountOnly": "true", "f": "json"}
        return f"{self.query_url}?{urlencode(params)}"

    def query(self, where: str) -> QueryResult:
        """Run a feature query.

        Returns:
            The ``features`` array (empty when the key is absent) and timing.

        Raises:
            UpstreamHTTPError: non-2xx status.
            UpstreamDataError: embedded ``error`` object or unreadable body.
            UpstreamTimeoutError: the bounded wait elapsed.
            UpstreamTransportError: the upstream could not be reached.
        """
        url = self.build_query_url(where)
        started = time.perf_counter()
        payload = self.get_json(url)
        duration_ms = (time.perf_counter() - started) * 1000
        features = payload.get("features") or []
        if not isinstance(features, list):
            raise UpstreamDataError(INVALID_RESPONSE_MESSAGE)
        return QueryResult(features=features, duration_ms=duration_ms)

    def count(self, where: str = "1=1") -> Optional[int]:
        """Return the number of records matching ``where``."""
        payload = self.get_json(self.build_count_url(where))
        count = payload.get("count")
        return count if isinstance(count, int) else None

    def get_json(self, url: str, timeout: Optional[float] = None) -> dict[str, Any]:
        """GET a URL and return its JSON object body, raising typed errors."""
        body = fetch_text(
            url,
            headers={"Accept": "application/json", "User-Agent": self.user_agent},
            timeout=self.timeout_seconds if timeout is None else timeout,
            timeout_message=self.timeout_message,
            transport_message=self.transport_message,
        )
        try:
            payload = json.loads(body)
        except json.JSONDecodeError as exc:
            raise UpstreamDataError(INVALID_RESPONSE_MESSAGE) from exc
        if not isinstance(payload, dict):
            raise UpstreamDataError(INVALID_RESPONSE_MESSAGE)

        # An empty error object still marks a failed query
        error = payload.get("error")
        if error is not None:
            message = None
            if isinstance(error, dict):
                message = error.get("message")
            raise UpstreamDataError(f"ArcGIS API Error: {message or 'Unknown API Error'}")
        return payload


def fetch_text(
    url: str,
    headers: dict[str, str],
    timeout: float,
    timeout_message: str = TIMEOUT_MESSAGE,
    transport_message: str = TRANSPORT_MESSAGE,
) -> str:
    """Perform a GET and return the decoded body of a 2xx response.

    Shared by the upstream client, the proxy transport of the lookup client
    and the diagnostics checks.

    Raises:
        UpstreamHTTPError: non-2xx status.
        UpstreamTimeoutError: connect or a read exceeded ``timeout``, or the
            whole exchange ran past it.
        UpstreamTransportError: any other network failure.
    """
    request = urllib.request.Request(url, headers=headers, method="GET")
    deadline = time.monotonic() + timeout
    try:
        with urllib.request.urlopen(request, timeout=timeout) as resp:  # nosec B310 - URLs come from configuration
            return _read_body(resp, deadline).decode("utf-8", errors="replace")
    except urllib.error.HTTPError as exc:
        body = ""
        try:
            body = exc.read().decode("utf-8", errors="replace")
        except Exception:  # nosec B110 - best-effort body read; empty string is fine
            body = ""
        logger.warning(f"Upstream returned HTTP {exc.code}")
        raise UpstreamHTTPError(exc.code, str(exc.reason or ""), body) from exc
    except urllib.error.URLError as exc:
        if isinstance(exc.reason, TimeoutError):
            raise UpstreamTimeoutError(timeout_message, timeout) from exc
        logger.warning(f"Upstream request failed: {exc.reason}")
        raise UpstreamTransportError(transport_message) from exc
    except TimeoutError as exc:
        raise UpstreamTimeoutError(timeout_message, timeout) from exc
    except (OSError, http.client.HTTPException) as exc:
        logger.warning(f"Upstream connection error: {type(exc).__name__}: {exc}")
        raise UpstreamTransportError(transport_message) from exc


def _read_body(resp: http.client.HTTPResponse, deadline: float) -> bytes:
    """Read the response body, giving up once ``deadline`` has passed.

    ``read1`` returns after at most one socket read, so the deadline is
    checked between every chunk the upstream sends.
    """
    chunks: list[bytes] = []
    while True:
        if time.monotonic() > deadline:
            raise TimeoutError("upstream response exceeded the total deadline")
        chunk = resp.read1(READ_CHUNK_SIZE)
        if not chunk:
            break
        chunks.append(chunk)

    body = b"".join(chunks)
    if resp.length:
        raise http.client.IncompleteRead(body, resp.length)
    return body
