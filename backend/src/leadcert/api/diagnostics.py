"""Self-test endpoint for deployment checks.

Reports the runtime environment and whether the function can reach the
internet and the ArcGIS feature service. Check failures are reported in
the body; the endpoint itself always answers 200 and never touches the
proxy's code path beyond sharing the upstream client.
"""

from __future__ import annotations

import os
import platform
import time
from dataclasses import dataclass
from dataclasses import field
from datetime import datetime
from datetime import timezone
from typing import Any
from typing import Callable
from typing import Mapping
from typing import Optional

from leadcert.config import DiagnosticsSettings
from leadcert.exceptions import AppError
from leadcert.exceptions import ConfigurationError
from leadcert.services.arcgis import ArcGISClient
from leadcert.services.arcgis import fetch_text
from leadcert.utils import empty_response, error_response, json_response
from leadcert.utils.logging import configure_logging, get_logger, set_request_context
from leadcert.utils.parsers import get_header
from leadcert.utils.parsers import get_http_method
from leadcert.utils.parsers import get_request_id

configure_logging()
logger = get_logger(__name__)


@dataclass
class DiagnosticCheck:
    """Result of a single self-test."""

    name: str
    passed: bool
    summary: Optional[str] = None
    latency_ms: Optional[float] = None

    def label(self) -> str:
        """Render as ``PASS``, ``PASS - ...`` or ``FAIL - ...``."""
        text = "PASS" if self.passed else "FAIL"
        if self.summary:
            text = f"{text} - {self.summary}"
        return text


@dataclass
class DiagnosticReport:
    """Everything the endpoint returns."""

    environment: dict[str, Any]
    request: dict[str, Any]
    checks: list[DiagnosticCheck] = field(default_factory=list)
    timestamp: str = field(
        default_factory=lambda: datetime.now(timezone.utc).isoformat()
    )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "success": True,
            "message": "API is working!",
            "timestamp": self.timestamp,
            "environment": self.environment,
            "request": self.request,
            "tests": {check.name: check.label() for check in self.checks},
            "latencyMs": {
                check.name: round(check.latency_ms, 1)
                for check in self.checks
                if check.latency_ms is not None
            },
        }


def _timed(name: str, check: Callable[[], Optional[str]]) -> DiagnosticCheck:
    start_time = time.perf_counter()
    try:
        summary = check()
        passed = True
    except AppError as exc:
        summary = exc.message
        passed = False
    except Exception as exc:
        summary = str(exc) or type(exc).__name__
        passed = False
    latency_ms = (time.perf_counter() - start_time) * 1000
    return DiagnosticCheck(
        name=name, passed=passed, summary=summary, latency_ms=latency_ms
    )


class DiagnosticsHandler:
    """Collect environment details and run the connectivity checks."""

    def __init__(self, settings: Optional[DiagnosticsSettings] = None) -> None:
        self.settings = settings or DiagnosticsSettings()
        self.client = ArcGISClient(
            query_url=self.settings.upstream_url,
            timeout_seconds=self.settings.upstream_timeout_seconds,
            user_agent=self.settings.user_agent,
        )

    def __call__(self, event: Mapping[str, Any], context: Any) -> dict[str, Any]:
        set_request_context(req_id=get_request_id(event))
        if get_http_method(event) == "OPTIONS":
            return empty_response(200, cors=self.settings.cors)

        report = self.run(event)
        failed = [check.name for check in report.checks if not check.passed]
        if failed:
            logger.warning(f"Diagnostics checks failed: {', '.join(failed)}")
        return json_response(200, report.to_dict(), cors=self.settings.cors)

    def run(self, event: Mapping[str, Any]) -> DiagnosticReport:
        return DiagnosticReport(
            environment=_environment(),
            request={
                "method": get_http_method(event),
                "path": event.get("path") or event.get("rawPath"),
                "userAgent": get_header(event, "user-agent") or None,
            },
            checks=[
                DiagnosticCheck(name="basicFunction", passed=True),
                _timed("networkConnectivity", self._check_network),
                _timed("arcgisConnectivity", self._check_arcgis),
            ],
        )

    def _check_network(self) -> Optional[str]:
        fetch_text(
            self.settings.connectivity_url,
            headers={"User-Agent": self.settings.user_agent},
            timeout=self.settings.connectivity_timeout_seconds,
        )
        return None

    def _check_arcgis(self) -> Optional[str]:
        count = self.client.count()
        return f"Record count: {count if count is not None else 'unknown'}"


def _environment() -> dict[str, Any]:
    return {
        "pythonVersion": platform.python_version(),
        "platform": platform.platform(),
        "region": os.getenv("AWS_REGION") or "unknown",
        "timezone": datetime.now().astimezone().tzname(),
    }


_default_handler: DiagnosticsHandler | None = None


def get_default_handler() -> DiagnosticsHandler:
    global _default_handler
    if _default_handler is None:
        _default_handler = DiagnosticsHandler(DiagnosticsSettings.from_env())
    return _default_handler


def reset_default_handler() -> None:
    """Drop the cached handler (useful in tests)."""
    global _default_handler
    _default_handler = None


def lambda_handler(event: Mapping[str, Any], context: Any) -> dict[str, Any]:
    """Handle API Gateway request for the self-test endpoint."""
    try:
        handler = get_default_handler()
    except ConfigurationError as exc:
        logger.error(exc.message)
        return error_response(500, "Internal server error")
    return handler(event, context)
