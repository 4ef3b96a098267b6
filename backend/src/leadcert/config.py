"""Explicit configuration for the proxy, the lookup client and diagnostics.

Handlers receive these settings at construction time. The environment is
read only by the ``from_env`` constructors, once per cold start.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from dataclasses import field
from typing import Mapping
from typing import Optional

from leadcert.exceptions import ConfigurationError

DEFAULT_ARCGIS_QUERY_URL = (
    "https://services.arcgis.com/fLeGjb7u4uXqeF9q/arcgis/rest/services/"
    "lhhp_lead_certifications/FeatureServer/0/query"
)
DEFAULT_USER_AGENT = "PhiladelphiaLeadTracker/1.0"
DEFAULT_UPSTREAM_TIMEOUT_SECONDS = 25.0
MAX_UPSTREAM_TIMEOUT_SECONDS = 30.0
DEFAULT_PROXY_CLIENT_TIMEOUT_SECONDS = 30.0
DEFAULT_DIRECT_CLIENT_TIMEOUT_SECONDS = 15.0
DEFAULT_CONNECTIVITY_URL = "https://httpbin.org/get"

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


@dataclass(frozen=True)
class CorsPolicy:
    """CORS headers attached to every response."""

    allow_origin: str = "*"
    allow_methods: tuple[str, ...] = ("GET", "OPTIONS")
    allow_headers: tuple[str, ...] = ("Content-Type",)

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> CorsPolicy:
        env = os.environ if environ is None else environ
        return cls(allow_origin=_get_str(env, "CORS_ALLOWED_ORIGIN", "*"))

    def headers(self) -> dict[str, str]:
        return {
            "Access-Control-Allow-Origin": self.allow_origin,
            "Access-Control-Allow-Methods": ", ".join(self.allow_methods),
            "Access-Control-Allow-Headers": ", ".join(self.allow_headers),
        }


@dataclass(frozen=True)
class ProxySettings:
    """Settings for the proxy handler and its upstream client."""

    upstream_url: str = DEFAULT_ARCGIS_QUERY_URL
    timeout_seconds: float = DEFAULT_UPSTREAM_TIMEOUT_SECONDS
    user_agent: str = DEFAULT_USER_AGENT
    result_record_count: Optional[int] = None
    include_query_in_metadata: bool = True
    allowed_methods: frozenset[str] = frozenset({"GET", "OPTIONS"})
    cors: CorsPolicy = field(default_factory=CorsPolicy)

    def __post_init__(self) -> None:
        if not self.upstream_url.startswith(("https://", "http://")):
            raise ConfigurationError(
                "ARCGIS_QUERY_URL", "must be an http(s) URL"
            )
        if not 0 < self.timeout_seconds <= MAX_UPSTREAM_TIMEOUT_SECONDS:
            raise ConfigurationError(
                "UPSTREAM_TIMEOUT_SECONDS",
                f"must be greater than 0 and at most {MAX_UPSTREAM_TIMEOUT_SECONDS:g}",
            )
        if self.result_record_count is not None and self.result_record_count < 1:
            raise ConfigurationError(
                "UPSTREAM_RESULT_RECORD_COUNT", "must be a positive integer"
            )

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> ProxySettings:
        """Build settings from environment variables."""
        env = os.environ if environ is None else environ
        return cls(
            upstream_url=_get_str(env, "ARCGIS_QUERY_URL", DEFAULT_ARCGIS_QUERY_URL),
            timeout_seconds=_get_float(
                env, "UPSTREAM_TIMEOUT_SECONDS", DEFAULT_UPSTREAM_TIMEOUT_SECONDS
            ),
            user_agent=_get_str(env, "UPSTREAM_USER_AGENT", DEFAULT_USER_AGENT),
            result_record_count=_get_optional_int(env, "UPSTREAM_RESULT_RECORD_COUNT"),
            include_query_in_metadata=_get_bool(env, "PROXY_INCLUDE_QUERY", True),
            cors=CorsPolicy.from_env(env),
        )


@dataclass(frozen=True)
class LookupClientSettings:
    """Settings for the account lookup client.

    ``proxy_url`` selects the transport: through the proxy when set,
    straight to the upstream otherwise.
    """

    proxy_url: Optional[str] = None
    upstream_url: str = DEFAULT_ARCGIS_QUERY_URL
    user_agent: str = DEFAULT_USER_AGENT
    timeout_seconds: Optional[float] = None

    def __post_init__(self) -> None:
        if self.timeout_seconds is not None and self.timeout_seconds <= 0:
            raise ConfigurationError(
                "LOOKUP_TIMEOUT_SECONDS", "must be greater than 0"
            )

    @property
    def effective_timeout(self) -> float:
        if self.timeout_seconds is not None:
            return self.timeout_seconds
        if self.proxy_url:
            return DEFAULT_PROXY_CLIENT_TIMEOUT_SECONDS
        return DEFAULT_DIRECT_CLIENT_TIMEOUT_SECONDS

    @classmethod
    def from_env(
        cls, environ: Optional[Mapping[str, str]] = None
    ) -> LookupClientSettings:
        env = os.environ if environ is None else environ
        timeout = env.get("LOOKUP_TIMEOUT_SECONDS", "").strip()
        return cls(
            proxy_url=_get_str(env, "LOOKUP_PROXY_URL", "") or None,
            upstream_url=_get_str(env, "ARCGIS_QUERY_URL", DEFAULT_ARCGIS_QUERY_URL),
            user_agent=_get_str(env, "UPSTREAM_USER_AGENT", DEFAULT_USER_AGENT),
            timeout_seconds=(
                _get_float(env, "LOOKUP_TIMEOUT_SECONDS", 0.0) if timeout else None
            ),
        )


@dataclass(frozen=True)
class DiagnosticsSettings:
    """Settings for the self-test endpoint."""

    upstream_url: str = DEFAULT_ARCGIS_QUERY_URL
    connectivity_url: str = DEFAULT_CONNECTIVITY_URL
    user_agent: str = DEFAULT_USER_AGENT
    connectivity_timeout_seconds: float = 5.0
    upstream_timeout_seconds: float = 10.0
    cors: CorsPolicy = field(default_factory=CorsPolicy)

    @classmethod
    def from_env(
        cls, environ: Optional[Mapping[str, str]] = None
    ) -> DiagnosticsSettings:
        env = os.environ if environ is None else environ
        return cls(
            upstream_url=_get_str(env, "ARCGIS_QUERY_URL", DEFAULT_ARCGIS_QUERY_URL),
            connectivity_url=_get_str(
                env, "CONNECTIVITY_CHECK_URL", DEFAULT_CONNECTIVITY_URL
            ),
            user_agent=_get_str(env, "UPSTREAM_USER_AGENT", DEFAULT_USER_AGENT),
            cors=CorsPolicy.from_env(env),
        )


def _get_str(env: Mapping[str, str], name: str, default: str) -> str:
    value = env.get(name, "").strip()
    return value or default


def _get_float(env: Mapping[str, str], name: str, default: float) -> float:
    raw = env.get(name, "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError as exc:
        raise ConfigurationError(name, "must be a number") from exc


def _get_optional_int(env: Mapping[str, str], name: str) -> Optional[int]:
    raw = env.get(name, "").strip()
    if not raw:
        return None
    try:
        return int(raw)
    except ValueError as exc:
        raise ConfigurationError(name, "must be an integer") from exc


def _get_bool(env: Mapping[str, str], name: str, default: bool) -> bool:
    raw = env.get(name, "").strip().lower()
    if not raw:
        return default
    if raw in _TRUE_VALUES:
        return True
    if raw in _FALSE_VALUES:
        return False
    raise ConfigurationError(name, "must be true or false")
