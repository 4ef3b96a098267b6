"""Pytest configuration and fixtures for backend tests.

This module provides shared fixtures for testing the backend application:
API Gateway event factories and a local HTTP server that stands in for the
ArcGIS feature service (or for the proxy, when testing the lookup client).
"""

from __future__ import annotations

import json
import socket
import sys
import threading
import time
from dataclasses import dataclass
from dataclasses import field
from http.server import BaseHTTPRequestHandler
from http.server import ThreadingHTTPServer
from pathlib import Path
from typing import Any
from typing import Callable
from typing import Generator
from typing import Optional
from urllib.parse import parse_qs
from urllib.parse import urlsplit
from uuid import uuid4

import pytest

# Add backend source to path for imports
sys.path.insert(0, str(Path(__file__).resolve().parents[1] / 'backend' / 'src'))


# --- Stub upstream server ---


@dataclass
class StubReply:
    status: int = 200
    body: Any = field(default_factory=lambda: {'features': []})
    delay: float = 0.0
    # Seconds between single body bytes; 0 sends the body at once
    trickle: float = 0.0


@dataclass
class StubRequest:
    path: str
    query: dict[str, list[str]]
    headers: dict[str, str]


class _StubHandler(BaseHTTPRequestHandler):
    def do_GET(self) -> None:
        stub: StubServer = self.server.stub  # type: ignore[attr-defined]
        parts = urlsplit(self.path)
        stub.requests.append(
            StubRequest(
                path=parts.path,
                query=parse_qs(parts.query, keep_blank_values=True),
                headers=dict(self.headers.items()),
            )
        )
        reply = stub.reply_for(parts.path)
        if reply.delay:
            time.sleep(reply.delay)

        if isinstance(reply.body, (bytes, str)):
            payload = reply.body.encode() if isinstance(reply.body, str) else reply.body
        else:
            payload = json.dumps(reply.body).encode()

        try:
            self.send_response(reply.status)
            self.send_header('Content-Type', 'application/json')
            self.send_header('Content-Length', str(len(payload)))
            self.end_headers()
            if reply.trickle:
                for index in range(len(payload)):
                    self.wfile.write(payload[index:index + 1])
                    time.sleep(reply.trickle)
            else:
                self.wfile.write(payload)
        except (BrokenPipeError, ConnectionResetError):
            pass

    def log_message(self, format: str, *args: Any) -> None:
        pass


class StubServer:
    """A real HTTP server on localhost with scripted replies."""

    def __init__(self) -> None:
        self.requests: list[StubRequest] = []
        self.default = StubReply()
        self.routes: dict[str, StubReply] = {}
        self._server = ThreadingHTTPServer(('127.0.0.1', 0), _StubHandler)
        self._server.daemon_threads = True
        self._server.block_on_close = False
        self._server.stub = self  # type: ignore[attr-defined]
        self._thread = threading.Thread(target=self._server.serve_forever, daemon=True)

    @property
    def base_url(self) -> str:
        host, port = self._server.server_address[:2]
        return f'http://{host}:{port}'

    @property
    def query_url(self) -> str:
        return f'{self.base_url}/query'

    def reply(
        self,
        status: int = 200,
        body: Any = None,
        delay: float = 0.0,
        path: Optional[str] = None,
        trickle: float = 0.0,
    ) -> None:
        stub_reply = StubReply(
            status=status,
            body={'features': []} if body is None else body,
            delay=delay,
            trickle=trickle,
        )
        if path is None:
            self.default = stub_reply
        else:
            self.routes[path] = stub_reply

    def reply_for(self, path: str) -> StubReply:
        return self.routes.get(path, self.default)

    @property
    def last_request(self) -> StubRequest:
        return self.requests[-1]

    def start(self) -> None:
        self._thread.start()

    def stop(self) -> None:
        self._server.shutdown()
        self._server.server_close()


@pytest.fixture
def stub_server() -> Generator[StubServer, None, None]:
    """Start a local stand-in for the ArcGIS feature service."""
    server = StubServer()
    server.start()
    yield server
    server.stop()


@pytest.fixture
def unreachable_url() -> str:
    """A localhost URL on a port nothing listens on."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.bind(('127.0.0.1', 0))
        port = sock.getsockname()[1]
    return f'http://127.0.0.1:{port}/query'


# --- Sample Data Factories ---


@pytest.fixture
def sample_attributes() -> dict:
    """Attributes of one certification feature as the layer returns them."""
    return {
        'objectid': 1812,
        'opa_account': '081128700',
        'address': '1234 S BROAD ST',
        'zip_code': '19146',
        'lhhp_certification_status': 'Certified',
        'lhhp_status_type': 'Lead Safe',
        'lhhp_cert_date': 1704067200000,
        'lhhp_cert_expiration_date': 1798761600000,
        'lhhp_status_details': 'Dust wipe test passed',
    }


@pytest.fixture
def sample_features(sample_attributes) -> list[dict]:
    second = dict(sample_attributes, objectid=1813, address='1236 S BROAD ST')
    return [{'attributes': sample_attributes}, {'attributes': second}]


# --- API Event Fixtures ---


@pytest.fixture
def api_gateway_event() -> dict:
    """Base API Gateway event structure."""
    return {
        'httpMethod': 'GET',
        'path': '/proxy',
        'queryStringParameters': {},
        'multiValueQueryStringParameters': {},
        'headers': {},
        'requestContext': {
            'requestId': str(uuid4()),
        },
        'body': None,
        'isBase64Encoded': False,
    }


@pytest.fixture
def make_event(api_gateway_event) -> Callable[..., dict]:
    """Build API Gateway events with a given method and query parameters."""

    def _make(
        method: str = 'GET',
        path: str = '/proxy',
        headers: Optional[dict[str, str]] = None,
        **params: str,
    ) -> dict:
        event = dict(api_gateway_event)
        event['httpMethod'] = method
        event['path'] = path
        event['headers'] = headers or {}
        event['queryStringParameters'] = dict(params) or None
        event['multiValueQueryStringParameters'] = (
            {key: [value] for key, value in params.items()} or None
        )
        return event

    return _make
