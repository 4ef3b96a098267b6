"""Serve the Lambda handlers locally over HTTP.

Each request is converted to an API Gateway REST proxy event and handed to
the matching handler:

    /proxy   -> leadcert.api.proxy
    /test    -> leadcert.api.diagnostics
    /lookup  -> leadcert.api.lookup_page  (also served at /)

Usage:
    python backend/scripts/dev_server.py --port 8080
"""

from __future__ import annotations

import argparse
import logging
import sys
import uuid
from http.server import BaseHTTPRequestHandler
from http.server import ThreadingHTTPServer
from pathlib import Path
from typing import Any
from typing import Callable
from urllib.parse import parse_qs
from urllib.parse import urlsplit

sys.path.insert(0, str(Path(__file__).resolve().parents[1] / "src"))

from leadcert.api import diagnostics  # noqa: E402
from leadcert.api import lookup_page  # noqa: E402
from leadcert.api import proxy  # noqa: E402

logger = logging.getLogger(__name__)

Handler = Callable[[dict[str, Any], Any], dict[str, Any]]

ROUTES: dict[str, Handler] = {
    "/": lookup_page.lambda_handler,
    "/lookup": lookup_page.lambda_handler,
    "/proxy": proxy.lambda_handler,
    "/api/openphilly-proxy": proxy.lambda_handler,
    "/test": diagnostics.lambda_handler,
}


def build_event(method: str, raw_path: str, headers: dict[str, str]) -> dict[str, Any]:
    """Build an API Gateway REST proxy event for a local request."""
    parts = urlsplit(raw_path)
    multi = parse_qs(parts.query, keep_blank_values=True)
    return {
        "httpMethod": method,
        "path": parts.path,
        "queryStringParameters": {k: v[-1] for k, v in multi.items()} or None,
        "multiValueQueryStringParameters": multi or None,
        "headers": headers,
        "requestContext": {"requestId": str(uuid.uuid4())},
        "body": None,
        "isBase64Encoded": False,
    }


class LambdaRequestHandler(BaseHTTPRequestHandler):
    server_version = "LeadCertDev/1.0"

    def _dispatch(self) -> None:
        path = urlsplit(self.path).path.rstrip("/") or "/"
        handler = ROUTES.get(path)
        if handler is None:
            self.send_error(404, "Not found")
            return

        event = build_event(self.command, self.path, dict(self.headers.items()))
        response = handler(event, None)

        body = (response.get("body") or "").encode("utf-8")
        self.send_response(int(response["statusCode"]))
        for name, value in (response.get("headers") or {}).items():
            self.send_header(name, value)
        self.send_header("Content-Length", str(len(body)))
        self.end_headers()
        if self.command != "HEAD":
            self.wfile.write(body)

    do_GET = _dispatch
    do_HEAD = _dispatch
    do_OPTIONS = _dispatch
    do_POST = _dispatch
    do_PUT = _dispatch
    do_DELETE = _dispatch

    def log_message(self, format: str, *args: Any) -> None:
        logger.debug("%s - %s", self.address_string(), format % args)


def main() -> None:
    parser = argparse.ArgumentParser(description="Run the Lambda handlers locally.")
    parser.add_argument("--host", default="127.0.0.1")
    parser.add_argument("--port", type=int, default=8080)
    args = parser.parse_args()

    server = ThreadingHTTPServer((args.host, args.port), LambdaRequestHandler)
    logger.info(f"Serving on http://{args.host}:{args.port}/lookup")
    try:
        server.serve_forever()
    except KeyboardInterrupt:
        pass
    finally:
        server.server_close()


if __name__ == "__main__":
    main()
