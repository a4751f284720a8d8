#!/usr/bin/env python3
"""Serve a stand-in identity provider for local Jobly runs.

Each bearer token maps to a username; the API then looks that username up in
its own users table, so admin rights are whatever the seeded rows say.

    python scripts/mock_auth.py --token admin-token=u1 --token user-token=u2
    JOBLY_AUTH_URL=http://127.0.0.1:54321 uvicorn jobly.main:app
"""

from __future__ import annotations

import argparse
import json
import uuid
from http import HTTPStatus
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer

DEFAULT_TOKENS = {"admin-token": "u1", "user-token": "u2"}
USER_PATH = "/auth/v1/user"


def identity_payload(username: str) -> dict[str, object]:
    """Shape of the provider's ``GET /auth/v1/user`` response that Jobly reads."""
    return {
        "id": str(uuid.uuid5(uuid.NAMESPACE_URL, f"jobly:{username}")),
        "app_metadata": {"username": username},
        "user_metadata": {},
    }


def build_handler(tokens: dict[str, str]) -> type[BaseHTTPRequestHandler]:
    known_tokens = dict(tokens)

    class MockAuthHandler(BaseHTTPRequestHandler):
        server_version = "JoblyMockAuth/1.0"

        def do_GET(self) -> None:  # noqa: N802 - stdlib handler signature
            if self.path == "/healthz":
                self._reply(HTTPStatus.OK, {"status": "ok"})
            elif self.path != USER_PATH:
                self._reply(HTTPStatus.NOT_FOUND, {"detail": "not found"})
            else:
                self._reply_identity()

        def _reply_identity(self) -> None:
            scheme, _, token = self.headers.get("Authorization", "").partition(" ")
            username = known_tokens.get(token.strip()) if scheme.lower() == "bearer" else None
            if username is None:
                self._reply(HTTPStatus.UNAUTHORIZED, {"msg": "invalid JWT"})
                return
            self._reply(HTTPStatus.OK, identity_payload(username))

        def log_message(self, format: str, *args: object) -> None:  # noqa: A002
            print("mock-auth:", format % args, flush=True)

        def _reply(self, status: HTTPStatus, payload: dict[str, object]) -> None:
            body = json.dumps(payload).encode("utf-8")
            self.send_response(status.value)
            self.send_header("Content-Type", "application/json")
            self.send_header("Content-Length", str(len(body)))
            self.end_headers()
            self.wfile.write(body)

    return MockAuthHandler


def _parse_token(raw: str) -> tuple[str, str]:
    token, separator, username = raw.partition("=")
    if not separator or not token or not username:
        raise argparse.ArgumentTypeError(f"expected TOKEN=USERNAME, got {raw!r}")
    return token, username


def main() -> None:
    parser = argparse.ArgumentParser(description="Mock identity provider for Jobly bearer tokens.")
    parser.add_argument("--host", default="127.0.0.1")
    parser.add_argument("--port", type=int, default=54321)
    parser.add_argument(
        "--token",
        action="append",
        type=_parse_token,
        default=[],
        metavar="TOKEN=USERNAME",
        help="Accept TOKEN as USERNAME (repeatable; defaults to admin-token=u1 and user-token=u2)",
    )
    args = parser.parse_args()

    tokens = dict(args.token) or DEFAULT_TOKENS
    server = ThreadingHTTPServer((args.host, args.port), build_handler(tokens))
    print(f"mock-auth listening on http://{args.host}:{args.port} tokens={sorted(tokens)}", flush=True)
    try:
        server.serve_forever()
    except KeyboardInterrupt:
        pass
    finally:
        server.server_close()


if __name__ == "__main__":
    main()
