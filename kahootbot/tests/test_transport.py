"""
Tests for the requests-backed transport against a local HTTP server.

Tests:
- Repeated Set-Cookie headers stay separate values
- Handshake picks the session cookie and later requests present it
- Non-2xx responses raise TransportError and are not replayed
"""

from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
import json
import socket
import threading

import pytest

from ..config import ClientConfig
from ..protocol.bayeux import BayeuxSession
from ..protocol.errors import TransportError
from ..protocol.resolver import StaticTokenResolver
from ..protocol.transport import RequestsTransport
from .conftest import CLIENT_ID, GAME_PIN, OK_BODY

HANDSHAKE_BODY = json.dumps([
    {"channel": "/meta/handshake", "clientId": CLIENT_ID, "successful": True},
])


class CometdHandler(BaseHTTPRequestHandler):
    """Answers the handful of paths the tests use and records every request."""

    def do_POST(self):
        length = int(self.headers.get("Content-Length", 0))
        body = self.rfile.read(length).decode("utf-8")
        self.server.requests.append({
            "path": self.path,
            "headers": dict(self.headers.items()),
            "body": body,
        })

        if self.path.endswith("/handshake"):
            self._reply(200, HANDSHAKE_BODY, cookies=[
                "OTHER=1; Path=/",
                "BAYEUX_BROWSER=abc; Path=/; HttpOnly",
            ])
        elif self.path.endswith("/missing"):
            self._reply(404, "not here")
        elif self.path.endswith("/unavailable"):
            self._reply(503, "try later")
        else:
            self._reply(200, OK_BODY)

    def _reply(self, status, body, cookies=()):
        payload = body.encode("utf-8")
        self.send_response(status)
        self.send_header("Content-Type", "application/json")
        self.send_header("Content-Length", str(len(payload)))
        for cookie in cookies:
            self.send_header("Set-Cookie", cookie)
        self.end_headers()
        self.wfile.write(payload)

    def log_message(self, format, *args):
        pass


@pytest.fixture
def server():
    httpd = ThreadingHTTPServer(("127.0.0.1", 0), CometdHandler)
    httpd.requests = []
    thread = threading.Thread(target=httpd.serve_forever, daemon=True)
    thread.start()
    yield httpd
    httpd.shutdown()
    httpd.server_close()


@pytest.fixture
def base_url(server):
    return f"http://127.0.0.1:{server.server_address[1]}"


@pytest.fixture
def http_transport():
    transport = RequestsTransport(timeout=5.0, retries=0, user_agent="kahootbot-tests")
    yield transport
    transport.close()


class TestRequestsTransport:
    """Tests for the production transport."""

    def test_repeated_set_cookie_values(self, base_url, http_transport):
        response = http_transport.post(f"{base_url}/cometd/1/tok/handshake", {}, "{}")

        assert response.status == 200
        assert response.body == HANDSHAKE_BODY
        assert response.header_values("Set-Cookie") == [
            "OTHER=1; Path=/",
            "BAYEUX_BROWSER=abc; Path=/; HttpOnly",
        ]

    def test_request_headers(self, base_url, http_transport, server):
        http_transport.post(f"{base_url}/cometd/1/tok", {"Cookie": "A=1"}, '{"x":1}')

        request = server.requests[-1]
        assert request["body"] == '{"x":1}'
        assert request["headers"]["Content-Type"] == "application/json"
        assert request["headers"]["User-Agent"] == "kahootbot-tests"
        assert request["headers"]["Cookie"] == "A=1"

    def test_not_found_raises(self, base_url, http_transport):
        with pytest.raises(TransportError) as info:
            http_transport.post(f"{base_url}/cometd/1/tok/missing", {}, "{}")

        assert info.value.status == 404
        assert info.value.body == "not here"

    def test_error_status_is_not_replayed(self, base_url, server):
        transport = RequestsTransport(timeout=5.0, retries=3)
        try:
            with pytest.raises(TransportError) as info:
                transport.post(f"{base_url}/cometd/1/tok/unavailable", {}, "{}")
        finally:
            transport.close()

        assert info.value.status == 503
        assert len(server.requests) == 1

    def test_connection_refused(self, http_transport):
        with socket.socket() as spare:
            spare.bind(("127.0.0.1", 0))
            port = spare.getsockname()[1]

        with pytest.raises(TransportError):
            http_transport.post(f"http://127.0.0.1:{port}/cometd/1/tok", {}, "{}")


class TestHandshakeOverHTTP:
    """Tests for the cookie precondition over a real socket."""

    def test_handshake_picks_session_cookie(self, base_url, http_transport, server):
        config = ClientConfig(base_url=base_url, host="127.0.0.1")

        session = BayeuxSession(
            GAME_PIN,
            StaticTokenResolver(GAME_PIN, "tok"),
            transport=http_transport,
            config=config,
        )
        identity = session.handshake()

        assert identity.session_cookie == "BAYEUX_BROWSER=abc"
        assert identity.client_id == CLIENT_ID
        assert server.requests[0]["path"] == f"/cometd/{GAME_PIN}/tok/handshake"

        assert session.subscribe("/service/player") is True
        assert server.requests[-1]["headers"]["Cookie"] == "BAYEUX_BROWSER=abc"
        assert server.requests[-1]["path"] == f"/cometd/{GAME_PIN}/tok"
