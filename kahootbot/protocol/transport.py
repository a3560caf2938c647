"""
HTTP transport used by the Bayeux session.

The session only needs one operation: POST a JSON text body with headers
and get back status, headers and body. Anything satisfying the Transport
protocol works; RequestsTransport is the production implementation.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Protocol
import logging

import requests
from requests.adapters import HTTPAdapter
from requests.exceptions import RequestException
from urllib3.util.retry import Retry

from .errors import TransportError

logger = logging.getLogger(__name__)


@dataclass
class TransportResponse:
    """Result of a single POST."""
    status: int
    body: str
    # Ordered (name, value) pairs; repeated headers stay separate entries
    headers: list[tuple[str, str]] = field(default_factory=list)

    def header_values(self, name: str) -> list[str]:
        """All values of a header, matched case-insensitively."""
        wanted = name.lower()
        return [value for key, value in self.headers if key.lower() == wanted]


class Transport(Protocol):
    def post(self, url: str, headers: dict[str, str], body: str) -> TransportResponse:
        """POST `body` to `url`. Raises TransportError on I/O failure or non-2xx."""
        ...


class RequestsTransport:
    """
    Transport backed by a pooled requests.Session.

    Connection-level failures are retried by urllib3 before surfacing as
    TransportError. The read timeout must exceed the long-poll advice or
    every idle connect would look like a failure.
    """

    def __init__(
        self,
        timeout: float = 65.0,
        retries: int = 3,
        user_agent: str | None = None,
        session: requests.Session | None = None,
    ):
        self.timeout = timeout
        self.session = session or self._setup_session(retries)
        if user_agent:
            self.session.headers["User-Agent"] = user_agent

    @staticmethod
    def _setup_session(retries: int) -> requests.Session:
        session = requests.Session()
        # Only failed connects are retried; a request that reached the server
        # is never replayed.
        retry_strategy = Retry(
            total=retries,
            connect=retries,
            read=0,
            status=0,
            other=0,
            backoff_factor=0.5,
            raise_on_status=False,
        )
        adapter = HTTPAdapter(max_retries=retry_strategy)
        session.mount("http://", adapter)
        session.mount("https://", adapter)
        return session

    def post(self, url: str, headers: dict[str, str], body: str) -> TransportResponse:
        request_headers = {"Content-Type": "application/json"}
        request_headers.update(headers)
        try:
            response = self.session.post(
                url,
                data=body.encode("utf-8"),
                headers=request_headers,
                timeout=self.timeout,
            )
        except RequestException as exc:
            raise TransportError(f"POST {url} failed: {exc}") from exc

        if not 200 <= response.status_code < 300:
            raise TransportError(
                f"POST {url} returned {response.status_code}",
                status=response.status_code,
                body=response.text,
            )

        return TransportResponse(
            status=response.status_code,
            body=response.text,
            headers=self._collect_headers(response),
        )

    @staticmethod
    def _collect_headers(response: requests.Response) -> list[tuple[str, str]]:
        # requests folds repeated headers into one comma-joined value, which
        # mangles Set-Cookie; read them from the raw urllib3 headers instead.
        raw = getattr(response.raw, "headers", None)
        if raw is not None and hasattr(raw, "getlist"):
            return [(name, value) for name in raw for value in raw.getlist(name)]
        return list(response.headers.items())

    def close(self):
        self.session.close()
