"""
Error taxonomy for the quiz protocol client.

- TransportError: the request never produced a 2xx response
- ProtocolError: a response was missing something the protocol requires
- PayloadError: a pushed message whose content cannot be decoded
- ServerRejected: the server answered with successful=false
- ResolutionError: the game PIN could not be resolved to a session token

Kicks and game end are normal events, not errors.
"""

from __future__ import annotations


class KahootError(Exception):
    """Base class for all client errors."""


class TransportError(KahootError):
    """Network failure or non-2xx status."""

    def __init__(self, message: str, status: int | None = None, body: str = ""):
        super().__init__(message)
        self.status = status
        self.body = body


class ProtocolError(KahootError):
    """Malformed or incomplete protocol response, or a missing precondition."""


class PayloadError(ProtocolError):
    """The nested content of a pushed message failed to decode."""


class ServerRejected(KahootError):
    """A stage the server answered with successful=false."""

    def __init__(self, stage: str, raw_body: str):
        super().__init__(f"[{stage}] server rejected the request")
        self.stage = stage
        self.raw_body = raw_body


class ResolutionError(KahootError):
    """The game PIN is invalid or unknown."""
