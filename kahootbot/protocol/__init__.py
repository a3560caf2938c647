"""
Protocol Module - The quiz's Bayeux/CometD wire layer.

Provides:
- BayeuxSession: handshake, subscriptions, login, connect, answer, disconnect
- classify: maps a long-poll response to a game event
- Transport / SessionTokenResolver: collaborator contracts
- Error taxonomy
"""

from .errors import (
    KahootError,
    TransportError,
    ProtocolError,
    PayloadError,
    ServerRejected,
    ResolutionError,
)
from .transport import Transport, TransportResponse, RequestsTransport
from .resolver import SessionTokenResolver, ResolvedGame, StaticTokenResolver
from .classifier import (
    EventKind,
    GameEvent,
    Kicked,
    QuestionReady,
    QuestionUpcoming,
    FeedbackMessage,
    QuestionResult,
    GameEnded,
    Idle,
    NO_NEMESIS,
    classify,
)
from .bayeux import BayeuxSession, GameIdentity, ConnectResponse

__all__ = [
    # Errors
    "KahootError",
    "TransportError",
    "ProtocolError",
    "PayloadError",
    "ServerRejected",
    "ResolutionError",
    # Collaborators
    "Transport",
    "TransportResponse",
    "RequestsTransport",
    "SessionTokenResolver",
    "ResolvedGame",
    "StaticTokenResolver",
    # Events
    "EventKind",
    "GameEvent",
    "Kicked",
    "QuestionReady",
    "QuestionUpcoming",
    "FeedbackMessage",
    "QuestionResult",
    "GameEnded",
    "Idle",
    "NO_NEMESIS",
    "classify",
    # Session
    "BayeuxSession",
    "GameIdentity",
    "ConnectResponse",
]
