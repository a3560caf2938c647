"""
API Module - HTTP control surface.

Starts automated players in live games and reports how they are doing:
1. Join one player or a batch of bots
2. Poll session status (score, rank, nemesis, last answer)
3. Stop sessions

All state lives in the session manager; nothing is persisted.
"""

from .schemas import (
    # Requests
    JoinRequest,
    BotsRequest,
    # Responses
    SessionResponse,
    BotsResponse,
    SessionListResponse,
    EndSessionResponse,
    HealthResponse,
    ErrorResponse,
    # Shared
    PlayerStats,
    ErrorCode,
)
from .service import APIService
from .app import create_app

__all__ = [
    # Requests
    "JoinRequest",
    "BotsRequest",
    # Responses
    "SessionResponse",
    "BotsResponse",
    "SessionListResponse",
    "EndSessionResponse",
    "HealthResponse",
    "ErrorResponse",
    # Shared
    "PlayerStats",
    "ErrorCode",
    # Service
    "APIService",
    "create_app",
]
