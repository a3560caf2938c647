"""
Pydantic Schemas for the control API.

These models define the contract for starting players in a game and
watching how they do.

Error Codes:
- SESSION_NOT_FOUND: Session does not exist or was already ended
- INVALID_GAME_PIN: The PIN/token pair could not be resolved
- INVALID_MODE: Mode not available over the API (interactive needs a terminal)
"""

from enum import Enum
from typing import Optional
from pydantic import BaseModel, Field


# =============================================================================
# Enums
# =============================================================================

class SessionStatus(str, Enum):
    """Session status values."""
    CREATED = "created"
    JOINING = "joining"
    PLAYING = "playing"
    ENDED = "ended"
    FAILED = "failed"


class PlayModeName(str, Enum):
    """How answers are chosen."""
    INTERACTIVE = "interactive"
    AUTO_ANSWER = "auto_answer"


class ErrorCode(str, Enum):
    """Structured error codes."""
    SESSION_NOT_FOUND = "SESSION_NOT_FOUND"
    INVALID_GAME_PIN = "INVALID_GAME_PIN"
    INVALID_MODE = "INVALID_MODE"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    INTERNAL_ERROR = "INTERNAL_ERROR"


# =============================================================================
# Shared Models
# =============================================================================

class PlayerStats(BaseModel):
    """Score and question tracking for one player."""
    question_number: int = 0
    last_answer: int = Field(-1, description="Last submitted slot, -1 when not active")
    answer_2_valid: bool = False
    answer_3_valid: bool = False
    last_correct: Optional[bool] = None
    last_score: int = 0
    total_score: int = 0
    rank: int = 0
    nemesis: str = "no one"
    nemesis_score: int = 0

    model_config = {"from_attributes": True}


# =============================================================================
# Requests
# =============================================================================

class JoinRequest(BaseModel):
    """Join one player to a game."""
    game_pin: int = Field(..., gt=0, description="Game PIN shown on the host screen")
    username: str = Field(..., min_length=1, max_length=32)
    token: str = Field(..., min_length=1, description="Decoded session token for the PIN")
    mode: PlayModeName = PlayModeName.AUTO_ANSWER
    is_team_game: bool = False
    is_2fa_game: bool = False


class BotsRequest(BaseModel):
    """Join several auto-answer bots to a game."""
    game_pin: int = Field(..., gt=0)
    token: str = Field(..., min_length=1)
    prefix: str = Field("bot", min_length=1, max_length=28)
    count: int = Field(1, ge=1, le=100)


# =============================================================================
# Responses
# =============================================================================

class ErrorResponse(BaseModel):
    """Standard error payload."""
    error: str
    error_code: ErrorCode
    details: Optional[dict] = None


class SessionResponse(BaseModel):
    """Status of one session."""
    session_id: str
    game_pin: int
    username: str
    mode: PlayModeName
    status: SessionStatus
    active: bool
    login_accepted: Optional[bool] = None
    end_reason: Optional[str] = None
    error: Optional[str] = None
    is_team_game: bool = False
    two_factor_auth: bool = False
    stats: PlayerStats = Field(default_factory=PlayerStats)
    recent_messages: list[str] = Field(default_factory=list)
    api_version: str = "v1"


class BotsResponse(BaseModel):
    """Sessions created by a bulk join."""
    sessions: list[SessionResponse]
    count: int


class SessionListResponse(BaseModel):
    """Response listing active sessions."""
    sessions: list[str]
    count: int


class EndSessionResponse(BaseModel):
    """Response after ending a session."""
    success: bool
    session_id: str


class HealthResponse(BaseModel):
    """Health check response."""
    status: str
    service: str
    version: str
