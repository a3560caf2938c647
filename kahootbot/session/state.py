"""
Session State - Player-visible state of one game.

Written only by the session's own worker (login, poll loop, disconnect).
Other threads read it through GamePlayer's accessors.
"""

from __future__ import annotations
from dataclasses import dataclass
from enum import Enum

from ..protocol.classifier import NO_NEMESIS

NOT_ACTIVE = -1


class PlayMode(Enum):
    """How answers are chosen."""
    INTERACTIVE = "interactive"  # A human picks each answer
    AUTO_ANSWER = "auto_answer"  # Random answer for every question


class EndReason(Enum):
    """Why a session stopped being active."""
    KICKED = "kicked"
    GAME_ENDED = "game_ended"
    DISCONNECTED = "disconnected"
    TRANSPORT_FAILURE = "transport_failure"
    LOGIN_REJECTED = "login_rejected"


@dataclass
class SessionState:
    """
    Mutable state for one join attempt.

    `active` goes False -> True once (login) and True -> False once
    (kick, game end, disconnect); it is never reactivated.
    """
    mode: PlayMode = PlayMode.AUTO_ANSWER
    active: bool = False
    ended: bool = False
    end_reason: EndReason | None = None

    # Question tracking (1-based; 0 before the first question)
    question_number: int = 0
    last_answer: int = NOT_ACTIVE
    answer_acknowledged: bool = False
    answer_2_valid: bool = False
    answer_3_valid: bool = False

    # Results
    last_score: int = 0
    total_score: int = 0
    rank: int = 0
    nemesis_name: str = NO_NEMESIS
    nemesis_score: int = 0
    last_correct: bool | None = None

    # Game metadata
    is_team_game: bool = False
    two_factor_auth: bool = False
    last_feedback: str | None = None
    quiz_id: str | None = None
    player_count: int = 0

    def update_answer_validity(self, answer_count: int):
        """Slot 2 exists from three answers up, slot 3 only with four."""
        self.answer_2_valid = answer_count >= 3
        self.answer_3_valid = answer_count >= 4
