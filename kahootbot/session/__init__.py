"""
Session Module - One player in one live game.

A session represents one join attempt:
- Created when a player (human or bot) joins a game PIN
- Holds the protocol identity and the player-visible state
- Runs the long-poll loop on its own worker
- Ends on kick, game end or stop, and is never reused

Sessions are EPHEMERAL: nothing is persisted.
"""

from .state import SessionState, PlayMode, EndReason, NOT_ACTIVE
from .player import GamePlayer
from .poll_loop import PollLoop, LoopState, CycleResult
from .manager import SessionManager, GameSession, SessionStatus

__all__ = [
    "SessionState",
    "PlayMode",
    "EndReason",
    "NOT_ACTIVE",
    "GamePlayer",
    "PollLoop",
    "LoopState",
    "CycleResult",
    "SessionManager",
    "GameSession",
    "SessionStatus",
]
