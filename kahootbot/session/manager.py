"""
Session Manager - Creates and tracks game sessions.

LIFECYCLE:
1. Join requested -> GameSession created (one per join attempt)
2. Worker thread starts:
   - Resolve PIN, handshake, subscribe (fatal on ProtocolError)
   - Login
   - Poll loop until kick, game end or stop
   - Disconnect
3. Session finished -> identity and state are never reused

CONCURRENCY:
- One worker thread per session
- Each session owns its own transport, protocol session, player and loop
- Nothing is shared between sessions, so nothing is locked across them
"""

from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable
import logging
import threading
import time
import uuid

from ..bots import AnswerPolicy
from ..config import ClientConfig
from ..protocol.bayeux import BayeuxSession
from ..protocol.errors import KahootError
from ..protocol.resolver import SessionTokenResolver
from ..protocol.transport import Transport
from .player import GamePlayer
from .poll_loop import CycleResult, PollLoop
from .state import PlayMode

logger = logging.getLogger(__name__)

CycleCallback = Callable[["GameSession", CycleResult], None]


class SessionStatus(Enum):
    """Status of a game session."""
    CREATED = "created"  # Not started yet
    JOINING = "joining"  # Bootstrap and login in progress
    PLAYING = "playing"  # Poll loop running
    ENDED = "ended"  # Left the game
    FAILED = "failed"  # Could not join


@dataclass
class GameSession:
    """
    One join attempt: a player, its poll loop and the worker running them.

    Discarded after the game; never reused for another game.
    """
    session_id: str
    username: str
    player: GamePlayer
    loop: PollLoop
    created_at: float

    status: SessionStatus = SessionStatus.CREATED
    error: str | None = None
    login_accepted: bool | None = None
    finished_at: float | None = None
    on_cycle: CycleCallback | None = None

    # Latest lines shown to the player
    recent_messages: list[str] = field(default_factory=list)
    max_messages: int = 20

    _thread: threading.Thread | None = None

    @property
    def game_pin(self) -> int:
        return self.player.session.game_pin

    @property
    def mode(self) -> PlayMode:
        return self.player.mode

    def is_active(self) -> bool:
        """Check if the session is still joining or playing."""
        return self.status in {
            SessionStatus.CREATED,
            SessionStatus.JOINING,
            SessionStatus.PLAYING,
        }

    def start(self):
        """Run the session on its own worker thread."""
        if self._thread is not None:
            raise RuntimeError(f"Session {self.session_id} already started")
        self._thread = threading.Thread(
            target=self.run,
            name=f"kahootbot-{self.username}",
            daemon=True,
        )
        self._thread.start()

    def join(self, timeout: float | None = None) -> bool:
        """Wait for the worker. Returns True once it has finished."""
        if self._thread is None:
            return not self.is_active()
        self._thread.join(timeout)
        return not self._thread.is_alive()

    def stop(self):
        """Cooperative stop; the loop notices at its next cycle."""
        self.loop.stop()

    def run(self):
        """Join, play and leave. Runs on the calling thread."""
        try:
            self._play()
        finally:
            self.player.session.close()
            self.finished_at = time.time()

    def _play(self):
        self.status = SessionStatus.JOINING
        try:
            self.player.bootstrap()
        except KahootError as exc:
            self.status = SessionStatus.FAILED
            self.error = str(exc)
            logger.error(
                "Session %s could not join game %s: %s",
                self.session_id,
                self.game_pin,
                exc,
            )
            return

        self.login_accepted = self.player.login()
        if not self.player.game_running():
            self.player.disconnect()
            self.status = SessionStatus.ENDED
            return

        self.status = SessionStatus.PLAYING
        try:
            self.loop.run(on_cycle=self._record_cycle)
        finally:
            self.status = SessionStatus.ENDED

    def _record_cycle(self, result: CycleResult):
        if result.messages:
            self.recent_messages.extend(result.messages)
            del self.recent_messages[:-self.max_messages]
        if self.on_cycle is not None:
            self.on_cycle(self, result)


class SessionManager:
    """
    Manages game sessions.

    Responsibilities:
    - Create sessions (one transport and worker each)
    - Track running sessions
    - Stop and forget finished ones
    """

    def __init__(
        self,
        config: ClientConfig | None = None,
        transport_factory: Callable[[], Transport] | None = None,
    ):
        self.config = config or ClientConfig()
        self.transport_factory = transport_factory
        self._sessions: dict[str, GameSession] = {}

    def create_session(
        self,
        game_pin: int,
        username: str,
        resolver: SessionTokenResolver,
        mode: PlayMode = PlayMode.AUTO_ANSWER,
        policy: AnswerPolicy | None = None,
        on_cycle: CycleCallback | None = None,
        start: bool = True,
    ) -> GameSession:
        """
        Create a session for one player.

        Args:
            game_pin: The game PIN
            username: Nickname shown in the game
            resolver: Supplies the decoded session token for the PIN
            mode: Interactive or auto-answer
            policy: Answer policy (required for interactive mode)
            on_cycle: Called after every poll cycle from the worker thread
            start: Start the worker immediately

        Returns:
            The new GameSession
        """
        transport = self.transport_factory() if self.transport_factory else None
        bayeux = BayeuxSession(game_pin, resolver, transport=transport, config=self.config)
        player = GamePlayer(username, bayeux, mode=mode, config=self.config)
        loop = PollLoop(player, policy=policy)

        session = GameSession(
            session_id=str(uuid.uuid4()),
            username=username,
            player=player,
            loop=loop,
            created_at=time.time(),
            on_cycle=on_cycle,
        )
        self._sessions[session.session_id] = session
        logger.info(
            "Created session %s for '%s' in game %s (%s)",
            session.session_id,
            username,
            game_pin,
            mode.value,
        )

        if start:
            session.start()
        return session

    def create_bots(
        self,
        game_pin: int,
        prefix: str,
        count: int,
        resolver: SessionTokenResolver,
        start: bool = True,
    ) -> list[GameSession]:
        """Join `count` auto-answer bots named {prefix}1..{prefix}{count}."""
        if count < 1:
            raise ValueError("count must be at least 1")
        return [
            self.create_session(
                game_pin,
                f"{prefix}{index}",
                resolver,
                mode=PlayMode.AUTO_ANSWER,
                start=start,
            )
            for index in range(1, count + 1)
        ]

    def get_session(self, session_id: str) -> GameSession | None:
        """Get a session by ID."""
        return self._sessions.get(session_id)

    def end_session(self, session_id: str) -> bool:
        """
        Stop a session and forget it.

        The worker disconnects on its own once its current connect returns.
        """
        session = self._sessions.pop(session_id, None)
        if session is None:
            return False
        session.stop()
        return True

    def list_sessions(self) -> list[GameSession]:
        return list(self._sessions.values())

    def list_active_sessions(self) -> list[str]:
        """List IDs of sessions still joining or playing."""
        return [
            sid for sid, session in self._sessions.items()
            if session.is_active()
        ]

    def cleanup_finished_sessions(self, max_age_seconds: float = 0.0) -> int:
        """Forget sessions finished at least max_age_seconds ago. Returns how many."""
        now = time.time()
        to_remove = [
            sid for sid, session in self._sessions.items()
            if not session.is_active()
            and now - (session.finished_at or session.created_at) >= max_age_seconds
        ]
        for sid in to_remove:
            del self._sessions[sid]
        return len(to_remove)
