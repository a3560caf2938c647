"""
API Service - Business logic between the HTTP layer and the session manager.

The service:
1. Validates join requests (PIN/token, mode)
2. Starts sessions through the SessionManager
3. Formats session status for clients

This layer is framework-agnostic (can be used with FastAPI, Flask, etc.)
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Union

from .schemas import (
    BotsRequest,
    BotsResponse,
    ErrorCode,
    ErrorResponse,
    JoinRequest,
    PlayerStats,
    PlayModeName,
    SessionResponse,
    SessionStatus,
)
from ..protocol.errors import ResolutionError
from ..protocol.resolver import StaticTokenResolver
from ..session import GameSession, PlayMode, SessionManager


@dataclass
class APIService:
    """
    Control service for running players.

    Usage:
        service = APIService()

        # Join one bot
        response = service.join(JoinRequest(game_pin=123456, username="bot", token="..."))

        # Watch it play
        status = service.get_session(response.session_id)
    """
    session_manager: SessionManager = field(default_factory=SessionManager)

    # Finished sessions stay readable this long, then are forgotten
    finished_retention_seconds: float = 300.0

    def join(self, request: JoinRequest) -> Union[SessionResponse, ErrorResponse]:
        """Start one player in a game."""
        self.prune_finished()
        if request.mode == PlayModeName.INTERACTIVE:
            return ErrorResponse(
                error="Interactive play needs a terminal; use the CLI",
                error_code=ErrorCode.INVALID_MODE,
            )

        resolver = StaticTokenResolver(
            request.game_pin,
            request.token,
            is_team_game=request.is_team_game,
            is_2fa_game=request.is_2fa_game,
        )
        error = self._check_resolvable(resolver, request.game_pin)
        if error:
            return error

        session = self.session_manager.create_session(
            request.game_pin,
            request.username,
            resolver,
            mode=PlayMode.AUTO_ANSWER,
        )
        return self.session_response(session)

    def join_bots(self, request: BotsRequest) -> Union[BotsResponse, ErrorResponse]:
        """Start several auto-answer bots in a game."""
        self.prune_finished()
        resolver = StaticTokenResolver(request.game_pin, request.token)
        error = self._check_resolvable(resolver, request.game_pin)
        if error:
            return error

        sessions = self.session_manager.create_bots(
            request.game_pin, request.prefix, request.count, resolver
        )
        return BotsResponse(
            sessions=[self.session_response(s) for s in sessions],
            count=len(sessions),
        )

    def get_session(self, session_id: str) -> Union[SessionResponse, ErrorResponse]:
        """Get the status of a session."""
        session = self.session_manager.get_session(session_id)
        if session is None:
            return ErrorResponse(
                error=f"Session not found: {session_id}",
                error_code=ErrorCode.SESSION_NOT_FOUND,
            )
        return self.session_response(session)

    def end_session(self, session_id: str) -> bool:
        """Stop a session. Returns False if it does not exist."""
        return self.session_manager.end_session(session_id)

    def list_sessions(self) -> list[str]:
        """List IDs of sessions still joining or playing."""
        self.prune_finished()
        return self.session_manager.list_active_sessions()

    # =========================================================================
    # Helpers
    # =========================================================================

    def prune_finished(self) -> int:
        """Forget sessions that finished more than the retention period ago."""
        return self.session_manager.cleanup_finished_sessions(
            max_age_seconds=self.finished_retention_seconds
        )

    @staticmethod
    def _check_resolvable(resolver: StaticTokenResolver, game_pin: int) -> ErrorResponse | None:
        try:
            resolver.resolve(game_pin)
        except ResolutionError as exc:
            return ErrorResponse(error=str(exc), error_code=ErrorCode.INVALID_GAME_PIN)
        return None

    @staticmethod
    def session_response(session: GameSession) -> SessionResponse:
        state = session.player.snapshot()
        return SessionResponse(
            session_id=session.session_id,
            game_pin=session.game_pin,
            username=session.username,
            mode=PlayModeName(session.mode.value),
            status=SessionStatus(session.status.value),
            active=state.active,
            login_accepted=session.login_accepted,
            end_reason=state.end_reason.value if state.end_reason else None,
            error=session.error,
            is_team_game=state.is_team_game,
            two_factor_auth=state.two_factor_auth,
            stats=PlayerStats(
                question_number=state.question_number,
                last_answer=state.last_answer if state.active else -1,
                answer_2_valid=state.answer_2_valid,
                answer_3_valid=state.answer_3_valid,
                last_correct=state.last_correct,
                last_score=state.last_score,
                total_score=state.total_score,
                rank=state.rank,
                nemesis=state.nemesis_name,
                nemesis_score=state.nemesis_score,
            ),
            recent_messages=list(session.recent_messages),
        )
