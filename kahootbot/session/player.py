"""
Game Player - Owns one player's session state and reacts to game events.

The player is the only writer of its SessionState. Other threads use the
accessors, which take the same lock. Answer acknowledgement is a
consume-once signal: each submitted answer can be observed exactly once
through last_answer_blocking() or cleared by last_answer().
"""

from __future__ import annotations
from dataclasses import replace
import logging
import threading

from ..bots import AnswerDecision, AnswerPolicy
from ..config import ClientConfig
from ..protocol.bayeux import BayeuxSession
from ..protocol.classifier import (
    FeedbackMessage,
    GameEnded,
    QuestionReady,
    QuestionResult,
)
from .state import NOT_ACTIVE, EndReason, PlayMode, SessionState

logger = logging.getLogger(__name__)


class GamePlayer:
    """
    One player in one game.

    Usage:
        player = GamePlayer("nickname", session, mode=PlayMode.AUTO_ANSWER)
        player.bootstrap()
        player.login()
        # poll loop feeds events through the handle_* methods
        player.disconnect()
    """

    def __init__(
        self,
        username: str,
        session: BayeuxSession,
        mode: PlayMode = PlayMode.AUTO_ANSWER,
        config: ClientConfig | None = None,
    ):
        self.username = username
        self.session = session
        self.config = config or session.config
        self._state = SessionState(mode=mode)
        self._cond = threading.Condition(threading.RLock())

    # ------------------------------------------------------------ Lifecycle
    def bootstrap(self):
        """
        Resolve the PIN and run the protocol bootstrap.

        Raises ProtocolError / ResolutionError; a session that fails here
        cannot be used.
        """
        resolved = self.session.resolve()
        with self._cond:
            self._state.is_team_game = resolved.is_team_game
            self._state.two_factor_auth = resolved.is_2fa_game
        self.session.initialize()

    def login(self) -> bool:
        """
        Log in under this player's username.

        With optimistic login (the default) the session becomes active even
        if the server rejected the login. Returns whether it was accepted.
        """
        accepted = self.session.login(self.username)
        if accepted or self.config.optimistic_login:
            if not accepted:
                logger.warning(
                    "Login for '%s' was rejected; continuing optimistically",
                    self.username,
                )
            self._activate()
        else:
            self.deactivate(EndReason.LOGIN_REJECTED)
        return accepted

    def disconnect(self) -> bool:
        """Leave the game and deactivate, whatever the server says."""
        success = self.session.disconnect()
        self.deactivate(EndReason.DISCONNECTED)
        return success

    def _activate(self):
        with self._cond:
            if self._state.ended:
                logger.debug("Ignoring activation of ended session for '%s'", self.username)
                return
            self._state.active = True
            self._cond.notify_all()

    def deactivate(self, reason: EndReason):
        """Mark the session inactive. Only the first reason is kept."""
        with self._cond:
            if not self._state.ended:
                self._state.end_reason = reason
                self._state.ended = True
            self._state.active = False
            self._cond.notify_all()

    # --------------------------------------------------------------- Events
    def handle_question(self, event: QuestionReady, policy: AnswerPolicy) -> AnswerDecision:
        """
        Answer a live question.

        Records validity of slots 2 and 3, asks the policy for a slot,
        submits the server's identifier for it and signals acknowledgement.
        """
        with self._cond:
            self._state.update_answer_validity(event.answer_count)
            self._state.question_number = event.question_number

        decision = policy.select_answer(event.question_number, event.answer_count)
        answer_id = event.answer_id(decision.slot)
        logger.debug(
            "'%s' answering question %d with slot %d (%s)",
            self.username,
            event.question_number,
            decision.slot,
            decision.explanation,
        )

        with self._cond:
            self._state.last_answer = decision.slot

        # Acknowledged even when submission fails so blocked readers wake up
        self.session.submit_answer(answer_id)
        with self._cond:
            self._state.answer_acknowledged = True
            self._cond.notify_all()
        return decision

    def handle_result(self, event: QuestionResult):
        with self._cond:
            self._state.last_correct = event.is_correct
            self._state.last_score = event.points
            self._state.total_score = event.total_score
            self._state.rank = event.rank
            self._state.nemesis_name = event.nemesis_name
            self._state.nemesis_score = event.nemesis_score

    def handle_feedback(self, event: FeedbackMessage):
        with self._cond:
            self._state.last_feedback = event.primary_message

    def handle_game_ended(self, event: GameEnded):
        with self._cond:
            self._state.quiz_id = event.quiz_id
            self._state.player_count = event.player_count
        logger.info(
            "Game %s ended for '%s' (quiz %s, %d players)",
            self.session.game_pin,
            self.username,
            event.quiz_id,
            event.player_count,
        )
        self.deactivate(EndReason.GAME_ENDED)

    def handle_kick(self):
        logger.info("'%s' was kicked from game %s", self.username, self.session.game_pin)
        self.deactivate(EndReason.KICKED)

    # ------------------------------------------------------------ Accessors
    def game_running(self) -> bool:
        with self._cond:
            return self._state.active

    @property
    def mode(self) -> PlayMode:
        return self._state.mode

    @property
    def end_reason(self) -> EndReason | None:
        with self._cond:
            return self._state.end_reason

    def last_answer(self) -> int:
        """
        Last submitted slot without waiting. Clears the acknowledgement.

        Returns -1 if the session is not active.
        """
        with self._cond:
            self._state.answer_acknowledged = False
            return self._state.last_answer if self._state.active else NOT_ACTIVE

    def last_answer_blocking(self, timeout: float | None = None) -> int:
        """
        Wait for the next acknowledged answer and consume it.

        Returns -1 if the session is (or becomes) inactive while waiting,
        or if `timeout` seconds pass first.
        """
        with self._cond:
            ready = self._cond.wait_for(
                lambda: self._state.answer_acknowledged or not self._state.active,
                timeout,
            )
            if not ready or not self._state.active:
                return NOT_ACTIVE
            self._state.answer_acknowledged = False
            return self._state.last_answer

    def question_number(self) -> int:
        with self._cond:
            return self._state.question_number

    def was_answer_2_valid(self) -> bool:
        with self._cond:
            return self._state.answer_2_valid

    def was_answer_3_valid(self) -> bool:
        with self._cond:
            return self._state.answer_3_valid

    def last_score(self) -> int:
        with self._cond:
            return self._state.last_score

    def total_score(self) -> int:
        with self._cond:
            return self._state.total_score

    def rank(self) -> int:
        with self._cond:
            return self._state.rank

    def nemesis(self) -> str:
        with self._cond:
            return self._state.nemesis_name

    def nemesis_score(self) -> int:
        with self._cond:
            return self._state.nemesis_score

    def is_team_game(self) -> bool:
        with self._cond:
            return self._state.is_team_game

    def is_2fa_game(self) -> bool:
        with self._cond:
            return self._state.two_factor_auth

    def snapshot(self) -> SessionState:
        """Copy of the current state, safe to read from any thread."""
        with self._cond:
            return replace(self._state)
