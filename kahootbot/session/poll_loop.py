"""
Poll Loop - The long-poll driven gameplay loop.

The loop:
1. Connect (blocks until the server pushes something or times out)
2. Classify the response
3. Dispatch to the player:
   - live question -> choose and submit an answer
   - question result -> update score, rank, nemesis
   - kick / game end -> deactivate and stop
4. Pause briefly
5. Repeat while the session is active

Whatever ends the loop, disconnect is sent exactly once on the way out.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable
import logging
import time

from ..bots import AnswerPolicy, RandomAnswerPolicy
from ..protocol.classifier import (
    FeedbackMessage,
    GameEnded,
    GameEvent,
    Kicked,
    QuestionReady,
    QuestionResult,
    QuestionUpcoming,
    classify,
)
from ..protocol.errors import PayloadError, ProtocolError, TransportError
from .player import GamePlayer
from .state import EndReason, PlayMode

logger = logging.getLogger(__name__)


class LoopState(Enum):
    """State of the poll loop."""
    POLLING = "polling"
    ANSWERING = "answering"
    REPORTING = "reporting"
    ENDING = "ending"
    ENDED = "ended"


@dataclass
class CycleResult:
    """
    Result of one connect cycle.

    Contains the classified event and the lines to show the player.
    """
    success: bool
    loop_state: LoopState
    event: GameEvent | None = None

    # Slot submitted this cycle, if any
    answered_slot: int | None = None

    # Text for the player
    messages: list[str] = field(default_factory=list)

    # Errors/warnings
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)


class PollLoop:
    """
    Drives one player's session until kick, game end or stop().

    Usage:
        loop = PollLoop(player)
        loop.run(on_cycle=print_result)

    One outstanding request at a time; nothing here is shared between
    sessions.
    """

    def __init__(
        self,
        player: GamePlayer,
        policy: AnswerPolicy | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        if policy is None:
            if player.mode == PlayMode.INTERACTIVE:
                raise ValueError("Interactive play needs an answer policy with an input source")
            policy = RandomAnswerPolicy()
        self.player = player
        self.policy = policy
        self.state = LoopState.POLLING
        self.cycles = 0
        self.consecutive_failures = 0
        self._sleep = sleep
        self._next_delay = player.config.poll_interval

    @property
    def retry(self):
        return self.player.config.retry

    def stop(self):
        """Ask the loop to end; observed at the top of the next cycle."""
        self.player.deactivate(EndReason.DISCONNECTED)

    def run(self, on_cycle: Callable[[CycleResult], None] | None = None) -> LoopState:
        """Poll until the session ends, then disconnect."""
        try:
            while self.player.game_running():
                result = self.run_once()
                if on_cycle is not None:
                    on_cycle(result)
                if self.state == LoopState.ENDING:
                    break
                self._sleep(self._next_delay)
        finally:
            self.state = LoopState.ENDING
            self.player.disconnect()
            self.state = LoopState.ENDED
            logger.debug(
                "Poll loop for '%s' ended after %d cycles (%s)",
                self.player.username,
                self.cycles,
                self.player.end_reason,
            )
        return self.state

    def run_once(self) -> CycleResult:
        """One connect / classify / dispatch cycle."""
        self.state = LoopState.POLLING
        self.cycles += 1
        self._next_delay = self.player.config.poll_interval

        try:
            response = self.player.session.connect()
        except TransportError as exc:
            return self._transport_failure(exc)
        except ProtocolError as exc:
            logger.warning("Unreadable connect response: %s", exc)
            return CycleResult(success=False, loop_state=self.state, warnings=[str(exc)])

        self.consecutive_failures = 0

        try:
            event = classify(response.raw_body)
        except PayloadError as exc:
            logger.warning("Skipping malformed push: %s", exc)
            return CycleResult(success=False, loop_state=self.state, warnings=[str(exc)])

        result = self._dispatch(event)
        if event.is_terminal:
            self.state = LoopState.ENDING
            result.loop_state = self.state
        return result

    def _transport_failure(self, exc: TransportError) -> CycleResult:
        self.consecutive_failures += 1
        attempt = self.consecutive_failures

        if self.retry.exhausted(attempt):
            logger.error(
                "Giving up on game %s after %d consecutive connect failures: %s",
                self.player.session.game_pin,
                attempt,
                exc,
            )
            self.player.deactivate(EndReason.TRANSPORT_FAILURE)
            self.state = LoopState.ENDING
            return CycleResult(
                success=False,
                loop_state=self.state,
                errors=[f"Connection lost: {exc}"],
            )

        self._next_delay = self.retry.delay_for(attempt)
        logger.warning(
            "Connect failed (attempt %d), retrying in %.2fs: %s",
            attempt,
            self._next_delay,
            exc,
        )
        return CycleResult(success=False, loop_state=self.state, warnings=[str(exc)])

    def _dispatch(self, event: GameEvent) -> CycleResult:
        if isinstance(event, Kicked):
            self.player.handle_kick()
            return CycleResult(
                success=True,
                loop_state=self.state,
                event=event,
                messages=["You were kicked from the game!"],
            )

        if isinstance(event, QuestionReady):
            return self._answer(event)

        if isinstance(event, QuestionUpcoming):
            return CycleResult(
                success=True,
                loop_state=self.state,
                event=event,
                messages=["Get ready, question is coming up!"],
            )

        if isinstance(event, FeedbackMessage):
            self.state = LoopState.REPORTING
            self.player.handle_feedback(event)
            return CycleResult(
                success=True,
                loop_state=self.state,
                event=event,
                messages=[event.primary_message],
            )

        if isinstance(event, QuestionResult):
            self.state = LoopState.REPORTING
            self.player.handle_result(event)
            return CycleResult(
                success=True,
                loop_state=self.state,
                event=event,
                messages=[
                    "Correct!" if event.is_correct else "Incorrect.",
                    f"You got {event.points} points from that question",
                    f"You currently have {event.total_score} points",
                    f"You are in rank {event.rank}, behind {event.nemesis_name}. "
                    f"Nemesis has {event.nemesis_score} points.",
                ],
            )

        if isinstance(event, GameEnded):
            self.player.handle_game_ended(event)
            return CycleResult(
                success=True,
                loop_state=self.state,
                event=event,
                messages=[
                    f"This quiz's ID is {event.quiz_id}",
                    f"Players in game: {event.player_count}",
                ],
            )

        return CycleResult(success=True, loop_state=self.state, event=event)

    def _answer(self, event: QuestionReady) -> CycleResult:
        self.state = LoopState.ANSWERING
        try:
            decision = self.player.handle_question(event, self.policy)
        except EOFError:
            logger.info("Answer input closed; '%s' is leaving the game", self.player.username)
            self.player.deactivate(EndReason.DISCONNECTED)
            self.state = LoopState.ENDING
            return CycleResult(
                success=False,
                loop_state=self.state,
                event=event,
                messages=["Answer input closed, leaving game..."],
            )
        except ValueError as exc:
            logger.error("Could not answer question %d: %s", event.question_number, exc)
            return CycleResult(
                success=False,
                loop_state=self.state,
                event=event,
                errors=[str(exc)],
            )

        return CycleResult(
            success=True,
            loop_state=self.state,
            event=event,
            answered_slot=decision.slot,
            messages=[f"Answered question {event.question_number} with {decision.slot}"],
        )
