"""
Message Classifier - Maps a long-poll response to a game event.

The server multiplexes every push type onto the same connect response with
no type field, so classification looks for marker substrings in the raw
body. Rules are evaluated in a fixed order and the first match wins:

1. "kick"                          -> Kicked
2. "answerMap" without "timeLeft"  -> QuestionReady
3. "answerMap"                     -> QuestionUpcoming
4. "primaryMessage"                -> FeedbackMessage
5. "isCorrect"                     -> QuestionResult
6. "quizId"                        -> GameEnded
7. anything else                   -> Idle

Events that carry data decode the first message's content (see codec).
"""

from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, ClassVar, Union

from pydantic import ValidationError

from .codec import first_content
from .errors import PayloadError
from .payloads import (
    FeedbackPayload,
    GameOverPayload,
    QuestionPayload,
    ResultPayload,
)

NO_NEMESIS = "no one"


class EventKind(Enum):
    """Semantic type of a long-poll response."""
    KICKED = "kicked"
    QUESTION_READY = "question_ready"
    QUESTION_UPCOMING = "question_upcoming"
    FEEDBACK = "feedback"
    QUESTION_RESULT = "question_result"
    GAME_ENDED = "game_ended"
    IDLE = "idle"


class GameEvent:
    """Base class for classified events."""
    kind: ClassVar[EventKind]

    @property
    def is_terminal(self) -> bool:
        return self.kind in (EventKind.KICKED, EventKind.GAME_ENDED)


@dataclass(frozen=True)
class Kicked(GameEvent):
    kind: ClassVar[EventKind] = EventKind.KICKED


@dataclass(frozen=True)
class QuestionReady(GameEvent):
    """A question is live and accepts answers now."""
    kind: ClassVar[EventKind] = EventKind.QUESTION_READY

    question_index: int
    # Displayed slot ("0".."3") -> server-side answer identifier
    answer_map: dict[str, Union[int, str]] = field(default_factory=dict)

    @property
    def question_number(self) -> int:
        """1-based question number, as shown to players."""
        return self.question_index + 1

    @property
    def answer_count(self) -> int:
        return len(self.answer_map)

    def answer_id(self, slot: int) -> Union[int, str]:
        """Server answer identifier for a displayed slot."""
        key = str(slot)
        if key not in self.answer_map:
            raise ValueError(
                f"Slot {slot} is not an answer for question {self.question_number} "
                f"(0 through {self.answer_count - 1})"
            )
        value = self.answer_map[key]
        if isinstance(value, str) and value.lstrip("-").isdigit():
            return int(value)
        return value


@dataclass(frozen=True)
class QuestionUpcoming(GameEvent):
    """Countdown before a question; nothing to do."""
    kind: ClassVar[EventKind] = EventKind.QUESTION_UPCOMING


@dataclass(frozen=True)
class FeedbackMessage(GameEvent):
    kind: ClassVar[EventKind] = EventKind.FEEDBACK

    primary_message: str


@dataclass(frozen=True)
class QuestionResult(GameEvent):
    """Score update after a question closes."""
    kind: ClassVar[EventKind] = EventKind.QUESTION_RESULT

    is_correct: bool
    points: int
    total_score: int
    rank: int
    nemesis_name: str = NO_NEMESIS
    nemesis_score: int = 0


@dataclass(frozen=True)
class GameEnded(GameEvent):
    kind: ClassVar[EventKind] = EventKind.GAME_ENDED

    quiz_id: str
    player_count: int


@dataclass(frozen=True)
class Idle(GameEvent):
    """Plain keep-alive connect response."""
    kind: ClassVar[EventKind] = EventKind.IDLE


# =============================================================================
# Payload builders
# =============================================================================

def _validated(model, raw_body: str):
    content = first_content(raw_body)
    try:
        return model.model_validate(content)
    except ValidationError as exc:
        raise PayloadError(f"{model.__name__} failed validation: {exc}") from exc


def _build_question_ready(raw_body: str) -> QuestionReady:
    payload = _validated(QuestionPayload, raw_body)
    return QuestionReady(
        question_index=payload.question_index,
        answer_map=dict(payload.answer_map),
    )


def _build_feedback(raw_body: str) -> FeedbackMessage:
    payload = _validated(FeedbackPayload, raw_body)
    return FeedbackMessage(primary_message=payload.primary_message)


def _build_result(raw_body: str) -> QuestionResult:
    payload = _validated(ResultPayload, raw_body)
    if payload.nemesis is None:
        nemesis_name, nemesis_score = NO_NEMESIS, payload.points
    else:
        nemesis_name, nemesis_score = payload.nemesis.name, payload.nemesis.total_score
    return QuestionResult(
        is_correct=payload.is_correct,
        points=payload.points,
        total_score=payload.total_score,
        rank=payload.rank,
        nemesis_name=nemesis_name,
        nemesis_score=nemesis_score,
    )


def _build_game_ended(raw_body: str) -> GameEnded:
    payload = _validated(GameOverPayload, raw_body)
    return GameEnded(quiz_id=payload.quiz_id, player_count=payload.player_count)


# =============================================================================
# Rule table
# =============================================================================

@dataclass(frozen=True)
class ClassificationRule:
    """One marker predicate and the event it produces."""
    matches: Callable[[str], bool]
    build: Callable[[str], GameEvent]


RULES: tuple[ClassificationRule, ...] = (
    ClassificationRule(
        lambda body: "kick" in body,
        lambda body: Kicked(),
    ),
    ClassificationRule(
        lambda body: "answerMap" in body and "timeLeft" not in body,
        _build_question_ready,
    ),
    ClassificationRule(
        lambda body: "answerMap" in body,
        lambda body: QuestionUpcoming(),
    ),
    ClassificationRule(
        lambda body: "primaryMessage" in body,
        _build_feedback,
    ),
    ClassificationRule(
        lambda body: "isCorrect" in body,
        _build_result,
    ),
    ClassificationRule(
        lambda body: "quizId" in body,
        _build_game_ended,
    ),
)


def classify(raw_body: str) -> GameEvent:
    """
    Classify a raw long-poll response body.

    Raises PayloadError when the matched event's content cannot be decoded.
    """
    for rule in RULES:
        if rule.matches(raw_body):
            return rule.build(raw_body)
    return Idle()
