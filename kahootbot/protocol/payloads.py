"""
Pydantic models for decoded push content.

Field names follow Python conventions; aliases carry the wire names.
Unknown fields are ignored since the server sends far more than we read.
"""

from typing import Optional, Union
from pydantic import BaseModel, Field


class _WireModel(BaseModel):
    model_config = {"populate_by_name": True, "extra": "ignore"}


class QuestionPayload(_WireModel):
    """A live question, ready to be answered."""
    question_index: int = Field(..., alias="questionIndex", ge=0)
    answer_map: dict[str, Union[int, str]] = Field(..., alias="answerMap")


class FeedbackPayload(_WireModel):
    """Free-text message shown to the player."""
    primary_message: str = Field(..., alias="primaryMessage")


class NemesisPayload(_WireModel):
    name: str
    total_score: int = Field(0, alias="totalScore")


class ResultPayload(_WireModel):
    """Outcome of the last question for this player."""
    is_correct: bool = Field(..., alias="isCorrect")
    points: int = 0
    total_score: int = Field(0, alias="totalScore")
    rank: int = 0
    nemesis: Optional[NemesisPayload] = None


class GameOverPayload(_WireModel):
    """Final message of a game."""
    quiz_id: str = Field(..., alias="quizId")
    player_count: int = Field(0, alias="playerCount")
