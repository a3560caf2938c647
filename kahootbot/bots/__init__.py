"""
Bots module - Answer selection.

Provides:
- AnswerPolicy: Interface for choosing an answer slot
- RandomAnswerPolicy: Autonomous random play
- PromptAnswerPolicy: Human play through an input callable
- FixedAnswerPolicy: Deterministic play
"""

from .policy import (
    AnswerPolicy,
    AnswerDecision,
    RandomAnswerPolicy,
    FixedAnswerPolicy,
    PromptAnswerPolicy,
)

__all__ = [
    "AnswerPolicy",
    "AnswerDecision",
    "RandomAnswerPolicy",
    "FixedAnswerPolicy",
    "PromptAnswerPolicy",
]
