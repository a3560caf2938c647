"""
Answer Policy - Interface for choosing an answer slot.

A policy sees the question number and how many answers the question has,
and returns the displayed slot to submit. Slots are laid out as:

    0 1
    2 3

2 and 3 only exist when the question has them.
"""

from __future__ import annotations
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Callable
import random


@dataclass
class AnswerDecision:
    """
    A chosen answer slot.

    Contains:
    - The slot (0-based, always < answer count)
    - Explanation (for logs)
    """
    slot: int
    explanation: str = ""


class AnswerPolicy(ABC):
    """
    Abstract base class for answer policies.

    Interactive play and autonomous play differ only in which policy the
    poll loop is given.
    """

    @abstractmethod
    def select_answer(self, question_number: int, answer_count: int) -> AnswerDecision:
        """
        Choose an answer slot.

        Args:
            question_number: 1-based question number
            answer_count: Number of answers on this question (2-4)

        Returns:
            AnswerDecision with 0 <= slot < answer_count
        """
        pass

    def get_name(self) -> str:
        """Get the policy's name/identifier."""
        return self.__class__.__name__


class RandomAnswerPolicy(AnswerPolicy):
    """
    Random policy - picks uniformly among the answers present.

    The draw is over the question's own answer count, so two- and
    three-answer questions never get an out-of-range slot.
    """

    def __init__(self, seed: int | None = None):
        self.rng = random.Random(seed)

    def select_answer(self, question_number: int, answer_count: int) -> AnswerDecision:
        if answer_count <= 0:
            raise ValueError("No answers available")

        slot = self.rng.randrange(answer_count)
        return AnswerDecision(slot=slot, explanation="Selected randomly")


class FixedAnswerPolicy(AnswerPolicy):
    """
    Fixed policy - always the same slot, clamped into range.

    Used for deterministic testing.
    """

    def __init__(self, slot: int = 0):
        if slot < 0:
            raise ValueError("Slot must be non-negative")
        self.slot = slot

    def select_answer(self, question_number: int, answer_count: int) -> AnswerDecision:
        if answer_count <= 0:
            raise ValueError("No answers available")

        slot = min(self.slot, answer_count - 1)
        return AnswerDecision(slot=slot, explanation=f"Fixed slot {self.slot}")


class PromptAnswerPolicy(AnswerPolicy):
    """
    Human policy - asks an input callable for the slot.

    The callable receives (question_number, answer_count) and returns the
    chosen slot. Out-of-range or unparseable replies are asked again, up to
    max_attempts times. EOFError from the callable (input closed) is not
    caught; the poll loop treats it as the player leaving.
    """

    def __init__(
        self,
        prompt: Callable[[int, int], int | str],
        max_attempts: int = 3,
    ):
        self.prompt = prompt
        self.max_attempts = max_attempts

    def select_answer(self, question_number: int, answer_count: int) -> AnswerDecision:
        if answer_count <= 0:
            raise ValueError("No answers available")

        for _ in range(self.max_attempts):
            reply = self.prompt(question_number, answer_count)
            try:
                slot = int(reply)
            except (TypeError, ValueError):
                continue
            if 0 <= slot < answer_count:
                return AnswerDecision(slot=slot, explanation="Chosen by player")

        raise ValueError(
            f"No valid answer for question {question_number} "
            f"after {self.max_attempts} attempts"
        )
