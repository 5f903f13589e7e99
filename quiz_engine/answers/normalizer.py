"""
AnswerNormalizer: one GradedAnswer per question, whatever the raw shape.

normalize() never raises. A malformed record degrades to an unanswered
GradedAnswer so one bad answer cannot block scoring the rest of an attempt.
"""

from __future__ import annotations

from typing import Any, Iterable, Mapping

from loguru import logger

from quiz_engine.grading.similarity import SimilarityGrader
from quiz_engine.models import GradedAnswer, Question

from . import get_handler
from .base import extract_raw_answer, unanswered


class AnswerNormalizer:
    """Maps raw answers of every question type onto GradedAnswer."""

    def __init__(self, grader: SimilarityGrader | None = None):
        self.grader = grader or SimilarityGrader.from_settings()

    def normalize(self, question: Question, raw: Any, elapsed: float = 0) -> GradedAnswer:
        """Grade one raw answer. Unusable input yields the unanswered form."""
        try:
            elapsed = max(0.0, float(elapsed or 0))
        except (TypeError, ValueError):
            elapsed = 0.0

        try:
            handler = get_handler(question.type)
            answer = extract_raw_answer(question.type, raw, question.id)
            if handler is None or answer is None:
                return unanswered(question, elapsed)
            return handler.grade(question, answer, elapsed, self.grader)
        except Exception as e:
            logger.warning(f"Could not normalize answer for question {question.id}: {e}")
            return unanswered(question, elapsed)

    def normalize_all(
        self,
        questions: Iterable[Question],
        answers: Mapping[str, Any],
        elapsed: Mapping[str, float] | None = None,
    ) -> list[GradedAnswer]:
        """Grade every question in order; missing answers become unanswered."""
        elapsed = elapsed or {}
        return [
            self.normalize(question, answers.get(question.id), elapsed.get(question.id, 0))
            for question in questions
        ]
