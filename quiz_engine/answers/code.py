"""
Code submission answer handler.

Code correctness cannot be inferred locally; the flag must come from the
grading service. Without one the submission is recorded as not correct.
"""

from quiz_engine.grading.similarity import SimilarityGrader
from quiz_engine.models import GradedAnswer, Question, QuestionType

from . import register
from .base import CodeAnswer


@register(QuestionType.CODE)
class CodeHandler:
    """Handler for code answers."""

    def grade(
        self,
        question: Question,
        answer: CodeAnswer,
        elapsed: float,
        grader: SimilarityGrader,
    ) -> GradedAnswer:
        return GradedAnswer(
            question_id=question.id,
            user_answer=answer.code,
            correct_answer=question.reference_answer,
            is_correct=bool(answer.is_correct),
            time_spent_seconds=elapsed,
            type=question.type,
        )
