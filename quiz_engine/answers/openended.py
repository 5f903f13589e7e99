"""
Open-ended answer handler.

There is no single correct answer; the response is scored by similarity to
the reference and counts as correct above the pass threshold.
"""

from quiz_engine.grading.similarity import SimilarityGrader
from quiz_engine.models import GradedAnswer, Question, QuestionType

from . import register
from .base import OpenEndedAnswer


@register(QuestionType.OPENENDED)
class OpenEndedHandler:
    """Handler for open-ended answers."""

    def grade(
        self,
        question: Question,
        answer: OpenEndedAnswer,
        elapsed: float,
        grader: SimilarityGrader,
    ) -> GradedAnswer:
        score = grader.score(question.reference_answer, answer.text)
        is_correct = answer.is_correct if answer.is_correct is not None else score > grader.pass_threshold

        return GradedAnswer(
            question_id=question.id,
            user_answer=answer.text,
            correct_answer=question.reference_answer,
            is_correct=is_correct,
            similarity=score,
            time_spent_seconds=elapsed,
            type=question.type,
        )
