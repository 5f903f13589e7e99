"""
Fill-in-the-blank answer handler.

Correctness uses the edit-distance gate: a normalized answer within
``max_edits`` edits of the reference passes, so exact matches always pass
and small typos ("objetc" for "object") do too. Similarity is always
attached for feedback.
"""

from quiz_engine.grading.similarity import SimilarityGrader
from quiz_engine.models import GradedAnswer, Question, QuestionType

from . import register
from .base import BlanksAnswer


@register(QuestionType.BLANKS)
class BlanksHandler:
    """Handler for fill-in-the-blank answers."""

    def grade(
        self,
        question: Question,
        answer: BlanksAnswer,
        elapsed: float,
        grader: SimilarityGrader,
    ) -> GradedAnswer:
        reference = question.reference_answer
        if answer.is_correct is not None:
            is_correct = answer.is_correct
        else:
            is_correct = grader.passes_edit_gate(reference, answer.text)

        return GradedAnswer(
            question_id=question.id,
            user_answer=answer.text,
            correct_answer=reference,
            is_correct=is_correct,
            similarity=grader.score(reference, answer.text),
            time_spent_seconds=elapsed,
            type=question.type,
        )
