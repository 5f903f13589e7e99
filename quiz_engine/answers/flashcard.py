"""
Flashcard answer handler.

The learner self-reports: 'correct' and 'incorrect' map directly to the
flag, 'still_learning' counts as not yet correct. Any other text is graded
against the back of the card.
"""

from quiz_engine.grading.similarity import SimilarityBand, SimilarityGrader, normalize_text
from quiz_engine.models import GradedAnswer, Question, QuestionType

from . import register
from .base import FlashcardAnswer

SELF_REPORTS = {
    "correct": True,
    "incorrect": False,
    "still_learning": False,
}


@register(QuestionType.FLASHCARD)
class FlashcardHandler:
    """Handler for flashcard self-assessments."""

    def grade(
        self,
        question: Question,
        answer: FlashcardAnswer,
        elapsed: float,
        grader: SimilarityGrader,
    ) -> GradedAnswer:
        response = normalize_text(answer.response).replace(" ", "_")
        score = None

        if answer.is_correct is not None:
            is_correct = answer.is_correct
        elif response in SELF_REPORTS:
            is_correct = SELF_REPORTS[response]
        else:
            score = grader.score(question.reference_answer, answer.response)
            is_correct = grader.band(score) != SimilarityBand.INCORRECT

        return GradedAnswer(
            question_id=question.id,
            user_answer=answer.response,
            correct_answer=question.reference_answer,
            is_correct=is_correct,
            similarity=score,
            time_spent_seconds=elapsed,
            type=question.type,
        )
