"""
MCQ (Multiple Choice Question) answer handler.

- The selected option id is resolved to display text through question.options.
- Options may be plain strings or {id, text} objects.
- A supplied correctness flag wins; otherwise the selected id (or its text)
  must equal the reference answer.
"""

from quiz_engine.grading.similarity import SimilarityGrader
from quiz_engine.models import GradedAnswer, OptionItem, Question, QuestionType

from . import register
from .base import McqAnswer


def resolve_option_text(question: Question, option_id: str) -> str | None:
    """Display text for an option id, or None when no option matches."""
    for option in question.options or []:
        if isinstance(option, OptionItem):
            if option.id == option_id:
                return option.text
        elif option == option_id:
            return option
    return None


@register(QuestionType.MCQ)
class McqHandler:
    """Handler for multiple choice answers."""

    def grade(
        self,
        question: Question,
        answer: McqAnswer,
        elapsed: float,
        grader: SimilarityGrader,
    ) -> GradedAnswer:
        selected = answer.selected_option_id
        selected_text = resolve_option_text(question, selected)
        reference = question.reference_answer
        reference_text = resolve_option_text(question, reference) or reference

        if answer.is_correct is not None:
            is_correct = answer.is_correct
        else:
            is_correct = bool(reference) and (
                selected == reference or (selected_text is not None and selected_text == reference_text)
            )

        return GradedAnswer(
            question_id=question.id,
            user_answer=selected_text if selected_text is not None else selected,
            correct_answer=reference_text,
            is_correct=is_correct,
            time_spent_seconds=elapsed,
            type=question.type,
        )
