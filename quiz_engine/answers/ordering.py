"""
Ordering (sequence) answer handler.

The answer is the learner's sequence of step ids. Correct only when every
position matches the canonical order; there is no partial credit.
"""

from typing import Sequence

from quiz_engine.grading.similarity import SimilarityGrader
from quiz_engine.models import GradedAnswer, Question, QuestionType

from . import register
from .base import OrderingAnswer, split_steps


def canonical_sequence(question: Question) -> list[str]:
    """Canonical step ids, falling back to an 'a -> b -> c' reference."""
    if question.canonical_order:
        return [str(step) for step in question.canonical_order]
    return split_steps(question.reference_answer)


def authored_steps(question: Question) -> list[str]:
    """Step ids in authored order: the options when given, else the canonical order."""
    if question.options:
        return [option if isinstance(option, str) else option.id for option in question.options]
    return canonical_sequence(question)


def resolve_step_ids(order: Sequence, steps: Sequence[str]) -> list[str]:
    """
    Step ids for a submitted order.

    Some clients submit positions into the authored step list instead of
    ids. A sequence is read as positions only when every element is an int
    or digit string, none of them is itself a step id, and all are in range.
    """
    items = [str(item) for item in order]
    ids = set(steps)
    if (
        items
        and all(item.isdecimal() for item in items)
        and not any(item in ids for item in items)
        and all(int(item) < len(steps) for item in items)
    ):
        return [steps[int(item)] for item in items]
    return items


@register(QuestionType.ORDERING)
class OrderingHandler:
    """Handler for ordering answers."""

    def grade(
        self,
        question: Question,
        answer: OrderingAnswer,
        elapsed: float,
        grader: SimilarityGrader,
    ) -> GradedAnswer:
        canonical = canonical_sequence(question)
        submitted = resolve_step_ids(answer.order, authored_steps(question))

        return GradedAnswer(
            question_id=question.id,
            user_answer=" -> ".join(submitted),
            correct_answer=" -> ".join(canonical),
            is_correct=bool(canonical) and submitted == canonical,
            time_spent_seconds=elapsed,
            type=question.type,
        )
