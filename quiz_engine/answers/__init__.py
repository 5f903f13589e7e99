"""
Answer handlers for each question type.

Each question type (mcq, code, blanks, ...) has its own module with a
grade() method turning a typed raw answer into a GradedAnswer.
"""

from typing import TYPE_CHECKING

from quiz_engine.models import QuestionType

if TYPE_CHECKING:
    from .base import AnswerHandler


# Handler registry - populated by @register decorator
HANDLERS: dict[QuestionType, "AnswerHandler"] = {}


def register(question_type: QuestionType):
    """Decorator to register an answer handler."""
    def decorator(cls):
        HANDLERS[question_type] = cls()
        return cls
    return decorator


def get_handler(question_type: str | QuestionType) -> "AnswerHandler | None":
    """Get the handler for a question type."""
    if isinstance(question_type, str) and not isinstance(question_type, QuestionType):
        try:
            question_type = QuestionType(question_type.lower())
        except ValueError:
            return None
    return HANDLERS.get(question_type)


# Import handlers to trigger registration
from . import mcq
from . import code
from . import blanks
from . import openended
from . import flashcard
from . import ordering

from .normalizer import AnswerNormalizer

__all__ = [
    "HANDLERS",
    "AnswerNormalizer",
    "get_handler",
    "register",
]
