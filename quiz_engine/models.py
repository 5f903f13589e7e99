"""
Data model for quiz attempts and results.

Stored snapshots use camelCase keys (``questionResults``, ``maxScore``) so that
payloads written by older clients still validate. Python code uses the
snake_case attribute names.
"""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class QuestionType(str, Enum):
    """Supported question types."""
    MCQ = "mcq"
    CODE = "code"
    BLANKS = "blanks"
    OPENENDED = "openended"
    FLASHCARD = "flashcard"
    ORDERING = "ordering"


class CamelModel(BaseModel):
    """Base model serialized with camelCase aliases."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        use_enum_values=False,
        coerce_numbers_to_str=True,
    )

    def to_payload(self) -> dict[str, Any]:
        """JSON-ready dict using the stored (camelCase) key layout."""
        return self.model_dump(mode="json", by_alias=True)


class OptionItem(CamelModel):
    """An MCQ option given as an object rather than a plain string."""

    id: str
    text: str


class Question(CamelModel):
    """A quiz question. Read-only to the engine."""

    model_config = ConfigDict(frozen=True)

    id: str
    type: QuestionType
    prompt: str = ""
    options: list[str | OptionItem] | None = None
    reference_answer: str = ""
    # Ordering questions: step ids in the author-defined correct sequence
    canonical_order: list[str] | None = None


class GradedAnswer(CamelModel):
    """Normalized, scored representation of one question's response."""

    model_config = ConfigDict(frozen=True)

    question_id: str
    user_answer: str = ""
    correct_answer: str = ""
    is_correct: bool = False
    similarity: int | None = Field(default=None, ge=0, le=100)
    time_spent_seconds: float = 0
    type: QuestionType


class QuizResult(CamelModel):
    """Scored outcome of one completed attempt."""

    quiz_id: str
    slug: str
    title: str = ""
    quiz_type: QuestionType
    score: int = 0
    max_score: int = 0
    percentage: int = 0
    completed_at: str
    question_results: list[GradedAnswer] = Field(default_factory=list)
    average_similarity: int | None = None
    total_time_seconds: float = 0
    repaired: bool = False


class QuizHistoryEntry(CamelModel):
    """Summary line kept for recently completed quizzes."""

    slug: str
    title: str = ""
    quiz_type: QuestionType
    completed_at: str
    score: int = 0
    total_questions: int = 0
    time_spent_seconds: float = 0
