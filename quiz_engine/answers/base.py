"""
Raw answer shapes and the legacy extraction adapter.

Each question type has one explicit raw answer dataclass. Anything coming
from storage or older clients (dicts with historical field names, bare
strings, index lists) passes through ``extract_raw_answer`` exactly once,
here at the boundary, and handlers only ever see the typed forms.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any, Protocol, Union

from loguru import logger
from pydantic import ValidationError

from quiz_engine.grading.similarity import SimilarityGrader
from quiz_engine.models import GradedAnswer, Question, QuestionType


@dataclass(frozen=True)
class McqAnswer:
    selected_option_id: str
    is_correct: bool | None = None


@dataclass(frozen=True)
class CodeAnswer:
    code: str
    is_correct: bool | None = None


@dataclass(frozen=True)
class BlanksAnswer:
    text: str
    is_correct: bool | None = None


@dataclass(frozen=True)
class OpenEndedAnswer:
    text: str
    is_correct: bool | None = None


@dataclass(frozen=True)
class FlashcardAnswer:
    """Self-reported response: 'correct', 'incorrect', 'still_learning' or free text."""
    response: str
    is_correct: bool | None = None


@dataclass(frozen=True)
class OrderingAnswer:
    order: tuple[str, ...] = field(default_factory=tuple)


RawAnswer = Union[
    McqAnswer, CodeAnswer, BlanksAnswer, OpenEndedAnswer, FlashcardAnswer, OrderingAnswer
]

RAW_ANSWER_TYPES: dict[QuestionType, type] = {
    QuestionType.MCQ: McqAnswer,
    QuestionType.CODE: CodeAnswer,
    QuestionType.BLANKS: BlanksAnswer,
    QuestionType.OPENENDED: OpenEndedAnswer,
    QuestionType.FLASHCARD: FlashcardAnswer,
    QuestionType.ORDERING: OrderingAnswer,
}

# Legacy field names, highest priority first
_TEXT_FIELDS: dict[QuestionType, tuple[str, ...]] = {
    QuestionType.MCQ: ("selectedOptionId", "selectedOption", "userAnswer", "answer"),
    QuestionType.CODE: ("code", "userAnswer", "text", "answer"),
    QuestionType.BLANKS: ("userAnswer", "text", "value"),
    QuestionType.OPENENDED: ("text", "userAnswer", "answer", "value"),
    QuestionType.FLASHCARD: ("answer", "response", "userAnswer", "text"),
}
_ORDER_FIELDS = ("order", "userOrder", "orderedIds", "userAnswer", "answer")


class AnswerHandler(Protocol):
    """Protocol for per-type answer handlers."""

    def grade(
        self,
        question: Question,
        answer: Any,
        elapsed: float,
        grader: SimilarityGrader,
    ) -> GradedAnswer:
        """Turn a typed raw answer into a GradedAnswer."""
        ...


def unanswered(question: Question, elapsed: float = 0, correct_answer: str | None = None) -> GradedAnswer:
    """Graded form for a missing or unusable answer."""
    return GradedAnswer(
        question_id=question.id,
        user_answer="",
        correct_answer=question.reference_answer if correct_answer is None else correct_answer,
        is_correct=False,
        time_spent_seconds=max(0.0, float(elapsed or 0)),
        type=question.type,
    )


def split_steps(text: str) -> list[str]:
    """Split a reference like 'a -> b -> c' (or one step per line) into steps."""
    parts = re.split(r"\s*(?:->|→)+\s*|\n+", (text or "").strip())
    return [p.strip() for p in parts if p.strip()]


def _as_text(value: Any) -> str | None:
    if value is None or isinstance(value, (dict, list, tuple, bool)):
        return None
    text = str(value)
    return text if text.strip() else None


def _flag(raw: Any) -> bool | None:
    if isinstance(raw, dict) and isinstance(raw.get("isCorrect"), bool):
        return raw["isCorrect"]
    return None


def extract_raw_answer(question_type: QuestionType, raw: Any, question_id: str = "") -> RawAnswer | None:
    """
    Best-effort conversion of a legacy answer record into its typed form.

    Returns None when nothing usable can be found; callers treat that as
    unanswered.
    """
    expected = RAW_ANSWER_TYPES.get(question_type)
    if expected is not None and isinstance(raw, expected):
        return raw
    if raw is None:
        return None

    if question_type == QuestionType.ORDERING:
        sequence = raw
        if isinstance(raw, dict):
            sequence = next((raw[k] for k in _ORDER_FIELDS if isinstance(raw.get(k), (list, tuple))), None)
        if not isinstance(sequence, (list, tuple)) or not sequence:
            return None
        return OrderingAnswer(order=tuple(str(item) for item in sequence))

    text: str | None = None
    if isinstance(raw, dict):
        for key in _TEXT_FIELDS.get(question_type, ()):
            text = _as_text(raw.get(key))
            if text is not None:
                break
        if text is None and question_type == QuestionType.BLANKS:
            filled = raw.get("filledBlanks")
            if isinstance(filled, dict):
                text = _as_text(filled.get(question_id))
    else:
        text = _as_text(raw)

    if text is None:
        return None

    flag = _flag(raw)
    if question_type == QuestionType.MCQ:
        return McqAnswer(selected_option_id=text, is_correct=flag)
    if question_type == QuestionType.CODE:
        return CodeAnswer(code=text, is_correct=flag)
    if question_type == QuestionType.BLANKS:
        return BlanksAnswer(text=text, is_correct=flag)
    if question_type == QuestionType.OPENENDED:
        return OpenEndedAnswer(text=text, is_correct=flag)
    if question_type == QuestionType.FLASHCARD:
        return FlashcardAnswer(response=text, is_correct=flag)
    return None


def answer_to_record(answer: Any) -> Any:
    """JSON-ready form of a raw answer that extract_raw_answer reads back."""
    if isinstance(answer, McqAnswer):
        record = {"selectedOptionId": answer.selected_option_id}
    elif isinstance(answer, CodeAnswer):
        record = {"code": answer.code}
    elif isinstance(answer, BlanksAnswer):
        record = {"userAnswer": answer.text}
    elif isinstance(answer, OpenEndedAnswer):
        record = {"text": answer.text}
    elif isinstance(answer, FlashcardAnswer):
        record = {"answer": answer.response}
    elif isinstance(answer, OrderingAnswer):
        return {"order": list(answer.order)}
    else:
        return answer

    if answer.is_correct is not None:
        record["isCorrect"] = answer.is_correct
    return record


def coerce_question(data: Any, default_type: QuestionType | str | None = None) -> Question | None:
    """Build a Question from a stored or legacy question record."""
    if isinstance(data, Question):
        return data
    if not isinstance(data, dict):
        return None

    qid = data.get("id", data.get("questionId"))
    qtype = data.get("type") or default_type
    if qid is None or qtype is None:
        return None

    reference = (
        data.get("referenceAnswer")
        or data.get("correctOptionId")
        or data.get("correctAnswer")
        or data.get("answer")
        or ""
    )
    canonical = data.get("canonicalOrder")
    if canonical is None and isinstance(data.get("steps"), list):
        canonical = [
            str(step.get("id", index)) if isinstance(step, dict) else str(index)
            for index, step in enumerate(data["steps"])
        ]

    try:
        return Question(
            id=str(qid),
            type=QuestionType(str(qtype).lower()),
            prompt=str(data.get("prompt") or data.get("question") or data.get("text") or ""),
            options=data.get("options"),
            reference_answer=str(reference),
            canonical_order=canonical,
        )
    except (ValueError, ValidationError) as e:
        logger.warning(f"Skipping unreadable question record {qid!r}: {e}")
        return None
