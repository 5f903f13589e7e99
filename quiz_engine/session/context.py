"""
Per-attempt session state.

A SessionContext is created by QuizSessionController.start() and discarded
by retake(). It is the only holder of the attempt's raw answers and of the
cached "last known" result.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from quiz_engine.answers.base import answer_to_record
from quiz_engine.models import Question, QuestionType, QuizResult
from quiz_engine.results.reconciler import LiveState


@dataclass
class SessionContext:
    """Explicit state of one quiz attempt."""

    quiz_id: str
    slug: str
    quiz_type: QuestionType
    questions: list[Question]
    title: str = ""

    # Progress tracking
    answers: dict[str, Any] = field(default_factory=dict)
    elapsed: dict[str, float] = field(default_factory=dict)
    current_index: int = 0
    started_at: float | None = None
    question_started_at: float | None = None

    # Results
    result: QuizResult | None = None
    generated_result: QuizResult | None = None

    @property
    def current_question(self) -> Question | None:
        if 0 <= self.current_index < len(self.questions):
            return self.questions[self.current_index]
        return None

    def live_state(self) -> LiveState:
        return LiveState(
            quiz_id=self.quiz_id,
            slug=self.slug,
            quiz_type=self.quiz_type,
            questions=list(self.questions),
            answers=dict(self.answers),
            elapsed=dict(self.elapsed),
            title=self.title,
        )

    def to_snapshot(self, now_ms: int, completed: bool = False) -> dict[str, Any]:
        """JSON-ready progress snapshot."""
        return {
            "quizId": self.quiz_id,
            "slug": self.slug,
            "quizType": self.quiz_type.value,
            "title": self.title,
            "currentQuestionIndex": self.current_index,
            "answers": {qid: answer_to_record(raw) for qid, raw in self.answers.items()},
            "elapsed": dict(self.elapsed),
            "startedAt": self.started_at,
            "lastUpdated": now_ms,
            "isCompleted": completed,
        }

    def restore(self, snapshot: Any) -> bool:
        """Load answers, timings and position from a saved snapshot."""
        if not isinstance(snapshot, dict) or snapshot.get("isCompleted"):
            return False

        known = {q.id for q in self.questions}
        answers = snapshot.get("answers")
        if isinstance(answers, dict):
            self.answers = {str(qid): raw for qid, raw in answers.items() if str(qid) in known}

        elapsed = snapshot.get("elapsed")
        if isinstance(elapsed, dict):
            self.elapsed = {
                str(qid): float(value)
                for qid, value in elapsed.items()
                if str(qid) in known and isinstance(value, (int, float))
            }

        index = snapshot.get("currentQuestionIndex")
        if isinstance(index, int) and 0 <= index < len(self.questions):
            self.current_index = index

        started = snapshot.get("startedAt")
        if isinstance(started, (int, float)):
            self.started_at = float(started)
        return True
