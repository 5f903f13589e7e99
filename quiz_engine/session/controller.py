"""
QuizSessionController: lifecycle of one quiz attempt.

States:
    not_started -> in_progress -> submitting -> completed -> (retake) not_started

- start() resumes saved progress when present.
- answer()/next()/previous() stay in in_progress and persist progress
  through a debounced writer.
- complete() always ends in completed. A failed submission is kept as a
  non-fatal warning and can be retried explicitly with retry_submission().
- Unauthenticated completions are held in storage under the quiz slug and
  surfaced by load_result() after sign-in.
"""

from __future__ import annotations

import time
from enum import Enum
from typing import Any, Callable, Sequence

from loguru import logger

from quiz_engine.answers.normalizer import AnswerNormalizer
from quiz_engine.config import Settings, get_settings
from quiz_engine.errors import QuizStateError
from quiz_engine.grading.similarity import SimilarityGrader
from quiz_engine.integrations.auth import AuthGate
from quiz_engine.integrations.submission import SubmissionOutcome, Submitter
from quiz_engine.models import Question, QuestionType, QuizHistoryEntry, QuizResult
from quiz_engine.results.reconciler import ResultReconciler
from quiz_engine.results.scoring import build_result, iso_timestamp
from quiz_engine.storage.store import PersistentStore, StorageKind

from .context import SessionContext
from .progress import ProgressWriter


class QuizStatus(str, Enum):
    """Controller states."""
    NOT_STARTED = "not_started"
    IN_PROGRESS = "in_progress"
    SUBMITTING = "submitting"
    COMPLETED = "completed"


class SubmissionStatus(str, Enum):
    """What happened to the server copy of the result."""
    NONE = "none"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    AWAITING_AUTH = "awaiting_auth"


class QuizSessionController:
    """
    Orchestrates navigation, answer capture, timing and result handling.

    Args:
        quiz_id: Server-side quiz identifier
        slug: Quiz slug (storage namespace)
        quiz_type: Quiz type (storage sub-namespace)
        questions: Questions in display order
        store: PersistentStore for progress and results
        submitter: Submission collaborator (optional)
        auth: Auth collaborator (optional; treated as signed in when absent)
        title: Display title
        settings: Engine settings
        clock: Returns the current time in seconds
    """

    def __init__(
        self,
        quiz_id: str,
        slug: str,
        quiz_type: QuestionType,
        questions: Sequence[Question],
        store: PersistentStore,
        submitter: Submitter | None = None,
        auth: AuthGate | None = None,
        title: str = "",
        normalizer: AnswerNormalizer | None = None,
        reconciler: ResultReconciler | None = None,
        settings: Settings | None = None,
        clock: Callable[[], float] = time.time,
    ):
        self.quiz_id = quiz_id
        self.slug = slug
        self.quiz_type = QuestionType(quiz_type)
        self.questions = list(questions)
        self.title = title
        self.store = store
        self.submitter = submitter
        self.auth = auth
        self.settings = settings or get_settings()
        self.clock = clock
        self.normalizer = normalizer or AnswerNormalizer(SimilarityGrader.from_settings(self.settings))
        self.reconciler = reconciler or ResultReconciler(store, self.normalizer, clock=clock)

        self.status = QuizStatus.NOT_STARTED
        self.context: SessionContext | None = None
        self.submission_status = SubmissionStatus.NONE
        self.submission_warning: str | None = None
        self._progress = ProgressWriter(
            store,
            slug,
            self.quiz_type.value,
            interval_ms=self.settings.progress_debounce_ms,
            clock=clock,
        )

    # =========================================================================
    # Properties
    # =========================================================================

    @property
    def current_index(self) -> int:
        return self.context.current_index if self.context else 0

    @property
    def current_question(self) -> Question | None:
        return self.context.current_question if self.context else None

    @property
    def result(self) -> QuizResult | None:
        return self.context.result if self.context else None

    @property
    def can_retry(self) -> bool:
        return (
            self.status == QuizStatus.COMPLETED
            and self.result is not None
            and self.submission_status in (SubmissionStatus.FAILED, SubmissionStatus.AWAITING_AUTH)
        )

    @property
    def is_authenticated(self) -> bool:
        return self.auth is None or self.auth.is_authenticated

    def _require(self, operation: str, *allowed: QuizStatus) -> None:
        if self.status not in allowed:
            raise QuizStateError(operation, self.status.value)

    def _new_context(self) -> SessionContext:
        return SessionContext(
            quiz_id=self.quiz_id,
            slug=self.slug,
            quiz_type=self.quiz_type,
            questions=self.questions,
            title=self.title,
        )

    # =========================================================================
    # Lifecycle
    # =========================================================================

    def start(self) -> bool:
        """
        Begin the attempt, resuming saved progress if any.

        Returns:
            True if saved progress was restored
        """
        self._require("start", QuizStatus.NOT_STARTED)
        now = self.clock()
        self.context = self._new_context()
        self.context.started_at = now

        resumed = self.context.restore(
            self.store.get(StorageKind.PROGRESS, self.slug, self.quiz_type.value)
        )
        if resumed:
            logger.info(
                f"Resumed {self.slug} at question {self.context.current_index + 1} "
                f"with {len(self.context.answers)} saved answers"
            )
        self.context.question_started_at = now
        self.submission_status = SubmissionStatus.NONE
        self.submission_warning = None
        self.status = QuizStatus.IN_PROGRESS
        return resumed

    def answer(self, question_id: str, raw: Any) -> bool:
        """
        Record the raw answer for a question.

        Returns:
            False if the question id is unknown (the answer is ignored)
        """
        self._require("answer", QuizStatus.IN_PROGRESS)
        ctx = self.context
        qid = str(question_id)
        if qid not in {q.id for q in ctx.questions}:
            logger.warning(f"Ignoring answer for unknown question {qid!r} in {self.slug}")
            return False

        now = self.clock()
        started = ctx.question_started_at if ctx.question_started_at is not None else now
        ctx.elapsed[qid] = ctx.elapsed.get(qid, 0.0) + max(0.0, now - started)
        ctx.question_started_at = now
        ctx.answers[qid] = raw
        self._save_progress()
        return True

    def next(self) -> bool:
        """Move to the next question. No-op past the last one or outside in_progress."""
        return self._go_to(self.current_index + 1)

    def previous(self) -> bool:
        """Move to the previous question. No-op before the first one or outside in_progress."""
        return self._go_to(self.current_index - 1)

    def _go_to(self, index: int) -> bool:
        if self.status != QuizStatus.IN_PROGRESS or not (0 <= index < len(self.questions)):
            return False
        self.context.current_index = index
        self.context.question_started_at = self.clock()
        self._save_progress()
        self._progress.flush()
        return True

    def _save_progress(self) -> None:
        self._progress.schedule(self.context.to_snapshot(int(self.clock() * 1000)))

    def flush_progress(self) -> bool:
        """Write any debounced progress snapshot now (e.g. when the page is hidden)."""
        return self._progress.flush()

    async def complete(self) -> QuizResult:
        """
        Grade the attempt, cache the result and submit it once.

        The controller ends in completed whether or not the submission
        succeeds; failures are exposed through submission_warning.
        """
        self._require("complete", QuizStatus.IN_PROGRESS)
        self.status = QuizStatus.SUBMITTING
        ctx = self.context
        self._progress.flush()

        graded = self.normalizer.normalize_all(ctx.questions, ctx.answers, ctx.elapsed)
        result = build_result(
            quiz_id=self.quiz_id,
            slug=self.slug,
            quiz_type=self.quiz_type,
            question_results=graded,
            title=self.title,
            declared_total=len(ctx.questions),
            clock=self.clock,
        )
        ctx.generated_result = result
        ctx.result = result
        logger.info(f"Completed {self.slug}: {result.score}/{result.max_score} ({result.percentage}%)")

        self.store.put(StorageKind.TEMP_RESULT, self.slug, self.quiz_type.value, result.to_payload())
        self.store.remove(StorageKind.PROGRESS, self.slug, self.quiz_type.value)
        self.store.add_history(
            QuizHistoryEntry(
                slug=self.slug,
                title=result.title,
                quiz_type=self.quiz_type,
                completed_at=result.completed_at,
                score=result.score,
                total_questions=result.max_score,
                time_spent_seconds=result.total_time_seconds,
            )
        )

        if self.is_authenticated:
            await self._submit(result)
        else:
            self._hold_for_auth(result)

        self.status = QuizStatus.COMPLETED
        return result

    async def retry_submission(self) -> SubmissionOutcome:
        """
        Send the canonical result again after a failed or deferred submission.

        One explicit call, one request: nothing is retried automatically.
        """
        self._require("retry_submission", QuizStatus.COMPLETED)
        if not self.can_retry:
            return SubmissionOutcome(success=False, error="Nothing to retry")
        if not self.is_authenticated:
            self._hold_for_auth(self.result)
            return SubmissionOutcome(success=False, error=self.submission_warning)

        self.status = QuizStatus.SUBMITTING
        try:
            return await self._submit(self.result)
        finally:
            self.status = QuizStatus.COMPLETED

    def retake(self) -> None:
        """Discard the attempt and every stored entry for this quiz."""
        self._require("retake", QuizStatus.COMPLETED)
        self._progress.discard()
        for kind in (StorageKind.PROGRESS, StorageKind.TEMP_RESULT, StorageKind.PENDING_RESULT):
            self.store.remove(kind, self.slug, self.quiz_type.value)
        self.context = None
        self.submission_status = SubmissionStatus.NONE
        self.submission_warning = None
        self.status = QuizStatus.NOT_STARTED
        logger.info(f"Reset {self.slug} for retake")

    def reset(self) -> None:
        """
        Abandon the in-memory attempt without touching storage.

        While a sign-in redirect is in progress the computed result is kept
        so the results page can show it on return.
        """
        self._progress.flush()
        preserved = self.result if self.store.auth_flow_active() else None
        self.context = None
        self.status = QuizStatus.NOT_STARTED
        if preserved is not None:
            self.context = self._new_context()
            self.context.result = preserved
            self.status = QuizStatus.COMPLETED
            logger.info(f"Kept result for {self.slug} during sign-in flow")

    def load_result(self) -> QuizResult | None:
        """
        Resolve the canonical result from memory, storage or live answers.

        Returns:
            The result, or None for the "no results found" state
        """
        candidates = self.reconciler.gather(self.slug, self.quiz_type, self.context)
        result = self.reconciler.resolve(candidates, slug=self.slug, context=self.context)
        if result is None:
            return None

        if self.context is None:
            self.context = self._new_context()
            self.context.result = result
        if self.status == QuizStatus.NOT_STARTED:
            self.status = QuizStatus.COMPLETED
            pending = self.store.get(StorageKind.PENDING_RESULT, self.slug, self.quiz_type.value)
            if pending is not None:
                self.submission_status = SubmissionStatus.AWAITING_AUTH
        return result

    # =========================================================================
    # Submission
    # =========================================================================

    def build_payload(self, result: QuizResult) -> dict[str, Any]:
        """Payload for the submission collaborator."""
        return {
            "quizId": result.quiz_id,
            "type": result.quiz_type.value,
            "answers": [qr.to_payload() for qr in result.question_results],
            "totalTime": result.total_time_seconds,
            "score": result.score,
            "totalQuestions": result.max_score,
        }

    async def _submit(self, result: QuizResult) -> SubmissionOutcome:
        if self.submitter is None:
            self.submission_status = SubmissionStatus.SUCCEEDED
            return SubmissionOutcome(success=True)

        try:
            raw = await self.submitter.submit(result.quiz_id, self.build_payload(result))
            outcome = SubmissionOutcome.coerce(raw)
        except Exception as e:
            logger.warning(f"Submission of {self.slug} failed: {e}")
            outcome = SubmissionOutcome(success=False, error=str(e) or type(e).__name__)

        if outcome.success:
            self.submission_status = SubmissionStatus.SUCCEEDED
            self.submission_warning = None
            self.store.remove(StorageKind.PENDING_RESULT, self.slug, self.quiz_type.value)
            self.store.clear_auth_flow()
        else:
            self.submission_status = SubmissionStatus.FAILED
            self.submission_warning = (
                f"Your results could not be saved ({outcome.error}). They are shown below; you can retry."
            )
            logger.warning(f"Submission of {self.slug} failed: {outcome.error}")
        return outcome

    def _hold_for_auth(self, result: QuizResult) -> None:
        """Store the result under the slug and send the user to sign in."""
        self.store.put(
            StorageKind.PENDING_RESULT,
            self.slug,
            self.quiz_type.value,
            {"slug": self.slug, "results": result.to_payload(), "storedAt": iso_timestamp(self.clock)},
        )
        self.store.mark_auth_flow()
        self.submission_status = SubmissionStatus.AWAITING_AUTH
        self.submission_warning = "Sign in to save your results."
        if self.auth is not None:
            self.auth.require_auth(f"/dashboard/{self.quiz_type.value}/{self.slug}/results")
