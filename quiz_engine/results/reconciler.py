"""
ResultReconciler: pick (and if needed repair) one canonical QuizResult.

Precedence, first usable candidate wins:
1. in-memory result already computed this session
2. result generated earlier this session from live answers
3. stored snapshot for the current slug: session tier, then durable tier
   (snapshots lacking questionResults are rebuilt from questions + answers)
4. result synthesized from live question/answer state
5. None

Whatever is accepted is re-scored from its question results before it is
returned, then written back to the store and the session cache.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Callable

from loguru import logger
from pydantic import ValidationError

from quiz_engine.answers.base import coerce_question
from quiz_engine.answers.normalizer import AnswerNormalizer
from quiz_engine.models import Question, QuestionType, QuizResult
from quiz_engine.storage.store import PersistentStore, StorageKind

from .scoring import build_result, enforce_invariants, iso_timestamp

if TYPE_CHECKING:
    from quiz_engine.session.context import SessionContext


@dataclass
class LiveState:
    """Questions and raw answers of the active attempt."""

    quiz_id: str
    slug: str
    quiz_type: QuestionType
    questions: list[Question]
    answers: dict[str, Any] = field(default_factory=dict)
    elapsed: dict[str, float] = field(default_factory=dict)
    title: str = ""
    completed_at: str | None = None


@dataclass
class ResultCandidates:
    """Everything the reconciler may choose from."""

    memory: QuizResult | dict | None = None
    generated: QuizResult | dict | None = None
    session_store: Any = None
    local_store: Any = None
    live_state: LiveState | None = None


class ResultReconciler:
    """
    Resolves the canonical result of an attempt.

    Args:
        store: PersistentStore used for write-back
        normalizer: Used to rebuild question results during repair
        clock: Time source for synthesized results
    """

    def __init__(
        self,
        store: PersistentStore | None = None,
        normalizer: AnswerNormalizer | None = None,
        clock: Callable[[], float] = time.time,
    ):
        self.store = store
        self.normalizer = normalizer or AnswerNormalizer()
        self.clock = clock

    # =========================================================================
    # Candidate gathering
    # =========================================================================

    def gather(
        self,
        slug: str,
        quiz_type: QuestionType,
        context: "SessionContext | None" = None,
    ) -> ResultCandidates:
        """Collect candidates from the session context and both storage tiers."""
        candidates = ResultCandidates()
        if context is not None:
            candidates.memory = context.result
            candidates.generated = context.generated_result
            candidates.live_state = context.live_state()

        if self.store is not None:
            for tier, attr in (("session", "session_store"), ("local", "local_store")):
                snapshot = self.store.get_from(tier, StorageKind.TEMP_RESULT, slug, quiz_type.value)
                if snapshot is None:
                    snapshot = self.store.get_from(tier, StorageKind.PENDING_RESULT, slug, quiz_type.value)
                setattr(candidates, attr, snapshot)
        return candidates

    # =========================================================================
    # Resolution
    # =========================================================================

    def resolve(
        self,
        candidates: ResultCandidates,
        slug: str | None = None,
        context: "SessionContext | None" = None,
    ) -> QuizResult | None:
        """
        Apply the precedence order and return the canonical result.

        Args:
            candidates: Available sources
            slug: Current quiz slug; defaults to the live state's slug
            context: Session cache that receives the chosen result
        """
        live = candidates.live_state
        slug = slug or (live.slug if live else None)
        declared_total = len(live.questions) if live and live.questions else None

        ordered = (
            ("memory", candidates.memory, False),
            ("generated", candidates.generated, False),
            ("session_store", candidates.session_store, True),
            ("local_store", candidates.local_store, True),
        )
        chosen: QuizResult | None = None
        source = ""
        for name, candidate, stored in ordered:
            if candidate is None:
                continue
            chosen = self._accept(candidate, name, slug if stored else None, live)
            if chosen is not None:
                source = name
                break

        if chosen is None and live is not None:
            chosen = self._synthesize(live)
            source = "live_state" if chosen is not None else ""

        if chosen is None:
            logger.info(f"No quiz result available for {slug}")
            return None

        chosen, changed = enforce_invariants(chosen, declared_total)
        logger.info(f"Using quiz result for {chosen.slug} from {source}" + (" (repaired)" if chosen.repaired else ""))

        if source != "memory" or changed:
            self._write_back(chosen)
        if context is not None:
            context.result = chosen
        return chosen

    def _accept(
        self,
        candidate: Any,
        source: str,
        slug: str | None,
        live: LiveState | None,
    ) -> QuizResult | None:
        """Validate one candidate, repairing missing question results if possible."""
        if isinstance(candidate, QuizResult):
            result = candidate
        else:
            data = candidate
            # Pending snapshots are wrapped as {"slug": ..., "results": {...}}
            if isinstance(data, dict) and isinstance(data.get("results"), dict):
                data = {**{k: v for k, v in data.items() if k != "results"}, **data["results"]}
            if not isinstance(data, dict):
                logger.warning(f"Ignoring {source} result: not an object")
                return None
            if slug is not None and data.get("slug") != slug:
                logger.debug(f"Ignoring {source} result for slug {data.get('slug')!r}")
                return None
            if not (data.get("completedAt") or data.get("completed_at")):
                data = {**data, "completedAt": self._completed_at(candidate, data)}
            if "questionResults" not in data and "question_results" not in data:
                data = self._repair(data, source, live)
                if data is None:
                    return None
            try:
                result = QuizResult.model_validate(data)
            except ValidationError as e:
                logger.warning(f"Rejecting {source} result: {e.error_count()} validation errors")
                return None

        if slug is not None and result.slug != slug:
            return None
        return result

    def _completed_at(self, candidate: Any, data: dict) -> str:
        """
        Completion time for a snapshot that does not record one.

        Falls back to the snapshot's own save time. Without one, the current
        time is stamped into the candidate so later resolves agree.
        """
        for key in ("submittedAt", "storedAt", "lastUpdated"):
            value = data.get(key)
            if isinstance(value, str) and value:
                return value
            if isinstance(value, (int, float)) and not isinstance(value, bool):
                return iso_timestamp(lambda: value / 1000)
        stamp = iso_timestamp(self.clock)
        if isinstance(candidate, dict):
            candidate["completedAt"] = stamp
        return stamp

    def _repair(self, data: dict, source: str, live: LiveState | None) -> dict | None:
        """Rebuild questionResults from a snapshot's questions and answers."""
        questions_raw = data.get("questions")
        if not isinstance(questions_raw, list) or not questions_raw:
            logger.warning(f"Rejecting {source} result: no questionResults and nothing to rebuild from")
            return None

        quiz_type = data.get("quizType") or (live.quiz_type.value if live else None)
        questions = [q for q in (coerce_question(raw, quiz_type) for raw in questions_raw) if q is not None]
        if not questions:
            logger.warning(f"Rejecting {source} result: stored questions are unreadable")
            return None

        answers: dict[str, Any] = {}
        elapsed: dict[str, float] = {}
        raw_answers = data.get("answers") or []
        if isinstance(raw_answers, dict):
            raw_answers = [{"questionId": qid, **a} if isinstance(a, dict) else a for qid, a in raw_answers.items()]
        for answer in raw_answers if isinstance(raw_answers, list) else []:
            if not isinstance(answer, dict):
                continue
            qid = str(answer.get("questionId", answer.get("id", "")))
            answers[qid] = answer
            spent = answer.get("timeSpent", answer.get("timeSpentSeconds", 0))
            elapsed[qid] = spent if isinstance(spent, (int, float)) else 0

        logger.info(f"Repairing missing questionResults in {source} result from {len(questions)} questions")
        graded = self.normalizer.normalize_all(questions, answers, elapsed)
        try:
            result_type = QuestionType(str(quiz_type).lower())
        except ValueError:
            result_type = questions[0].type
        rebuilt = build_result(
            quiz_id=str(data.get("quizId") or data.get("slug") or ""),
            slug=str(data.get("slug") or ""),
            quiz_type=result_type,
            question_results=graded,
            title=str(data.get("title") or ""),
            completed_at=data.get("completedAt"),
            repaired=True,
            clock=self.clock,
        )
        return rebuilt.to_payload()

    def _synthesize(self, live: LiveState) -> QuizResult | None:
        """Score the live attempt directly, as completion would."""
        if not live.questions or not live.answers:
            return None
        graded = self.normalizer.normalize_all(live.questions, live.answers, live.elapsed)
        if live.completed_at is None:
            live.completed_at = iso_timestamp(self.clock)
        return build_result(
            quiz_id=live.quiz_id,
            slug=live.slug,
            quiz_type=live.quiz_type,
            question_results=graded,
            title=live.title,
            completed_at=live.completed_at,
            declared_total=len(live.questions),
            clock=self.clock,
        )

    def _write_back(self, result: QuizResult) -> None:
        if self.store is None:
            return
        self.store.put(StorageKind.TEMP_RESULT, result.slug, result.quiz_type.value, result.to_payload())
