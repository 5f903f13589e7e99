"""
Result construction and invariant checks.

A QuizResult always satisfies:
- score == number of question results marked correct
- max_score == len(question_results), or the declared question count when
  the results are partial
- percentage == round(100 * score / max_score)
"""

from __future__ import annotations

import time
from datetime import datetime, timezone
from typing import Callable, Sequence

from loguru import logger

from quiz_engine.grading.similarity import round_half_up
from quiz_engine.models import GradedAnswer, QuestionType, QuizResult


def iso_timestamp(clock: Callable[[], float] = time.time) -> str:
    return datetime.fromtimestamp(clock(), tz=timezone.utc).isoformat()


def compute_percentage(score: int, max_score: int) -> int:
    if max_score <= 0:
        return 0
    return round_half_up(100 * score / max_score)


def average_similarity(question_results: Sequence[GradedAnswer]) -> int | None:
    """Rounded mean of populated similarity values."""
    values = [qr.similarity for qr in question_results if qr.similarity is not None]
    if not values:
        return None
    return round_half_up(sum(values) / len(values))


def build_result(
    quiz_id: str,
    slug: str,
    quiz_type: QuestionType,
    question_results: Sequence[GradedAnswer],
    title: str = "",
    completed_at: str | None = None,
    declared_total: int | None = None,
    repaired: bool = False,
    clock: Callable[[], float] = time.time,
) -> QuizResult:
    """Score graded answers into a QuizResult."""
    results = list(question_results)
    score = sum(1 for qr in results if qr.is_correct)
    max_score = max(len(results), declared_total or 0)
    return QuizResult(
        quiz_id=quiz_id,
        slug=slug,
        title=title or f"{quiz_type.value.upper()} Quiz",
        quiz_type=quiz_type,
        score=score,
        max_score=max_score,
        percentage=compute_percentage(score, max_score),
        completed_at=completed_at or iso_timestamp(clock),
        question_results=results,
        average_similarity=average_similarity(results),
        total_time_seconds=sum(qr.time_spent_seconds for qr in results),
        repaired=repaired,
    )


def enforce_invariants(result: QuizResult, declared_total: int | None = None) -> tuple[QuizResult, bool]:
    """
    Recompute score fields from question_results.

    Returns:
        (result, changed) - the original object when it was consistent,
        otherwise a corrected copy flagged as repaired
    """
    results = result.question_results
    score = sum(1 for qr in results if qr.is_correct)
    # Without a declared total, a partial result keeps its stored question count
    total = declared_total if declared_total is not None else result.max_score
    max_score = max(len(results), total or 0)
    percentage = compute_percentage(score, max_score)
    avg = average_similarity(results)

    if (
        result.score == score
        and result.max_score == max_score
        and result.percentage == percentage
        and result.average_similarity == avg
    ):
        return result, False

    logger.info(
        f"Recomputed score for {result.slug}: stored {result.score}/{result.max_score} "
        f"({result.percentage}%), derived {score}/{max_score} ({percentage}%)"
    )
    fixed = result.model_copy(
        update={
            "score": score,
            "max_score": max_score,
            "percentage": percentage,
            "average_similarity": avg,
            "repaired": True,
        }
    )
    return fixed, True
