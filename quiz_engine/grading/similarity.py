"""
Approximate string grading for free-text answers.

Scores are 0-100 integers derived from Levenshtein edit distance over
normalized text (whitespace collapsed, trimmed, lowercased).
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum


class SimilarityBand(str, Enum):
    """Feedback bucket for a similarity score."""
    CORRECT = "correct"
    CLOSE = "close"
    INCORRECT = "incorrect"


def round_half_up(value: float) -> int:
    """Round .5 away from zero for non-negative values (Math.round semantics)."""
    return int(math.floor(value + 0.5))


def normalize_text(value: object) -> str:
    """Collapse whitespace runs, trim and lowercase."""
    if value is None:
        return ""
    return " ".join(str(value).split()).lower()


def levenshtein(a: str, b: str) -> int:
    """Classic dynamic-programming edit distance (insert, delete, substitute)."""
    rows, cols = len(a) + 1, len(b) + 1
    table = [[0] * cols for _ in range(rows)]
    for i in range(rows):
        table[i][0] = i
    for j in range(cols):
        table[0][j] = j

    for i in range(1, rows):
        for j in range(1, cols):
            if a[i - 1] == b[j - 1]:
                table[i][j] = table[i - 1][j - 1]
            else:
                table[i][j] = 1 + min(
                    table[i - 1][j - 1],  # substitution
                    table[i][j - 1],  # insertion
                    table[i - 1][j],  # deletion
                )
    return table[rows - 1][cols - 1]


def similarity(expected: object, actual: object) -> int:
    """
    Compare a free-text answer to a reference.

    Returns:
        100 for equal normalized strings (including both empty), otherwise
        round((1 - distance / longer_length) * 100) clamped to [0, 100].
    """
    a = normalize_text(expected)
    b = normalize_text(actual)
    if a == b:
        return 100

    max_len = max(len(a), len(b))
    if max_len == 0:
        return 100

    distance = levenshtein(a, b)
    score = (1 - distance / max_len) * 100
    return round_half_up(max(0.0, min(100.0, score)))


def classify(score: int, close_threshold: int = 80) -> SimilarityBand:
    """Bucket a score: 100 is correct, above the threshold is close."""
    if score >= 100:
        return SimilarityBand.CORRECT
    if score > close_threshold:
        return SimilarityBand.CLOSE
    return SimilarityBand.INCORRECT


def within_edit_tolerance(expected: object, actual: object, max_edits: int = 3) -> bool:
    """Pass/fail gate: normalized edit distance is at most ``max_edits``."""
    a = normalize_text(expected)
    b = normalize_text(actual)
    if not b and a:
        return False
    return levenshtein(a, b) <= max_edits


def is_plausible_partial(expected: object, partial: object, max_edits: int = 3) -> bool:
    """Live input check: the text so far is a prefix of, or close to, the reference."""
    a = normalize_text(expected)
    b = normalize_text(partial)
    if not b:
        return True
    return a.startswith(b) or levenshtein(a, b) <= max_edits


@dataclass(frozen=True)
class SimilarityGrader:
    """Thresholded grader shared by the text-based answer handlers."""

    close_threshold: int = 80
    max_edits: int = 3
    pass_threshold: int = 70

    def score(self, expected: object, actual: object) -> int:
        return similarity(expected, actual)

    def band(self, score: int) -> SimilarityBand:
        return classify(score, self.close_threshold)

    def passes_edit_gate(self, expected: object, actual: object) -> bool:
        return within_edit_tolerance(expected, actual, self.max_edits)

    def is_plausible_partial(self, expected: object, partial: object) -> bool:
        return is_plausible_partial(expected, partial, self.max_edits)

    @classmethod
    def from_settings(cls, settings=None) -> "SimilarityGrader":
        """Build a grader from engine settings."""
        if settings is None:
            from quiz_engine.config import get_settings
            settings = get_settings()
        return cls(
            close_threshold=settings.close_threshold,
            max_edits=settings.blanks_max_edits,
            pass_threshold=settings.openended_pass_threshold,
        )
