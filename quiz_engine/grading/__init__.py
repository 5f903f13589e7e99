"""
Free-text grading by approximate string similarity.
"""

from .similarity import (
    SimilarityBand,
    SimilarityGrader,
    classify,
    is_plausible_partial,
    levenshtein,
    normalize_text,
    round_half_up,
    similarity,
    within_edit_tolerance,
)

__all__ = [
    "SimilarityBand",
    "SimilarityGrader",
    "classify",
    "is_plausible_partial",
    "levenshtein",
    "normalize_text",
    "round_half_up",
    "similarity",
    "within_edit_tolerance",
]
