"""
Result scoring and reconciliation.
"""

from .reconciler import LiveState, ResultCandidates, ResultReconciler
from .scoring import build_result, compute_percentage, enforce_invariants

__all__ = [
    "LiveState",
    "ResultCandidates",
    "ResultReconciler",
    "build_result",
    "compute_percentage",
    "enforce_invariants",
]
