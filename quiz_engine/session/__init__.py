"""
Quiz session orchestration.

Components:
- context: explicit per-attempt state (answers, timings, cached result)
- progress: debounced, last-write-wins progress persistence
- controller: the quiz lifecycle state machine
"""

from .context import SessionContext
from .controller import QuizSessionController, QuizStatus, SubmissionStatus
from .progress import ProgressWriter

__all__ = [
    "ProgressWriter",
    "QuizSessionController",
    "QuizStatus",
    "SessionContext",
    "SubmissionStatus",
]
