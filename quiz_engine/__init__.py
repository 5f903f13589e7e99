"""
Quiz Engine: quiz state and results reconciliation.

Components:
- grading: approximate string similarity for free-text answers
- answers: per-question-type normalization into GradedAnswer records
- storage: redundant, TTL- and capacity-bounded key/value persistence
- results: scoring and canonical result reconciliation
- session: quiz lifecycle state machine with resumable progress
- ordering: permutation state for ordering questions
"""

from .answers import HANDLERS, AnswerNormalizer, get_handler
from .config import Settings, get_settings
from .errors import (
    QuizEngineError,
    QuizStateError,
    StorageError,
    StorageQuotaExceededError,
    StorageUnavailableError,
    SubmissionError,
)
from .grading import SimilarityBand, SimilarityGrader, similarity
from .integrations import AuthGate, HttpSubmitter, StaticAuthGate, SubmissionOutcome, Submitter
from .models import GradedAnswer, OptionItem, Question, QuestionType, QuizHistoryEntry, QuizResult
from .ordering import OrderingReconciler
from .results import ResultCandidates, ResultReconciler
from .session import QuizSessionController, QuizStatus, SessionContext
from .storage import JsonFileBackend, MemoryBackend, PersistentStore, StorageKind

__version__ = "1.0.0"

__all__ = [
    "AnswerNormalizer",
    "AuthGate",
    "GradedAnswer",
    "HANDLERS",
    "HttpSubmitter",
    "JsonFileBackend",
    "MemoryBackend",
    "OptionItem",
    "OrderingReconciler",
    "PersistentStore",
    "Question",
    "QuestionType",
    "QuizEngineError",
    "QuizHistoryEntry",
    "QuizResult",
    "QuizSessionController",
    "QuizStateError",
    "QuizStatus",
    "ResultCandidates",
    "ResultReconciler",
    "SessionContext",
    "Settings",
    "SimilarityBand",
    "SimilarityGrader",
    "StaticAuthGate",
    "StorageError",
    "StorageKind",
    "StorageQuotaExceededError",
    "StorageUnavailableError",
    "SubmissionError",
    "SubmissionOutcome",
    "Submitter",
    "get_handler",
    "get_settings",
    "similarity",
]
