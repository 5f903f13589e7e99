"""
Exception hierarchy for the quiz engine.

Storage errors are raised by backends and never escape PersistentStore.
"""


class QuizEngineError(Exception):
    """Base class for engine errors."""


class StorageError(QuizEngineError):
    """A storage tier failed to read or write."""


class StorageQuotaExceededError(StorageError):
    """The tier has no room left for the value."""


class StorageUnavailableError(StorageError):
    """The tier is disabled or missing."""


class QuizStateError(QuizEngineError):
    """An operation was attempted from a state that does not allow it."""

    def __init__(self, operation: str, state: str):
        super().__init__(f"Cannot {operation}() while quiz is {state}")
        self.operation = operation
        self.state = state


class SubmissionError(QuizEngineError):
    """The submission endpoint rejected the payload or could not be reached."""
