"""
External collaborators: submission API and authentication.
"""

from .auth import AuthGate, StaticAuthGate
from .submission import HttpSubmitter, SubmissionOutcome, Submitter

__all__ = [
    "AuthGate",
    "HttpSubmitter",
    "StaticAuthGate",
    "SubmissionOutcome",
    "Submitter",
]
