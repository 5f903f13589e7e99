"""
Authentication collaborator.

The engine only needs to know whether the user is signed in and how to send
them to sign in. Results are stored before require_auth() is called.
"""

from __future__ import annotations

from typing import Protocol


class AuthGate(Protocol):
    """Protocol for the auth collaborator."""

    @property
    def is_authenticated(self) -> bool:
        ...

    def require_auth(self, return_path: str) -> None:
        ...


class StaticAuthGate:
    """AuthGate with a fixed state; records sign-in requests."""

    def __init__(self, authenticated: bool = True):
        self.authenticated = authenticated
        self.redirects: list[str] = []

    @property
    def is_authenticated(self) -> bool:
        return self.authenticated

    def require_auth(self, return_path: str) -> None:
        self.redirects.append(return_path)

    def sign_in(self) -> None:
        self.authenticated = True
