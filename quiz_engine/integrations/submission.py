"""
Quiz completion submission.

The engine treats the server as an opaque collaborator: anything with an
async ``submit(quiz_id, payload)`` works. Responses may be a
SubmissionOutcome or the plain ``{"success": bool, "result"|"error": ...}``
dict the web API returns; SubmissionOutcome.coerce() accepts both.

HttpSubmitter never retries by itself. A retry is always a new, explicit
call so the server never records the same attempt twice.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Protocol

import httpx
from loguru import logger

from quiz_engine.errors import SubmissionError


@dataclass
class SubmissionOutcome:
    """Result of one submission attempt."""

    success: bool
    result: Any = None
    error: str | None = None

    @classmethod
    def coerce(cls, raw: Any) -> "SubmissionOutcome":
        """Accept either response shape without raising."""
        if isinstance(raw, SubmissionOutcome):
            return raw
        if isinstance(raw, dict):
            if raw.get("success") is True:
                return cls(success=True, result=raw.get("result"))
            if raw.get("success") is False:
                return cls(success=False, error=str(raw.get("error") or "Submission failed"))
        logger.error(f"Unexpected submission response: {raw!r}")
        return cls(success=False, error="Unexpected response from submission service")


class Submitter(Protocol):
    """Protocol for the submission collaborator."""

    async def submit(self, quiz_id: str, payload: dict[str, Any]) -> SubmissionOutcome | dict:
        ...


class HttpSubmitter:
    """HTTP client for the quiz completion endpoint."""

    def __init__(
        self,
        api_url: str | None = None,
        timeout_ms: int | None = None,
        client: httpx.AsyncClient | None = None,
    ):
        """
        Initialize the submitter.

        Args:
            api_url: Base URL (defaults to settings.submit_url)
            timeout_ms: Request timeout in milliseconds
            client: Pre-built client (tests pass one with a mock transport)
        """
        if api_url is None or timeout_ms is None:
            from quiz_engine.config import get_settings
            settings = get_settings()
            api_url = api_url or settings.submit_url
            timeout_ms = timeout_ms or settings.submit_timeout_ms
        self.api_url = api_url.rstrip("/")
        self.timeout_seconds = timeout_ms / 1000.0
        self.client = client or httpx.AsyncClient(
            timeout=httpx.Timeout(self.timeout_seconds),
            follow_redirects=True,
        )

    async def close(self) -> None:
        """Close the HTTP client."""
        await self.client.aclose()

    def endpoint(self, quiz_id: str, quiz_type: str) -> str:
        return f"{self.api_url}/{quiz_type}/{quiz_id}/complete"

    async def _post(self, quiz_id: str, payload: dict[str, Any]) -> Any:
        url = self.endpoint(quiz_id, str(payload.get("type", "")))
        try:
            response = await self.client.post(url, json=payload)
            response.raise_for_status()
        except httpx.TimeoutException as e:
            raise SubmissionError(f"Submission timed out after {self.timeout_seconds}s") from e
        except httpx.HTTPStatusError as e:
            raise SubmissionError(f"Submission rejected with status {e.response.status_code}") from e
        except httpx.RequestError as e:
            raise SubmissionError(f"Submission request failed: {e}") from e

        try:
            return response.json()
        except ValueError as e:
            raise SubmissionError("Submission response was not JSON") from e

    async def submit(self, quiz_id: str, payload: dict[str, Any]) -> SubmissionOutcome:
        """
        Post a completed attempt once.

        Returns:
            SubmissionOutcome; failures are reported, never raised
        """
        try:
            data = await self._post(quiz_id, payload)
        except SubmissionError as e:
            logger.warning(f"Quiz {quiz_id} submission failed: {e}")
            return SubmissionOutcome(success=False, error=str(e))

        if isinstance(data, dict) and "success" in data:
            return SubmissionOutcome.coerce(data)
        return SubmissionOutcome(success=True, result=data)
