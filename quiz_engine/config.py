"""
Configuration settings for the quiz state engine.

Uses Pydantic Settings for environment variable management with .env file support.
All variables are prefixed with QUIZ_ENGINE_ (e.g. QUIZ_ENGINE_ENTRY_CAPACITY=50).
"""
from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Engine settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="QUIZ_ENGINE_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ========================================
    # Storage
    # ========================================
    storage_dir: Path = Field(
        default=Path.home() / ".quiz_engine" / "storage",
        description="Directory backing the durable storage tier",
    )
    entry_capacity: int = Field(
        default=100,
        ge=1,
        description="Maximum live entries kept per storage kind",
    )
    temp_result_ttl_hours: float = Field(
        default=24,
        description="Age after which a temporary result is treated as absent",
    )
    pending_result_ttl_hours: float = Field(
        default=24,
        description="Age after which a pending (guest) result is treated as absent",
    )
    progress_max_age_days: float = Field(
        default=7,
        description="cleanup() removes in-progress snapshots older than this",
    )
    result_max_age_days: float = Field(
        default=30,
        description="cleanup() removes stored results older than this",
    )
    max_entry_bytes: int = Field(
        default=5 * 1024 * 1024,
        description="Serialized entries larger than this are rejected",
    )
    write_retries: int = Field(
        default=3,
        ge=1,
        description="Write attempts per tier for transient failures (quota and unavailable tiers are not retried)",
    )

    # ========================================
    # Session
    # ========================================
    progress_debounce_ms: int = Field(
        default=500,
        ge=0,
        description="Minimum interval between two progress snapshot writes",
    )
    auth_flow_window_minutes: float = Field(
        default=5,
        description="How long an auth-flow marker protects results from being reset",
    )
    history_limit: int = Field(
        default=2,
        ge=1,
        description="Number of completed quizzes kept in history",
    )

    # ========================================
    # Grading Thresholds
    # ========================================
    blanks_max_edits: int = Field(
        default=3,
        ge=0,
        description="Edit-distance gate for fill-in-the-blank answers",
    )
    close_threshold: int = Field(
        default=80,
        ge=0,
        le=100,
        description="Similarity above which an answer is classified as close",
    )
    openended_pass_threshold: int = Field(
        default=70,
        ge=0,
        le=100,
        description="Similarity above which an open-ended answer counts as correct",
    )

    # ========================================
    # Submission API
    # ========================================
    submit_url: str = Field(
        default="http://localhost:3000/api/quizzes",
        description="Base URL of the quiz completion endpoint",
    )
    submit_timeout_ms: int = Field(
        default=30000,
        description="Submission request timeout in milliseconds",
    )

    def get_storage_config(self) -> dict[str, float | int]:
        """Get storage policy values as a dictionary (seconds)."""
        return {
            "capacity": self.entry_capacity,
            "temp_result_ttl": self.temp_result_ttl_hours * 3600,
            "pending_result_ttl": self.pending_result_ttl_hours * 3600,
            "progress_max_age": self.progress_max_age_days * 86400,
            "result_max_age": self.result_max_age_days * 86400,
        }


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
