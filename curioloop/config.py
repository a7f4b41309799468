"""
Configuration settings for CurioLoop.

Uses Pydantic Settings for environment variable management with .env file support.
Every field can be overridden with a CURIOLOOP_ prefixed variable; the Gemini key
is also picked up from the plain GEMINI_API_KEY variable.
"""
from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="CURIOLOOP_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ========================================
    # Gemini
    # ========================================
    gemini_api_key: str | None = Field(
        default=None,
        validation_alias=AliasChoices("CURIOLOOP_GEMINI_API_KEY", "GEMINI_API_KEY"),
        description="Google Generative AI (Gemini) API key",
    )
    fast_model: str = Field(
        default="gemini-2.5-flash",
        description="Model for quizzes and chapter content, where latency matters",
    )
    reasoning_model: str = Field(
        default="gemini-2.5-pro",
        description="Model for plan evaluation and adaptive feedback",
    )
    multimodal_model: str = Field(
        default="gemini-2.5-flash",
        description="Model for extracting context from uploaded study material",
    )
    planning_temperature: float = Field(
        default=0.2,
        ge=0.0,
        le=2.0,
        description="Sampling temperature for plan generation",
    )

    # ========================================
    # Curriculum Shape
    # ========================================
    diagnostic_question_count: int = Field(
        default=5,
        ge=1,
        description="Questions requested for the diagnostic quiz",
    )
    plan_chapter_count: int = Field(
        default=5,
        ge=1,
        description="Chapters requested for a learning plan",
    )
    chapter_quiz_question_count: int = Field(
        default=3,
        ge=1,
        description="Questions requested for each chapter quiz",
    )

    # ========================================
    # Gamification
    # ========================================
    xp_per_point: int = Field(
        default=10,
        ge=0,
        description="XP awarded per quiz score point on chapter completion",
    )

    # ========================================
    # Storage
    # ========================================
    data_dir: Path = Field(
        default=Path.home() / ".curioloop",
        description="Directory holding paths.json and daily_stats.json",
    )

    # ========================================
    # Logging
    # ========================================
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="WARNING",
        description="Logging verbosity level",
    )
    log_file: str | None = Field(
        default=None,
        description="Log file path (None for stderr only)",
    )

    def has_ai_configured(self) -> bool:
        """Check if the Gemini provider can be used."""
        return bool(self.gemini_api_key)

    def model_for(self, model_class: str) -> str:
        """Resolve a model class (fast, reasoning, multimodal) to a model name."""
        return {
            "fast": self.fast_model,
            "reasoning": self.reasoning_model,
            "multimodal": self.multimodal_model,
        }[model_class]


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
