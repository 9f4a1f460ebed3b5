# src/config/settings.py — v2
"""Typed configuration loaded from .env via pydantic-settings.

Single source of truth for API keys, throttling, cache and matching policy.
Inconsistent values raise ConfigurationError so a bad .env stops the run
before any external call is made.
"""

from __future__ import annotations

from pathlib import Path
from typing import Literal

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class ConfigurationError(Exception):
    """Raised when configuration is internally inconsistent."""


class Settings(BaseSettings):
    """Application settings loaded from .env file."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # === ANALYSIS SERVICE ===
    analysis_provider: str = "openai"
    analysis_model: str = "gpt-4o"
    analysis_max_tokens: int = 500
    openai_api_key: str = ""

    # === EMBEDDINGS ===
    embedding_provider: str = "openai"
    embedding_model: str = "text-embedding-3-large"
    embedding_dimensions: int = 3072  # requested from OpenAI; Ollama reports its own
    embedding_ollama_model: str = "nomic-embed-text"
    ollama_base_url: str = "http://localhost:11434"

    # === Throttling ===
    max_concurrent_requests: int = 3
    request_delay_s: float = 1.0
    task_timeout_s: float | None = None
    retry_enabled: bool = True

    # === Image optimization ===
    max_image_size: int = 1024
    image_quality: int = 70

    # === Cache ===
    cache_enabled: bool = True
    cache_backend: Literal["sqlite", "json"] = "sqlite"
    cache_root: Path = Path("~/.imagematch/cache")
    cache_max_age_days: int | None = None

    # === Matching ===
    match_top_n: int = 5
    match_min_similarity: float = 0.75
    match_max_per_base: int | None = None

    # === Scan ===
    recursive_search: bool = True
    image_extensions: str = ".jpg,.jpeg,.png,.gif,.bmp,.webp"

    # === Logging ===
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    log_format: Literal["json", "text"] = "text"
    log_file: Path | None = None
    log_rotation: str = "10MB"
    log_retention: int = 30

    # --- Validators ---

    @field_validator("max_concurrent_requests", "match_top_n", "embedding_dimensions")
    @classmethod
    def validate_positive(cls, v: int) -> int:  # noqa: N805
        if v < 1:
            raise ValueError("must be >= 1")
        return v

    @field_validator("request_delay_s")
    @classmethod
    def validate_delay(cls, v: float) -> float:  # noqa: N805
        if v < 0:
            raise ValueError("request_delay_s must be >= 0")
        return v

    @field_validator("match_min_similarity")
    @classmethod
    def validate_min_similarity(cls, v: float) -> float:  # noqa: N805
        """Cosine similarity lives in [-1, 1]."""
        if not -1.0 <= v <= 1.0:
            raise ValueError("match_min_similarity must be within [-1, 1]")
        return v

    @model_validator(mode="after")
    def validate_config_consistency(self) -> Settings:
        """Validate cross-field consistency rules."""
        errors: list[str] = []

        if self.task_timeout_s is not None and self.task_timeout_s <= 0:
            errors.append("TASK_TIMEOUT_S must be > 0 when set")

        if self.cache_max_age_days is not None and self.cache_max_age_days < 0:
            errors.append("CACHE_MAX_AGE_DAYS must be >= 0")

        if self.match_max_per_base is not None and self.match_max_per_base < 1:
            errors.append("MATCH_MAX_PER_BASE must be >= 1 when set")

        if not 1 <= self.image_quality <= 95:
            errors.append("IMAGE_QUALITY must be between 1 and 95")

        if self.max_image_size < 16:
            errors.append("MAX_IMAGE_SIZE must be >= 16")

        if errors:
            raise ConfigurationError("; ".join(errors))

        return self

    # --- Helpers ---

    @property
    def image_extensions_list(self) -> list[str]:
        """Parse comma-separated extensions, normalised to lowercase with a dot."""
        exts: list[str] = []
        for raw in self.image_extensions.split(","):
            ext = raw.strip().lower()
            if not ext:
                continue
            exts.append(ext if ext.startswith(".") else f".{ext}")
        return exts

    @property
    def cache_db_path(self) -> Path:
        """SQLite database file under the cache root."""
        return self.cache_root.expanduser() / "imagematch_cache.db"


def load_settings(**overrides: object) -> Settings:
    """Load settings from .env with optional overrides.

    Args:
        **overrides: Field-level overrides (for testing or CLI flags).

    Returns:
        Validated Settings instance.

    Raises:
        ConfigurationError: If configuration is internally inconsistent.
    """
    return Settings(**overrides)  # type: ignore[arg-type]
