# turnguard/config.py
from functools import lru_cache
from typing import Literal

from pydantic import (
    Field,
    field_validator,  # v2 validator
)
from pydantic_settings import BaseSettings, SettingsConfigDict  # moved in v2

from turnguard.errors import ConfigError


class Settings(BaseSettings):
    """
    Central configuration for the decision pipeline (Pydantic v2).
    Loads from environment variables and a .env file (if present).
    """

    # --- Runtime / env ---
    env: Literal["dev", "prod", "test"] = "dev"
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"

    # --- Routing ---
    pure_fact_max_tokens: int = Field(60, ge=1, alias="PURE_FACT_MAX_TOKENS")

    # --- Post-processing ---
    similarity_threshold: float = Field(0.70, ge=0.0, le=1.0, alias="SIMILARITY_THRESHOLD")
    recent_messages_limit: int = Field(20, ge=1, le=200, alias="RECENT_MESSAGES_LIMIT")
    opener_max_tokens: int = Field(12, ge=1, alias="OPENER_MAX_TOKENS")
    max_rewrite_passes: int = Field(3, ge=1, le=10, alias="MAX_REWRITE_PASSES")

    # --- Personal fact cap ---
    personal_fact_cap: int = Field(2, ge=0, alias="PERSONAL_FACT_CAP")
    retention_personal_fact_cap: int = Field(1, ge=0, alias="RETENTION_PERSONAL_FACT_CAP")
    recall_phrases: tuple[str, ...] = Field(
        (
            "do you remember",
            "you remember",
            "remind me what",
            "what did i tell you",
            "what i told you",
            "what do you know about me",
            "기억나",
            "기억해",
        ),
        alias="RECALL_PHRASES",
    )

    # Pydantic v2 config
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,  # env var names are case-insensitive
        extra="ignore",  # ignore extra envs silently
        populate_by_name=True,  # allow using field names as env keys too
    )

    @field_validator("recall_phrases")
    @classmethod
    def _normalize_recall_phrases(cls, v):
        # lower-case, drop blanks, keep first-seen order
        seen: list[str] = []
        for phrase in v:
            p = phrase.strip().lower()
            if p and p not in seen:
                seen.append(p)
        return tuple(seen)

    @field_validator("retention_personal_fact_cap")
    @classmethod
    def _retention_cap_not_above_ordinary(cls, v, info):
        data = info.data if hasattr(info, "data") else {}
        ordinary = data.get("personal_fact_cap", 2)
        if v > ordinary:
            raise ConfigError(
                f"retention_personal_fact_cap ({v}) must not exceed personal_fact_cap ({ordinary})"
            )
        return v


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Cached settings instance so every import doesn't re-parse the env."""
    return Settings()
