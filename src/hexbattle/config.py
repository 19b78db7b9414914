"""Lightweight configuration for the hexbattle service."""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from hexbattle.domain.rules_config import DEFAULT_RULES, ChaseRules, RulesConfig


class Settings(BaseSettings):
    """Application settings, overridable through ``HEXBATTLE_*`` variables or ``.env``."""

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", env_prefix="HEXBATTLE_"
    )

    data_dir: Path = Field(default=Path("battles"), description="Where battle records live")
    default_seed: int = Field(
        default=DEFAULT_RULES.default_seed,
        description="Seed of new battles when the request does not choose one",
    )
    max_chasing_activations: int | None = Field(
        default=None,
        description="Activations an automatic stack may spend chasing before it defends",
        ge=1,
    )
    log_level: str = Field(default="INFO", description="Root log level of the server process")
    cors_origins: list[str] = Field(
        default_factory=lambda: ["http://localhost:5173", "http://127.0.0.1:5173"],
        description="Origins allowed to call the HTTP API",
    )

    def rules(self) -> RulesConfig:
        """Rule configuration with the chase policy from these settings."""

        return RulesConfig(
            chase=ChaseRules(max_chasing_activations=self.max_chasing_activations),
            default_seed=self.default_seed,
        )


@lru_cache
def get_settings() -> Settings:
    """Return a cached Settings instance."""

    settings = Settings()
    settings.data_dir.mkdir(parents=True, exist_ok=True)
    return settings
