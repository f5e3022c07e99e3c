"""
Stori Arranger Configuration

Environment-based configuration for the arranger CLI and batch generator.
Tick resolution is a format constant (see ``core.events.TICKS_PER_BEAT``)
and deliberately not configurable.
"""
from __future__ import annotations

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    debug: bool = False

    # Generation defaults
    default_duration_seconds: int = Field(default=60, gt=0)
    max_batch_files: int = Field(default=20, gt=0)  # batch cap, one seed per file
    output_dir: str = "output"

    model_config = SettingsConfigDict(
        env_prefix="ARRANGER_",
        env_file=".env",
        env_file_encoding="utf-8",
    )


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


# Convenience access
settings = get_settings()
