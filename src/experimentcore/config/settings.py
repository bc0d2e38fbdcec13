"""Experiment engine configuration settings."""

from functools import lru_cache
from typing import Any, Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Experiment engine configuration settings."""

    model_config = SettingsConfigDict(
        env_prefix="EXPERIMENTCORE_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Tracking
    tracking_enabled: bool = True
    tracking_sink: Literal["console", "memory", "file", "none"] = "console"
    tracking_file_path: str = "experiments.jsonl"
    tracking_console_verbose: bool = False
    tracking_queue_size: int = Field(default=1000, ge=1)
    tracking_metadata: dict[str, Any] = Field(default_factory=dict)

    # Experiment run defaults
    default_parallel: bool = True
    default_max_concurrency: int | None = None
    default_stop_on_error: bool = False


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
