"""
Application configuration models and helpers.

Centralizes settings management so the FastAPI app, the warmup monitor and the
inference clients share a consistent configuration surface.
"""

from functools import lru_cache
from pathlib import Path

import os

from pydantic import AnyHttpUrl, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


def _load_env_file(path: str = ".env") -> None:
    """Best-effort load key=value pairs from a .env file without extra deps."""
    env_path = Path(path)
    if not env_path.exists():
        return
    for raw_line in env_path.read_text().splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue
        key, sep, value = line.partition("=")
        if not sep:
            continue
        key = key.strip()
        if not key or key in os.environ:
            continue
        cleaned = value.strip().strip('"').strip("'")
        os.environ[key] = cleaned


_load_env_file()


_SETTINGS_CONFIG = SettingsConfigDict(populate_by_name=True, extra="ignore")


class ReplicateSettings(BaseSettings):
    """Configuration for the Replicate vision model and file staging."""

    model_config = _SETTINGS_CONFIG

    api_token: str = Field(..., validation_alias="REPLICATE_API_TOKEN")
    base_url: AnyHttpUrl = Field(
        "https://api.replicate.com/v1", validation_alias="REPLICATE_BASE_URL"
    )
    model_version: str = Field(
        "e5caf557dd9e5dcee46442e1315291ef1867f027991ede8ff95e304d4f734200",
        validation_alias="REPLICATE_MODEL_VERSION",
        description="DeepSeek-VL2 model version hash.",
    )
    warmup_image_url: AnyHttpUrl = Field(
        "https://replicate.delivery/pbxt/"
        "MTtsBStHRqLDgNZMkt0J7PptoJ3lseSUNcGaDkG230ttNJlT/workflow.png",
        validation_alias="REPLICATE_WARMUP_IMAGE_URL",
        description="Public image used for the synthetic warmup prediction.",
    )


class DeepSeekSettings(BaseSettings):
    """Configuration for DeepSeek reasoning model access."""

    model_config = _SETTINGS_CONFIG

    api_key: str = Field(..., validation_alias="DEEPSEEK_API_KEY")
    base_url: AnyHttpUrl = Field(
        "https://api.deepseek.com", validation_alias="DEEPSEEK_BASE_URL"
    )
    model_name: str = Field("deepseek-reasoner", validation_alias="DEEPSEEK_MODEL_NAME")


class PollingSettings(BaseSettings):
    """Timing policy for upstream prediction polling."""

    model_config = _SETTINGS_CONFIG

    interval_seconds: float = Field(
        3.0, ge=0, validation_alias="POLL_INTERVAL_SECONDS"
    )
    vision_max_attempts: int = Field(100, ge=1, validation_alias="VISION_MAX_ATTEMPTS")
    warmup_max_attempts: int = Field(120, ge=1, validation_alias="WARMUP_MAX_ATTEMPTS")
    http_timeout_seconds: float = Field(
        300.0,
        gt=0,
        validation_alias="HTTP_TIMEOUT_SECONDS",
        description="Backstop timeout applied to every upstream HTTP call.",
    )


class AppSettings(BaseSettings):
    """Root settings object for the FastAPI application."""

    model_config = SettingsConfigDict(
        populate_by_name=True,
        extra="ignore",
        env_file=".env",
        env_file_encoding="utf-8",
    )

    environment: str = Field("development", validation_alias="APP_ENV")
    log_level: str = Field("INFO", validation_alias="APP_LOG_LEVEL")
    patterns_path: Path = Field(
        Path("candlestick_patterns.csv"),
        validation_alias="PATTERNS_PATH",
        description="CSV file holding the candlestick pattern taxonomy.",
    )
    replicate: ReplicateSettings = Field(default_factory=ReplicateSettings)
    deepseek: DeepSeekSettings = Field(default_factory=DeepSeekSettings)
    polling: PollingSettings = Field(default_factory=PollingSettings)


@lru_cache()
def get_settings() -> AppSettings:
    """Return a cached settings object."""
    return AppSettings()  # type: ignore[call-arg]


__all__ = [
    "AppSettings",
    "DeepSeekSettings",
    "PollingSettings",
    "ReplicateSettings",
    "get_settings",
]
