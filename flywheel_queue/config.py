"""
Application configuration using Pydantic Settings.
Loads configuration from environment variables with sensible defaults.
"""

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict

from flywheel_queue.constants import (
    DEFAULT_CONCURRENCY,
    DEFAULT_HISTORY_SIZE,
    DEFAULT_RETRIES,
    DEFAULT_RETRY_DELAY_MS,
    RetryPlacement,
)


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Queue Configuration
    queue_concurrency: int = DEFAULT_CONCURRENCY
    queue_retries: int = DEFAULT_RETRIES
    queue_retry_delay_ms: int = DEFAULT_RETRY_DELAY_MS
    queue_history_size: int = DEFAULT_HISTORY_SIZE
    queue_max_pending: int | None = None
    queue_retry_placement: RetryPlacement = RetryPlacement.PRIORITY

    # API Configuration
    api_host: str = "0.0.0.0"
    api_port: int = 8000

    # Observability
    otel_enabled: bool = False
    otel_exporter_otlp_endpoint: str = "http://localhost:4317"
    otel_service_name: str = "flywheel-queue"
    log_level: str = "INFO"
    log_format: str = "json"  # json or console


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
