# ABOUTME: Configuration module for application settings.
# ABOUTME: Uses pydantic-settings for environment variable overrides and provides cached access.

from functools import lru_cache
from pathlib import Path
from typing import Annotated

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings with environment variable support.

    All settings can be overridden via environment variables with the
    SPARK_GUARD_ prefix (e.g., SPARK_GUARD_DB_PATH).
    """

    model_config = SettingsConfigDict(
        env_prefix="SPARK_GUARD_",
        env_file=".env",
        env_file_encoding="utf-8",
    )

    db_path: Annotated[Path, Field(description="Path to the offline queue SQLite file")] = (
        Path.home() / ".spark-guard" / "queue.db"
    )

    rate_limit_window_seconds: Annotated[
        int, Field(description="Length of the sliding rate-limit window", ge=1)
    ] = 60

    max_sparks_per_window: Annotated[
        int, Field(description="Maximum sparks per user within the rate-limit window", ge=1)
    ] = 60

    burst_window_seconds: Annotated[
        int, Field(description="Length of the burst detection window", ge=1)
    ] = 10

    burst_threshold: Annotated[
        int, Field(description="Sparks within the burst window that count as a burst", ge=1)
    ] = 10

    retention_seconds: Annotated[
        int,
        Field(
            description="Minimum time attempt timestamps are kept in memory; never less "
            "than twice the rate-limit window",
            ge=1,
        ),
    ] = 120

    queue_max_retries: Annotated[
        int, Field(description="Attempts before a queued action is dropped", ge=1)
    ] = 5

    queue_base_delay_seconds: Annotated[
        float, Field(description="Base delay for queue retry backoff", gt=0)
    ] = 2.0

    queue_max_delay_seconds: Annotated[
        float, Field(description="Upper bound for queue retry backoff", gt=0)
    ] = 300.0

    queue_jitter_factor: Annotated[
        float, Field(description="Random jitter applied to retry delays", ge=0, le=1)
    ] = 0.3

    supabase_url: Annotated[str | None, Field(description="Supabase project URL")] = None

    supabase_key: Annotated[str | None, Field(description="Supabase API key")] = None

    log_level: Annotated[str, Field(description="Minimum log level")] = "INFO"


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get the application settings.

    Returns a cached Settings instance. Use get_settings.cache_clear()
    to clear the cache if needed.

    Returns:
        Cached Settings instance.
    """
    return Settings()


def ensure_data_dir() -> Path:
    """Ensure the data directory exists.

    Creates the directory containing the queue database if it doesn't exist.

    Returns:
        Path to the data directory.
    """
    settings = get_settings()
    data_dir = settings.db_path.parent
    data_dir.mkdir(parents=True, exist_ok=True)
    return data_dir
