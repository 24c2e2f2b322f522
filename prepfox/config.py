"""Configuration management using pydantic-settings."""

from pathlib import Path
from typing import Self

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Retry
    retry_max_attempts: int = Field(default=3, ge=1, description="Total attempts including the first")
    retry_base_delay_ms: float = Field(default=1000.0, ge=0, description="Delay before the first retry")
    retry_max_delay_ms: float = Field(default=5000.0, ge=0, description="Ceiling on computed retry delay")
    retry_backoff_multiplier: float = Field(default=2.0, gt=1, description="Growth factor per retry")

    # Circuit breaker
    circuit_failure_threshold: int = Field(default=5, ge=1, description="Consecutive failures before opening")
    circuit_reset_timeout_s: float = Field(default=300.0, ge=1, description="Seconds before an open circuit resets")

    # HTTP
    http_timeout_s: float = Field(default=30.0, gt=0, description="Total timeout for outbound HTTP calls")

    # Logging
    log_level: str = Field(default="INFO", pattern=r"^(DEBUG|INFO|WARNING|ERROR|CRITICAL)$")
    log_dir: Path = Field(default=Path("./logs"), description="Directory for log files")

    @model_validator(mode="after")
    def check_retry_delay_window(self) -> Self:
        if self.retry_max_delay_ms < self.retry_base_delay_ms:
            raise ValueError(
                f"retry_max_delay_ms ({self.retry_max_delay_ms}) must not be below "
                f"retry_base_delay_ms ({self.retry_base_delay_ms})"
            )
        return self
