"""Configuration management for the reservation core."""

from functools import lru_cache
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Remote service
    api_url: str = Field(
        default="http://localhost:3000/api/v1",
        description="Base URL of the Refood REST API",
    )
    read_timeout: float = Field(default=10.0, description="Timeout for reads in seconds")
    write_timeout: float = Field(default=30.0, description="Timeout for writes in seconds")
    max_retries: int = Field(default=3, ge=1, description="Max attempts for idempotent reads")
    retry_delay: float = Field(default=0.5, description="Initial retry delay in seconds")

    # Redis Configuration
    redis_url: str = Field(default="redis://localhost:6379/0", description="Redis URL")
    center_id_cache_key: str = Field(
        default="user_centro_id", description="Key holding the cached acting center id"
    )

    # API Configuration
    api_port: int = Field(default=8000, description="API server port")
    api_host: str = Field(default="0.0.0.0", description="API server host")

    # Environment
    environment: Literal["development", "staging", "production"] = Field(
        default="development"
    )

    # Logging
    log_level: str = Field(default="INFO", description="Logging level")
    log_format: Literal["json", "text"] = Field(default="json", description="Log format")

    # Cache Settings
    cache_freshness_seconds: float = Field(
        default=300.0, description="Max age of a cached collection read"
    )
    session_registry_size: int = Field(
        default=1024, ge=1, description="Sessions kept in process with their caches"
    )

    # Fallback Settings
    fallback_generic_update: bool = Field(
        default=True, description="Allow the generic update endpoint as a fallback path"
    )
    fallback_accept_lagging: bool = Field(
        default=True,
        description="Accept a remote read still in a source state as fallback success",
    )

    # Notification Settings
    notifications_in_background: bool = Field(
        default=False, description="Schedule post-commit notifications as tasks"
    )
    poll_interval_seconds: float = Field(
        default=30.0, description="Unread notification polling interval"
    )
    poll_max_retries: int = Field(
        default=5, description="Consecutive polling failures before degraded mode"
    )
    unread_count_cache_seconds: float = Field(
        default=10.0, description="How long an unread count is reused"
    )

    # Lot Settings
    near_expiry_days: int = Field(
        default=2, description="Days before expiry at which a lot is near expiry"
    )

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level is valid."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        v_upper = v.upper()
        if v_upper not in valid_levels:
            raise ValueError(f"Log level must be one of {valid_levels}")
        return v_upper


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
