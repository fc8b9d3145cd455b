"""Batch configuration model using pydantic-settings."""

from __future__ import annotations

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class BatchSettings(BaseSettings):
    """Batch run configuration loaded from MINTBATCH_* environment variables and .env."""

    model_config = SettingsConfigDict(
        env_prefix="MINTBATCH_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    rpc_url: str = "https://api.devnet.solana.com"
    keypair_path: str | None = None
    payer_path: str | None = None
    concurrency: int = 5
    rate_limit: int = 10
    rate_period: float = 1.0
    retries: int = 3
    retry_base_delay: float = 0.25
    retry_backoff_factor: float = 2.0
    retry_max_delay: float | None = None
    cache_file: str = "mintbatch-cache.json"
    log_level: str = "INFO"
    log_json: bool = False

    @field_validator("rpc_url")
    @classmethod
    def validate_rpc_url(cls, value: str) -> str:
        """RPC URL must be an http(s) or ws(s) endpoint."""
        if not value.startswith(("http://", "https://", "ws://", "wss://")):
            msg = "rpc_url must start with http://, https://, ws:// or wss://"
            raise ValueError(msg)
        return value

    @field_validator("concurrency")
    @classmethod
    def validate_concurrency(cls, value: int) -> int:
        """Concurrency must be between 1 and 100."""
        if value < 1 or value > 100:
            msg = "concurrency must be between 1 and 100"
            raise ValueError(msg)
        return value

    @field_validator("rate_limit")
    @classmethod
    def validate_rate_limit(cls, value: int) -> int:
        """Rate limit must admit at least one call per period."""
        if value < 1:
            msg = "rate_limit must be at least 1"
            raise ValueError(msg)
        return value

    @field_validator("rate_period", "retry_base_delay")
    @classmethod
    def validate_positive_seconds(cls, value: float) -> float:
        """Durations must be positive."""
        if value <= 0:
            msg = "durations must be greater than 0"
            raise ValueError(msg)
        return value

    @field_validator("retries")
    @classmethod
    def validate_retries(cls, value: int) -> int:
        """Retries is the total attempt count per target, between 1 and 10."""
        if value < 1 or value > 10:
            msg = "retries must be between 1 and 10"
            raise ValueError(msg)
        return value

    @field_validator("retry_backoff_factor")
    @classmethod
    def validate_backoff_factor(cls, value: float) -> float:
        """Backoff factor below 1 would shrink delays between attempts."""
        if value < 1:
            msg = "retry_backoff_factor must be at least 1"
            raise ValueError(msg)
        return value

    @field_validator("retry_max_delay")
    @classmethod
    def validate_max_delay(cls, value: float | None) -> float | None:
        """Optional cap on a single backoff delay."""
        if value is not None and value <= 0:
            msg = "retry_max_delay must be greater than 0"
            raise ValueError(msg)
        return value

    @field_validator("cache_file")
    @classmethod
    def validate_cache_file(cls, value: str) -> str:
        """Cache file path must be non-empty."""
        if not value.strip():
            msg = "cache_file must not be empty"
            raise ValueError(msg)
        return value

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, value: str) -> str:
        """Log level must be a valid Python logging level."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        upper_value = value.upper()
        if upper_value not in valid_levels:
            msg = f"log_level must be one of {', '.join(sorted(valid_levels))}"
            raise ValueError(msg)
        return upper_value
