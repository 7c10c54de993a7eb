"""
Configuration Management
========================

Client configuration using Pydantic Settings with validation,
environment variable loading, and type safety.

Every setting can be supplied through ``LANEFUL_*`` environment
variables or a ``.env`` file; explicit keyword arguments win.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Optional

from pydantic import Field, ValidationError, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_USER_AGENT = "laneful-python/1.0.0"


class RetryPolicy(BaseSettings):
    """Exponential backoff configuration for the send request."""

    model_config = SettingsConfigDict(
        env_prefix="LANEFUL_RETRY_",
        extra="ignore",
        frozen=True
    )

    max_retries: int = Field(
        default=3,
        ge=0,
        description="Retries after the first attempt"
    )
    base_delay: float = Field(
        default=1.0,
        ge=0,
        description="Delay before the first retry, in seconds"
    )
    max_delay: float = Field(
        default=10.0,
        ge=0,
        description="Upper bound for a single backoff delay, in seconds"
    )
    backoff_multiplier: float = Field(
        default=2.0,
        ge=1,
        description="Growth factor applied per attempt"
    )
    jitter: float = Field(
        default=0.1,
        ge=0,
        le=1,
        description="Fraction of the delay added as random jitter"
    )

    @property
    def max_attempts(self) -> int:
        """Total number of physical attempts."""
        return self.max_retries + 1


class RateLimitPolicy(BaseSettings):
    """Fixed-window client-side rate limit."""

    model_config = SettingsConfigDict(
        env_prefix="LANEFUL_RATE_LIMIT_",
        extra="ignore",
        frozen=True
    )

    max_requests: int = Field(
        ...,
        ge=1,
        description="Requests allowed per window"
    )
    window: float = Field(
        default=60.0,
        gt=0,
        description="Window length, in seconds"
    )


class LanefulSettings(BaseSettings):
    """Main client settings."""

    model_config = SettingsConfigDict(
        env_prefix="LANEFUL_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False
    )

    base_url: str = Field(
        default="",
        description="Base URL of the Laneful endpoint"
    )
    auth_token: str = Field(
        default="",
        description="Bearer token for the API"
    )
    timeout: float = Field(
        default=30.0,
        gt=0,
        description="Per-attempt request timeout, in seconds"
    )
    verify_ssl: bool = Field(
        default=True,
        description="Verify TLS certificates"
    )
    user_agent: str = Field(
        default=DEFAULT_USER_AGENT,
        description="User-Agent header value"
    )
    webhook_secret: Optional[str] = Field(
        default=None,
        description="Shared secret for webhook signatures"
    )
    log_level: str = Field(
        default="INFO",
        description="Level used by configure_logging"
    )

    # Nested settings
    retry: RetryPolicy = Field(default_factory=RetryPolicy)
    rate_limit: Optional[RateLimitPolicy] = None

    @field_validator("base_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        """Normalize the base URL."""
        return v.strip().rstrip("/")

    @field_validator("webhook_secret", mode="before")
    @classmethod
    def empty_secret_is_none(cls, v: Optional[str]) -> Optional[str]:
        """Treat an empty secret as unset."""
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @model_validator(mode="after")
    def load_rate_limit(self) -> "LanefulSettings":
        """Enable rate limiting when LANEFUL_RATE_LIMIT_MAX_REQUESTS is set."""
        if self.rate_limit is None:
            try:
                self.rate_limit = RateLimitPolicy()
            except ValidationError as e:
                if not all(
                    error["type"] == "missing" and tuple(error["loc"]) == ("max_requests",)
                    for error in e.errors()
                ):
                    raise ValueError(f"Invalid rate limit configuration: {e}") from e
        return self


@lru_cache()
def get_settings() -> LanefulSettings:
    """
    Get cached client settings.

    Uses LRU cache to ensure settings are loaded only once
    and reused across the process.

    Returns:
        LanefulSettings: The settings instance.
    """
    return LanefulSettings()
