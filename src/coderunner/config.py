"""Configuration with pydantic-settings.

Every field has a default so the CLI works against a local service with no
environment at all. Override via environment variables or a `.env` file:

    CODERUNNER_API_URL=https://runner.example.com
    CODERUNNER_POLL_INTERVAL=3
    LOG_LEVEL=DEBUG
"""

from functools import lru_cache
from typing import Literal

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Code runner client settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    # === Remote service ===

    api_url: str = Field(
        default="http://localhost:8000",
        validation_alias=AliasChoices("CODERUNNER_API_URL", "api_url"),
        description="Base URL of the code generation/deployment service",
        examples=["https://runner.example.com"],
    )
    poll_interval: float = Field(
        default=3.0,
        gt=0,
        validation_alias=AliasChoices("CODERUNNER_POLL_INTERVAL", "poll_interval"),
        description="Seconds between deployment status fetches",
    )
    request_timeout: float = Field(
        default=30.0,
        gt=0,
        validation_alias=AliasChoices("CODERUNNER_REQUEST_TIMEOUT", "request_timeout"),
        description="HTTP request timeout in seconds",
    )

    # === Logging ===

    service_name: str = Field(
        default="coderunner",
        description="Service name for structured logging",
    )
    log_format: Literal["json", "console"] = Field(
        default="console",
        description="Log output format",
    )
    log_level: str = Field(
        default="WARNING",
        description="Log level (DEBUG, INFO, WARNING, ERROR)",
    )

    @field_validator("api_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Ensure log level is valid."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        upper_v = v.upper()
        if upper_v not in valid_levels:
            raise ValueError(f"Invalid log level: {v}. Must be one of {valid_levels}")
        return upper_v


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance.

    Validates env vars on first call.
    Raises ValidationError if any value is malformed.
    """
    return Settings()
