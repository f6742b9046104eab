"""
Shared configuration management for the Observer Conditions layer.
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class BaseConfig(BaseSettings):
    """Base configuration class with common settings."""

    model_config = SettingsConfigDict(
        env_prefix="OBSERVERS_",
        env_file=".env",
        case_sensitive=False,
        extra="allow"
    )

    # Environment
    env: str = Field(default="local")
    log_level: str = Field(default="info")


class ObserversConfig(BaseConfig):
    """Observer registry configuration."""

    service_name: str = "observers"

    # A failed condition evaluation aborts the whole lookup when set;
    # otherwise the observer is skipped and the error is reported.
    fail_fast: bool = Field(default=True)

    # Metrics
    metrics_enabled: bool = Field(default=True)


def get_config(**overrides) -> ObserversConfig:
    """Get configuration for the observer registry."""
    return ObserversConfig(**overrides)
