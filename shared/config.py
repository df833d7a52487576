"""
Shared configuration management for the Asset Manager client.
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class BaseConfig(BaseSettings):
    """Base configuration class with common settings."""

    model_config = SettingsConfigDict(
        env_prefix="ASSET_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore"
    )

    # Environment
    env: str = Field(default="local")
    log_level: str = Field(default="info")
    log_json: bool = Field(default=True)

    # Observability
    enable_metrics: bool = Field(default=True)


class ClientConfig(BaseConfig):
    """API client configuration."""

    service_name: str = Field(default="asset_client")

    # Transport
    api_base_url: str = Field(default="http://localhost:3000/api")
    request_timeout: float = Field(default=30.0, gt=0)

    # Response cache
    cache_default_ttl: float = Field(default=300.0, ge=0)
    cache_coalesce_in_flight: bool = Field(default=False)


def get_config(**overrides) -> ClientConfig:
    """Get client configuration, environment first, keyword overrides last."""
    return ClientConfig(**overrides)
