"""
Datasource settings using Pydantic.

Provides environment-based configuration loading with SYSDIG_ prefix.
"""

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class DatasourceSettings(BaseSettings):
    """Datasource settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="SYSDIG_",
        extra="ignore",
    )

    # Instance
    name: str = "Sysdig"
    url: str | None = None
    api_token: str | None = None
    with_credentials: bool = False

    log_level: str = "INFO"

    # HTTP client settings
    http_timeout: float = 30.0
    http_max_retries: int = 3


@lru_cache
def get_settings() -> DatasourceSettings:
    """Get cached settings instance."""
    return DatasourceSettings()
