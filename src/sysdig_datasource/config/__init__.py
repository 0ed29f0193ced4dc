"""
Datasource configuration.

Provides:
- Pydantic-based settings (environment variables, .env files)
- The immutable backend configuration handed to every collaborator service
"""

from sysdig_datasource.config.backend import (
    DEFAULT_PRODUCT,
    BackendConfiguration,
)
from sysdig_datasource.config.settings import DatasourceSettings, get_settings

__all__ = [
    "DEFAULT_PRODUCT",
    "BackendConfiguration",
    "DatasourceSettings",
    "get_settings",
]
