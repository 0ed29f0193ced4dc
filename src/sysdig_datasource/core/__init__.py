"""Core primitives shared across the datasource adapter."""

from sysdig_datasource.core.errors import (
    ConfigurationError,
    DatasourceError,
    ProviderError,
    TemplateError,
    ValidationError,
)

__all__ = [
    "ConfigurationError",
    "DatasourceError",
    "ProviderError",
    "TemplateError",
    "ValidationError",
]
