"""
Error hierarchy for the Sysdig datasource adapter.

Errors raised here propagate to the host (dashboard UI), which is where
failure state is rendered. The adapter itself never swallows them.

- ConfigurationError: missing/invalid URL or API token
- ProviderError: the Sysdig backend answered with an error payload
- ValidationError: a catalog query or parameter could not be understood
- TemplateError: a single-value template field resolved to several values
"""

from __future__ import annotations

from typing import Any


class DatasourceError(Exception):
    """Base exception for datasource adapter errors."""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ConfigurationError(DatasourceError):
    """Raised for configuration-related errors."""


class ProviderError(DatasourceError):
    """Raised when the metrics backend reports a failure."""


class ValidationError(DatasourceError):
    """Raised for validation failures."""


class TemplateError(ValidationError):
    """Raised when template substitution cannot produce a single value."""


def format_error_message(error: DatasourceError) -> str:
    """Format an error message for display in the host UI."""
    msg = error.message
    if error.details:
        detail_str = ", ".join(f"{k}={v}" for k, v in error.details.items())
        msg = f"{msg} ({detail_str})"
    return msg
