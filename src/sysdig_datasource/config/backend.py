"""
Immutable backend configuration.

Built once per datasource instance, either from the host's instance
settings (``name``, ``url``, ``jsonData.apiToken``) or from environment
settings, and passed to every collaborator call.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping

from sysdig_datasource.config.settings import DatasourceSettings, get_settings
from sysdig_datasource.core.errors import ConfigurationError

DEFAULT_PRODUCT = "SDC"


@dataclass(frozen=True)
class BackendConfiguration:
    """Connection details for the Sysdig API. Validated on construction."""

    url: str
    api_token: str
    name: str = "Sysdig"
    # Forward request cookies to the backend (the browser "withCredentials" flag)
    with_credentials: bool = False
    timeout: float = 30.0
    max_retries: int = 3
    product: str = DEFAULT_PRODUCT

    def __post_init__(self) -> None:
        if not self.url:
            raise ConfigurationError("Datasource URL is required", {"name": self.name})
        if not self.api_token:
            raise ConfigurationError("Sysdig API token is required", {"name": self.name})
        if self.max_retries < 1:
            raise ConfigurationError(
                "max_retries must be at least 1", {"max_retries": self.max_retries}
            )
        object.__setattr__(self, "url", self.url.rstrip("/"))

    @property
    def headers(self) -> dict[str, str]:
        return {
            "Content-Type": "application/json",
            "X-Sysdig-Product": self.product,
            "Authorization": f"Bearer {self.api_token}",
        }

    @classmethod
    def from_instance_settings(cls, instance_settings: Mapping[str, Any]) -> "BackendConfiguration":
        """Build from host instance settings (the datasource's saved JSON)."""
        json_data = instance_settings.get("jsonData") or {}
        return cls(
            url=instance_settings.get("url") or "",
            api_token=json_data.get("apiToken") or "",
            name=instance_settings.get("name") or "Sysdig",
            with_credentials=bool(instance_settings.get("withCredentials", False)),
        )

    @classmethod
    def from_settings(cls, settings: DatasourceSettings | None = None) -> "BackendConfiguration":
        settings = settings or get_settings()
        return cls(
            url=settings.url or "",
            api_token=settings.api_token or "",
            name=settings.name,
            with_credentials=settings.with_credentials,
            timeout=settings.http_timeout,
            max_retries=settings.http_max_retries,
        )
