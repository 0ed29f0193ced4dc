from sysdig_datasource.clients.base import (
    ApiRequest,
    PermanentHTTPError,
    RetryableHTTPError,
    SysdigApiClient,
)

__all__ = ["ApiRequest", "PermanentHTTPError", "RetryableHTTPError", "SysdigApiClient"]
