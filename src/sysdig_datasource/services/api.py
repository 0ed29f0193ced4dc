"""Transport entry point: one call per request, no state between calls."""

from __future__ import annotations

from typing import Any, Mapping

import httpx

from sysdig_datasource.clients.base import ApiRequest, SysdigApiClient
from sysdig_datasource.config.backend import BackendConfiguration


def _as_request(request: ApiRequest | Mapping[str, Any]) -> ApiRequest:
    if isinstance(request, ApiRequest):
        return request
    return ApiRequest(
        url=request["url"],
        method=request.get("method", "GET"),
        params=request.get("params"),
        data=request.get("data"),
        cookies=request.get("cookies"),
    )


async def send(
    config: BackendConfiguration,
    request: ApiRequest | Mapping[str, Any],
) -> httpx.Response:
    """Send a request to the Sysdig API described by ``config``.

    Accepts an ``ApiRequest`` or the host's plain ``{"url", "method", "data"}``
    descriptor. Cookies on the request reach the backend only when the
    configuration has ``with_credentials`` set. Transport failures are raised
    to the caller.
    """
    client = SysdigApiClient(config)
    return await client.send(_as_request(request))


async def send_json(
    config: BackendConfiguration,
    request: ApiRequest | Mapping[str, Any],
) -> Any:
    response = await send(config, request)
    return response.json() if response.content else {}
