from __future__ import annotations

from dataclasses import dataclass
from typing import Any

import httpx
import structlog
from circuitbreaker import CircuitBreaker
from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from sysdig_datasource.config.backend import BackendConfiguration

logger = structlog.get_logger()

DEFAULT_USER_AGENT = "sysdig-datasource/0.1.0"


class RetryableHTTPError(Exception):
    """HTTP errors that should be retried."""


class PermanentHTTPError(Exception):
    """HTTP errors that should not be retried."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


def is_retryable_status(status_code: int) -> bool:
    """Determine if HTTP status code is retryable."""
    return status_code in (408, 429, 500, 502, 503, 504)


# One breaker per backend URL; failures on one backend never open another's circuit
_BREAKERS: dict[str, CircuitBreaker] = {}


def circuit_breaker_for(base_url: str) -> CircuitBreaker:
    breaker = _BREAKERS.get(base_url)
    if breaker is None:
        breaker = CircuitBreaker(
            failure_threshold=5,
            recovery_timeout=60,
            expected_exception=RetryableHTTPError,
            name=f"sysdig:{base_url}",
        )
        _BREAKERS[base_url] = breaker
    return breaker


def reset_circuit_breakers() -> None:
    _BREAKERS.clear()


@dataclass(frozen=True)
class ApiRequest:
    """A request relative to the datasource base URL, e.g. ``api/login``."""

    url: str
    method: str = "GET"
    params: dict[str, Any] | None = None
    data: Any = None
    # Sent only when the backend configuration has with_credentials set
    cookies: dict[str, str] | None = None


class SysdigApiClient:
    """Sysdig API client with retry logic and circuit breaker."""

    def __init__(
        self,
        config: BackendConfiguration,
        *,
        backoff_factor: float = 2.0,
        user_agent: str = DEFAULT_USER_AGENT,
    ) -> None:
        self._config = config
        self._base_url = config.url
        self._timeout = config.timeout
        self._max_retries = config.max_retries
        self._backoff_factor = backoff_factor
        self._user_agent = user_agent
        self._breaker = circuit_breaker_for(config.url)

    def _headers(self) -> dict[str, str]:
        headers = dict(self._config.headers)
        headers.setdefault("User-Agent", self._user_agent)
        return headers

    def _url(self, path: str) -> str:
        return f"{self._base_url}/{path.lstrip('/')}"

    async def send(self, request: ApiRequest) -> httpx.Response:
        """Execute a request, retrying transient failures."""
        guarded = self._breaker.decorate(self._send_with_retry)
        return await guarded(request)

    async def _send_with_retry(self, request: ApiRequest) -> httpx.Response:
        async for attempt in AsyncRetrying(
            retry=retry_if_exception_type(RetryableHTTPError),
            stop=stop_after_attempt(self._max_retries),
            wait=wait_exponential(multiplier=self._backoff_factor, max=30),
            reraise=True,
        ):
            with attempt:
                return await self._request(request)
        raise RuntimeError("retry loop exited without a result")  # pragma: no cover

    async def _request(self, request: ApiRequest) -> httpx.Response:
        url = self._url(request.url)
        method = request.method.upper()
        cookies = request.cookies if self._config.with_credentials else None
        if request.cookies and cookies is None:
            logger.debug("request_cookies_dropped", method=method, url=url)

        try:
            async with httpx.AsyncClient(timeout=self._timeout, cookies=cookies) as client:
                response = await client.request(
                    method,
                    url,
                    params=request.params,
                    json=request.data,
                    headers=self._headers(),
                )

                if is_retryable_status(response.status_code):
                    logger.warning(
                        "http_retryable_error",
                        status=response.status_code,
                        method=method,
                        url=url,
                    )
                    raise RetryableHTTPError(f"HTTP {response.status_code}: {response.text}")

                response.raise_for_status()
                return response

        except httpx.HTTPStatusError as exc:
            logger.error(
                "http_permanent_error",
                status=exc.response.status_code,
                method=method,
                url=url,
                error=str(exc),
            )
            raise PermanentHTTPError(str(exc), exc.response.status_code) from exc
        except (httpx.TimeoutException, httpx.ConnectError, httpx.ReadError) as exc:
            logger.warning("http_network_error", method=method, url=url, error=str(exc))
            raise RetryableHTTPError(str(exc)) from exc
