"""
HTTP client for service-to-service lookups.
"""

from typing import Any, Dict, Optional

import httpx

from shared.circuit_breaker import CircuitBreaker, CircuitBreakerOpenException
from shared.config import BaseConfig
from shared.errors import UpstreamUnavailableError
from shared.logging import get_logger, get_request_id
from shared.retry import RetryConfig, RetryError, retry_async


class UpstreamStatusError(Exception):
    """Raised for 5xx answers so they count as failures and get retried."""

    def __init__(self, response: httpx.Response):
        super().__init__(f"Upstream answered {response.status_code}")
        self.response = response


class ServiceClient:
    """Client for communicating with a sibling service.

    Every call carries a bounded timeout, is retried on transport failures
    and 5xx answers, and runs behind a circuit breaker. Any other status
    code (including 404) is returned to the caller as a normal response.
    """

    def __init__(
        self,
        name: str,
        base_url: str,
        *,
        timeout: float = 10.0,
        retry_config: Optional[RetryConfig] = None,
        circuit_breaker: Optional[CircuitBreaker] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.name = name
        self.base_url = base_url.rstrip("/")
        self.logger = get_logger(f"{name}.client")
        self.retry_config = retry_config or RetryConfig(max_attempts=3, base_delay=0.2, max_delay=2.0)
        self.circuit_breaker = circuit_breaker or CircuitBreaker(
            failure_threshold=5,
            recovery_timeout=30.0,
            expected_exception=(httpx.TransportError, UpstreamStatusError),
            name=f"{name}_service",
        )
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=timeout,
            transport=transport,
        )

    @classmethod
    def from_config(cls, name: str, base_url: str, config: BaseConfig,
                    transport: Optional[httpx.AsyncBaseTransport] = None) -> "ServiceClient":
        """Build a client with the timeout, retry and breaker settings from ``config``."""
        return cls(
            name,
            base_url,
            timeout=config.upstream_timeout_seconds,
            retry_config=RetryConfig(
                max_attempts=config.lookup_retry_attempts,
                base_delay=config.lookup_retry_base_delay,
                max_delay=2.0,
            ),
            circuit_breaker=CircuitBreaker(
                failure_threshold=config.breaker_failure_threshold,
                recovery_timeout=config.breaker_recovery_timeout,
                expected_exception=(httpx.TransportError, UpstreamStatusError),
                name=f"{name}_service",
            ),
            transport=transport,
        )

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        await self._client.aclose()

    async def get(self, path: str, headers: Optional[Dict[str, str]] = None) -> httpx.Response:
        """GET ``path`` and return the response.

        Raises ``UpstreamUnavailableError`` when the service cannot produce a
        non-5xx answer within the retry budget.
        """
        request_headers = dict(headers or {})
        request_id = get_request_id()
        if request_id:
            request_headers.setdefault("X-Request-ID", request_id)

        async def _attempt() -> httpx.Response:
            response = await self._client.get(path, headers=request_headers)
            if response.status_code >= 500:
                raise UpstreamStatusError(response)
            return response

        try:
            return await retry_async(
                lambda: self.circuit_breaker.call(_attempt),
                exceptions=(httpx.TransportError, UpstreamStatusError),
                config=self.retry_config,
                name=f"{self.name}.get",
            )
        except RetryError as exc:
            self.logger.error(
                "Service lookup failed",
                path=path,
                attempts=exc.attempts,
                error=str(exc.last_exception),
            )
            raise UpstreamUnavailableError(self.name, str(exc.last_exception)) from exc
        except CircuitBreakerOpenException as exc:
            self.logger.warning("Service lookup short-circuited", path=path)
            raise UpstreamUnavailableError(self.name, str(exc)) from exc

    async def get_json(self, path: str, headers: Optional[Dict[str, str]] = None) -> Any:
        """GET ``path`` and decode a successful JSON body.

        Returns ``None`` for 404 so callers can tell "absent" apart from
        "unreachable".
        """
        response = await self.get(path, headers=headers)
        if response.status_code == 404:
            return None
        if response.status_code >= 400:
            raise UpstreamUnavailableError(self.name, f"unexpected status {response.status_code}")
        try:
            return response.json()
        except ValueError as exc:
            raise UpstreamUnavailableError(self.name, "malformed JSON body") from exc
