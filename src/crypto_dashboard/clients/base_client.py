"""
Generic async HTTP client wrapper.

`BaseHTTPClient` composes a `CacheStore` and, optionally, a `RateLimiter`
around a single outbound GET per request:

1. cache lookup (a hit never touches the limiter or the network)
2. admission check when a limiter is attached
3. record the attempt against the limiter at issue time, whatever its outcome
4. GET `base_url + endpoint` with a fixed timeout
5. cache and return the JSON payload, or raise `TransportError`

Failures are never cached and never retried here.
"""

from collections.abc import Mapping
from enum import Enum
from typing import Any

import httpx
import structlog
from pydantic import BaseModel

from crypto_dashboard.common.concerns.cache import CacheStore, make_cache_key
from crypto_dashboard.common.concerns.rate_limit import RateLimiter, RateLimitInfo
from crypto_dashboard.common.exceptions import (
    RateLimitExceeded,
    RateLimitReason,
    TransportError,
)

logger = structlog.get_logger(__name__)

DEFAULT_TIMEOUT = 10.0


class CacheStatus(str, Enum):
    HIT = "HIT"
    MISS = "MISS"


class ClientResponse(BaseModel):
    """Payload plus whether it was served from cache."""

    data: Any
    cache_status: CacheStatus


class BaseHTTPClient:
    """Cache-first, optionally rate-limited async GET client."""

    api_name = "http"

    def __init__(
        self,
        base_url: str,
        *,
        cache: CacheStore | None = None,
        rate_limiter: RateLimiter | None = None,
        headers: Mapping[str, str] | None = None,
        timeout: float = DEFAULT_TIMEOUT,
        cache_key_prefix: str = "",
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = base_url
        self.cache = cache or CacheStore()
        self.rate_limiter = rate_limiter
        self.timeout = timeout
        self.cache_key_prefix = cache_key_prefix
        self._client = httpx.AsyncClient(
            base_url=base_url,
            headers={"Content-Type": "application/json", **dict(headers or {})},
            timeout=httpx.Timeout(timeout),
            transport=transport,
        )

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    def cache_key(self, endpoint: str, params: Mapping[str, Any] | None = None) -> str:
        return make_cache_key(endpoint, params, prefix=self.cache_key_prefix)

    def _check_rate_limit(self) -> None:
        if self.rate_limiter is None:
            return

        decision = self.rate_limiter.check_admission()
        if decision.allowed:
            return

        info = self.rate_limiter.get_info()
        if decision.reason is RateLimitReason.MONTHLY:
            limit, current = info.max_monthly, info.monthly_calls
        else:
            limit, current = info.max_per_minute, info.requests_last_minute
        raise RateLimitExceeded(
            decision.message or "Rate limit exceeded",
            reason=decision.reason,
            limit=limit,
            current=current,
        )

    async def _send(self, endpoint: str, params: Mapping[str, Any] | None) -> httpx.Response:
        # recorded at issue time; counts against quota whatever the outcome
        if self.rate_limiter is not None:
            self.rate_limiter.record_request()
        response = await self._client.get(endpoint, params=dict(params or {}))
        response.raise_for_status()
        return response

    async def _fetch(self, endpoint: str, params: Mapping[str, Any] | None) -> Any:
        try:
            response = await self._send(endpoint, params)
        except httpx.HTTPStatusError as e:
            status_code = e.response.status_code
            logger.warning(
                "upstream_request_failed",
                api_name=self.api_name,
                endpoint=endpoint,
                status_code=status_code,
            )
            raise TransportError(
                f"{self.api_name} API Error: {status_code} - {e}",
                api_name=self.api_name,
                status_code=status_code,
            ) from e
        except httpx.HTTPError as e:
            logger.warning(
                "upstream_request_failed",
                api_name=self.api_name,
                endpoint=endpoint,
                error_type=type(e).__name__,
                error=str(e),
            )
            raise TransportError(
                f"{self.api_name} API Error: None - {str(e) or type(e).__name__}",
                api_name=self.api_name,
            ) from e

        try:
            return response.json()
        except ValueError as e:
            raise TransportError(
                f"{self.api_name} API Error: invalid JSON response - {e}",
                api_name=self.api_name,
                status_code=response.status_code,
                retryable=False,
            ) from e

    async def fetch(
        self, endpoint: str, params: Mapping[str, Any] | None = None
    ) -> ClientResponse:
        """Cache-first GET returning the payload and its cache status."""
        key = self.cache_key(endpoint, params)

        cached = self.cache.get(key)
        if cached is not None:
            return ClientResponse(data=cached, cache_status=CacheStatus.HIT)

        self._check_rate_limit()

        payload = await self._fetch(endpoint, params)
        self.cache.put(key, payload)

        logger.debug("upstream_request_succeeded", api_name=self.api_name, endpoint=endpoint)
        return ClientResponse(data=payload, cache_status=CacheStatus.MISS)

    def clear_cache(self) -> int:
        return self.cache.clear()

    def get_rate_limit_info(self) -> RateLimitInfo | None:
        if self.rate_limiter is None:
            return None
        return self.rate_limiter.get_info()
