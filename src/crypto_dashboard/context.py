"""
Service context.

Holds the process-wide collaborators (caches, rate limiter, provider clients,
WebSocket client). Each one is built lazily on first access and then reused
for the lifetime of the context. The context is passed explicitly to the
boundary layer instead of living in module globals, so tests can build
isolated instances.
"""

import random
import time
from collections.abc import Callable
from functools import cached_property

import httpx
import structlog

from crypto_dashboard.clients.coingecko_client import CoinGeckoClient
from crypto_dashboard.clients.tokenmetrics_client import TokenMetricsClient
from crypto_dashboard.clients.websocket_client import ConnectFactory, WebSocketClient
from crypto_dashboard.common.concerns.cache import CacheStore
from crypto_dashboard.common.concerns.rate_limit import (
    RateLimitConfig,
    RateLimiter,
    RateLimitInfo,
)
from crypto_dashboard.config import DashboardSettings

logger = structlog.get_logger(__name__)


class ServiceContext:
    """Lazily constructed, shared request-governance collaborators."""

    def __init__(
        self,
        settings: DashboardSettings | None = None,
        *,
        clock: Callable[[], float] = time.time,
        rng: random.Random | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        ws_connect_factory: ConnectFactory | None = None,
    ):
        self.settings = settings or DashboardSettings.from_env()
        self._clock = clock
        self._rng = rng or random.Random()
        self._transport = transport
        self._ws_connect_factory = ws_connect_factory

    def _new_cache(self) -> CacheStore:
        return CacheStore(
            ttl_min=self.settings.cache_ttl_min,
            ttl_max=self.settings.cache_ttl_max,
            clock=self._clock,
            rng=self._rng,
        )

    @cached_property
    def rate_limiter(self) -> RateLimiter:
        config = RateLimitConfig(
            max_requests_per_minute=self.settings.max_requests_per_minute,
            max_monthly_calls=self.settings.max_monthly_calls,
        )
        return RateLimiter(config, clock=self._clock)

    @cached_property
    def api_client(self) -> TokenMetricsClient:
        return TokenMetricsClient(
            self.settings.tokenmetrics_api_key,
            self.settings.tokenmetrics_api_url,
            cache=self._new_cache(),
            rate_limiter=self.rate_limiter,
            timeout=self.settings.request_timeout,
            transport=self._transport,
        )

    @cached_property
    def coingecko_client(self) -> CoinGeckoClient:
        return CoinGeckoClient(
            cache=self._new_cache(),
            timeout=self.settings.request_timeout,
            transport=self._transport,
        )

    @cached_property
    def websocket_client(self) -> WebSocketClient | None:
        """None when no WebSocket URL is configured."""
        if not self.settings.is_websocket_enabled:
            logger.info("websocket_disabled", reason="WS_URL not set")
            return None
        return WebSocketClient(
            self.settings.ws_url,
            max_reconnect_attempts=self.settings.ws_max_reconnect_attempts,
            reconnect_delay=self.settings.ws_reconnect_delay,
            connect_factory=self._ws_connect_factory,
        )

    def get_rate_limit_info(self) -> RateLimitInfo:
        return self.rate_limiter.get_info()

    def clear_cache(self) -> int:
        """Clear both provider caches; returns the number of dropped entries."""
        return self.api_client.clear_cache() + self.coingecko_client.clear_cache()

    async def aclose(self) -> None:
        # only close what was actually built
        if "api_client" in self.__dict__:
            await self.api_client.aclose()
        if "coingecko_client" in self.__dict__:
            await self.coingecko_client.aclose()
        if self.__dict__.get("websocket_client") is not None:
            await self.websocket_client.disconnect()
