"""
HTTP / WebSocket clients.

- BaseHTTPClient: cache-first async GET client with optional rate limiting
- TokenMetricsClient: keyed provider (cache + rate limiter)
- CoinGeckoClient: keyless provider (cache only, reports HIT/MISS)
- WebSocketClient: reconnecting topic-based subscriber client
"""

from crypto_dashboard.clients.base_client import (
    BaseHTTPClient,
    CacheStatus,
    ClientResponse,
)
from crypto_dashboard.clients.coingecko_client import CoinGeckoClient
from crypto_dashboard.clients.tokenmetrics_client import TokenMetricsClient
from crypto_dashboard.clients.websocket_client import (
    ConnectionState,
    Subscription,
    WebSocketClient,
)

__all__ = [
    "BaseHTTPClient",
    "CacheStatus",
    "ClientResponse",
    "CoinGeckoClient",
    "TokenMetricsClient",
    "ConnectionState",
    "Subscription",
    "WebSocketClient",
]
