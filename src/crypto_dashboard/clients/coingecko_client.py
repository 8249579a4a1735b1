"""
CoinGecko API 클라이언트

무료 공개 API (API 키 불필요, https://www.coingecko.com/en/api).
캐시만 적용하며 로컬 레이트 리밋은 두지 않습니다.
"""

from collections.abc import Mapping
from typing import Any

import httpx
import structlog

from crypto_dashboard.clients.base_client import (
    DEFAULT_TIMEOUT,
    BaseHTTPClient,
    ClientResponse,
)
from crypto_dashboard.common.concerns.cache import CacheStore

logger = structlog.get_logger(__name__)

BASE_URL = "https://api.coingecko.com/api/v3"


class CoinGeckoClient(BaseHTTPClient):
    """CoinGecko REST API 클라이언트 (캐시 상태 HIT/MISS 함께 반환)"""

    api_name = "CoinGecko"

    def __init__(
        self,
        *,
        cache: CacheStore | None = None,
        timeout: float = DEFAULT_TIMEOUT,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        super().__init__(
            BASE_URL,
            cache=cache,
            timeout=timeout,
            cache_key_prefix="coingecko:",
            transport=transport,
        )
        logger.info("coingecko_client_initialized", tier="free")

    async def request(
        self, endpoint: str, params: Mapping[str, Any] | None = None
    ) -> ClientResponse:
        """엔드포인트 조회. `ClientResponse(data, cache_status)` 반환."""
        return await self.fetch(endpoint, params)

    async def get_coin_markets(
        self, vs_currency: str = "usd", per_page: int = 10, page: int = 1
    ) -> ClientResponse:
        """시가총액 상위 코인 시세 (/coins/markets)"""
        return await self.request(
            "/coins/markets",
            {
                "vs_currency": vs_currency,
                "order": "market_cap_desc",
                "per_page": per_page,
                "page": page,
            },
        )
