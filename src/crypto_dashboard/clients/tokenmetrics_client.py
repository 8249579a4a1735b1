"""
TokenMetrics API 클라이언트

API 키(x-api-key 헤더)가 필요한 주 데이터 제공자 클라이언트입니다.
캐시와 레이트 리미터(분당 + 월간)를 모두 적용합니다.

API 키가 없어도 인스턴스는 생성되며 "미설정" 상태로 동작합니다.
이 상태에서 `request()`는 네트워크 시도 없이 `NotConfiguredError`를 발생시켜
호출자가 대체 데이터 소스로 전환할 수 있게 합니다.
"""

from collections.abc import Mapping
from typing import Any

import httpx
import structlog

from crypto_dashboard.clients.base_client import DEFAULT_TIMEOUT, BaseHTTPClient
from crypto_dashboard.common.concerns.cache import CacheStore
from crypto_dashboard.common.concerns.rate_limit import RateLimiter, RateLimitInfo
from crypto_dashboard.common.exceptions import NotConfiguredError

logger = structlog.get_logger(__name__)

DEFAULT_BASE_URL = "https://api.tokenmetrics.com/v2"


class TokenMetricsClient(BaseHTTPClient):
    """
    TokenMetrics REST API 클라이언트

    주요 기능:
    - 캐시 우선 조회 (캐시 적중은 쿼터를 소모하지 않음)
    - 분당/월간 레이트 리밋 적용
    - API 키 미설정 상태 감지
    """

    api_name = "TokenMetrics"

    def __init__(
        self,
        api_key: str | None = None,
        base_url: str = DEFAULT_BASE_URL,
        *,
        cache: CacheStore | None = None,
        rate_limiter: RateLimiter | None = None,
        timeout: float = DEFAULT_TIMEOUT,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """
        TokenMetrics 클라이언트 초기화

        Args:
            api_key: TokenMetrics API 키 (빈 값이면 미설정 상태)
            base_url: API 기본 URL
            cache: 응답 캐시 (None이면 기본 설정으로 생성)
            rate_limiter: 레이트 리미터 (None이면 기본 설정으로 생성)
            timeout: 요청 타임아웃 (초)
            transport: httpx 트랜스포트 (테스트용 주입)
        """
        self.api_key = api_key or ""
        headers = {"x-api-key": self.api_key} if self.api_key else {}

        super().__init__(
            base_url,
            cache=cache,
            rate_limiter=rate_limiter or RateLimiter(),
            headers=headers,
            timeout=timeout,
            transport=transport,
        )

        if self.is_configured:
            logger.info("tokenmetrics_client_initialized", base_url=base_url)
        else:
            logger.info("tokenmetrics_client_not_configured", mode="mock_data")

    @property
    def is_configured(self) -> bool:
        """API 키 설정 여부"""
        return bool(self.api_key)

    async def request(
        self, endpoint: str, params: Mapping[str, Any] | None = None
    ) -> Any:
        """
        TokenMetrics 엔드포인트 조회

        Args:
            endpoint: API 경로 (예: "/tokens")
            params: 쿼리 파라미터

        Returns:
            응답 JSON 페이로드

        Raises:
            NotConfiguredError: API 키 미설정
            RateLimitExceeded: 로컬 레이트 리밋 초과
            TransportError: 업스트림 HTTP 실패
        """
        if not self.is_configured:
            raise NotConfiguredError(
                "API client not initialized. TOKENMETRICS_API_KEY is required for real API calls.",
                setting_name="TOKENMETRICS_API_KEY",
            )

        response = await self.fetch(endpoint, params)
        return response.data

    def get_rate_limit_info(self) -> RateLimitInfo:
        """현재 레이트 리밋 카운터 조회 (미설정 상태에서도 동작)"""
        return self.rate_limiter.get_info()
