"""
대시보드 데이터 서비스

요청 거버넌스 계층(클라이언트 + 캐시 + 레이트 리미터)을 호출해 지수/지표 데이터를
만들어 주는 경계 계층입니다. 데이터 소스 우선순위:

    TokenMetrics (API 키 필요) -> CoinGecko (지수 목록만) -> mock 데이터

거버넌스 계층의 예외(`NotConfiguredError`, `RateLimitExceeded`, `TransportError`)는
여기서 모두 잡아 다음 데이터 소스로 넘어가는 신호로 사용합니다.
"""

import random
from datetime import UTC, datetime
from typing import Any

import structlog
from pydantic import ValidationError

from crypto_dashboard.common.exceptions import DashboardError
from crypto_dashboard.context import ServiceContext
from crypto_dashboard.dashboard_server.mock_data import (
    generate_index_series,
    generate_indicator_series,
    generate_mock_indicators,
    generate_mock_indices,
)
from crypto_dashboard.dashboard_server.models import (
    Index,
    IndexDetail,
    Indicator,
    IndicatorDetail,
)

logger = structlog.get_logger(__name__)

MAX_ITEMS = 10
MOCK_MODE_NOTE = "Using mock data mode - rate limits not tracked"


def _now_iso() -> str:
    return datetime.now(UTC).isoformat()


def _first(row: dict[str, Any], *keys: str, default: Any = None) -> Any:
    """대문자/소문자 필드명이 섞인 응답에서 첫 번째 유효 값 선택"""
    for key in keys:
        value = row.get(key)
        if value:
            return value
    return default


def token_to_index(token: dict[str, Any], position: int) -> Index:
    """TokenMetrics /tokens 행 -> Index"""
    price = _first(token, "CURRENT_PRICE", "current_price", default=0)
    change_percent = _first(
        token,
        "PRICE_CHANGE_PERCENTAGE_24H_IN_CURRENCY",
        "price_change_percentage_24h_in_currency",
        default=0,
    )
    symbol = _first(token, "TOKEN_SYMBOL", "token_symbol")

    return Index(
        id=(symbol or f"token-{position}").lower(),
        name=_first(token, "TOKEN_NAME", "token_name", "TOKEN_SYMBOL", default="Unknown Token"),
        symbol=symbol or "N/A",
        value=price,
        change_24h=price * (change_percent / 100),
        change_percent_24h=change_percent,
    )


def trading_signal_to_indicator(row: dict[str, Any], position: int) -> Indicator:
    """TokenMetrics /trading-signals 행 -> Indicator (1=매수, -1=매도, 그 외 중립)"""
    signal_value = _first(row, "TRADING_SIGNAL", "trading_signal", default=0)
    if signal_value == 1:
        signal = "bullish"
    elif signal_value == -1:
        signal = "bearish"
    else:
        signal = "neutral"

    symbol = _first(row, "TOKEN_SYMBOL", "token_symbol")
    token_name = _first(row, "TOKEN_NAME", "token_name", default="Trading Signal")

    return Indicator(
        id=(symbol or f"signal-{position}").lower(),
        name=f"{token_name} - {symbol or ''}",
        category="Trading Signal",
        value=_first(row, "TM_TRADER_GRADE", "tm_trader_grade", default=signal_value),
        signal=signal,
        timestamp=str(_first(row, "DATE", "date", default=_now_iso())),
    )


def coin_market_to_index(coin: dict[str, Any]) -> Index:
    """CoinGecko /coins/markets 행 -> Index"""
    symbol = str(coin.get("symbol") or "n/a")
    return Index(
        id=str(coin.get("id") or symbol.lower()),
        name=coin.get("name") or symbol.upper(),
        symbol=symbol.upper(),
        value=coin.get("current_price") or 0,
        change_24h=coin.get("price_change_24h") or 0,
        change_percent_24h=coin.get("price_change_percentage_24h") or 0,
    )


def _rows(response: Any) -> list[dict[str, Any]] | None:
    """{success: true, data: [...]} 형태 응답에서 행 목록 추출"""
    if isinstance(response, dict) and response.get("success") and isinstance(
        response.get("data"), list
    ):
        return response["data"]
    return None


class DashboardService:
    """지수/지표 조회 서비스 (외부 API 우선, 실패 시 mock 데이터)"""

    def __init__(self, context: ServiceContext, rng: random.Random | None = None):
        self.context = context
        self.rng = rng or random.Random()

    # === 외부 API 조회 헬퍼 ===

    async def _api_request(self, endpoint: str, params: dict[str, Any] | None = None) -> Any:
        """TokenMetrics 호출. 실패 시 None (fallback 신호)."""
        try:
            logger.info("api_request_attempt", endpoint=endpoint)
            return await self.context.api_client.request(endpoint, params)
        except DashboardError as e:
            logger.info(
                "api_request_fallback",
                endpoint=endpoint,
                error_code=e.error_code,
                error=e.message,
            )
            return None

    async def _api_index_list(self) -> list[Index] | None:
        rows = _rows(await self._api_request("/tokens"))
        if rows is None:
            return None
        try:
            return [token_to_index(row, i) for i, row in enumerate(rows[:MAX_ITEMS])]
        except (ValidationError, TypeError) as e:
            logger.warning("api_response_invalid", endpoint="/tokens", error=str(e))
            return None

    async def _coingecko_index_list(self) -> tuple[list[Index], str] | None:
        try:
            response = await self.context.coingecko_client.get_coin_markets(per_page=MAX_ITEMS)
        except DashboardError as e:
            logger.info("coingecko_request_fallback", error=e.message)
            return None

        if not isinstance(response.data, list):
            logger.warning("coingecko_response_invalid", endpoint="/coins/markets")
            return None
        try:
            indices = [coin_market_to_index(coin) for coin in response.data[:MAX_ITEMS]]
        except (ValidationError, TypeError, AttributeError) as e:
            logger.warning("coingecko_response_invalid", error=str(e))
            return None
        return indices, response.cache_status.value

    async def _api_indicator_list(self) -> list[Indicator] | None:
        rows = _rows(await self._api_request("/trading-signals"))
        if rows is None:
            return None
        try:
            return [
                trading_signal_to_indicator(row, i) for i, row in enumerate(rows[:MAX_ITEMS])
            ]
        except (ValidationError, TypeError) as e:
            logger.warning("api_response_invalid", endpoint="/trading-signals", error=str(e))
            return None

    async def _api_detail(self, endpoint: str, details: bool) -> dict[str, Any] | None:
        response = await self._api_request(endpoint, {"details": "true"} if details else None)
        if isinstance(response, dict) and isinstance(response.get("data"), dict):
            return dict(response["data"])
        return None

    # === 지수 ===

    async def get_indices(
        self, index_id: str | None = None, details: bool = False
    ) -> dict[str, Any] | None:
        """
        지수 목록 또는 단일 지수 조회

        Args:
            index_id: 지수 ID (None이면 목록)
            details: 30일 일별 데이터 포함 여부

        Returns:
            {"data", "timestamp", "source"} 응답. 단일 조회에서 ID가 없으면 None.
        """
        if index_id:
            return await self._get_index(index_id, details)

        indices = await self._api_index_list()
        if indices is not None:
            return self._envelope([i.to_json_dict() for i in indices], "api")

        coingecko = await self._coingecko_index_list()
        if coingecko is not None:
            indices, cache_status = coingecko
            response = self._envelope([i.to_json_dict() for i in indices], "coingecko")
            response["cacheStatus"] = cache_status
            return response

        logger.info("using_mock_data", resource="indices")
        return self._envelope([i.to_json_dict() for i in generate_mock_indices()], "mock")

    async def _get_index(self, index_id: str, details: bool) -> dict[str, Any] | None:
        result = await self._api_detail(f"/indices/{index_id}", details)
        if result is not None:
            if details and "dailyData" not in result:
                series = generate_index_series(
                    result.get("value") or 0, result.get("change24h") or 0, self.rng
                )
                result["dailyData"] = [p.to_json_dict() for p in series]
            return self._envelope(result, "api")

        index = next((i for i in generate_mock_indices() if i.id == index_id), None)
        if index is None:
            return None

        if details:
            series = generate_index_series(index.value, index.change_24h, self.rng)
            index = IndexDetail(**index.model_dump(), daily_data=series)
        return self._envelope(index.to_json_dict(), "mock")

    # === 지표 ===

    async def get_indicators(
        self, indicator_id: str | None = None, details: bool = False
    ) -> dict[str, Any] | None:
        """지표 목록 또는 단일 지표 조회 (get_indices와 동일한 규약)"""
        if indicator_id:
            return await self._get_indicator(indicator_id, details)

        indicators = await self._api_indicator_list()
        if indicators is not None:
            return self._envelope([i.to_json_dict() for i in indicators], "api")

        logger.info("using_mock_data", resource="indicators")
        return self._envelope(
            [i.to_json_dict() for i in generate_mock_indicators()], "mock"
        )

    async def _get_indicator(self, indicator_id: str, details: bool) -> dict[str, Any] | None:
        result = await self._api_detail(f"/indicators/{indicator_id}", details)
        if result is not None:
            if details and "dailyData" not in result:
                signal = result.get("signal")
                series = generate_indicator_series(
                    result.get("value") or 0,
                    signal if signal in ("bullish", "bearish") else "neutral",
                    self.rng,
                )
                result["dailyData"] = [p.to_json_dict() for p in series]
            return self._envelope(result, "api")

        indicator = next(
            (i for i in generate_mock_indicators() if i.id == indicator_id), None
        )
        if indicator is None:
            return None

        if details:
            series = generate_indicator_series(indicator.value, indicator.signal, self.rng)
            indicator = IndicatorDetail(**indicator.model_dump(), daily_data=series)
        return self._envelope(indicator.to_json_dict(), "mock")

    # === 레이트 리밋 / 캐시 ===

    def get_rate_limit(self) -> dict[str, Any]:
        """레이트 리밋 현황 (camelCase 키)"""
        info = self.context.get_rate_limit_info()
        response = {
            "requestsLastMinute": info.requests_last_minute,
            "monthlyCalls": info.monthly_calls,
            "maxPerMinute": info.max_per_minute,
            "maxMonthly": info.max_monthly,
            "timestamp": _now_iso(),
        }
        if not self.context.api_client.is_configured:
            response["note"] = MOCK_MODE_NOTE
        return response

    def clear_cache(self) -> dict[str, Any]:
        cleared = self.context.clear_cache()
        return {"cleared": cleared, "timestamp": _now_iso()}

    @staticmethod
    def _envelope(data: Any, source: str) -> dict[str, Any]:
        return {"data": data, "timestamp": _now_iso(), "source": source}
