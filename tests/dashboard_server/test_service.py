from __future__ import annotations

import asyncio
import random

import httpx

from crypto_dashboard.config import DashboardSettings
from crypto_dashboard.context import ServiceContext
from crypto_dashboard.dashboard_server.service import (
    MAX_ITEMS,
    MOCK_MODE_NOTE,
    DashboardService,
    coin_market_to_index,
    token_to_index,
    trading_signal_to_indicator,
)

TOKENS = {
    "success": True,
    "data": [
        {
            "TOKEN_SYMBOL": "BTC",
            "TOKEN_NAME": "Bitcoin",
            "CURRENT_PRICE": 60000,
            "PRICE_CHANGE_PERCENTAGE_24H_IN_CURRENCY": 2,
        }
    ]
    * 12,
}

SIGNALS = {
    "success": True,
    "data": [
        {
            "TOKEN_SYMBOL": "ETH",
            "TOKEN_NAME": "Ethereum",
            "TRADING_SIGNAL": 1,
            "TM_TRADER_GRADE": 71.5,
            "DATE": "2026-10-17",
        },
        {
            "TOKEN_SYMBOL": "SOL",
            "TOKEN_NAME": "Solana",
            "TRADING_SIGNAL": -1,
            "TM_TRADER_GRADE": 40.2,
            "DATE": "2026-10-17",
        },
    ],
}

COINS = [
    {
        "id": "bitcoin",
        "symbol": "btc",
        "name": "Bitcoin",
        "current_price": 67234.12,
        "price_change_24h": 1234.5,
        "price_change_percentage_24h": 1.87,
    }
]


def run_async(coro):
    return asyncio.run(coro)


class Upstream:
    """Routes mock HTTP requests by host and path."""

    def __init__(self, routes: dict[str, tuple[int, object]]):
        self.routes = routes
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        key = f"{request.url.host}{request.url.path}"
        status_code, payload = self.routes.get(key, (404, {"error": "not found"}))
        return httpx.Response(status_code, json=payload)

    def paths(self) -> list[str]:
        return [request.url.path for request in self.requests]


def _service(clock, upstream: Upstream, api_key: str = "", **settings) -> DashboardService:
    context = ServiceContext(
        DashboardSettings(tokenmetrics_api_key=api_key, **settings),
        clock=clock,
        rng=random.Random(5),
        transport=httpx.MockTransport(upstream),
    )
    return DashboardService(context, rng=random.Random(9))


def test_indices_come_from_tokenmetrics_when_configured(clock):
    upstream = Upstream({"api.tokenmetrics.com/v2/tokens": (200, TOKENS)})
    service = _service(clock, upstream, api_key="k")

    result = run_async(service.get_indices())

    assert result["source"] == "api"
    assert len(result["data"]) == MAX_ITEMS
    first = result["data"][0]
    assert first["id"] == "btc"
    assert first["value"] == 60000
    assert first["change24h"] == 1200
    assert first["changePercent24h"] == 2


def test_indices_fall_back_to_coingecko_without_api_key(clock):
    upstream = Upstream({"api.coingecko.com/api/v3/coins/markets": (200, COINS)})
    service = _service(clock, upstream)

    first = run_async(service.get_indices())
    second = run_async(service.get_indices())

    assert first["source"] == "coingecko"
    assert first["cacheStatus"] == "MISS"
    assert second["cacheStatus"] == "HIT"
    assert first["data"][0]["symbol"] == "BTC"
    # the keyed provider is never contacted without a key
    assert upstream.paths() == ["/api/v3/coins/markets"]


def test_indices_fall_back_to_mock_when_everything_fails(clock):
    upstream = Upstream({"api.coingecko.com/api/v3/coins/markets": (503, {})})
    service = _service(clock, upstream)

    result = run_async(service.get_indices())

    assert result["source"] == "mock"
    assert [i["id"] for i in result["data"]] == [
        "btc-dominance",
        "eth-dominance",
        "crypto-market-cap",
        "fear-greed",
    ]


def test_indicators_map_trading_signals(clock):
    upstream = Upstream({"api.tokenmetrics.com/v2/trading-signals": (200, SIGNALS)})
    service = _service(clock, upstream, api_key="k")

    result = run_async(service.get_indicators())

    assert result["source"] == "api"
    assert [(i["id"], i["signal"], i["value"]) for i in result["data"]] == [
        ("eth", "bullish", 71.5),
        ("sol", "bearish", 40.2),
    ]


def test_rate_limited_request_falls_back_to_mock(clock):
    upstream = Upstream(
        {
            "api.tokenmetrics.com/v2/tokens": (200, TOKENS),
            "api.tokenmetrics.com/v2/trading-signals": (200, SIGNALS),
        }
    )
    service = _service(clock, upstream, api_key="k", max_requests_per_minute=1)

    indices = run_async(service.get_indices())
    indicators = run_async(service.get_indicators())

    assert indices["source"] == "api"
    assert indicators["source"] == "mock"
    assert len(indicators["data"]) == 5
    assert upstream.paths() == ["/v2/tokens"]


def test_single_mock_index_with_details(clock):
    service = _service(clock, Upstream({}))

    result = run_async(service.get_indices("fear-greed", details=True))

    assert result["source"] == "mock"
    assert result["data"]["id"] == "fear-greed"
    daily = result["data"]["dailyData"]
    assert len(daily) == 30
    assert set(daily[0]) == {"date", "value", "change", "changePercent"}
    assert daily == sorted(daily, key=lambda point: point["date"])


def test_single_mock_indicator_without_details(clock):
    service = _service(clock, Upstream({}))

    result = run_async(service.get_indicators("rsi-btc"))

    assert result["data"]["signal"] == "bullish"
    assert "dailyData" not in result["data"]


def test_unknown_id_returns_none(clock):
    service = _service(clock, Upstream({}))

    assert run_async(service.get_indices("does-not-exist")) is None
    assert run_async(service.get_indicators("does-not-exist")) is None


def test_api_detail_gets_generated_series_when_missing(clock):
    upstream = Upstream(
        {
            "api.tokenmetrics.com/v2/indices/btc": (
                200,
                {"success": True, "data": {"id": "btc", "value": 100, "change24h": 2}},
            )
        }
    )
    service = _service(clock, upstream, api_key="k")

    result = run_async(service.get_indices("btc", details=True))

    assert result["source"] == "api"
    assert len(result["data"]["dailyData"]) == 30
    assert upstream.requests[0].url.params["details"] == "true"


def test_rate_limit_report_in_mock_mode(clock):
    service = _service(clock, Upstream({}))

    report = service.get_rate_limit()

    assert report["requestsLastMinute"] == 0
    assert report["monthlyCalls"] == 0
    assert report["maxPerMinute"] == 20
    assert report["maxMonthly"] == 500
    assert report["note"] == MOCK_MODE_NOTE


def test_rate_limit_report_counts_api_calls(clock):
    upstream = Upstream({"api.tokenmetrics.com/v2/tokens": (200, TOKENS)})
    service = _service(clock, upstream, api_key="k")

    run_async(service.get_indices())
    run_async(service.get_indices())
    report = service.get_rate_limit()

    assert report["requestsLastMinute"] == 1
    assert report["monthlyCalls"] == 1
    assert "note" not in report


def test_clear_cache_reports_dropped_entries(clock):
    upstream = Upstream({"api.tokenmetrics.com/v2/tokens": (200, TOKENS)})
    service = _service(clock, upstream, api_key="k")
    run_async(service.get_indices())

    assert service.clear_cache()["cleared"] == 1
    assert service.clear_cache()["cleared"] == 0


def test_row_mappers_tolerate_lowercase_fields():
    index = token_to_index({"token_symbol": "ada", "current_price": 0.5}, 0)
    assert (index.id, index.symbol, index.change_24h) == ("ada", "ada", 0)

    anonymous = token_to_index({}, 3)
    assert (anonymous.id, anonymous.name) == ("token-3", "Unknown Token")

    indicator = trading_signal_to_indicator({"trading_signal": 0}, 1)
    assert (indicator.id, indicator.signal) == ("signal-1", "neutral")

    coin = coin_market_to_index(COINS[0])
    assert (coin.id, coin.symbol, coin.value) == ("bitcoin", "BTC", 67234.12)
