"""
Mock 데이터 생성기

API 키가 없거나 외부 API 호출이 실패했을 때 사용하는 합성 데이터입니다.
"""

import random
from datetime import UTC, date, datetime, timedelta

from crypto_dashboard.dashboard_server.models import (
    DailyDataPoint,
    Index,
    Indicator,
    Signal,
)

SERIES_DAYS = 30


def _now_iso() -> str:
    return datetime.now(UTC).isoformat()


def generate_mock_indices() -> list[Index]:
    """대표 시장 지수 4종"""
    return [
        Index(
            id="btc-dominance",
            name="Bitcoin Dominance",
            symbol="BTC.D",
            value=52.34,
            change_24h=1.2,
            change_percent_24h=2.35,
        ),
        Index(
            id="eth-dominance",
            name="Ethereum Dominance",
            symbol="ETH.D",
            value=18.76,
            change_24h=-0.5,
            change_percent_24h=-2.6,
        ),
        Index(
            id="crypto-market-cap",
            name="Total Market Cap",
            symbol="TOTAL",
            value=2450000000000,
            change_24h=50000000000,
            change_percent_24h=2.08,
        ),
        Index(
            id="fear-greed",
            name="Fear & Greed Index",
            symbol="FGI",
            value=65,
            change_24h=5,
            change_percent_24h=8.33,
        ),
    ]


def generate_mock_indicators() -> list[Indicator]:
    """대표 기술적 지표 5종"""
    timestamp = _now_iso()
    return [
        Indicator(
            id="rsi-btc",
            name="RSI (14) - Bitcoin",
            category="Momentum",
            value=58.5,
            signal="bullish",
            timestamp=timestamp,
        ),
        Indicator(
            id="macd-btc",
            name="MACD - Bitcoin",
            category="Trend",
            value=1250.5,
            signal="bullish",
            timestamp=timestamp,
        ),
        Indicator(
            id="bollinger-btc",
            name="Bollinger Bands - Bitcoin",
            category="Volatility",
            value=0.85,
            signal="neutral",
            timestamp=timestamp,
        ),
        Indicator(
            id="volume-profile",
            name="Volume Profile",
            category="Volume",
            value=0.72,
            signal="bullish",
            timestamp=timestamp,
        ),
        Indicator(
            id="support-resistance",
            name="Support/Resistance Levels",
            category="Technical",
            value=42000,
            signal="neutral",
            timestamp=timestamp,
        ),
    ]


def _point(day: date, value: float, change: float) -> DailyDataPoint:
    base = value - change
    change_percent = (change / base) * 100 if base else 0.0
    return DailyDataPoint(
        date=day.isoformat(),
        value=round(value, 2),
        change=round(change, 2),
        change_percent=round(change_percent, 2),
    )


def _series_days(today: date | None) -> list[date]:
    today = today or datetime.now(UTC).date()
    return [today - timedelta(days=offset) for offset in range(SERIES_DAYS - 1, -1, -1)]


def generate_index_series(
    base_value: float,
    base_change: float,
    rng: random.Random | None = None,
    today: date | None = None,
) -> list[DailyDataPoint]:
    """지수용 30일 일별 데이터 (±5% 변동, 오래된 날짜부터)"""
    rng = rng or random.Random()
    points = []
    for day in _series_days(today):
        variation = (rng.random() - 0.5) * 0.1
        value = base_value * (1 + variation)
        change = base_change * (1 + variation)
        points.append(_point(day, value, change))
    return points


def generate_indicator_series(
    base_value: float,
    signal: Signal,
    rng: random.Random | None = None,
    today: date | None = None,
) -> list[DailyDataPoint]:
    """지표용 30일 일별 데이터 (시그널 방향으로 편향된 변동)"""
    rng = rng or random.Random()
    points = []
    for day in _series_days(today):
        variation = (rng.random() - 0.5) * 0.1
        if signal == "bullish":
            variation = abs(variation) * 0.5
        elif signal == "bearish":
            variation = -abs(variation) * 0.5

        value = base_value * (1 + variation)
        change = base_value * variation
        points.append(_point(day, value, change))
    return points
