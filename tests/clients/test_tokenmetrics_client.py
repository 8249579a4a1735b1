from __future__ import annotations

import asyncio
import random

import httpx
import pytest

from crypto_dashboard.clients.tokenmetrics_client import TokenMetricsClient
from crypto_dashboard.common.concerns.cache import CacheStore
from crypto_dashboard.common.concerns.rate_limit import RateLimitConfig, RateLimiter
from crypto_dashboard.common.exceptions import (
    NotConfiguredError,
    RateLimitExceeded,
    RateLimitReason,
    TransportError,
)


def run_async(coro):
    return asyncio.run(coro)


class RecordingHandler:
    """httpx.MockTransport handler that records every request."""

    def __init__(self, status_code: int = 200, payload=None, content: bytes | None = None):
        self.status_code = status_code
        self.payload = payload if payload is not None else {"success": True, "data": []}
        self.content = content
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.content is not None:
            return httpx.Response(self.status_code, content=self.content)
        return httpx.Response(self.status_code, json=self.payload)

    @property
    def calls(self) -> int:
        return len(self.requests)


class SpyRateLimiter(RateLimiter):
    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.admission_checks = 0
        self.recorded = 0

    def check_admission(self):
        self.admission_checks += 1
        return super().check_admission()

    def record_request(self):
        self.recorded += 1
        super().record_request()


def _client(clock, handler, api_key="test-key", per_minute=20, monthly=500, limiter=None):
    limiter = limiter or RateLimiter(
        RateLimitConfig(max_requests_per_minute=per_minute, max_monthly_calls=monthly),
        clock=clock,
    )
    return TokenMetricsClient(
        api_key,
        cache=CacheStore(clock=clock, rng=random.Random(1)),
        rate_limiter=limiter,
        transport=httpx.MockTransport(handler),
    )


def test_request_sends_api_key_to_base_url(clock):
    handler = RecordingHandler()

    async def scenario():
        async with _client(clock, handler) as client:
            await client.request("/tokens", {"limit": 10})

    run_async(scenario())

    sent = handler.requests[0]
    assert sent.headers["x-api-key"] == "test-key"
    assert sent.url.path == "/v2/tokens"
    assert sent.url.params["limit"] == "10"


def test_third_distinct_request_in_a_minute_is_denied(clock):
    handler = RecordingHandler()

    async def scenario():
        async with _client(clock, handler, per_minute=2) as client:
            await client.request("/tokens")
            await client.request("/indices")
            with pytest.raises(RateLimitExceeded) as exc_info:
                await client.request("/trading-signals")
            return exc_info.value

    error = run_async(scenario())

    assert handler.calls == 2
    assert error.reason is RateLimitReason.PER_MINUTE
    assert error.limit == 2
    assert error.current == 2
    assert error.message == "Rate limit exceeded (2 requests/minute)"


def test_monthly_limit_reported_as_monthly(clock):
    handler = RecordingHandler()

    async def scenario():
        async with _client(clock, handler, monthly=1) as client:
            await client.request("/tokens")
            clock.advance(120)
            with pytest.raises(RateLimitExceeded) as exc_info:
                await client.request("/indices")
            return exc_info.value

    error = run_async(scenario())

    assert error.reason is RateLimitReason.MONTHLY
    assert error.limit == 1


def test_identical_request_is_served_from_cache(clock):
    handler = RecordingHandler(payload={"success": True, "data": [{"symbol": "BTC"}]})

    async def scenario():
        async with _client(clock, handler) as client:
            first = await client.request("/tokens", {"limit": 10, "page": 1})
            second = await client.request("/tokens", {"page": 1, "limit": 10})
            return first, second, client.get_rate_limit_info()

    first, second, info = run_async(scenario())

    assert first == second
    assert handler.calls == 1
    assert info.requests_last_minute == 1
    assert info.monthly_calls == 1


def test_cache_hit_does_not_touch_rate_limiter(clock):
    handler = RecordingHandler()
    limiter = SpyRateLimiter(clock=clock)

    async def scenario():
        async with _client(clock, handler, limiter=limiter) as client:
            await client.request("/tokens")
            checks, recorded = limiter.admission_checks, limiter.recorded
            await client.request("/tokens")
            await client.request("/tokens")
            return checks, recorded

    checks, recorded = run_async(scenario())

    assert limiter.admission_checks == checks == 1
    assert limiter.recorded == recorded == 1


def test_cache_hit_is_served_even_when_quota_exhausted(clock):
    handler = RecordingHandler()

    async def scenario():
        async with _client(clock, handler, monthly=1) as client:
            await client.request("/tokens")
            return await client.request("/tokens")

    assert run_async(scenario()) == handler.payload


def test_expired_entry_goes_back_to_upstream(clock):
    handler = RecordingHandler()

    async def scenario():
        async with _client(clock, handler) as client:
            await client.request("/tokens")
            clock.advance(121)
            await client.request("/tokens")

    run_async(scenario())
    assert handler.calls == 2


def test_missing_api_key_fails_before_any_network_activity(clock):
    handler = RecordingHandler()

    async def scenario():
        async with _client(clock, handler, api_key="") as client:
            assert not client.is_configured
            with pytest.raises(NotConfiguredError) as exc_info:
                await client.request("/tokens")
            return exc_info.value, client.get_rate_limit_info()

    error, info = run_async(scenario())

    assert handler.calls == 0
    assert "TOKENMETRICS_API_KEY" in error.message
    assert info.monthly_calls == 0


def test_http_error_raises_transport_error_and_is_not_cached(clock):
    handler = RecordingHandler(status_code=500, payload={"error": "boom"})

    async def scenario():
        async with _client(clock, handler) as client:
            with pytest.raises(TransportError) as exc_info:
                await client.request("/tokens")
            with pytest.raises(TransportError):
                await client.request("/tokens")
            return exc_info.value, client.get_rate_limit_info()

    error, info = run_async(scenario())

    assert error.status_code == 500
    assert error.api_name == "TokenMetrics"
    assert error.message.startswith("TokenMetrics API Error: 500")
    assert handler.calls == 2
    # failed dispatches still consume quota
    assert info.requests_last_minute == 2
    assert info.monthly_calls == 2


def test_network_failure_raises_transport_error_without_status(clock):
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    async def scenario():
        async with _client(clock, handler) as client:
            with pytest.raises(TransportError) as exc_info:
                await client.request("/tokens")
            return exc_info.value, client.get_rate_limit_info()

    error, info = run_async(scenario())

    assert error.status_code is None
    assert error.retryable
    assert info.requests_last_minute == 1


def test_invalid_json_is_a_transport_error(clock):
    handler = RecordingHandler(content=b"<html>not json</html>")

    async def scenario():
        async with _client(clock, handler) as client:
            with pytest.raises(TransportError) as exc_info:
                await client.request("/tokens")
            return exc_info.value, client.cache.size()

    error, cache_size = run_async(scenario())

    assert not error.retryable
    assert cache_size == 0


def test_clear_cache_forces_refetch(clock):
    handler = RecordingHandler()

    async def scenario():
        async with _client(clock, handler) as client:
            await client.request("/tokens")
            cleared = client.clear_cache()
            await client.request("/tokens")
            return cleared

    assert run_async(scenario()) == 1
    assert handler.calls == 2


def test_request_is_recorded_at_issue_time(clock):
    def slow_upstream(request: httpx.Request) -> httpx.Response:
        clock.advance(9)
        return httpx.Response(200, json={"success": True, "data": []})

    async def scenario():
        async with _client(clock, slow_upstream, per_minute=1) as client:
            await client.request("/tokens")
            clock.advance(51.5)
            return client.get_rate_limit_info()

    info = run_async(scenario())

    # 60.5 s after issue, 51.5 s after the response arrived
    assert info.requests_last_minute == 0
    assert info.monthly_calls == 1


def test_empty_network_error_message_falls_back_to_type_name(clock):
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("", request=request)

    async def scenario():
        async with _client(clock, handler) as client:
            with pytest.raises(TransportError) as exc_info:
                await client.request("/tokens")
            return exc_info.value

    error = run_async(scenario())
    assert error.message == "TokenMetrics API Error: None - ReadTimeout"
