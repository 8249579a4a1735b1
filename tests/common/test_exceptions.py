from __future__ import annotations

from crypto_dashboard.common.exceptions import (
    DashboardError,
    ErrorSeverity,
    MalformedMessageError,
    NotConfiguredError,
    RateLimitExceeded,
    RateLimitReason,
    TransportError,
)
from crypto_dashboard.common.logging import MASK, mask_sensitive_data


def test_all_errors_share_the_dashboard_base():
    errors = [
        NotConfiguredError("missing", setting_name="TOKENMETRICS_API_KEY"),
        RateLimitExceeded("slow down", reason=RateLimitReason.PER_MINUTE),
        TransportError("down", api_name="CoinGecko"),
        MalformedMessageError("bad frame", raw_preview="{"),
    ]
    assert all(isinstance(error, DashboardError) for error in errors)


def test_to_response_shape():
    error = RateLimitExceeded(
        "Rate limit exceeded (20 requests/minute)",
        reason=RateLimitReason.PER_MINUTE,
        limit=20,
        current=20,
    )

    response = error.to_response()

    assert response["success"] is False
    body = response["error"]
    assert body["code"] == "RATELIMITEXCEEDED"
    assert body["details"] == {"reason": "per_minute", "limit": 20, "current": 20}
    assert body["severity"] == "low"
    assert body["retryable"] is True


def test_not_configured_is_high_severity_and_final():
    error = NotConfiguredError("no key", setting_name="TOKENMETRICS_API_KEY")
    assert error.severity is ErrorSeverity.HIGH
    assert not error.retryable
    assert error.details["setting_name"] == "TOKENMETRICS_API_KEY"
    assert str(error) == "[NOTCONFIGUREDERROR] no key"


def test_transport_error_without_response_has_no_status():
    error = TransportError("timeout", api_name="TokenMetrics")
    assert error.status_code is None
    assert "status_code" not in error.details
    assert error.retryable


def test_mask_sensitive_data_recurses():
    masked = mask_sensitive_data(
        {
            "api_key": "secret",
            "params": {"limit": 10, "token": "abc"},
            "items": [{"password": "pw", "symbol": "BTC"}],
        }
    )

    assert masked["api_key"] == MASK
    assert masked["params"] == {"limit": 10, "token": MASK}
    assert masked["items"] == [{"password": MASK, "symbol": "BTC"}]
