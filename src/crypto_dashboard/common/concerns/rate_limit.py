"""
Rate limiting for the keyed market-data provider.

Two windows are enforced together:
- a sliding per-minute window over recent request timestamps
- a monthly counter that resets on the first check in a new calendar month

Admission checks are advisory: they never record a request. The caller
records a request with `record_request()` once it actually dispatches the
outbound call.
"""

import time
from collections import deque
from collections.abc import Callable
from datetime import UTC, datetime

import structlog
from pydantic import BaseModel

from crypto_dashboard.common.exceptions import RateLimitReason

logger = structlog.get_logger(__name__)


class RateLimitConfig(BaseModel):
    """Rate limiting configuration."""

    max_requests_per_minute: int = 20
    max_monthly_calls: int = 500
    window_size: float = 60.0  # seconds

    model_config = {"frozen": True}


class RateLimitDecision(BaseModel):
    """Result of an admission check."""

    allowed: bool
    reason: RateLimitReason | None = None
    message: str | None = None


class RateLimitInfo(BaseModel):
    """Snapshot of the limiter counters."""

    requests_last_minute: int
    monthly_calls: int
    max_per_minute: int
    max_monthly: int


def reset_if_new_period(now: datetime, anchor: datetime) -> bool:
    """Return True when `now` falls in a different calendar month than `anchor`."""
    return (now.year, now.month) != (anchor.year, anchor.month)


class RateLimiter:
    """Sliding-window + monthly quota limiter.

    Not thread-safe. All calls are expected to come from one event loop,
    and none of them await, so a single admission/record pair is never
    interleaved with another coroutine.
    """

    def __init__(
        self,
        config: RateLimitConfig | None = None,
        clock: Callable[[], float] = time.time,
    ):
        self.config = config or RateLimitConfig()
        self._clock = clock
        self._requests: deque[float] = deque()
        self._monthly_calls = 0
        self._month_anchor = clock()

    @property
    def max_per_minute(self) -> int:
        return self.config.max_requests_per_minute

    @property
    def max_monthly(self) -> int:
        return self.config.max_monthly_calls

    @property
    def month_anchor(self) -> float:
        return self._month_anchor

    def _check_monthly_reset(self, now: float) -> bool:
        if not reset_if_new_period(
            datetime.fromtimestamp(now, UTC), datetime.fromtimestamp(self._month_anchor, UTC)
        ):
            return False

        logger.info(
            "rate_limit_monthly_reset",
            previous_monthly_calls=self._monthly_calls,
        )
        self._monthly_calls = 0
        self._month_anchor = now
        return True

    def _prune(self, now: float) -> None:
        window_start = now - self.config.window_size
        while self._requests and self._requests[0] <= window_start:
            self._requests.popleft()

    def check_admission(self) -> RateLimitDecision:
        """Check whether one more request may be issued right now."""
        now = self._clock()
        self._check_monthly_reset(now)

        if self._monthly_calls >= self.max_monthly:
            message = f"Monthly API call limit reached ({self.max_monthly} calls/month)"
            logger.warning(
                "rate_limit_denied",
                reason=RateLimitReason.MONTHLY.value,
                monthly_calls=self._monthly_calls,
            )
            return RateLimitDecision(
                allowed=False, reason=RateLimitReason.MONTHLY, message=message
            )

        self._prune(now)
        if len(self._requests) >= self.max_per_minute:
            message = f"Rate limit exceeded ({self.max_per_minute} requests/minute)"
            logger.warning(
                "rate_limit_denied",
                reason=RateLimitReason.PER_MINUTE.value,
                requests_last_minute=len(self._requests),
            )
            return RateLimitDecision(
                allowed=False, reason=RateLimitReason.PER_MINUTE, message=message
            )

        return RateLimitDecision(allowed=True)

    def record_request(self) -> None:
        """Count one dispatched request against both windows."""
        now = self._clock()
        self._check_monthly_reset(now)
        self._requests.append(now)
        self._monthly_calls += 1

    def get_info(self) -> RateLimitInfo:
        """Current counters, after the monthly reset check and window pruning."""
        now = self._clock()
        self._check_monthly_reset(now)
        self._prune(now)

        return RateLimitInfo(
            requests_last_minute=len(self._requests),
            monthly_calls=self._monthly_calls,
            max_per_minute=self.max_per_minute,
            max_monthly=self.max_monthly,
        )
