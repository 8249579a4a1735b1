"""
공통 관심사 모듈.

Available modules:
    - cache: 지터 TTL 응답 캐시
    - rate_limit: 분당 슬라이딩 윈도우 + 월간 쿼터 레이트 리미터
"""

from crypto_dashboard.common.concerns.cache import (
    CacheEntry,
    CacheStats,
    CacheStore,
    make_cache_key,
)
from crypto_dashboard.common.concerns.rate_limit import (
    RateLimitConfig,
    RateLimitDecision,
    RateLimiter,
    RateLimitInfo,
    reset_if_new_period,
)

__all__ = [
    "CacheEntry",
    "CacheStats",
    "CacheStore",
    "make_cache_key",
    "RateLimitConfig",
    "RateLimitDecision",
    "RateLimiter",
    "RateLimitInfo",
    "reset_if_new_period",
]
