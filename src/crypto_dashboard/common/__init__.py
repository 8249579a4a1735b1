"""
공통 유틸리티 패키지

캐시, 레이트 리밋, 예외 체계, 로깅 설정 등 모든 클라이언트가 공유하는
구성 요소를 제공합니다.
"""

from crypto_dashboard.common.exceptions import (
    DashboardError,
    MalformedMessageError,
    NotConfiguredError,
    RateLimitExceeded,
    RateLimitReason,
    TransportError,
)

__all__ = [
    "DashboardError",
    "NotConfiguredError",
    "RateLimitExceeded",
    "RateLimitReason",
    "TransportError",
    "MalformedMessageError",
]
