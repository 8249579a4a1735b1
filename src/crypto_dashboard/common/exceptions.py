"""
대시보드 공통 예외 체계

API 요청 거버넌스 계층(캐시, 레이트 리미터, HTTP 클라이언트, WebSocket)에서
발생하는 예외를 일관된 형태로 정의합니다. 모든 예외는 `DashboardError`를
상속하므로 호출자는 하나의 타입으로 받아 대체 데이터 소스로 전환할 수 있습니다.

Usage:
    from crypto_dashboard.common.exceptions import DashboardError, RateLimitExceeded

    try:
        payload = await client.request("/tokens")
    except RateLimitExceeded as e:
        logger.info("fallback_to_mock", reason=e.reason.value)
"""

from datetime import UTC, datetime
from enum import Enum
from typing import Any


class ErrorSeverity(Enum):
    """에러 심각도 레벨"""

    LOW = "low"  # 로컬 정책에 의한 거부 등 예상 가능한 에러
    MEDIUM = "medium"  # 외부 API 연결 실패 등 시스템 수준 에러
    HIGH = "high"  # 설정 누락 등 운영자 개입이 필요한 에러


class RateLimitReason(str, Enum):
    """레이트 리밋 거부 사유"""

    MONTHLY = "monthly"
    PER_MINUTE = "per_minute"


class DashboardError(Exception):
    """
    대시보드 기본 예외 클래스

    Attributes:
        message: 에러 메시지
        error_code: 에러 코드 (기본값: 클래스명의 대문자)
        details: 추가 에러 상세 정보
        severity: 에러 심각도
        retryable: 재시도 가능 여부

    """

    def __init__(
        self,
        message: str,
        error_code: str | None = None,
        details: dict[str, Any] | None = None,
        severity: ErrorSeverity = ErrorSeverity.MEDIUM,
        retryable: bool = False,
    ):
        super().__init__(message)
        self.message = message
        self.error_code = error_code or self.__class__.__name__.upper()
        self.details = details or {}
        self.severity = severity
        self.retryable = retryable
        self.timestamp = datetime.now(UTC).isoformat()

    def to_response(self) -> dict[str, Any]:
        """표준 에러 응답 포맷 생성"""
        return {
            "success": False,
            "error": {
                "code": self.error_code,
                "message": self.message,
                "details": self.details,
                "severity": self.severity.value,
                "retryable": self.retryable,
                "timestamp": self.timestamp,
            },
        }

    def __str__(self) -> str:
        return f"[{self.error_code}] {self.message}"

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}("
            f"message='{self.message}', "
            f"error_code='{self.error_code}', "
            f"severity={self.severity.value})"
        )


class NotConfiguredError(DashboardError):
    """
    필수 자격 증명 누락 예외

    API 키 없이 키 기반 클라이언트로 요청할 때 네트워크 시도 전에 발생합니다.
    해당 호출에만 치명적이며 프로세스에는 영향을 주지 않습니다.
    """

    def __init__(self, message: str, setting_name: str | None = None, **kwargs):
        details = kwargs.pop("details", {})
        if setting_name:
            details["setting_name"] = setting_name

        super().__init__(
            message=message,
            details=details,
            severity=kwargs.pop("severity", ErrorSeverity.HIGH),
            retryable=False,
            **kwargs,
        )


class RateLimitExceeded(DashboardError):
    """
    로컬 레이트 리밋 정책에 의한 거부

    월간 한도와 분당 한도 중 어느 쪽 때문인지 `reason`으로 구분합니다.
    """

    def __init__(
        self,
        message: str,
        reason: RateLimitReason,
        limit: int | None = None,
        current: int | None = None,
        **kwargs,
    ):
        details = kwargs.pop("details", {})
        details["reason"] = reason.value
        if limit is not None:
            details["limit"] = limit
        if current is not None:
            details["current"] = current

        super().__init__(
            message=message,
            details=details,
            severity=kwargs.pop("severity", ErrorSeverity.LOW),
            retryable=True,
            **kwargs,
        )
        self.reason = reason
        self.limit = limit
        self.current = current


class TransportError(DashboardError):
    """
    외부 API 호출 실패 예외

    실제 네트워크 시도 이후에만 발생합니다. 응답을 받지 못한 경우
    (타임아웃, 연결 실패) `status_code`는 None입니다.
    """

    def __init__(
        self,
        message: str,
        api_name: str | None = None,
        status_code: int | None = None,
        **kwargs,
    ):
        details = kwargs.pop("details", {})
        if api_name:
            details["api_name"] = api_name
        if status_code is not None:
            details["status_code"] = status_code

        super().__init__(
            message=message,
            details=details,
            severity=kwargs.pop("severity", ErrorSeverity.MEDIUM),
            retryable=kwargs.pop("retryable", True),
            **kwargs,
        )
        self.api_name = api_name
        self.status_code = status_code


class MalformedMessageError(DashboardError):
    """
    WebSocket 수신 메시지 파싱 실패

    로컬에서 로깅 후 버려지며 구독자에게 전파되지 않습니다.
    """

    def __init__(self, message: str, raw_preview: str | None = None, **kwargs):
        details = kwargs.pop("details", {})
        if raw_preview is not None:
            details["raw_preview"] = raw_preview

        super().__init__(
            message=message,
            details=details,
            severity=kwargs.pop("severity", ErrorSeverity.LOW),
            retryable=False,
            **kwargs,
        )
