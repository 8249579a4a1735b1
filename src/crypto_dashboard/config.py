"""
대시보드 설정

모든 환경변수 접근을 한 곳에 모아 어떤 설정이 필요한지 쉽게 볼 수 있게 합니다.
실제 API 키는 절대 커밋하지 말고 `.env` 파일이나 시스템 환경변수로 주입하세요.

환경변수:
    TOKENMETRICS_API_KEY: TokenMetrics API 키 (없으면 mock 데이터 모드)
    TOKENMETRICS_API_URL: TokenMetrics API 기본 URL
    WS_URL: 실시간 WebSocket URL (없으면 WebSocket 기능 비활성화)
    DASHBOARD_HOST / DASHBOARD_PORT: 서버 바인딩 주소
    LOG_LEVEL: 로그 레벨
"""

import os
from pathlib import Path

from dotenv import load_dotenv
from pydantic import BaseModel, model_validator

from crypto_dashboard.clients.tokenmetrics_client import DEFAULT_BASE_URL
from crypto_dashboard.common.exceptions import NotConfiguredError


class DashboardSettings(BaseModel):
    """대시보드 설정 모델"""

    # TokenMetrics API (x-api-key 헤더 인증)
    tokenmetrics_api_key: str = ""
    tokenmetrics_api_url: str = DEFAULT_BASE_URL

    # WebSocket (선택)
    ws_url: str = ""
    ws_max_reconnect_attempts: int = 5
    ws_reconnect_delay: float = 3.0

    # 레이트 리밋 (고정 설정)
    max_requests_per_minute: int = 20
    max_monthly_calls: int = 500

    # 캐시 TTL 범위 (초)
    cache_ttl_min: float = 60.0
    cache_ttl_max: float = 120.0

    request_timeout: float = 10.0

    # 서버
    host: str = "0.0.0.0"
    port: int = 8060
    log_level: str = "INFO"
    json_logs: bool = True

    @model_validator(mode="after")
    def _check_ttl_bounds(self) -> "DashboardSettings":
        if self.cache_ttl_min <= 0 or self.cache_ttl_min > self.cache_ttl_max:
            raise ValueError(
                f"invalid cache TTL bounds: {self.cache_ttl_min}-{self.cache_ttl_max}"
            )
        return self

    @classmethod
    def from_env(cls, env_file: str | Path | None = None, **overrides) -> "DashboardSettings":
        """`.env` 파일(있으면)과 환경변수에서 설정 로딩"""
        if env_file is not None:
            load_dotenv(env_file)
        else:
            load_dotenv()

        values = {
            "tokenmetrics_api_key": os.getenv("TOKENMETRICS_API_KEY", ""),
            "tokenmetrics_api_url": os.getenv("TOKENMETRICS_API_URL") or DEFAULT_BASE_URL,
            "ws_url": os.getenv("WS_URL", ""),
            "host": os.getenv("DASHBOARD_HOST", "0.0.0.0"),
            "port": int(os.getenv("DASHBOARD_PORT", "8060")),
            "log_level": os.getenv("LOG_LEVEL", "INFO"),
        }
        values.update(overrides)
        return cls(**values)

    @property
    def is_api_configured(self) -> bool:
        """API 키 설정 여부"""
        return bool(self.tokenmetrics_api_key)

    @property
    def is_websocket_enabled(self) -> bool:
        return bool(self.ws_url)

    def get_api_key(self) -> str:
        """API 키 반환 (미설정 시 NotConfiguredError)"""
        if not self.tokenmetrics_api_key:
            raise NotConfiguredError(
                "TOKENMETRICS_API_KEY is not set in environment variables",
                setting_name="TOKENMETRICS_API_KEY",
            )
        return self.tokenmetrics_api_key
