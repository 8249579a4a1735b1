"""
Structured logging setup.

structlog is configured on top of the standard library so that both
`structlog.get_logger` and `logging.getLogger` loggers end up in the same
handlers with the same JSON (or console) rendering.
"""

import logging
import sys
from typing import Any

import structlog

SENSITIVE_FIELDS = frozenset(
    {
        "password",
        "secret",
        "token",
        "api_key",
        "apikey",
        "x-api-key",
        "auth",
        "authorization",
        "credential",
        "access_token",
        "refresh_token",
        "tokenmetrics_api_key",
    }
)

MASK = "***MASKED***"


def configure_logging(level: str = "INFO", json_logs: bool = True) -> None:
    """structlog + stdlib 로깅 설정

    Args:
        level: 최소 로그 레벨 이름 ("DEBUG", "INFO", ...)
        json_logs: True면 JSON 렌더러, False면 개발용 콘솔 렌더러
    """
    log_level = getattr(logging, level.upper(), logging.INFO)
    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=log_level)
    logging.getLogger().setLevel(log_level)

    renderer = (
        structlog.processors.JSONRenderer(ensure_ascii=False)
        if json_logs
        else structlog.dev.ConsoleRenderer()
    )

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            renderer,
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


def mask_sensitive_data(data: Any) -> Any:
    """민감한 필드 마스킹 (dict/list 재귀)"""
    if isinstance(data, dict):
        masked = {}
        for key, value in data.items():
            if isinstance(key, str) and key.lower() in SENSITIVE_FIELDS:
                masked[key] = MASK
            elif isinstance(value, (dict, list)):
                masked[key] = mask_sensitive_data(value)
            else:
                masked[key] = value
        return masked
    elif isinstance(data, list):
        return [mask_sensitive_data(item) for item in data]
    return data
