"""
FastMCP Logging Middleware

Logs every tool call of the dashboard server with masked arguments,
duration and outcome.
"""

import time
from typing import Any

import structlog
from fastmcp.server.middleware import Middleware, MiddlewareContext

from crypto_dashboard.common.logging import mask_sensitive_data

logger = structlog.get_logger(__name__)


class LoggingMiddleware(Middleware):
    """FastMCP Logging Middleware"""

    def __init__(self, include_arguments: bool = True):
        """
        Logging middleware 초기화

        Args:
            include_arguments: 요청 인수 로깅 여부
        """
        super().__init__()
        self.include_arguments = include_arguments

    async def on_call_tool(self, context: MiddlewareContext, call_next) -> Any:
        """도구 호출 시 로깅"""
        tool_name = getattr(context.message, "name", "unknown")
        log = logger.bind(tool_name=tool_name)

        if self.include_arguments:
            arguments = getattr(context.message, "arguments", None) or {}
            log.info("tool_request", arguments=mask_sensitive_data(dict(arguments)))
        else:
            log.info("tool_request")

        start_time = time.perf_counter()
        try:
            result = await call_next(context)
        except Exception as e:
            log.error(
                "tool_error",
                error_type=type(e).__name__,
                error=str(e),
                duration_ms=round((time.perf_counter() - start_time) * 1000, 2),
            )
            raise

        log.info(
            "tool_response",
            duration_ms=round((time.perf_counter() - start_time) * 1000, 2),
        )
        return result
