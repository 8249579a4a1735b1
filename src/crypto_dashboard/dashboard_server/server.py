"""Crypto 대시보드 서버 - FastMCP 기반 구현 (MCP 도구 + JSON HTTP 라우트)"""

import logging
from typing import Any

from fastmcp import FastMCP
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from crypto_dashboard.common.logging import configure_logging
from crypto_dashboard.config import DashboardSettings
from crypto_dashboard.context import ServiceContext
from crypto_dashboard.dashboard_server.middleware import LoggingMiddleware
from crypto_dashboard.dashboard_server.service import DashboardService

logger = logging.getLogger(__name__)

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "*",
    "Access-Control-Allow-Headers": "*",
}


class DashboardMCPServer:
    """Crypto 대시보드 서버 구현"""

    def __init__(
        self,
        context: ServiceContext | None = None,
        server_name: str = "Crypto Dashboard Server",
        service: DashboardService | None = None,
    ):
        """
        대시보드 서버 초기화

        Args:
            context: 공유 서비스 컨텍스트 (None이면 환경변수 설정으로 생성)
            server_name: 서버 이름
            service: 데이터 서비스 (None이면 context로 생성)
        """
        self.context = context or ServiceContext()
        self.settings = self.context.settings
        self.host = self.settings.host
        self.port = self.settings.port
        self.service = service or DashboardService(self.context)

        self.mcp = FastMCP(
            name=server_name,
            instructions="암호화폐 지수/지표 데이터와 API 레이트 리밋 현황을 제공합니다",
        )
        self.mcp.add_middleware(LoggingMiddleware())

        self._register_tools()
        self._register_routes()
        logger.info("Dashboard server initialized")

    def _register_tools(self) -> None:
        """MCP 도구들을 등록"""

        @self.mcp.tool()
        async def get_indices(index_id: str | None = None, details: bool = False) -> dict[str, Any]:
            """
            Crypto market indices

            Args:
                index_id: 조회할 지수 ID (없으면 전체 목록)
                details: 30일 일별 데이터 포함 여부
            """
            result = await self.service.get_indices(index_id, details)
            return result or {"error": "Index not found"}

        @self.mcp.tool()
        async def get_indicators(
            indicator_id: str | None = None, details: bool = False
        ) -> dict[str, Any]:
            """
            Crypto technical indicators / trading signals

            Args:
                indicator_id: 조회할 지표 ID (없으면 전체 목록)
                details: 30일 일별 데이터 포함 여부
            """
            result = await self.service.get_indicators(indicator_id, details)
            return result or {"error": "Indicator not found"}

        @self.mcp.tool()
        async def get_rate_limit_info() -> dict[str, Any]:
            """TokenMetrics API rate limit usage (per minute / per month)"""
            return self.service.get_rate_limit()

        @self.mcp.tool()
        async def clear_cache() -> dict[str, Any]:
            """Drop all cached provider responses"""
            return self.service.clear_cache()

    def _register_routes(self) -> None:
        """JSON HTTP 라우트 등록"""
        self.mcp.custom_route(path="/api/indices", methods=["GET"])(self.indices_route)
        self.mcp.custom_route(path="/api/indicators", methods=["GET"])(self.indicators_route)
        self.mcp.custom_route(path="/api/rate-limit", methods=["GET"])(self.rate_limit_route)
        self.mcp.custom_route(path="/api/ws", methods=["GET"])(self.websocket_route)
        self.mcp.custom_route(path="/health", methods=["GET"])(self.health_route)

    @staticmethod
    def _json(content: dict[str, Any], status_code: int = 200) -> JSONResponse:
        return JSONResponse(content=content, status_code=status_code, headers=CORS_HEADERS)

    async def indices_route(self, request: Request) -> JSONResponse:
        """GET /api/indices?id=...&details=true"""
        try:
            result = await self.service.get_indices(
                request.query_params.get("id"),
                request.query_params.get("details") == "true",
            )
        except Exception as e:
            logger.exception("indices route failed")
            return self._json({"error": str(e) or "Internal server error"}, 500)

        if result is None:
            return self._json({"error": "Index not found"}, 404)
        return self._json(result)

    async def indicators_route(self, request: Request) -> JSONResponse:
        """GET /api/indicators?id=...&details=true"""
        try:
            result = await self.service.get_indicators(
                request.query_params.get("id"),
                request.query_params.get("details") == "true",
            )
        except Exception as e:
            logger.exception("indicators route failed")
            return self._json({"error": str(e) or "Internal server error"}, 500)

        if result is None:
            return self._json({"error": "Indicator not found"}, 404)
        return self._json(result)

    async def rate_limit_route(self, request: Request) -> JSONResponse:
        """GET /api/rate-limit"""
        return self._json(self.service.get_rate_limit())

    async def websocket_route(self, request: Request) -> Response:
        """WebSocket 업그레이드 안내 (실제 스트리밍은 외부 WS 서버 담당)"""
        return Response(
            content="WebSocket endpoint - upgrade connection to use",
            status_code=426,
            headers={"Upgrade": "websocket", "Connection": "Upgrade"},
        )

    async def health_route(self, request: Request) -> JSONResponse:
        return self._json(
            {
                "success": True,
                "status": "OK",
                "api_configured": self.settings.is_api_configured,
                "websocket_enabled": self.settings.is_websocket_enabled,
            }
        )

    def run(self) -> None:
        logger.info(f"Starting Crypto Dashboard Server on {self.host}:{self.port}")
        self.mcp.run(transport="streamable-http", host=self.host, port=self.port)


def main() -> None:
    settings = DashboardSettings.from_env()
    configure_logging(settings.log_level, settings.json_logs)
    context = ServiceContext(settings)

    try:
        server = DashboardMCPServer(context)
        server.run()
    except KeyboardInterrupt:
        logger.info("Received interrupt signal")
    except Exception as e:
        logger.error(f"Server error: {e}")
        raise
    finally:
        logger.info("Crypto Dashboard Server stopped")


if __name__ == "__main__":
    main()
