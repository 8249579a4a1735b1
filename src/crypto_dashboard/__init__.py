"""
Crypto Dashboard 패키지

암호화폐 지수/지표 대시보드 백엔드입니다. 외부 REST API(TokenMetrics, CoinGecko)
호출을 캐시와 레이트 리미터로 감싸는 요청 거버넌스 계층과, 실시간 데이터용
WebSocket 클라이언트를 제공합니다.
"""

__version__ = "0.1.0"
