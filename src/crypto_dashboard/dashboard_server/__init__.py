"""Crypto 대시보드 서버 (FastMCP 도구 + JSON HTTP 라우트)"""
