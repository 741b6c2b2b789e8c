"""
HTTP API 엔드포인트 모듈
"""

from backend.api.endpoints.health import health_check, router as health_router

__all__ = [
    "health_check",
    "health_router",
]
