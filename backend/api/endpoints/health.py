"""
Health Check 엔드포인트
"""

from fastapi import APIRouter, Request
from pydantic import BaseModel, Field

router = APIRouter(prefix="/api", tags=["health"])


class HealthCheckResponse(BaseModel):
    """Health check 응답."""
    status: str = Field(..., description="서비스 상태", examples=["ok"])
    service: str = Field(..., description="서비스 이름", examples=["repo-visualizer"])
    llm_model: str = Field(..., description="다이어그램/설명 생성 모델")


@router.get("/health", response_model=HealthCheckResponse)
async def health_check(request: Request) -> HealthCheckResponse:
    """API 상태 확인 (외부 호출 없음)."""
    llm = getattr(request.app.state, "llm_client", None)
    return HealthCheckResponse(
        status="ok",
        service="repo-visualizer",
        llm_model=getattr(llm, "model", None) or "unconfigured",
    )
