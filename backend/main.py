"""
Repository Visualizer FastAPI 서버.

Usage:
    uvicorn backend.main:app --reload --port 8000
"""
from contextlib import asynccontextmanager
import logging

import httpx
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from backend.api.auth_router import router as auth_router
from backend.api.dependencies_router import router as dependencies_router
from backend.api.diagram_router import router as diagram_router
from backend.api.endpoints import health_router
from backend.api.repo_router import router as repo_router
from backend.common.config import CORS_ORIGINS, EnrichmentSettings, LLMSettings
from backend.common.errors import BaseError, ErrorKind
from backend.common.logging_config import setup_logging
from backend.core.diagram_core import DiagramGenerator
from backend.llm.factory import create_llm_client
from backend.prompts import preload_prompts

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """설정 객체와 공유 클라이언트를 한 번만 만들어 app.state에 보관."""
    setup_logging()
    preload_prompts()
    llm_settings = LLMSettings.from_env()
    llm_client = create_llm_client(llm_settings)

    app.state.llm_settings = llm_settings
    app.state.llm_client = llm_client
    app.state.diagram_generator = DiagramGenerator(llm_client, llm_settings)
    app.state.enrichment_settings = EnrichmentSettings.from_env()
    app.state.http_client = httpx.AsyncClient(follow_redirects=True)
    logger.info("Started with model %s via %s", llm_settings.model, llm_settings.provider)
    try:
        yield
    finally:
        await app.state.http_client.aclose()


app = FastAPI(
    title="Repository Visualizer API",
    description="GitHub 저장소 탐색, 의존성 분석, Mermaid 아키텍처 다이어그램 생성 API",
    version="1.0.0",
    lifespan=lifespan,
)

# 전역 에러 핸들러
@app.exception_handler(BaseError)
async def base_error_handler(request: Request, exc: BaseError):
    """BaseError (모든 커스텀 에러) 핸들러."""
    exc.log(level="warning" if exc.http_status < 500 else "error")

    return JSONResponse(
        status_code=exc.http_status,
        content=exc.to_dict(),
    )


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """예상치 못한 예외 핸들러."""
    logger.error(
        f"Unhandled exception: {exc}",
        exc_info=True,
        extra={"path": request.url.path, "method": request.method}
    )

    return JSONResponse(
        status_code=500,
        content={
            "error": "Internal server error",
            "kind": ErrorKind.INTERNAL_ERROR.value,
            "suggested_action": "abort",
        },
    )


# CORS 설정 (프론트엔드 연동용, 쿠키 포함)
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# 라우터 등록
app.include_router(health_router)
app.include_router(auth_router)
app.include_router(repo_router)
app.include_router(dependencies_router)
app.include_router(diagram_router)


@app.get("/")
async def root():
    """루트 엔드포인트."""
    return {
        "service": "repo-visualizer",
        "version": "1.0.0",
        "docs": "/docs",
        "endpoints": {
            "health": "GET /api/health",
            "auth_callback": "GET /api/auth/callback",
            "repos": "GET /api/repos",
            "languages": "GET /api/languages",
            "contents": "GET /api/repos/{owner}/{repo}/contents",
            "file": "GET /api/repos/{owner}/{repo}/file",
            "tree": "GET /api/repos/{owner}/{repo}/tree",
            "architecture": "GET /api/repos/{owner}/{repo}/architecture",
            "dependencies": "GET /api/dependencies",
            "dependencies_stream": "GET /api/dependencies/stream",
            "generate_diagram": "POST /api/generate-diagram",
            "package_descriptions": "POST /api/package-descriptions",
        }
    }
