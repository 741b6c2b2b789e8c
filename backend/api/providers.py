"""FastAPI dependency providers - app.state에 보관된 객체와 세션 토큰."""
from __future__ import annotations

from typing import Optional

import httpx
from fastapi import Cookie, Depends, Request

from backend.common.config import EnrichmentSettings, SESSION_COOKIE_NAME
from backend.core.descriptions_core import LLMPackageDescriber, PackageDescriber
from backend.core.diagram_core import DiagramGenerator


def get_diagram_generator(request: Request) -> DiagramGenerator:
    return request.app.state.diagram_generator


def get_http_client(request: Request) -> httpx.AsyncClient:
    return request.app.state.http_client


def get_enrichment_settings(request: Request) -> EnrichmentSettings:
    return request.app.state.enrichment_settings


def get_package_describer(
    request: Request,
    settings: EnrichmentSettings = Depends(get_enrichment_settings),
) -> PackageDescriber:
    return LLMPackageDescriber(request.app.state.llm_client, timeout=settings.description_timeout)


def get_session_token(
    github_token: Optional[str] = Cookie(None, alias=SESSION_COOKIE_NAME),
) -> Optional[str]:
    """로그인 쿠키의 GitHub 토큰 (없으면 None -> 앱 자격 증명 사용)."""
    return github_token or None
