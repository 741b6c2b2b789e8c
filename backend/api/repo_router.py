"""
저장소 조회 API.

GitHub 호출(requests)은 동기이므로 asyncio.to_thread로 이벤트 루프 밖에서 실행합니다.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse

from backend.api.auth_router import error_redirect
from backend.api.providers import get_diagram_generator, get_session_token
from backend.common.config import SESSION_COOKIE_NAME
from backend.common.errors import GitHubAuthError, GitHubError, ValidationError
from backend.common.github_client import fetch_user_repos
from backend.core.diagram_core import DiagramGenerator
from backend.core.github_core import (
    fetch_file,
    fetch_language_stats,
    list_directory,
    list_repository_files,
)
from backend.core.models import DetailLevel

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["repos"])


@router.get("/repos")
async def list_user_repos(token: Optional[str] = Depends(get_session_token)):
    """로그인한 사용자의 저장소 목록 (최근 업데이트 순, 최대 100개)."""
    if not token:
        return error_redirect("unauthorized")

    try:
        return await asyncio.to_thread(fetch_user_repos, token)
    except GitHubAuthError:
        logger.info("Session token rejected by GitHub, clearing cookie")
        response = error_redirect("token_expired")
        response.delete_cookie(SESSION_COOKIE_NAME, path="/")
        return response
    except GitHubError as e:
        logger.error("Failed to fetch repositories: %s", e.message)
        return JSONResponse(status_code=500, content={"error": "Failed to fetch repositories"})


@router.get("/languages")
async def get_languages(
    owner: Optional[str] = None,
    repo: Optional[str] = None,
    token: Optional[str] = Depends(get_session_token),
) -> List[Dict[str, Any]]:
    if not owner or not repo:
        raise ValidationError("Missing owner or repo parameter", field="owner")

    try:
        stats = await asyncio.to_thread(fetch_language_stats, owner, repo, token)
    except GitHubError as e:
        logger.error("Failed to fetch languages for %s/%s: %s", owner, repo, e.message)
        return JSONResponse(status_code=500, content={"error": "Failed to fetch language data"})
    return [s.to_dict() for s in stats]


@router.get("/repos/{owner}/{repo}/contents")
async def get_contents(
    owner: str,
    repo: str,
    path: str = "",
    token: Optional[str] = Depends(get_session_token),
) -> List[Dict[str, Any]]:
    items = await asyncio.to_thread(list_directory, owner, repo, path, token)
    return [item.to_dict() for item in items]


@router.get("/repos/{owner}/{repo}/file")
async def get_file(
    owner: str,
    repo: str,
    path: str = Query(..., min_length=1),
    token: Optional[str] = Depends(get_session_token),
) -> Dict[str, Any]:
    """파일 내용. 너무 큰 파일은 413 (FileTooLargeError)."""
    file = await asyncio.to_thread(fetch_file, owner, repo, path, token)
    return {"name": file.name, "path": file.path, "size": file.size, "content": file.content}


@router.get("/repos/{owner}/{repo}/tree")
async def get_tree(
    owner: str,
    repo: str,
    ref: str = "HEAD",
    token: Optional[str] = Depends(get_session_token),
) -> Dict[str, Any]:
    paths = await asyncio.to_thread(list_repository_files, owner, repo, ref, token)
    return {"paths": paths, "count": len(paths)}


@router.get("/repos/{owner}/{repo}/architecture")
async def get_architecture(
    owner: str,
    repo: str,
    detail: DetailLevel = "simple",
    token: Optional[str] = Depends(get_session_token),
    generator: DiagramGenerator = Depends(get_diagram_generator),
) -> Dict[str, Any]:
    """트리 조회 + 아키텍처 다이어그램 생성을 한 번에."""
    paths = await asyncio.to_thread(list_repository_files, owner, repo, "HEAD", token)
    if not paths:
        raise ValidationError(f"{owner}/{repo} has no files to visualize", field="repo")

    result = await generator.build_architecture_diagram(paths, detail)
    return result.to_dict()
