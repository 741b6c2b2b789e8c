"""
의존성 분석 API.

- GET /api/dependencies: 모든 보강이 끝난 최종 목록
- GET /api/dependencies/stream: 단계별 스냅샷을 SSE로 전달
"""
from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, AsyncGenerator, Dict, Optional

import httpx
from fastapi import APIRouter, Depends, Request
from fastapi.responses import StreamingResponse

from backend.api.providers import (
    get_enrichment_settings,
    get_http_client,
    get_package_describer,
    get_session_token,
)
from backend.api.schemas import ProgressEvent
from backend.common.config import EnrichmentSettings
from backend.common.errors import ValidationError
from backend.common.logging_config import LogContext
from backend.core.descriptions_core import PackageDescriber
from backend.core.enrichment_pipeline import (
    analyze_dependencies,
    stream_dependency_snapshots,
    summarize_snapshot,
)
from backend.core.github_core import detect_and_fetch_package_json
from backend.core.models import EnrichmentStage

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["dependencies"])

LOAD_FAILED_MESSAGE = "Failed to load dependencies"
DISCONNECT_POLL_INTERVAL = 0.5

STAGE_MESSAGES = {
    EnrichmentStage.EXTRACTED: "Dependencies extracted",
    EnrichmentStage.METADATA: "Registry metadata loaded",
    EnrichmentStage.DESCRIPTIONS: "Descriptions generated",
    EnrichmentStage.LOGOS: "Logos resolved",
}


def send_event(step: str, progress: int, message: str, data: Optional[dict] = None) -> str:
    event = ProgressEvent(step=step, progress=progress, message=message, data=data or {})
    return f"data: {json.dumps(event.model_dump(), ensure_ascii=False)}\n\n"


def _require_repo(owner: Optional[str], repo: Optional[str]) -> None:
    if not owner or not repo:
        raise ValidationError("Missing owner or repo parameter", field="owner")


async def _watch_disconnect(request: Request, cancel_event: asyncio.Event) -> None:
    while not cancel_event.is_set():
        if await request.is_disconnected():
            logger.info("Client disconnected, cancelling dependency analysis")
            cancel_event.set()
            return
        await asyncio.sleep(DISCONNECT_POLL_INTERVAL)


async def stream_dependency_events(
    owner: str,
    repo: str,
    token: Optional[str],
    *,
    http_client: Optional[httpx.AsyncClient],
    describer: Optional[PackageDescriber],
    settings: Optional[EnrichmentSettings],
    cancel_event: asyncio.Event,
) -> AsyncGenerator[str, None]:
    """
    의존성 분석 진행 상황을 SSE 이벤트로 스트리밍.

    단계:
    - manifest (10%): package.json 탐색
    - extracted (25%) / metadata (50%) / descriptions (75%): 중간 스냅샷
    - complete (100%): 로고까지 반영된 최종 스냅샷
    """
    try:
        yield send_event("manifest", 10, "Looking for package.json...")
        with LogContext(owner=owner, repo=repo):
            manifest = await asyncio.to_thread(detect_and_fetch_package_json, owner, repo, token)
        if manifest is None:
            logger.info("No package.json found in %s/%s", owner, repo)

        snapshots = stream_dependency_snapshots(
            manifest,
            http_client=http_client,
            describer=describer,
            settings=settings,
            cancel_event=cancel_event,
        )
        try:
            async for snapshot in snapshots:
                data: Dict[str, Any] = snapshot.to_dict()
                data["summary"] = summarize_snapshot(snapshot)
                step = "complete" if snapshot.is_final else snapshot.stage.value
                yield send_event(step, snapshot.stage.progress, STAGE_MESSAGES[snapshot.stage], data)
        finally:
            await snapshots.aclose()
    except Exception as e:
        logger.exception("Dependency stream failed for %s/%s: %s", owner, repo, e)
        yield send_event("error", 0, LOAD_FAILED_MESSAGE, {"error": LOAD_FAILED_MESSAGE})


@router.get("/dependencies")
async def get_dependencies(
    owner: Optional[str] = None,
    repo: Optional[str] = None,
    token: Optional[str] = Depends(get_session_token),
    http_client: httpx.AsyncClient = Depends(get_http_client),
    describer: PackageDescriber = Depends(get_package_describer),
    settings: EnrichmentSettings = Depends(get_enrichment_settings),
) -> Dict[str, Any]:
    """보강이 모두 끝난 의존성 목록."""
    _require_repo(owner, repo)

    with LogContext(owner=owner, repo=repo):
        manifest = await asyncio.to_thread(detect_and_fetch_package_json, owner, repo, token)
    deps = await analyze_dependencies(
        manifest,
        http_client=http_client,
        describer=describer,
        settings=settings,
    )
    return {
        "found": manifest is not None,
        "dependencies": [d.to_dict() for d in deps],
    }


@router.get("/dependencies/stream")
async def stream_dependencies(
    request: Request,
    owner: Optional[str] = None,
    repo: Optional[str] = None,
    token: Optional[str] = Depends(get_session_token),
    http_client: httpx.AsyncClient = Depends(get_http_client),
    describer: PackageDescriber = Depends(get_package_describer),
    settings: EnrichmentSettings = Depends(get_enrichment_settings),
):
    """
    의존성 분석 SSE 스트리밍 API.

    이벤트 형식:
    - step: manifest, extracted, metadata, descriptions, complete, error
    - progress: 진행률 (0-100)
    - message: 사용자에게 표시할 메시지
    - data: 해당 시점의 전체 의존성 스냅샷
    """
    _require_repo(owner, repo)
    cancel_event = asyncio.Event()

    async def event_source() -> AsyncGenerator[str, None]:
        watcher = asyncio.create_task(_watch_disconnect(request, cancel_event))
        try:
            async for chunk in stream_dependency_events(
                owner,
                repo,
                token,
                http_client=http_client,
                describer=describer,
                settings=settings,
                cancel_event=cancel_event,
            ):
                yield chunk
        finally:
            cancel_event.set()
            watcher.cancel()

    return StreamingResponse(
        event_source(),
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "Connection": "keep-alive",
            "X-Accel-Buffering": "no",  # nginx 버퍼링 비활성화
        },
    )
