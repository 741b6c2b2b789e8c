"""
의존성 보강 파이프라인.

package.json -> 추출 -> npm 메타데이터 -> LLM 설명 -> 로고 순서로 진행하며,
단계가 끝날 때마다 전체 목록의 스냅샷(항상 새 리스트)을 yield합니다.

    async for snapshot in stream_dependency_snapshots(manifest, http_client=client):
        render(snapshot.dependencies)

- 첫 스냅샷(extracted)은 네트워크 호출 없이 즉시 나옵니다.
- 한 단계의 실패는 로그만 남기고 이전 목록을 그대로 다음 단계로 넘깁니다.
- cancel_event가 set되면 진행 중인 단계를 취소하고 더 이상 yield하지 않습니다.
"""
from __future__ import annotations

import asyncio
import logging
from typing import (
    Any,
    AsyncIterator,
    Awaitable,
    Callable,
    Dict,
    List,
    Optional,
    Tuple,
)

import httpx

from backend.common.config import EnrichmentSettings
from .dependencies_core import extract_dependencies, with_placeholder_logos
from .descriptions_core import PackageDescriber, fetch_llm_descriptions
from .logo_core import resolve_logos
from .models import DependencyRecord, DependencySnapshot, EnrichmentStage
from .registry_core import fetch_package_metadata

logger = logging.getLogger(__name__)

Stage = Callable[[List[DependencyRecord]], Awaitable[List[DependencyRecord]]]


class PipelineCancelled(Exception):
    """cancel_event가 단계 실행 중에 set된 경우 (내부용)."""


async def _race_cancel(
    work: Awaitable[List[DependencyRecord]],
    cancel_event: Optional[asyncio.Event],
) -> List[DependencyRecord]:
    if cancel_event is None:
        return await work

    work_task = asyncio.ensure_future(work)
    cancel_task = asyncio.ensure_future(cancel_event.wait())
    try:
        await asyncio.wait({work_task, cancel_task}, return_when=asyncio.FIRST_COMPLETED)
    except asyncio.CancelledError:
        work_task.cancel()
        raise
    finally:
        cancel_task.cancel()

    if cancel_event.is_set():
        work_task.cancel()
        # 취소된 작업의 결과(또는 예외)는 버림
        await asyncio.gather(work_task, return_exceptions=True)
        raise PipelineCancelled()
    return work_task.result()


def _stages(
    client: httpx.AsyncClient,
    describer: Optional[PackageDescriber],
    settings: EnrichmentSettings,
) -> List[Tuple[EnrichmentStage, Stage]]:
    return [
        (EnrichmentStage.METADATA,
         lambda deps: fetch_package_metadata(deps, client, settings=settings)),
        (EnrichmentStage.DESCRIPTIONS,
         lambda deps: fetch_llm_descriptions(
             deps, describer,
             chunk_size=settings.description_chunk_size,
             timeout=settings.description_timeout,
         )),
        (EnrichmentStage.LOGOS,
         lambda deps: resolve_logos(deps, client, settings=settings)),
    ]


async def stream_dependency_snapshots(
    manifest: Any,
    *,
    http_client: Optional[httpx.AsyncClient] = None,
    describer: Optional[PackageDescriber] = None,
    settings: Optional[EnrichmentSettings] = None,
    cancel_event: Optional[asyncio.Event] = None,
) -> AsyncIterator[DependencySnapshot]:
    """
    보강 단계별 스냅샷을 순서대로 생성.

    Args:
        manifest: 파싱된 package.json (None이면 빈 스냅샷 네 개)
        http_client: npm 레지스트리/로고 조회용 클라이언트 (없으면 생성 후 닫음)
        describer: LLM 설명 서비스 (None이면 설명 단계는 목록을 그대로 통과)
        settings: 타임아웃/동시성 설정
        cancel_event: set되면 파이프라인 중단

    Yields:
        extracted, metadata, descriptions, logos 순서의 DependencySnapshot
    """
    settings = settings or EnrichmentSettings.from_env()

    deps = with_placeholder_logos(extract_dependencies(manifest))
    if cancel_event is not None and cancel_event.is_set():
        return
    logger.info("Extracted %d dependencies", len(deps))
    yield DependencySnapshot(EnrichmentStage.EXTRACTED, list(deps))

    owns_client = http_client is None
    client = http_client or httpx.AsyncClient(follow_redirects=True)
    try:
        for stage, run in _stages(client, describer, settings):
            if cancel_event is not None and cancel_event.is_set():
                logger.info("Dependency pipeline cancelled before %s", stage.value)
                return
            try:
                deps = await _race_cancel(run(list(deps)), cancel_event)
            except PipelineCancelled:
                logger.info("Dependency pipeline cancelled during %s", stage.value)
                return
            except Exception as e:
                logger.warning("Stage %s failed, keeping previous data: %s", stage.value, e, exc_info=True)
            yield DependencySnapshot(stage, list(deps))
    finally:
        if owns_client:
            await client.aclose()


async def analyze_dependencies(
    manifest: Any,
    **kwargs: Any,
) -> List[DependencyRecord]:
    """마지막 스냅샷만 필요한 호출자용."""
    final: List[DependencyRecord] = []
    async for snapshot in stream_dependency_snapshots(manifest, **kwargs):
        final = snapshot.dependencies
    return final


def summarize_snapshot(snapshot: DependencySnapshot) -> Dict[str, int]:
    """섹션별 레코드 수 (진행 메시지용)."""
    return {section: len(records) for section, records in snapshot.grouped().items()}
