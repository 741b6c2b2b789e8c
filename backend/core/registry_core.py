"""npm 레지스트리 메타데이터 보강 - Core 레이어."""
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

import httpx

from backend.common.async_utils import gather_in_batches, with_timeout
from backend.common.config import EnrichmentSettings
from .dependencies_core import normalize_repository_url
from .models import DependencyRecord

logger = logging.getLogger(__name__)


def registry_url_for(name: str, registry_url: str) -> str:
    """스코프 패키지(@scope/name)의 '/'는 %2F로 인코딩."""
    return f"{registry_url.rstrip('/')}/{name.replace('/', '%2F')}"


def apply_registry_metadata(dep: DependencyRecord, payload: Any) -> DependencyRecord:
    """
    레지스트리 응답을 레코드에 반영.

    비어 있지 않은 값만 설정하고, 기존 필드를 지우지 않습니다.
    homepage가 없으면 repository URL을 정규화해 사용합니다.
    """
    if not isinstance(payload, dict):
        return dep

    changes: Dict[str, str] = {}
    description = payload.get("description")
    if isinstance(description, str) and description.strip():
        changes["description"] = description.strip()

    homepage = payload.get("homepage")
    if not (isinstance(homepage, str) and homepage.strip()):
        homepage = normalize_repository_url(payload.get("repository"))
    if homepage:
        changes["homepage"] = homepage.strip()

    return dep.evolve(**changes) if changes else dep


async def _lookup(client: httpx.AsyncClient, name: str, registry_url: str) -> Dict[str, Any]:
    resp = await client.get(registry_url_for(name, registry_url))
    resp.raise_for_status()
    return resp.json()


async def fetch_package_metadata(
    deps: List[DependencyRecord],
    client: Optional[httpx.AsyncClient] = None,
    *,
    settings: Optional[EnrichmentSettings] = None,
) -> List[DependencyRecord]:
    """
    각 의존성의 description/homepage를 npm 레지스트리에서 보강.

    요청은 metadata_concurrency개씩 배치로 실행되며, 요청마다
    metadata_timeout이 적용됩니다. 실패한 레코드는 그대로 유지됩니다.

    Returns:
        입력과 같은 순서의 새 리스트
    """
    settings = settings or EnrichmentSettings.from_env()
    if not deps:
        return []

    owns_client = client is None
    if owns_client:
        client = httpx.AsyncClient(follow_redirects=True)

    async def worker(dep: DependencyRecord):
        return await with_timeout(
            _lookup(client, dep.name, settings.registry_url),
            settings.metadata_timeout,
        )

    try:
        outcomes = await gather_in_batches(deps, worker, settings.metadata_concurrency)
    finally:
        if owns_client:
            await client.aclose()

    enriched: List[DependencyRecord] = []
    failures = 0
    for dep, batch_outcome in zip(deps, outcomes):
        # batch_outcome.value는 with_timeout의 Outcome
        lookup = batch_outcome.value if batch_outcome.ok else batch_outcome
        if lookup.ok:
            enriched.append(apply_registry_metadata(dep, lookup.value))
            continue
        failures += 1
        if lookup.timed_out:
            logger.warning("Registry lookup timed out for %s", dep.name)
        else:
            logger.warning("Registry lookup failed for %s: %s", dep.name, lookup.error)
        enriched.append(dep)

    logger.info("Registry metadata: %d/%d packages enriched", len(deps) - failures, len(deps))
    return enriched
