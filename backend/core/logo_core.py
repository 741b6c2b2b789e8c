"""패키지 로고 URL 탐색 - Core 레이어."""
from __future__ import annotations

import logging
from typing import List, Optional
from urllib.parse import quote

import httpx

from backend.common.async_utils import gather_in_batches, with_timeout
from backend.common.config import EnrichmentSettings, LOGO_TIMEOUT
from .models import DependencyRecord

logger = logging.getLogger(__name__)


def simplify_name(name: str) -> str:
    """simple-icons 슬러그: '@'제거, '/'는 '-', 소문자."""
    return name.replace("@", "").replace("/", "-").lower()


def logo_candidates(name: str) -> List[str]:
    """존재할 가능성이 높은 순서의 후보 URL."""
    return [
        f"https://cdn.jsdelivr.net/npm/{name}/logo.png",
        f"https://unpkg.com/{name}/logo.png",
        f"https://cdn.jsdelivr.net/gh/simple-icons/simple-icons/icons/{simplify_name(name)}.svg",
    ]


def fallback_logo_url(name: str) -> str:
    return f"https://img.shields.io/npm/v/{quote(name, safe='@/')}.svg"


async def _probe(client: httpx.AsyncClient, candidates: List[str]) -> Optional[str]:
    for url in candidates:
        try:
            resp = await client.head(url)
        except httpx.HTTPError as e:
            logger.debug("Logo probe failed for %s: %s", url, e)
            continue
        if resp.is_success:
            return url
    return None


async def resolve_logo(
    name: str,
    client: Optional[httpx.AsyncClient] = None,
    timeout: float = LOGO_TIMEOUT,
) -> str:
    """
    첫 번째로 응답하는 로고 URL을 반환.

    timeout은 후보 전체에 대한 제한 시간입니다. 아무것도 응답하지 않으면
    shields.io 배지 URL을 돌려주며, 예외를 던지지 않습니다.
    """
    owns_client = client is None
    if owns_client:
        client = httpx.AsyncClient(follow_redirects=True)
    try:
        outcome = await with_timeout(_probe(client, logo_candidates(name)), timeout)
    finally:
        if owns_client:
            await client.aclose()

    if outcome.ok and outcome.value:
        return outcome.value
    if outcome.timed_out:
        logger.debug("Logo resolution timed out for %s", name)
    elif outcome.error is not None:
        logger.warning("Logo resolution failed for %s: %s", name, outcome.error)
    return fallback_logo_url(name)


async def resolve_logos(
    deps: List[DependencyRecord],
    client: Optional[httpx.AsyncClient] = None,
    *,
    settings: Optional[EnrichmentSettings] = None,
) -> List[DependencyRecord]:
    """모든 레코드의 logo_url을 배치 단위로 교체한 새 리스트."""
    settings = settings or EnrichmentSettings.from_env()
    if not deps:
        return []

    owns_client = client is None
    if owns_client:
        client = httpx.AsyncClient(follow_redirects=True)

    async def worker(dep: DependencyRecord) -> str:
        return await resolve_logo(dep.name, client, settings.logo_timeout)

    try:
        outcomes = await gather_in_batches(deps, worker, settings.logo_concurrency)
    finally:
        if owns_client:
            await client.aclose()

    return [
        dep.evolve(logo_url=outcome.unwrap_or(fallback_logo_url(dep.name)))
        for dep, outcome in zip(deps, outcomes)
    ]
