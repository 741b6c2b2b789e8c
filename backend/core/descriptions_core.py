"""
LLM 패키지 설명 어댑터 - Core 레이어.

의존성 이름을 청크 단위로 묶어 설명 서비스에 보내고, 돌아온
name -> description 매핑을 이름이 정확히 같은 레코드에 병합합니다.
설명 서비스는 PackageDescriber 프로토콜만 만족하면 됩니다:

- LLMPackageDescriber: 프로세스 내 LLM 클라이언트 직접 호출
- HttpPackageDescriber: 원격 /api/package-descriptions 엔드포인트 호출
"""
from __future__ import annotations

import asyncio
import json
import logging
from typing import Dict, List, Optional, Protocol, Sequence

import httpx

from backend.common.async_utils import with_timeout
from backend.common.config import LLM_DESCRIPTION_CHUNK_SIZE, LLM_DESCRIPTION_TIMEOUT
from backend.common.errors import LLMError, LLMParseError
from backend.llm.base import LLMClient, strip_code_fences
from backend.prompts import get_parameters, get_system_prompt, render_prompt
from .models import DependencyRecord

logger = logging.getLogger(__name__)

PROMPT_NAME = "package_descriptions"


class PackageDescriber(Protocol):
    async def describe(self, names: Sequence[str]) -> Dict[str, str]:
        ...


def parse_descriptions(content: str, model: Optional[str] = None) -> Dict[str, str]:
    """모델 응답에서 {name: description} 객체를 꺼냄. 문자열이 아닌 값은 버립니다."""
    text = strip_code_fences(content)
    start, end = text.find("{"), text.rfind("}")
    if start == -1 or end <= start:
        raise LLMParseError(content, model=model)
    try:
        data = json.loads(text[start:end + 1])
    except json.JSONDecodeError as e:
        raise LLMParseError(content, model=model) from e
    if not isinstance(data, dict):
        raise LLMParseError(content, model=model)
    return {
        str(name): desc.strip()
        for name, desc in data.items()
        if isinstance(desc, str) and desc.strip()
    }


class LLMPackageDescriber:
    """LLM 클라이언트로 패키지 설명을 생성."""

    def __init__(self, llm: LLMClient, timeout: float = LLM_DESCRIPTION_TIMEOUT) -> None:
        self.llm = llm
        # SDK 호출 타임아웃 (fetch_llm_descriptions의 대기 시간 이하)
        self.timeout = timeout

    def describe_sync(self, names: Sequence[str]) -> Dict[str, str]:
        params = get_parameters(PROMPT_NAME)
        params["timeout"] = self.timeout
        content = self.llm.complete(
            get_system_prompt(PROMPT_NAME),
            render_prompt(PROMPT_NAME, packages=", ".join(names)),
            **params,
        )
        return parse_descriptions(content, getattr(self.llm, "model", None))

    async def describe(self, names: Sequence[str]) -> Dict[str, str]:
        # LLM SDK 호출은 동기 -> 스레드에서 실행
        return await asyncio.to_thread(self.describe_sync, list(names))


class HttpPackageDescriber:
    """원격 설명 엔드포인트 ({packages: "a,b"} -> {descriptions: {...}})."""

    def __init__(self, url: str, client: httpx.AsyncClient) -> None:
        self.url = url
        self.client = client

    async def describe(self, names: Sequence[str]) -> Dict[str, str]:
        resp = await self.client.post(self.url, json={"packages": ",".join(names)})
        resp.raise_for_status()
        descriptions = resp.json().get("descriptions")
        if not isinstance(descriptions, dict):
            raise LLMError("Description endpoint returned no descriptions")
        return {str(k): v for k, v in descriptions.items() if isinstance(v, str)}


def merge_descriptions(
    deps: List[DependencyRecord],
    descriptions: Dict[str, str],
) -> List[DependencyRecord]:
    """이름이 정확히 같은 모든 레코드에 llm_description 설정. 모르는 이름은 무시."""
    return [
        dep.evolve(llm_description=descriptions[dep.name]) if dep.name in descriptions else dep
        for dep in deps
    ]


async def fetch_llm_descriptions(
    deps: List[DependencyRecord],
    describer: Optional[PackageDescriber],
    chunk_size: int = LLM_DESCRIPTION_CHUNK_SIZE,
    timeout: float = LLM_DESCRIPTION_TIMEOUT,
) -> List[DependencyRecord]:
    """
    청크 단위로 설명을 받아 병합한 새 리스트를 반환.

    청크 하나가 실패(타임아웃, 에러 응답, 깨진 본문)해도 나머지 청크는
    계속 진행하며, 이 함수는 예외를 던지지 않습니다.
    """
    if not deps or describer is None:
        return list(deps)

    names: List[str] = list(dict.fromkeys(dep.name for dep in deps))
    collected: Dict[str, str] = {}

    for start in range(0, len(names), chunk_size):
        chunk = names[start:start + chunk_size]
        outcome = await with_timeout(describer.describe(chunk), timeout)
        if outcome.ok:
            collected.update(outcome.value or {})
        elif outcome.timed_out:
            logger.warning("LLM descriptions timed out for %d packages", len(chunk))
        else:
            logger.warning("LLM descriptions failed for %s: %s", ",".join(chunk), outcome.error)

    return merge_descriptions(deps, collected)
