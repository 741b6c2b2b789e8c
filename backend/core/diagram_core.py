"""
다이어그램 생성 - LLM 호출 + Mermaid 복구.

- generate_architecture(): 파일 경로 목록만으로 저장소 아키텍처 예측 (simple/detailed)
- generate_file_diagram(): 파일 하나의 소스로 구조 다이어그램 생성
- build_*(): 위 결과를 sanitize해서 DiagramResult로 반환, 생성 실패 시 fallback
"""
from __future__ import annotations

import asyncio
import logging
import re
from typing import List, Optional, Sequence, Tuple

from backend.common.async_utils import async_with_fallback
from backend.common.config import LLMSettings, MAX_DIAGRAM_CONTENT_CHARS
from backend.common.errors import DiagramGenerationError, ErrorKind, LLMError, ValidationError
from backend.llm.base import LLMClient
from backend.prompts import get_parameters, get_system_prompt, render_prompt
from .mermaid import FALLBACK_RESULT, sanitize_mermaid
from .models import DetailLevel, DiagramResult

logger = logging.getLogger(__name__)

DETAIL_LEVELS = ("simple", "detailed")
TRUNCATION_MARKER = "\n\n... (content truncated for length)"
FALLBACK_MESSAGE = "Using simplified diagram due to generation issues"

GENERATION_FALLBACK = DiagramResult(
    diagram=FALLBACK_RESULT,
    type="flowchart",
    fallback=True,
    message=FALLBACK_MESSAGE,
)

_CLASS_DEF = re.compile(r"^\s*(?:export\s+)?(?:default\s+)?(?:abstract\s+)?(?:public\s+)?(?:class|interface)\s+\w+", re.M)
_STATE_HINTS = re.compile(r"\b(?:state|status|transition|dispatch|reducer)\b|\bcase\s+['\"\w]", re.I)
_INTERACTION_HINTS = re.compile(r"\bawait\b|\.then\(|\bfetch\(|\baxios\b|\brequests?\.|\bemit\(|\bsend\(|\bsubscribe\(")


def choose_diagram_type(content: str) -> str:
    """
    소스 모양에 따라 다이어그램 종류 선택.

    클래스가 많으면 classDiagram, 상태 전이 흔적이 많으면 stateDiagram,
    비동기 호출/메시지 교환이 많으면 sequenceDiagram, 나머지는 flowchart.
    """
    classes = len(_CLASS_DEF.findall(content))
    states = len(_STATE_HINTS.findall(content))
    interactions = len(_INTERACTION_HINTS.findall(content))

    if classes >= 2 or (classes == 1 and states < 5 and interactions < 5):
        return "classDiagram"
    if states >= 5 and states >= interactions:
        return "stateDiagram"
    if interactions >= 3:
        return "sequenceDiagram"
    return "flowchart"


def _validate_architecture_input(file_paths: Sequence[str], detail_level: str) -> List[str]:
    paths = [p for p in file_paths if isinstance(p, str) and p.strip()]
    if not paths:
        raise ValidationError("filePaths must be a non-empty list of paths", field="filePaths")
    if detail_level not in DETAIL_LEVELS:
        raise ValidationError(f"Unknown detail level: {detail_level}", field="detailLevel")
    return paths


def _require_content(content: Optional[str]) -> None:
    if not content or not content.strip():
        raise ValidationError(
            "File content is required",
            field="fileContent",
            kind=ErrorKind.MISSING_REQUIRED_FIELD,
        )


def truncate_content(content: str, limit: int = MAX_DIAGRAM_CONTENT_CHARS) -> str:
    if len(content) <= limit:
        return content
    return content[:limit] + TRUNCATION_MARKER


def diagram_type_of(diagram: str) -> str:
    """sanitize된 다이어그램의 첫 키워드 (graph는 flowchart, stateDiagram-v2는 stateDiagram)."""
    keyword = diagram.split(None, 1)[0] if diagram.strip() else "flowchart"
    if keyword == "graph":
        return "flowchart"
    if keyword.startswith("stateDiagram"):
        return "stateDiagram"
    return keyword


class DiagramGenerator:
    """LLM 클라이언트를 주입받아 다이어그램을 생성."""

    def __init__(self, llm: LLMClient, settings: Optional[LLMSettings] = None) -> None:
        self.llm = llm
        self.settings = settings or LLMSettings.from_env()

    def _call(self, prompt_name: str, **variables: str) -> str:
        params = get_parameters(prompt_name)
        params["timeout"] = self.settings.timeout
        try:
            return self.llm.complete(
                get_system_prompt(prompt_name),
                render_prompt(prompt_name, **variables),
                **params,
            )
        except LLMError as e:
            raise DiagramGenerationError(f"Diagram generation failed: {e.message}", cause=e) from e

    async def generate_architecture(
        self,
        file_paths: Sequence[str],
        detail_level: DetailLevel = "simple",
    ) -> str:
        """
        파일 경로 목록으로 아키텍처 flowchart를 요청하고 원문 응답을 반환.

        Raises:
            ValidationError: 경로가 없거나 detail_level이 잘못된 경우
            DiagramGenerationError: LLM 호출 실패
        """
        paths = _validate_architecture_input(file_paths, detail_level)

        logger.info("Generating %s architecture diagram from %d paths", detail_level, len(paths))
        return await asyncio.to_thread(
            self._call, f"architecture_{detail_level}", file_paths="\n".join(paths)
        )

    async def generate_file_diagram(
        self,
        content: str,
        file_name: Optional[str] = None,
        file_type: Optional[str] = None,
    ) -> Tuple[str, str]:
        """
        파일 하나의 구조 다이어그램을 요청.

        Returns:
            (원문 응답, 요청한 다이어그램 종류)
        """
        _require_content(content)

        diagram_type = choose_diagram_type(content)
        logger.info("Generating %s for %s", diagram_type, file_name or "unnamed file")
        raw = await asyncio.to_thread(
            self._call,
            "file_diagram",
            diagram_type=diagram_type,
            file_name=file_name or "unknown",
            file_type=file_type or "unknown",
            content=truncate_content(content),
        )
        return raw, diagram_type

    @async_with_fallback(fallback_value=GENERATION_FALLBACK)
    async def _architecture_result(self, paths: List[str], detail_level: DetailLevel) -> DiagramResult:
        diagram = sanitize_mermaid(await self.generate_architecture(paths, detail_level))
        return DiagramResult(diagram=diagram, type=diagram_type_of(diagram))

    @async_with_fallback(fallback_value=GENERATION_FALLBACK)
    async def _file_result(self, content: str, file_name: Optional[str], file_type: Optional[str]) -> DiagramResult:
        raw, _ = await self.generate_file_diagram(content, file_name, file_type)
        diagram = sanitize_mermaid(raw)
        return DiagramResult(diagram=diagram, type=diagram_type_of(diagram))

    async def build_architecture_diagram(
        self,
        file_paths: Sequence[str],
        detail_level: DetailLevel = "simple",
    ) -> DiagramResult:
        """입력 오류는 그대로 전파, 생성 실패는 fallback 다이어그램."""
        paths = _validate_architecture_input(file_paths, detail_level)
        return await self._architecture_result(paths, detail_level)

    async def build_file_diagram(
        self,
        content: str,
        file_name: Optional[str] = None,
        file_type: Optional[str] = None,
    ) -> DiagramResult:
        _require_content(content)
        return await self._file_result(content, file_name, file_type)
