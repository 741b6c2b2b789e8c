"""Core domain models - LLM/HTTP 의존성 없음."""
from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Dict, List, Literal, Optional

# 로고를 찾기 전에 즉시 보여주는 기본 이미지
PLACEHOLDER_LOGO_URL = "https://raw.githubusercontent.com/npm/logos/master/npm%20logo/npm-logo-red.png"


class DependencyType(str, Enum):
    """package.json의 의존성 섹션."""
    DEPENDENCIES = "dependencies"
    DEV_DEPENDENCIES = "devDependencies"
    PEER_DEPENDENCIES = "peerDependencies"
    OPTIONAL_DEPENDENCIES = "optionalDependencies"


@dataclass(frozen=True)
class DependencyRecord:
    """
    의존성 하나. 불변이며 보강 단계마다 dataclasses.replace로 새 값이 만들어집니다.

    (name, type)이 실질적인 키입니다. 같은 name이 dependencies와
    devDependencies에 동시에 나올 수 있습니다.
    """
    name: str
    version: str
    type: DependencyType
    description: Optional[str] = None
    homepage: Optional[str] = None
    logo_url: Optional[str] = None
    llm_description: Optional[str] = None

    @property
    def display_description(self) -> Optional[str]:
        """LLM 설명이 있으면 우선, 없으면 레지스트리 설명."""
        return self.llm_description or self.description

    def evolve(self, **changes: Any) -> "DependencyRecord":
        return replace(self, **changes)

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "name": self.name,
            "version": self.version,
            "type": self.type.value,
        }
        optional = {
            "description": self.description,
            "homepage": self.homepage,
            "logoUrl": self.logo_url,
            "llmDescription": self.llm_description,
        }
        data.update({k: v for k, v in optional.items() if v is not None})
        return data


class EnrichmentStage(str, Enum):
    """보강 파이프라인 단계 (순서대로 진행)."""
    EXTRACTED = "extracted"
    METADATA = "metadata"
    DESCRIPTIONS = "descriptions"
    LOGOS = "logos"

    @property
    def progress(self) -> int:
        return STAGE_PROGRESS[self]


STAGE_PROGRESS = {
    EnrichmentStage.EXTRACTED: 25,
    EnrichmentStage.METADATA: 50,
    EnrichmentStage.DESCRIPTIONS: 75,
    EnrichmentStage.LOGOS: 100,
}


@dataclass(frozen=True)
class DependencySnapshot:
    """한 단계가 끝난 시점의 의존성 목록 전체."""
    stage: EnrichmentStage
    dependencies: List[DependencyRecord] = field(default_factory=list)

    @property
    def is_final(self) -> bool:
        return self.stage is EnrichmentStage.LOGOS

    def grouped(self) -> Dict[str, List[DependencyRecord]]:
        """섹션별 그룹 (섹션 순서 유지, 빈 섹션 제외)."""
        groups: Dict[str, List[DependencyRecord]] = {}
        for dep_type in DependencyType:
            members = [d for d in self.dependencies if d.type is dep_type]
            if members:
                groups[dep_type.value] = members
        return groups

    def to_dict(self) -> Dict[str, Any]:
        return {
            "stage": self.stage.value,
            "dependencies": [d.to_dict() for d in self.dependencies],
        }


@dataclass(frozen=True)
class FileItem:
    """저장소 트리의 항목 하나."""
    name: str
    path: str
    type: Literal["file", "dir"]

    def to_dict(self) -> Dict[str, Any]:
        return {"name": self.name, "path": self.path, "type": self.type}


@dataclass(frozen=True)
class RepoFile:
    """디코딩된 파일 내용."""
    name: str
    path: str
    size: int
    content: str


@dataclass(frozen=True)
class LanguageStat:
    name: str
    bytes: int
    percentage: str  # 소수점 한 자리 문자열 ("42.3")
    color: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "percentage": self.percentage,
            "bytes": self.bytes,
            "color": self.color,
        }


DetailLevel = Literal["simple", "detailed"]
DIAGRAM_KEYWORDS = (
    "flowchart",
    "graph",
    "sequenceDiagram",
    "classDiagram",
    "stateDiagram",
    "erDiagram",
)


@dataclass(frozen=True)
class DiagramResult:
    """정리된 다이어그램과 fallback 여부."""
    diagram: str
    type: str
    fallback: bool = False
    message: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"diagram": self.diagram, "type": self.type}
        if self.fallback:
            data["fallback"] = True
        if self.message:
            data["message"] = self.message
        return data
