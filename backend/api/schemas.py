"""
API Request/Response 스키마 정의.

JSON 필드는 프론트엔드 관례대로 camelCase(alias)를 사용합니다.
"""
from __future__ import annotations

from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class GenerateDiagramRequest(CamelModel):
    """
    다이어그램 생성 요청.

    두 가지 형태 중 하나:
    - 단일 파일: fileContent (+ fileName, fileType)
    - 저장소 아키텍처: filePaths + detailLevel
    """
    file_content: Optional[str] = Field(None, alias="fileContent", description="파일 소스 텍스트")
    file_name: Optional[str] = Field(None, alias="fileName", examples=["src/app.ts"])
    file_type: Optional[str] = Field(None, alias="fileType", examples=["typescript"])
    file_paths: Optional[list[str]] = Field(None, alias="filePaths", description="저장소 파일 경로 목록")
    detail_level: Literal["simple", "detailed"] = Field("simple", alias="detailLevel")

    @property
    def is_architecture(self) -> bool:
        return self.file_paths is not None and self.file_content is None


class DiagramResponse(CamelModel):
    diagram: str
    type: Optional[str] = None
    fallback: Optional[bool] = None
    message: Optional[str] = None


class PackageDescriptionsRequest(CamelModel):
    packages: str = Field("", description="콤마로 구분된 패키지 이름", examples=["react,axios"])

    @field_validator("packages")
    @classmethod
    def strip_packages(cls, v: str) -> str:
        return v.strip()

    def names(self) -> list[str]:
        return list(dict.fromkeys(p.strip() for p in self.packages.split(",") if p.strip()))


class PackageDescriptionsResponse(CamelModel):
    descriptions: dict[str, str] = Field(default_factory=dict)


class ProgressEvent(BaseModel):
    """SSE 진행률 이벤트."""
    step: str
    progress: int = Field(..., ge=0, le=100)
    message: str
    data: dict = Field(default_factory=dict)
