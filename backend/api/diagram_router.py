"""
다이어그램/패키지 설명 생성 API.

생성 호출이 실패해도 generate-diagram은 200과 fallback 다이어그램을 돌려줍니다.
패키지 설명은 실패 시 에러 본문과 함께 non-2xx를 반환합니다.
"""
from __future__ import annotations

import logging

from fastapi import APIRouter, Depends

from backend.api.providers import get_diagram_generator, get_package_describer
from backend.api.schemas import (
    DiagramResponse,
    GenerateDiagramRequest,
    PackageDescriptionsRequest,
    PackageDescriptionsResponse,
)
from backend.common.errors import ErrorKind, ValidationError
from backend.core.descriptions_core import PackageDescriber
from backend.core.diagram_core import DiagramGenerator

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["diagrams"])


@router.post("/generate-diagram", response_model=DiagramResponse, response_model_exclude_none=True)
async def generate_diagram(
    request: GenerateDiagramRequest,
    generator: DiagramGenerator = Depends(get_diagram_generator),
) -> DiagramResponse:
    """
    Mermaid 다이어그램 생성.

    - {filePaths, detailLevel}: 저장소 아키텍처
    - {fileContent, fileName?, fileType?}: 단일 파일 구조
    """
    if request.is_architecture:
        result = await generator.build_architecture_diagram(request.file_paths, request.detail_level)
    else:
        result = await generator.build_file_diagram(
            request.file_content or "",
            request.file_name,
            request.file_type,
        )

    if result.fallback:
        logger.warning("Returning fallback diagram for %s", request.file_name or "architecture request")
    return DiagramResponse(**result.to_dict())


@router.post("/package-descriptions", response_model=PackageDescriptionsResponse)
async def package_descriptions(
    request: PackageDescriptionsRequest,
    describer: PackageDescriber = Depends(get_package_describer),
) -> PackageDescriptionsResponse:
    """콤마로 구분된 패키지 이름 -> {name: 한 줄 설명}."""
    names = request.names()
    if not names:
        raise ValidationError(
            "Packages list is required",
            field="packages",
            kind=ErrorKind.MISSING_REQUIRED_FIELD,
        )

    descriptions = await describer.describe(names)
    logger.info("Described %d of %d packages", len(descriptions), len(names))
    return PackageDescriptionsResponse(descriptions=descriptions)
