"""Prompts 패키지 - 다이어그램/패키지 설명용 YAML 프롬프트."""
from backend.prompts.loader import (
    load_prompt,
    render_prompt,
    get_system_prompt,
    get_parameters,
    list_prompts,
    clear_cache,
)

# 서버 시작 시 미리 로드하는 프롬프트
REQUIRED_PROMPTS = (
    "architecture_simple",
    "architecture_detailed",
    "file_diagram",
    "package_descriptions",
)


def preload_prompts() -> None:
    """필수 프롬프트를 캐시에 올림. 파일이 없거나 YAML이 깨졌으면 여기서 예외."""
    for name in REQUIRED_PROMPTS:
        load_prompt(name)


__all__ = [
    "REQUIRED_PROMPTS",
    "preload_prompts",
    "load_prompt",
    "render_prompt",
    "get_system_prompt",
    "get_parameters",
    "list_prompts",
    "clear_cache",
]
