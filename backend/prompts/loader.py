"""
프롬프트 로더 - YAML 파일에서 프롬프트 템플릿을 로드합니다.

사용 예시:
    from backend.prompts.loader import render_prompt, get_system_prompt

    system = get_system_prompt("architecture_simple")
    user = render_prompt("architecture_simple", file_paths="src/main.ts")
"""
import logging
import re
from pathlib import Path
from typing import Any, Dict, List

import yaml

logger = logging.getLogger(__name__)

# 프롬프트 디렉토리 경로
PROMPTS_DIR = Path(__file__).parent

# 캐시 (로드된 프롬프트)
_cache: Dict[str, Dict[str, Any]] = {}

_PLACEHOLDER = re.compile(r"(?<!\{)\{([a-zA-Z0-9_]+)\}(?!\})")


def load_prompt(name: str, reload: bool = False) -> Dict[str, Any]:
    """
    YAML 프롬프트 파일 로드.

    Args:
        name: 프롬프트 이름 (확장자 제외)
        reload: True면 캐시 무시하고 다시 로드

    Returns:
        프롬프트 딕셔너리 (system_prompt, user_prompt_template, parameters 등)

    Raises:
        FileNotFoundError: 프롬프트 파일이 없는 경우
        yaml.YAMLError: YAML 파싱 실패
    """
    if not reload and name in _cache:
        return _cache[name]

    file_path = PROMPTS_DIR / f"{name}.yaml"
    if not file_path.exists():
        raise FileNotFoundError(f"Prompt file not found: {file_path}")

    with open(file_path, "r", encoding="utf-8") as f:
        prompt_data = yaml.safe_load(f) or {}

    _cache[name] = prompt_data
    return prompt_data


def render_prompt(name: str, template_key: str = "user_prompt_template", **kwargs) -> str:
    """
    프롬프트 템플릿 렌더링.

    누락된 변수는 에러 대신 [variable] 형태로 남깁니다.

    Raises:
        KeyError: 템플릿 키가 없는 경우
    """
    prompt = load_prompt(name)
    template = prompt.get(template_key)

    if template is None:
        raise KeyError(f"Template key '{template_key}' not found in prompt '{name}'")

    missing = [key for key in _PLACEHOLDER.findall(template) if key not in kwargs]
    if missing:
        logger.warning("Prompt %s rendered without %s", name, ", ".join(sorted(set(missing))))
        kwargs = {**kwargs, **{key: f"[{key}]" for key in missing}}
    return template.format(**kwargs)


def get_system_prompt(name: str) -> str:
    """시스템 프롬프트 반환."""
    return load_prompt(name).get("system_prompt", "")


def get_parameters(name: str) -> Dict[str, Any]:
    """프롬프트 파라미터 반환 (temperature, max_tokens 등)."""
    return dict(load_prompt(name).get("parameters", {}))


def list_prompts() -> List[str]:
    return sorted(file.stem for file in PROMPTS_DIR.glob("*.yaml"))


def clear_cache():
    """프롬프트 캐시 초기화."""
    _cache.clear()
