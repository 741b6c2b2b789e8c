"""의존성 추출 Core 레이어 - Pure Python implementation."""
from __future__ import annotations

import logging
import re
from typing import Any, List, Optional

from .models import DependencyRecord, DependencyType, PLACEHOLDER_LOGO_URL

logger = logging.getLogger(__name__)

_SCP_LIKE = re.compile(r"^git@([^:]+):(.+)$")
_SHORTHAND = re.compile(r"^(github|gitlab|bitbucket):(.+)$")
_SHORTHAND_HOSTS = {
    "github": "github.com",
    "gitlab": "gitlab.com",
    "bitbucket": "bitbucket.org",
}


def extract_dependencies(manifest: Any) -> List[DependencyRecord]:
    """
    package.json(dict)을 섹션 태그가 붙은 DependencyRecord 목록으로 변환.

    네 섹션(dependencies, devDependencies, peerDependencies,
    optionalDependencies)을 이 순서로 읽고, 각 섹션 안에서는 manifest의
    키 순서를 그대로 따릅니다. 이상한 입력에는 빈/부분 목록을 돌려줍니다.
    """
    if not isinstance(manifest, dict):
        return []

    deps: List[DependencyRecord] = []
    for dep_type in DependencyType:
        section = manifest.get(dep_type.value)
        if not isinstance(section, dict):
            if section is not None:
                logger.debug("Ignoring non-object %s section", dep_type.value)
            continue
        for name, version in section.items():
            deps.append(DependencyRecord(
                name=str(name),
                version=version if isinstance(version, str) else str(version),
                type=dep_type,
            ))
    return deps


def with_placeholder_logos(deps: List[DependencyRecord]) -> List[DependencyRecord]:
    """로고가 없는 레코드에 기본 로고를 채운 새 목록."""
    return [d if d.logo_url else d.evolve(logo_url=PLACEHOLDER_LOGO_URL) for d in deps]


def normalize_repository_url(repository: Any) -> Optional[str]:
    """
    npm `repository` 필드를 브라우저에서 열 수 있는 URL로 변환.

    - "git+https://github.com/a/b.git" -> "https://github.com/a/b"
    - {"type": "git", "url": "git://github.com/a/b.git"} -> "https://github.com/a/b"
    - "git@github.com:a/b.git" -> "https://github.com/a/b"
    - "github:a/b" 또는 "a/b" -> "https://github.com/a/b"
    """
    url = repository.get("url") if isinstance(repository, dict) else repository
    if not isinstance(url, str) or not url.strip():
        return None

    url = url.strip()
    if url.startswith("git+"):
        url = url[len("git+"):]
    if url.endswith(".git"):
        url = url[:-len(".git")]

    scp = _SCP_LIKE.match(url)
    if scp:
        return f"https://{scp.group(1)}/{scp.group(2)}"

    shorthand = _SHORTHAND.match(url)
    if shorthand:
        return f"https://{_SHORTHAND_HOSTS[shorthand.group(1)]}/{shorthand.group(2)}"

    if url.startswith("git://"):
        return "https://" + url[len("git://"):]
    if url.startswith("ssh://"):
        return "https://" + url[len("ssh://"):].split("@", 1)[-1]

    if "://" not in url and re.fullmatch(r"[\w.-]+/[\w.-]+", url):
        return f"https://github.com/{url}"

    return url
