"""GitHub 저장소 콘텐츠 조회 - Core 레이어 (LLM 의존성 없음)."""
from __future__ import annotations

import base64
import binascii
import json
import logging
import posixpath
from typing import Any, Dict, List, Optional

from backend.common import github_client
from backend.common.config import (
    MAX_FILE_SIZE_BYTES,
    PACKAGE_JSON_TIMEOUT,
    PACKAGE_SEARCH_MAX_DEPTH,
)
from backend.common.errors import FileTooLargeError, GitHubError, RepoNotFoundError
from .models import FileItem, LanguageStat, RepoFile

logger = logging.getLogger(__name__)

# 탐색/다이어그램에서 제외할 폴더
IGNORE_FOLDERS = {
    "node_modules", "__pycache__", ".git", ".idea", ".vscode",
    "venv", ".venv", "build", "dist", ".next", "coverage",
    ".pytest_cache", ".mypy_cache", "target", "vendor",
}

LANGUAGE_COLORS = {
    "JavaScript": "#f1e05a",
    "TypeScript": "#3178c6",
    "Python": "#3572A5",
    "Java": "#b07219",
    "Ruby": "#701516",
    "Go": "#00ADD8",
    "Rust": "#dea584",
    "HTML": "#e34c26",
    "CSS": "#563d7c",
    "Shell": "#89e051",
    "Vue": "#41b883",
    "PHP": "#4F5D95",
    "C": "#555555",
    "C++": "#f34b7d",
    "C#": "#178600",
}
DEFAULT_LANGUAGE_COLOR = "#858585"


def _to_file_item(entry: Dict[str, Any]) -> FileItem:
    path = entry.get("path", "")
    return FileItem(
        name=entry.get("name") or posixpath.basename(path),
        path=path,
        type="dir" if entry.get("type") == "dir" else "file",
    )


def list_directory(
    owner: str,
    repo: str,
    path: str = "",
    token: Optional[str] = None,
) -> List[FileItem]:
    """디렉터리 항목 목록 (GitHub 응답 순서 유지)."""
    data = github_client.fetch_contents(owner, repo, path, token)
    if isinstance(data, dict):
        # 디렉터리가 아니라 파일 경로가 들어온 경우
        return [_to_file_item(data)]
    return [_to_file_item(entry) for entry in data]


def decode_content(payload: Dict[str, Any]) -> Optional[str]:
    """contents API의 base64 `content`를 텍스트로 디코딩. 없거나 깨졌으면 None."""
    encoded = payload.get("content")
    if not encoded or payload.get("encoding", "base64") != "base64":
        return None
    try:
        raw = base64.b64decode(encoded.replace("\n", ""))
    except (binascii.Error, ValueError):
        logger.warning("Invalid base64 content for %s", payload.get("path"))
        return None
    return raw.decode("utf-8", errors="replace")


def fetch_file(
    owner: str,
    repo: str,
    path: str,
    token: Optional[str] = None,
    max_size: int = MAX_FILE_SIZE_BYTES,
) -> RepoFile:
    """
    파일 하나를 텍스트로 조회.

    크기 제한을 넘는 파일은 내려받지 않고 FileTooLargeError를 발생시킵니다.
    작은 파일은 응답의 base64 content를, 큰 파일은 download_url을 사용합니다.
    """
    data = github_client.fetch_contents(owner, repo, path, token)
    if not isinstance(data, dict) or data.get("type") != "file":
        raise GitHubError(
            f"{path} is not a file",
            owner=owner,
            repo=repo,
            status_code=400,
        )

    size = int(data.get("size") or 0)
    if size > max_size:
        raise FileTooLargeError(path, size, max_size)

    content = decode_content(data)
    if content is None:
        download_url = data.get("download_url")
        if not download_url:
            raise GitHubError(f"No content available for {path}", owner=owner, repo=repo)
        content = github_client.fetch_raw(download_url, token)

    return RepoFile(
        name=data.get("name") or posixpath.basename(path),
        path=data.get("path", path),
        size=size,
        content=content,
    )


def search_for_file(
    owner: str,
    repo: str,
    file_name: str,
    path: str = "",
    token: Optional[str] = None,
    max_depth: int = PACKAGE_SEARCH_MAX_DEPTH,
) -> List[FileItem]:
    """
    file_name과 이름이 같은 파일을 하위 디렉터리까지 탐색 (깊이 제한).

    조회에 실패한 디렉터리는 건너뜁니다. 결과는 얕은 경로가 먼저 옵니다.
    """
    results: List[FileItem] = []
    frontier = [(path, 0)]

    while frontier:
        current, depth = frontier.pop(0)
        try:
            items = list_directory(owner, repo, current, token)
        except GitHubError as e:
            logger.warning("Search for %s skipped %r: %s", file_name, current, e.message)
            continue

        for item in items:
            if item.type == "file" and item.name == file_name:
                results.append(item)
            elif item.type == "dir" and depth < max_depth and item.name not in IGNORE_FOLDERS:
                frontier.append((item.path, depth + 1))

    return results


def _load_manifest(owner: str, repo: str, path: str, token: Optional[str]) -> Optional[Dict[str, Any]]:
    data = github_client.fetch_contents(owner, repo, path, token, timeout=PACKAGE_JSON_TIMEOUT)
    content = decode_content(data) if isinstance(data, dict) else None
    if content is None and isinstance(data, dict) and data.get("download_url"):
        content = github_client.fetch_raw(data["download_url"], token, timeout=PACKAGE_JSON_TIMEOUT)
    if content is None:
        return None
    try:
        manifest = json.loads(content)
    except json.JSONDecodeError as e:
        logger.warning("Malformed %s in %s/%s: %s", path, owner, repo, e)
        return None
    return manifest if isinstance(manifest, dict) else None


def detect_and_fetch_package_json(
    owner: str,
    repo: str,
    token: Optional[str] = None,
) -> Optional[Dict[str, Any]]:
    """
    루트의 package.json을 먼저 찾고, 없으면 하위 디렉터리를 탐색.

    Returns:
        파싱된 manifest, 찾지 못했거나 깨진 경우 None
    """
    try:
        return _load_manifest(owner, repo, "package.json", token)
    except RepoNotFoundError:
        logger.info("No root package.json in %s/%s, searching subdirectories", owner, repo)
    except GitHubError as e:
        logger.warning("Failed to fetch package.json for %s/%s: %s", owner, repo, e.message)
        return None

    candidates = search_for_file(owner, repo, "package.json", token=token)
    if not candidates:
        return None

    try:
        return _load_manifest(owner, repo, candidates[0].path, token)
    except GitHubError as e:
        logger.warning("Failed to fetch %s for %s/%s: %s", candidates[0].path, owner, repo, e.message)
        return None


def _is_ignored(path: str) -> bool:
    return any(part in IGNORE_FOLDERS for part in path.split("/"))


def list_repository_files(
    owner: str,
    repo: str,
    ref: str = "HEAD",
    token: Optional[str] = None,
) -> List[str]:
    """저장소의 모든 파일 경로 (빌드/의존성 폴더 제외)."""
    tree = github_client.fetch_git_tree(owner, repo, ref, token)
    return [
        entry["path"]
        for entry in tree
        if entry.get("type") == "blob" and entry.get("path") and not _is_ignored(entry["path"])
    ]


def fetch_language_stats(owner: str, repo: str, token: Optional[str] = None) -> List[LanguageStat]:
    """언어별 바이트 수를 비율로 변환 (내림차순)."""
    data = github_client.fetch_languages(owner, repo, token)
    total = sum(data.values())
    if total <= 0:
        return []

    stats = [
        LanguageStat(
            name=name,
            bytes=count,
            percentage=f"{count / total * 100:.1f}",
            color=LANGUAGE_COLORS.get(name, DEFAULT_LANGUAGE_COLOR),
        )
        for name, count in data.items()
    ]
    stats.sort(key=lambda s: s.bytes, reverse=True)
    return stats
