"""
GitHub 콘텐츠 조회 테스트.

requests 호출은 unittest.mock으로 대체합니다.
"""
import base64
import json
from unittest.mock import MagicMock, patch

import pytest
import requests

from backend.common import github_client
from backend.common.errors import (
    FileTooLargeError,
    GitHubAuthError,
    GitHubError,
    GitHubRateLimitError,
    OAuthError,
    RepoNotFoundError,
)
from backend.core.github_core import (
    DEFAULT_LANGUAGE_COLOR,
    decode_content,
    detect_and_fetch_package_json,
    fetch_file,
    fetch_language_stats,
    list_directory,
    list_repository_files,
    search_for_file,
)


def _b64(text: str) -> str:
    encoded = base64.b64encode(text.encode("utf-8")).decode("ascii")
    # GitHub은 60자마다 줄바꿈을 넣음
    return "\n".join(encoded[i:i + 60] for i in range(0, len(encoded), 60))


def _file_payload(path: str, text: str, **extra):
    payload = {
        "type": "file",
        "name": path.rsplit("/", 1)[-1],
        "path": path,
        "size": len(text.encode("utf-8")),
        "encoding": "base64",
        "content": _b64(text),
    }
    payload.update(extra)
    return payload


def _response(status: int = 200, body=None, text: str = "", headers=None):
    resp = MagicMock(spec=requests.Response)
    resp.status_code = status
    resp.text = text or json.dumps(body)
    resp.headers = headers or {}
    resp.json.return_value = body
    return resp


class TestGitHubClient:
    def test_status_mapping(self):
        with patch.object(github_client.requests, "get", return_value=_response(404, {"message": "Not Found"})):
            with pytest.raises(RepoNotFoundError):
                github_client.fetch_contents("o", "r", "missing.txt")

        with patch.object(github_client.requests, "get", return_value=_response(401, {"message": "Bad credentials"})):
            with pytest.raises(GitHubAuthError):
                github_client.fetch_user_repos("expired")

        limited = _response(403, text="API rate limit exceeded", headers={"X-RateLimit-Reset": "1700000000"})
        with patch.object(github_client.requests, "get", return_value=limited):
            with pytest.raises(GitHubRateLimitError):
                github_client.fetch_languages("o", "r")

    def test_timeout_becomes_github_error(self):
        with patch.object(github_client.requests, "get", side_effect=requests.Timeout("slow")):
            with pytest.raises(GitHubError) as exc_info:
                github_client.fetch_contents("o", "r")
        assert exc_info.value.http_status == 504

    def test_user_token_header(self):
        with patch.object(github_client.requests, "get", return_value=_response(200, [])) as get:
            github_client.fetch_user_repos("user-token")

        _, kwargs = get.call_args
        assert kwargs["headers"]["Authorization"] == "Bearer user-token"
        assert kwargs["params"] == {"sort": "updated", "per_page": 100}

    def test_oauth_exchange(self):
        with patch.object(github_client.requests, "post", return_value=_response(200, {"access_token": "gho_abc"})):
            assert github_client.exchange_oauth_code("code") == "gho_abc"

        rejected = _response(200, {"error": "bad_verification_code", "error_description": "The code is incorrect"})
        with patch.object(github_client.requests, "post", return_value=rejected):
            with pytest.raises(OAuthError) as exc_info:
                github_client.exchange_oauth_code("code")
        assert exc_info.value.reason == "The code is incorrect"

        with patch.object(github_client.requests, "post", return_value=_response(200, {})):
            with pytest.raises(OAuthError) as exc_info:
                github_client.exchange_oauth_code("code")
        assert exc_info.value.reason == "no_token"

        with patch.object(github_client.requests, "post", side_effect=requests.ConnectionError("down")):
            with pytest.raises(OAuthError) as exc_info:
                github_client.exchange_oauth_code("code")
        assert exc_info.value.reason == "auth_failed"


class TestContents:
    def test_list_directory(self):
        listing = [
            {"name": "src", "path": "src", "type": "dir"},
            {"name": "README.md", "path": "README.md", "type": "file"},
            {"name": "link", "path": "link", "type": "symlink"},
        ]
        with patch.object(github_client, "fetch_contents", return_value=listing):
            items = list_directory("o", "r")

        assert [i.to_dict() for i in items] == [
            {"name": "src", "path": "src", "type": "dir"},
            {"name": "README.md", "path": "README.md", "type": "file"},
            {"name": "link", "path": "link", "type": "file"},
        ]

    def test_decode_content(self):
        assert decode_content({"content": _b64("héllo\nworld")}) == "héllo\nworld"
        assert decode_content({"content": "!!!not base64"}) is None
        assert decode_content({"content": ""}) is None

    def test_fetch_file(self):
        payload = _file_payload("src/app.ts", "export const x = 1;\n")
        with patch.object(github_client, "fetch_contents", return_value=payload):
            file = fetch_file("o", "r", "src/app.ts")

        assert file.name == "app.ts"
        assert file.content == "export const x = 1;\n"

    def test_fetch_file_too_large(self):
        payload = _file_payload("data.json", "{}", size=2_000_000)
        with patch.object(github_client, "fetch_contents", return_value=payload):
            with pytest.raises(FileTooLargeError) as exc_info:
                fetch_file("o", "r", "data.json")

        assert exc_info.value.http_status == 413
        assert "too large" in exc_info.value.message

    def test_fetch_file_uses_download_url(self):
        payload = _file_payload("big.txt", "x", content="", download_url="https://raw.test/big.txt")
        with patch.object(github_client, "fetch_contents", return_value=payload), \
                patch.object(github_client, "fetch_raw", return_value="raw body") as raw:
            file = fetch_file("o", "r", "big.txt")

        assert file.content == "raw body"
        raw.assert_called_once_with("https://raw.test/big.txt", None)

    def test_fetch_directory_as_file(self):
        with patch.object(github_client, "fetch_contents", return_value=[]):
            with pytest.raises(GitHubError) as exc_info:
                fetch_file("o", "r", "src")
        assert exc_info.value.http_status == 400


class TestPackageJson:
    def test_root_manifest(self, sample_manifest):
        payload = _file_payload("package.json", json.dumps(sample_manifest))
        with patch.object(github_client, "fetch_contents", return_value=payload) as contents:
            assert detect_and_fetch_package_json("o", "r") == sample_manifest

        assert contents.call_args.args[2] == "package.json"
        assert contents.call_args.kwargs["timeout"] == 10

    def test_searches_subdirectories(self, sample_manifest):
        tree = {
            "": [
                {"name": "node_modules", "path": "node_modules", "type": "dir"},
                {"name": "apps", "path": "apps", "type": "dir"},
            ],
            "apps": [{"name": "web", "path": "apps/web", "type": "dir"}],
            "apps/web": [{"name": "package.json", "path": "apps/web/package.json", "type": "file"}],
            "apps/web/package.json": _file_payload("apps/web/package.json", json.dumps(sample_manifest)),
        }

        def fake_contents(owner, repo, path="", token=None, timeout=10):
            if path == "package.json":
                raise RepoNotFoundError(owner, repo, path)
            if path == "node_modules":
                raise AssertionError("ignored folder must not be searched")
            return tree[path]

        with patch.object(github_client, "fetch_contents", side_effect=fake_contents):
            assert detect_and_fetch_package_json("o", "r") == sample_manifest

    def test_search_depth_is_bounded(self):
        def fake_contents(owner, repo, path="", token=None, timeout=10):
            depth = path.count("/") + 1 if path else 0
            return [{"name": f"d{depth}", "path": f"{path}/d{depth}".lstrip("/"), "type": "dir"}]

        with patch.object(github_client, "fetch_contents", side_effect=fake_contents) as contents:
            assert search_for_file("o", "r", "package.json", max_depth=2) == []

        assert contents.call_count == 3

    def test_missing_everywhere(self):
        def fake_contents(owner, repo, path="", token=None, timeout=10):
            if path == "package.json":
                raise RepoNotFoundError(owner, repo, path)
            return [{"name": "README.md", "path": "README.md", "type": "file"}]

        with patch.object(github_client, "fetch_contents", side_effect=fake_contents):
            assert detect_and_fetch_package_json("o", "r") is None

    def test_malformed_json(self):
        payload = _file_payload("package.json", "{ not json")
        with patch.object(github_client, "fetch_contents", return_value=payload):
            assert detect_and_fetch_package_json("o", "r") is None


class TestTreeAndLanguages:
    def test_repository_files(self):
        tree = [
            {"path": "src", "type": "tree"},
            {"path": "src/index.ts", "type": "blob"},
            {"path": "node_modules/react/index.js", "type": "blob"},
            {"path": "dist/bundle.js", "type": "blob"},
            {"path": "package.json", "type": "blob"},
        ]
        with patch.object(github_client, "fetch_git_tree", return_value=tree):
            assert list_repository_files("o", "r") == ["src/index.ts", "package.json"]

    def test_language_stats(self):
        with patch.object(github_client, "fetch_languages", return_value={"Python": 250, "TypeScript": 700, "Zig": 50}):
            stats = fetch_language_stats("o", "r")

        assert [s.to_dict() for s in stats] == [
            {"name": "TypeScript", "percentage": "70.0", "bytes": 700, "color": "#3178c6"},
            {"name": "Python", "percentage": "25.0", "bytes": 250, "color": "#3572A5"},
            {"name": "Zig", "percentage": "5.0", "bytes": 50, "color": DEFAULT_LANGUAGE_COLOR},
        ]

    def test_empty_languages(self):
        with patch.object(github_client, "fetch_languages", return_value={}):
            assert fetch_language_stats("o", "r") == []
