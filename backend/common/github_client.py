from __future__ import annotations
from typing import Any, Dict, List, Optional
import base64
import logging

import requests

from .config import (
    GITHUB_API_BASE,
    GITHUB_CLIENT_ID,
    GITHUB_CLIENT_SECRET,
    GITHUB_OAUTH_URL,
    GITHUB_TOKEN,
    APP_URL,
)
from .errors import (
    GitHubAuthError,
    GitHubError,
    GitHubRateLimitError,
    OAuthError,
    RepoNotFoundError,
)

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 10


def _build_headers(token: Optional[str] = None) -> Dict[str, str]:
    """Auth headers: user token, then OAuth app credentials, then server token.

    Basic auth with the OAuth app's client id/secret lifts the anonymous rate
    limit from 60 to 5,000 requests per hour.
    """
    headers = {
        "Accept": "application/vnd.github.v3+json",
    }
    if token:
        headers["Authorization"] = f"Bearer {token}"
    elif GITHUB_CLIENT_ID and GITHUB_CLIENT_SECRET:
        raw = f"{GITHUB_CLIENT_ID}:{GITHUB_CLIENT_SECRET}".encode("utf-8")
        headers["Authorization"] = f"Basic {base64.b64encode(raw).decode('ascii')}"
    elif GITHUB_TOKEN:
        headers["Authorization"] = f"Bearer {GITHUB_TOKEN}"
    return headers


def _raise_for_status(
    resp: requests.Response,
    owner: Optional[str] = None,
    repo: Optional[str] = None,
    path: str = "",
) -> None:
    if resp.status_code < 400:
        return
    if resp.status_code == 404:
        raise RepoNotFoundError(owner or "", repo or "", path)
    if resp.status_code == 401:
        raise GitHubAuthError()
    if resp.status_code in (403, 429) and "rate limit" in resp.text.lower():
        raise GitHubRateLimitError(resp.headers.get("X-RateLimit-Reset"))
    raise GitHubError(
        f"GitHub request failed: {resp.status_code} {resp.text[:200]}",
        owner=owner,
        repo=repo,
        status_code=resp.status_code,
    )


def _get(
    url: str,
    token: Optional[str] = None,
    params: Optional[Dict[str, Any]] = None,
    timeout: float = DEFAULT_TIMEOUT,
    owner: Optional[str] = None,
    repo: Optional[str] = None,
    path: str = "",
) -> requests.Response:
    try:
        resp = requests.get(url, headers=_build_headers(token), params=params, timeout=timeout)
    except requests.Timeout as e:
        raise GitHubError(f"GitHub request timed out: {url}", owner=owner, repo=repo, status_code=504) from e
    except requests.RequestException as e:
        raise GitHubError(f"GitHub request failed: {e}", owner=owner, repo=repo) from e
    _raise_for_status(resp, owner, repo, path)
    return resp


def fetch_contents(
    owner: str,
    repo: str,
    path: str = "",
    token: Optional[str] = None,
    timeout: float = DEFAULT_TIMEOUT,
) -> Any:
    """Raw `contents` payload: a list for directories, a dict for files."""
    logger.debug("GitHub API: fetch_contents %s/%s path=%r", owner, repo, path)
    url = f"{GITHUB_API_BASE}/repos/{owner}/{repo}/contents/{path.strip('/')}"
    return _get(url, token, timeout=timeout, owner=owner, repo=repo, path=path).json()


def fetch_raw(url: str, token: Optional[str] = None, timeout: float = DEFAULT_TIMEOUT) -> str:
    """Downloads a file body from `download_url`."""
    return _get(url, token, timeout=timeout).text


def fetch_git_tree(
    owner: str,
    repo: str,
    ref: str = "HEAD",
    token: Optional[str] = None,
) -> List[Dict[str, Any]]:
    """Recursive tree entries (`path`, `type` in blob/tree, `size`)."""
    logger.debug("GitHub API: fetch_git_tree %s/%s@%s", owner, repo, ref)
    url = f"{GITHUB_API_BASE}/repos/{owner}/{repo}/git/trees/{ref}"
    data = _get(url, token, params={"recursive": "1"}, timeout=15, owner=owner, repo=repo).json()
    if data.get("truncated"):
        logger.warning("Tree for %s/%s was truncated by GitHub", owner, repo)
    return data.get("tree", [])


def fetch_languages(owner: str, repo: str, token: Optional[str] = None) -> Dict[str, int]:
    """Bytes of code per language."""
    url = f"{GITHUB_API_BASE}/repos/{owner}/{repo}/languages"
    return _get(url, token, owner=owner, repo=repo).json()


def fetch_user_repos(token: str, per_page: int = 100) -> List[Dict[str, Any]]:
    """Repositories of the signed-in user, most recently updated first."""
    url = f"{GITHUB_API_BASE}/user/repos"
    return _get(url, token, params={"sort": "updated", "per_page": per_page}).json()


def exchange_oauth_code(code: str) -> str:
    """Trades an OAuth authorization code for an access token.

    Raises:
        OAuthError: with `reason` suitable for the `/?error=` redirect
    """
    payload = {
        "client_id": GITHUB_CLIENT_ID,
        "client_secret": GITHUB_CLIENT_SECRET,
        "code": code,
        "redirect_uri": f"{APP_URL.rstrip('/')}/api/auth/callback",
    }
    try:
        resp = requests.post(
            GITHUB_OAUTH_URL,
            json=payload,
            headers={"Accept": "application/json", "Content-Type": "application/json"},
            timeout=DEFAULT_TIMEOUT,
        )
        resp.raise_for_status()
        data = resp.json()
    except (requests.RequestException, ValueError) as e:
        logger.error("OAuth code exchange failed: %s", e)
        raise OAuthError("auth_failed", str(e)) from e

    if data.get("error_description"):
        logger.warning("GitHub rejected OAuth code: %s", data["error_description"])
        raise OAuthError(data["error_description"])

    access_token = data.get("access_token")
    if not access_token:
        logger.warning("No access token in OAuth response (keys=%s)", sorted(data))
        raise OAuthError("no_token")

    logger.info("GitHub OAuth token received")
    return access_token
