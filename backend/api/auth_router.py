"""GitHub OAuth 콜백 - 코드 교환 후 세션 쿠키 발급."""
from __future__ import annotations

import asyncio
import logging
from typing import Optional
from urllib.parse import quote

from fastapi import APIRouter
from fastapi.responses import RedirectResponse

from backend.common.config import APP_URL, COOKIE_SECURE, SESSION_COOKIE_NAME, SESSION_MAX_AGE
from backend.common.errors import OAuthError
from backend.common.github_client import exchange_oauth_code

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["auth"])


def app_redirect(path: str) -> RedirectResponse:
    """프론트엔드(APP_URL) 기준 리다이렉트."""
    return RedirectResponse(f"{APP_URL.rstrip('/')}{path}", status_code=307)


def error_redirect(reason: str) -> RedirectResponse:
    return app_redirect(f"/?error={quote(reason)}")


@router.get("/callback")
async def oauth_callback(code: Optional[str] = None) -> RedirectResponse:
    """
    GitHub OAuth 콜백.

    성공하면 github_token 쿠키(httpOnly, 7일)를 설정하고 /dashboard로,
    실패하면 /?error=<reason> 으로 보냅니다.
    """
    if not code:
        return error_redirect("no_code")

    try:
        token = await asyncio.to_thread(exchange_oauth_code, code)
    except OAuthError as e:
        logger.warning("OAuth code exchange failed: %s", e.reason)
        return error_redirect(e.reason)
    except Exception:
        logger.exception("Unexpected OAuth callback failure")
        return error_redirect("auth_failed")

    response = app_redirect("/dashboard")
    response.set_cookie(
        SESSION_COOKIE_NAME,
        token,
        max_age=SESSION_MAX_AGE,
        httponly=True,
        secure=COOKIE_SECURE,
        samesite="lax",
        path="/",
    )
    return response
