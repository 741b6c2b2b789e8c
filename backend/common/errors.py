"""
통합 에러 처리 시스템.

GitHub 조회, LLM 호출, 다이어그램 생성, 사용자 입력 검증 에러를 하나의
계층으로 정리합니다. 의존성 보강 단계의 일시적 I/O 실패는 이 계층으로
올라오지 않고 각 단계에서 로깅 후 흡수됩니다.

하위 클래스는 kind / http_status / suggested_action 기본값을 클래스 속성으로
선언하고, 생성자에서는 메시지와 컨텍스트만 만듭니다.
"""
from __future__ import annotations
from typing import Any, Dict, Optional
from enum import Enum
import logging

logger = logging.getLogger(__name__)


class ErrorKind(str, Enum):
    """에러 종류 분류."""

    # GitHub API 관련
    GITHUB_NOT_FOUND = "github_not_found"
    GITHUB_UNAUTHORIZED = "github_unauthorized"
    GITHUB_RATE_LIMIT = "github_rate_limit"
    GITHUB_API_ERROR = "github_api_error"

    # OAuth
    AUTH_FAILED = "auth_failed"

    # LLM 관련
    LLM_TIMEOUT = "llm_timeout"
    LLM_PARSE_ERROR = "llm_parse_error"
    LLM_API_ERROR = "llm_api_error"

    # 다이어그램
    DIAGRAM_GENERATION_FAILED = "diagram_generation_failed"

    # 입력 검증
    FILE_TOO_LARGE = "file_too_large"
    INVALID_INPUT = "invalid_input"
    MISSING_REQUIRED_FIELD = "missing_required_field"

    # 기타
    UNKNOWN = "unknown"
    INTERNAL_ERROR = "internal_error"


class ErrorAction(str, Enum):
    """에러 발생 시 권장 액션."""
    RETRY = "retry"
    FALLBACK = "fallback"
    USER_INPUT = "user_input"
    ABORT = "abort"


class BaseError(Exception):
    """모든 애플리케이션 에러의 베이스 클래스."""

    kind: ErrorKind = ErrorKind.UNKNOWN
    http_status: int = 500
    suggested_action: ErrorAction = ErrorAction.ABORT

    def __init__(
        self,
        message: str,
        kind: Optional[ErrorKind] = None,
        http_status: Optional[int] = None,
        fallback: Optional[Dict[str, Any]] = None,
        context: Optional[Dict[str, Any]] = None,
        suggested_action: Optional[ErrorAction] = None,
    ):
        """
        Args:
            message: 에러 메시지 (사용자에게 표시 가능)
            kind: 에러 종류 (None이면 클래스 기본값)
            http_status: HTTP 상태 코드 (API 응답 시 사용)
            fallback: Fallback 데이터 (선택적)
            context: 추가 컨텍스트 (로깅용, 사용자에게 노출 안 됨)
            suggested_action: 권장 액션
        """
        super().__init__(message)
        self.message = message
        if kind is not None:
            self.kind = kind
        if http_status is not None:
            self.http_status = http_status
        if suggested_action is not None:
            self.suggested_action = suggested_action
        self.fallback = fallback or {}
        self.context = context or {}

    def to_dict(self) -> Dict[str, Any]:
        """에러를 dict로 변환 (API 응답용)."""
        return {
            "error": self.message,
            "kind": self.kind.value,
            "suggested_action": self.suggested_action.value,
            "fallback": self.fallback,
        }

    def log(self, level: str = "error"):
        """에러를 로깅."""
        log_func = getattr(logger, level, logger.error)
        log_func(
            f"{self.__class__.__name__}: {self.message}",
            extra={
                "kind": self.kind.value,
                "http_status": self.http_status,
                "context": self.context,
            }
        )


# GitHub 관련 에러
class GitHubError(BaseError):
    """
    GitHub API 호출 실패.

    status_code는 GitHub이 돌려준 상태 코드이며, 없으면 502로 응답합니다.
    """

    kind = ErrorKind.GITHUB_API_ERROR
    http_status = 502

    def __init__(
        self,
        message: str,
        owner: Optional[str] = None,
        repo: Optional[str] = None,
        status_code: Optional[int] = None,
        **kwargs: Any,
    ):
        context = {"owner": owner, "repo": repo, "status_code": status_code}
        context.update(kwargs.pop("context", {}))
        if status_code is not None:
            kwargs.setdefault("http_status", status_code)
        super().__init__(message, context=context, **kwargs)
        self.owner = owner
        self.repo = repo
        self.status_code = status_code


class RepoNotFoundError(GitHubError):
    """저장소 또는 경로를 찾을 수 없음 (404)."""

    kind = ErrorKind.GITHUB_NOT_FOUND
    suggested_action = ErrorAction.USER_INPUT

    def __init__(self, owner: str, repo: str, path: str = ""):
        target = f"{owner}/{repo}" + (f"/{path}" if path else "")
        super().__init__(
            f"{target} not found or not accessible",
            owner=owner,
            repo=repo,
            status_code=404,
            context={"path": path},
        )


class GitHubAuthError(GitHubError):
    """토큰이 없거나 만료됨 (401)."""

    kind = ErrorKind.GITHUB_UNAUTHORIZED
    suggested_action = ErrorAction.USER_INPUT

    def __init__(self, message: str = "GitHub token is missing or expired"):
        super().__init__(message, status_code=401)


class GitHubRateLimitError(GitHubError):
    """GitHub API Rate Limit 초과 (429)."""

    kind = ErrorKind.GITHUB_RATE_LIMIT
    suggested_action = ErrorAction.RETRY

    def __init__(self, reset_at: Optional[str] = None):
        message = "GitHub API rate limit exceeded"
        if reset_at:
            message += f". Resets at {reset_at}"
        super().__init__(message, status_code=429, context={"reset_at": reset_at})


class OAuthError(BaseError):
    """OAuth 코드 교환 실패. reason은 리다이렉트 쿼리에 그대로 사용됩니다."""

    kind = ErrorKind.AUTH_FAILED
    http_status = 401
    suggested_action = ErrorAction.USER_INPUT

    def __init__(self, reason: str, detail: Optional[str] = None):
        super().__init__(f"GitHub OAuth failed: {detail or reason}", context={"reason": reason})
        self.reason = reason


# LLM 관련 에러
class LLMError(BaseError):
    """LLM 호출 실패 (연결, 인증, 서버 오류 등)."""

    kind = ErrorKind.LLM_API_ERROR
    http_status = 502

    def __init__(self, message: str, model: Optional[str] = None, **kwargs: Any):
        context = {"model": model}
        context.update(kwargs.pop("context", {}))
        super().__init__(message, context=context, **kwargs)
        self.model = model


class LLMTimeoutError(LLMError):
    kind = ErrorKind.LLM_TIMEOUT
    http_status = 504
    suggested_action = ErrorAction.RETRY

    def __init__(self, model: Optional[str] = None, timeout: Optional[float] = None):
        message = "LLM request timed out"
        if timeout:
            message += f" after {timeout}s"
        super().__init__(message, model=model, context={"timeout": timeout})


class LLMParseError(LLMError):
    """모델 응답이 비었거나 기대한 형식(JSON 등)이 아님."""

    kind = ErrorKind.LLM_PARSE_ERROR
    suggested_action = ErrorAction.RETRY

    def __init__(self, raw_response: str, model: Optional[str] = None):
        super().__init__(
            "Failed to parse LLM response",
            model=model,
            context={"raw_response": raw_response[:500]},  # 처음 500자만
        )


class DiagramGenerationError(BaseError):
    """다이어그램 생성 호출 자체의 실패 (잘못된 출력은 sanitizer가 처리)."""

    kind = ErrorKind.DIAGRAM_GENERATION_FAILED
    http_status = 502
    suggested_action = ErrorAction.FALLBACK

    def __init__(self, message: str, cause: Optional[BaseException] = None):
        super().__init__(message, context={"cause": repr(cause) if cause else None})


# Validation 에러
class ValidationError(BaseError):
    """입력 검증 에러 (400). 재시도하지 않고 그대로 사용자에게 보여줍니다."""

    kind = ErrorKind.INVALID_INPUT
    http_status = 400
    suggested_action = ErrorAction.USER_INPUT

    def __init__(self, message: str, field: Optional[str] = None, **kwargs: Any):
        context = {"field": field}
        context.update(kwargs.pop("context", {}))
        super().__init__(message, context=context, **kwargs)
        self.field = field


class FileTooLargeError(ValidationError):
    """브라우저로 보내기에 너무 큰 파일."""

    kind = ErrorKind.FILE_TOO_LARGE
    http_status = 413

    def __init__(self, path: str, size: int, limit: int):
        super().__init__(
            f"File is too large to display ({size} bytes, limit {limit} bytes)",
            field="path",
            context={"path": path, "size": size, "limit": limit},
        )


# Fallback Policy 문서화
FALLBACK_POLICIES = {
    ErrorKind.GITHUB_NOT_FOUND: {
        "description": "저장소 또는 파일을 찾을 수 없음",
        "action": "사용자에게 경로 재확인 요청",
        "fallback": None,
    },
    ErrorKind.GITHUB_UNAUTHORIZED: {
        "description": "세션 토큰 만료",
        "action": "쿠키 삭제 후 다시 로그인",
        "fallback": None,
    },
    ErrorKind.GITHUB_RATE_LIMIT: {
        "description": "GitHub API Rate Limit 초과",
        "action": "로그인 후 재시도",
        "fallback": None,
    },
    ErrorKind.LLM_TIMEOUT: {
        "description": "LLM 호출 타임아웃",
        "action": "설명 없이 기존 데이터 표시",
        "fallback": "unenriched_data",
    },
    ErrorKind.LLM_PARSE_ERROR: {
        "description": "LLM 응답 파싱 실패",
        "action": "설명 없이 기존 데이터 표시",
        "fallback": "unenriched_data",
    },
    ErrorKind.DIAGRAM_GENERATION_FAILED: {
        "description": "다이어그램 생성 실패",
        "action": "고정 fallback 다이어그램 표시",
        "fallback": "fallback_diagram",
    },
    ErrorKind.FILE_TOO_LARGE: {
        "description": "파일 크기 제한 초과",
        "action": "사용자에게 메시지 표시 (재시도 없음)",
        "fallback": None,
    },
}


def get_fallback_policy(kind: ErrorKind) -> Dict[str, Any]:
    """에러 종류에 따른 Fallback 정책 조회."""
    return FALLBACK_POLICIES.get(kind, {
        "description": "Unknown error",
        "action": "Abort",
        "fallback": None,
    })
