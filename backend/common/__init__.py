"""
Common 모듈

공통 유틸리티, 설정, 에러 처리 등을 제공합니다.
"""

# 설정
from backend.common.config import (
    EnrichmentSettings,
    GITHUB_TOKEN,
    LLM_MODEL_NAME,
    LLM_PROVIDER,
    LLMSettings,
)

# 에러 처리
from backend.common.errors import (
    ErrorKind,
    BaseError,
    GitHubError,
    LLMError,
    ValidationError,
)

# 로깅
from backend.common.logging_config import LogContext, get_logger, setup_logging

# 유틸리티
from backend.common.async_utils import (
    Outcome,
    async_with_fallback,
    gather_in_batches,
    with_timeout,
)

__all__ = [
    # Config
    "EnrichmentSettings",
    "GITHUB_TOKEN",
    "LLM_MODEL_NAME",
    "LLM_PROVIDER",
    "LLMSettings",
    # Errors
    "ErrorKind",
    "BaseError",
    "GitHubError",
    "LLMError",
    "ValidationError",
    # Logging
    "LogContext",
    "get_logger",
    "setup_logging",
    # Utils
    "Outcome",
    "async_with_fallback",
    "gather_in_batches",
    "with_timeout",
]
