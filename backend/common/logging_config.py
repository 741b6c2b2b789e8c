"""
Structured Logging 설정.

환경변수:
- LOG_LEVEL: 로그 레벨 (DEBUG, INFO, WARNING, ERROR, CRITICAL)
- LOG_FORMAT: 로그 형식 (text, json)
- LOG_FILE: 로그 파일 경로 (선택)
"""
import contextvars
import json
import logging
import os
import sys
from datetime import datetime, timezone
from typing import Any, Dict, Optional

# 동시에 여러 분석 스트림이 같은 이벤트 루프에서 돌기 때문에
# 컨텍스트는 전역 LogRecord 팩토리가 아니라 contextvar에 둡니다.
_log_context: contextvars.ContextVar[Dict[str, Any]] = contextvars.ContextVar(
    "log_context", default={}
)

_RESERVED_ATTRS = frozenset((
    "name", "msg", "args", "created", "filename", "funcName",
    "levelname", "levelno", "lineno", "module", "msecs",
    "pathname", "process", "processName", "relativeCreated",
    "stack_info", "exc_info", "exc_text", "thread", "threadName",
    "message", "taskName", "asctime",
))


class ContextFilter(logging.Filter):
    """현재 LogContext의 키를 LogRecord 속성으로 복사."""

    def filter(self, record: logging.LogRecord) -> bool:
        for key, value in _log_context.get().items():
            if not hasattr(record, key):
                setattr(record, key, value)
        return True


class JsonFormatter(logging.Formatter):
    """
    JSON 형식 로그 포맷터.

    분석 요청(owner/repo)이나 보강 단계(stage) 같은 extra 필드를
    그대로 보존하므로 로그 수집기에서 필터링하기 쉽습니다.
    """

    def format(self, record: logging.LogRecord) -> str:
        log_obj: dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        if record.exc_info:
            log_obj["exception"] = self.formatException(record.exc_info)

        for key, value in record.__dict__.items():
            if key not in _RESERVED_ATTRS:
                log_obj[key] = value

        return json.dumps(log_obj, ensure_ascii=False, default=str)


class TextFormatter(logging.Formatter):
    """개발 환경용 컬러 텍스트 포맷터."""

    COLORS = {
        "DEBUG": "\033[36m",     # Cyan
        "INFO": "\033[32m",      # Green
        "WARNING": "\033[33m",   # Yellow
        "ERROR": "\033[31m",     # Red
        "CRITICAL": "\033[35m",  # Magenta
    }
    RESET = "\033[0m"

    def format(self, record: logging.LogRecord) -> str:
        color = self.COLORS.get(record.levelname, "")
        record.asctime = self.formatTime(record, self.datefmt)

        formatted = (
            f"{record.asctime} | {color}{record.levelname:8}{self.RESET} | "
            f"{record.name} | {record.getMessage()}"
        )

        context = _log_context.get()
        if context:
            pairs = " ".join(f"{k}={v}" for k, v in context.items())
            formatted += f" [{pairs}]"

        if record.exc_info:
            formatted += f"\n{self.formatException(record.exc_info)}"

        return formatted


def get_formatter(format_type: str) -> logging.Formatter:
    """'json' 또는 'text' 형식에 맞는 포맷터 반환."""
    if format_type.lower() == "json":
        return JsonFormatter()
    formatter = TextFormatter()
    formatter.datefmt = "%Y-%m-%d %H:%M:%S"
    return formatter


def setup_logging(
    level: Optional[str] = None,
    log_file: Optional[str] = None,
    log_format: Optional[str] = None
) -> None:
    """
    애플리케이션 로깅 설정.

    파라미터가 환경변수보다 우선합니다.

    Args:
        level: 로그 레벨 (기본값: INFO, 환경변수: LOG_LEVEL)
        log_file: 로그 파일 경로 (환경변수: LOG_FILE)
        log_format: 'text' 또는 'json' (기본값: text, 환경변수: LOG_FORMAT)
    """
    level = level or os.getenv("LOG_LEVEL", "INFO")
    log_file = log_file or os.getenv("LOG_FILE")
    log_format = log_format or os.getenv("LOG_FORMAT", "text")

    handlers: list[logging.Handler] = []
    context_filter = ContextFilter()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(get_formatter(log_format))
    console_handler.addFilter(context_filter)
    handlers.append(console_handler)

    if log_file:
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        # 파일은 항상 JSON 형식으로 저장 (분석 용이)
        file_handler.setFormatter(JsonFormatter())
        file_handler.addFilter(context_filter)
        handlers.append(file_handler)

    logging.basicConfig(
        level=getattr(logging, level.upper()),
        handlers=handlers,
        force=True  # 기존 설정 덮어쓰기
    )

    # Suppress noisy libraries
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("urllib3").setLevel(logging.WARNING)
    logging.getLogger("openai").setLevel(logging.WARNING)
    logging.getLogger("asyncio").setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    """모듈별 로거 생성 헬퍼 (보통 __name__ 전달)."""
    return logging.getLogger(name)


def current_log_context() -> Dict[str, Any]:
    """현재 활성화된 로그 컨텍스트 사본."""
    return dict(_log_context.get())


class LogContext:
    """
    로그 컨텍스트 매니저.

    블록 안에서 찍히는 모든 로그에 공통 필드를 붙입니다.

    Example:
        >>> with LogContext(owner="octocat", repo="hello-world"):
        ...     logger.info("의존성 분석 시작")  # owner, repo 자동 포함
    """

    def __init__(self, **context: Any):
        self.context = context
        self._token: Optional[contextvars.Token] = None

    def __enter__(self) -> "LogContext":
        merged = {**_log_context.get(), **self.context}
        self._token = _log_context.set(merged)
        return self

    def __exit__(self, *args: Any) -> None:
        if self._token is not None:
            _log_context.reset(self._token)
            self._token = None
