"""
비동기 유틸리티 - 타임아웃, 배치 단위 병렬 실행, fallback 처리.

보강 파이프라인의 모든 네트워크 호출은 with_timeout()을 거치고,
의존성별 작업은 gather_in_batches()로 묶어 동시 요청 수를 제한합니다.
"""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from functools import wraps
from typing import (
    Any,
    Awaitable,
    Callable,
    Generic,
    List,
    Optional,
    Sequence,
    TypeVar,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")
R = TypeVar("R")


@dataclass(frozen=True)
class Outcome(Generic[T]):
    """결과, 타임아웃, 실패 중 하나를 담는 값."""
    value: Optional[T] = None
    timed_out: bool = False
    error: Optional[BaseException] = None

    @property
    def ok(self) -> bool:
        return not self.timed_out and self.error is None

    @classmethod
    def success(cls, value: T) -> "Outcome[T]":
        return cls(value=value)

    @classmethod
    def timeout(cls) -> "Outcome[T]":
        return cls(timed_out=True)

    @classmethod
    def failure(cls, error: BaseException) -> "Outcome[T]":
        return cls(error=error)

    def unwrap_or(self, default: T) -> T:
        return self.value if self.ok else default


async def with_timeout(awaitable: Awaitable[T], seconds: float) -> Outcome[T]:
    """
    awaitable을 제한 시간 안에 실행하고 Outcome으로 감싸 반환.

    예외는 전파하지 않고 Outcome.failure로 돌려줍니다.
    취소(CancelledError)만은 호출자에게 그대로 전파됩니다.
    """
    try:
        value = await asyncio.wait_for(awaitable, timeout=seconds)
    except asyncio.TimeoutError:
        return Outcome.timeout()
    except asyncio.CancelledError:
        raise
    except Exception as e:
        return Outcome.failure(e)
    return Outcome.success(value)


async def timeout_with_default(
    awaitable: Awaitable[T],
    timeout_seconds: float,
    default_value: Any = None
) -> Any:
    """타임아웃 또는 실패 시 default_value 반환."""
    outcome = await with_timeout(awaitable, timeout_seconds)
    if outcome.timed_out:
        logger.warning(
            "Operation timed out after %ss, returning default value",
            timeout_seconds,
        )
    elif outcome.error is not None:
        logger.warning("Operation failed: %s", outcome.error)
    return outcome.unwrap_or(default_value)


async def gather_in_batches(
    items: Sequence[T],
    worker: Callable[[T], Awaitable[R]],
    batch_size: int,
) -> List[Outcome[R]]:
    """
    items를 batch_size 단위로 나눠 worker를 실행.

    한 배치의 작업이 모두 끝난(성공이든 실패든) 뒤에 다음 배치를 시작하므로
    동시에 열린 요청 수는 batch_size를 넘지 않습니다.

    Returns:
        입력과 같은 순서의 Outcome 리스트
    """
    if batch_size < 1:
        raise ValueError("batch_size must be >= 1")

    outcomes: List[Outcome[R]] = []
    for start in range(0, len(items), batch_size):
        batch = items[start:start + batch_size]
        results = await asyncio.gather(
            *(worker(item) for item in batch),
            return_exceptions=True,
        )
        for result in results:
            if isinstance(result, asyncio.CancelledError):
                raise result
            if isinstance(result, BaseException):
                outcomes.append(Outcome.failure(result))
            else:
                outcomes.append(Outcome.success(result))
    return outcomes


def async_with_fallback(fallback_value: Any = None):
    """
    에러 발생 시 fallback 값을 반환하는 데코레이터.

    Usage:
        @async_with_fallback(fallback_value=[])
        async def some_function():
            ...
    """
    def decorator(func: Callable) -> Callable:
        @wraps(func)
        async def wrapper(*args, **kwargs):
            try:
                return await func(*args, **kwargs)
            except asyncio.CancelledError:
                raise
            except Exception as e:
                logger.warning(
                    "%s failed, using fallback: %s",
                    func.__name__, e,
                    exc_info=True,
                )
                return fallback_value
        return wrapper
    return decorator
