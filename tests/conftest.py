"""
pytest 설정 및 공통 fixture.

사용법:
    # 빠른 테스트만 실행 (개발 시)
    pytest --skip-slow

    # 전체 테스트 실행 (CI/CD)
    pytest
"""
import pytest
from typing import Any, Callable, Dict, List, Optional

import httpx

from backend.common.errors import LLMError
from backend.llm.base import ChatRequest, ChatResponse, LLMClient


def pytest_addoption(parser):
    """느린 테스트 제외 옵션 추가."""
    parser.addoption(
        "--skip-slow",
        action="store_true",
        default=False,
        help="느린 테스트(실제 API 호출) 건너뛰기"
    )


def pytest_configure(config):
    """마커 등록."""
    config.addinivalue_line(
        "markers", "slow: 실제 API 호출이 필요한 느린 테스트"
    )
    config.addinivalue_line(
        "markers", "integration: 통합 테스트"
    )
    config.addinivalue_line(
        "markers", "unit: 단위 테스트"
    )


def pytest_collection_modifyitems(config, items):
    """--skip-slow 옵션 시 slow 마커 테스트 건너뛰기."""
    if not config.getoption("--skip-slow"):
        return

    skip_slow = pytest.mark.skip(reason="--skip-slow 옵션으로 건너뜀")
    for item in items:
        if "slow" in item.keywords:
            item.add_marker(skip_slow)


class FakeLLMClient(LLMClient):
    """정해진 응답(또는 예외)을 돌려주고 요청을 기록하는 LLM 클라이언트."""

    model = "fake-model"

    def __init__(self, responses: Optional[List[Any]] = None):
        self.responses = list(responses or [])
        self.requests: List[ChatRequest] = []
        self.timeouts: List[float] = []

    def chat(self, request: ChatRequest, timeout: int = 60) -> ChatResponse:
        self.requests.append(request)
        self.timeouts.append(timeout)
        if not self.responses:
            raise LLMError("no scripted response", model=self.model)
        item = self.responses.pop(0)
        if isinstance(item, BaseException):
            raise item
        return ChatResponse(content=item)


# === 공통 Fixture ===

@pytest.fixture
def sample_repo_info() -> Dict[str, str]:
    """테스트용 저장소 정보."""
    return {
        "owner": "test-owner",
        "repo": "test-repo",
    }


@pytest.fixture
def sample_manifest() -> Dict[str, Any]:
    """dependencies + devDependencies 두 섹션을 가진 package.json."""
    return {
        "name": "demo-app",
        "version": "0.1.0",
        "dependencies": {"react": "^18.2.0", "axios": "^1.6.0"},
        "devDependencies": {"typescript": "^5.3.0"},
    }


@pytest.fixture
def fake_llm_factory() -> Callable[..., FakeLLMClient]:
    return FakeLLMClient


@pytest.fixture
def mock_transport_factory():
    """요청 기록이 붙은 httpx.MockTransport 생성 헬퍼."""

    def factory(handler: Callable[[httpx.Request], httpx.Response]):
        seen: List[httpx.Request] = []

        def recording(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return handler(request)

        return httpx.MockTransport(recording), seen

    return factory
