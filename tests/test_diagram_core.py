"""
다이어그램 생성 테스트 (FakeLLMClient 사용).

Tests:
1. 다이어그램 종류 선택 규칙
2. 프롬프트 선택 및 입력 절단
3. 생성 실패 -> fallback, 입력 오류 -> ValidationError
"""
from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest

from backend.common.config import LLMSettings
from backend.common.errors import DiagramGenerationError, ErrorKind, LLMTimeoutError, ValidationError
from backend.core.diagram_core import (
    FALLBACK_MESSAGE,
    TRUNCATION_MARKER,
    DiagramGenerator,
    choose_diagram_type,
    diagram_type_of,
    truncate_content,
)
from backend.core.mermaid import FALLBACK_RESULT
from backend.llm.openai_like import OpenAILikeClient
from backend.prompts import get_system_prompt

SETTINGS = LLMSettings(api_key="test", model="fake-model", timeout=5)

PATHS = ["src/index.ts", "src/components/App.tsx", "src/api/client.ts", "server/db.ts"]


class TestChooseDiagramType:
    def test_class_heavy(self):
        content = "export class Store {}\nclass Cache extends Store {}\n"
        assert choose_diagram_type(content) == "classDiagram"

    def test_procedural(self):
        assert choose_diagram_type("def add(a, b):\n    return a + b\n") == "flowchart"

    def test_interaction_heavy(self):
        content = (
            "const user = await fetch(url)\n"
            "await api.send(user)\n"
            "const r = await axios.get(u)\n"
        )
        assert choose_diagram_type(content) == "sequenceDiagram"

    def test_state_machine(self):
        content = (
            "function reducer(state, action) {\n"
            "  switch (action.type) {\n"
            "    case 'start': return 'running';\n"
            "    case 'stop': return 'idle';\n"
            "    case 'reset': return 'idle';\n"
            "  }\n"
            "}\n"
        )
        assert choose_diagram_type(content) == "stateDiagram"


class TestHelpers:
    def test_truncate_content(self):
        assert truncate_content("short") == "short"
        long = "x" * 20_001
        assert truncate_content(long) == "x" * 20_000 + TRUNCATION_MARKER

    def test_diagram_type_of(self):
        assert diagram_type_of("graph TD\n  A --> B\n") == "flowchart"
        assert diagram_type_of("stateDiagram-v2\n  [*] --> Idle\n") == "stateDiagram"
        assert diagram_type_of("classDiagram\n") == "classDiagram"


class TestArchitectureDiagram:
    @pytest.mark.asyncio
    async def test_simple(self, fake_llm_factory):
        llm = fake_llm_factory(["graph TD A[Hello] B[World] A-->B"])
        result = await DiagramGenerator(llm, SETTINGS).build_architecture_diagram(PATHS, "simple")

        assert result.diagram.startswith('flowchart TD\n  A["Hello"]\n  B["World"]\n  A --> B\n')
        assert result.type == "flowchart"
        assert not result.fallback

        request = llm.requests[0]
        assert request.messages[0].content == get_system_prompt("architecture_simple")
        assert "src/api/client.ts" in request.messages[1].content
        assert request.max_tokens == 4096

    @pytest.mark.asyncio
    async def test_detailed_uses_its_own_prompt(self, fake_llm_factory):
        llm = fake_llm_factory(["flowchart TD\n  A[Client] --> B[Server]"])
        await DiagramGenerator(llm, SETTINGS).build_architecture_diagram(PATHS, "detailed")

        assert llm.requests[0].messages[0].content == get_system_prompt("architecture_detailed")

    @pytest.mark.asyncio
    async def test_generation_failure_returns_fallback(self, fake_llm_factory):
        llm = fake_llm_factory([LLMTimeoutError(model="fake-model", timeout=5)])
        result = await DiagramGenerator(llm, SETTINGS).build_architecture_diagram(PATHS)

        assert result.fallback
        assert result.diagram == FALLBACK_RESULT
        assert result.to_dict() == {
            "diagram": FALLBACK_RESULT,
            "type": "flowchart",
            "fallback": True,
            "message": FALLBACK_MESSAGE,
        }

    @pytest.mark.asyncio
    async def test_raw_call_raises_typed_error(self, fake_llm_factory):
        llm = fake_llm_factory([LLMTimeoutError(model="fake-model", timeout=5)])
        with pytest.raises(DiagramGenerationError):
            await DiagramGenerator(llm, SETTINGS).generate_architecture(PATHS)

    @pytest.mark.asyncio
    async def test_no_choices_raises_typed_error(self):
        sdk = MagicMock()
        sdk.chat.completions.create.return_value = SimpleNamespace(choices=[])
        llm = OpenAILikeClient(SETTINGS, client=sdk)

        with pytest.raises(DiagramGenerationError):
            await DiagramGenerator(llm, SETTINGS).generate_architecture(PATHS)

    @pytest.mark.asyncio
    @pytest.mark.parametrize("paths,level", [([], "simple"), (["  "], "simple"), (PATHS, "fancy")])
    async def test_invalid_input(self, fake_llm_factory, paths, level):
        llm = fake_llm_factory([])
        with pytest.raises(ValidationError):
            await DiagramGenerator(llm, SETTINGS).build_architecture_diagram(paths, level)
        assert llm.requests == []


class TestFileDiagram:
    @pytest.mark.asyncio
    async def test_class_file(self, fake_llm_factory):
        llm = fake_llm_factory(["```mermaid\nclassDiagram\n  class Store\n  Store <|-- Cache\n```"])
        content = "export class Store {}\nclass Cache extends Store {}\n"

        result = await DiagramGenerator(llm, SETTINGS).build_file_diagram(content, "store.ts", "typescript")

        assert result.diagram == "classDiagram\n  class Store\n  Store <|-- Cache\n"
        assert result.type == "classDiagram"
        user_message = llm.requests[0].messages[1].content
        assert "Diagram type: classDiagram" in user_message
        assert "File name: store.ts" in user_message

    @pytest.mark.asyncio
    async def test_long_content_is_truncated(self, fake_llm_factory):
        llm = fake_llm_factory(["flowchart TD\n  A[Start] --> B[End]"])
        raw, diagram_type = await DiagramGenerator(llm, SETTINGS).generate_file_diagram("y = 1\n" * 5000)

        assert diagram_type == "flowchart"
        assert raw.startswith("flowchart TD")
        assert TRUNCATION_MARKER.strip() in llm.requests[0].messages[1].content

    @pytest.mark.asyncio
    async def test_empty_content(self, fake_llm_factory):
        with pytest.raises(ValidationError) as exc_info:
            await DiagramGenerator(fake_llm_factory([]), SETTINGS).build_file_diagram("   ")
        assert exc_info.value.kind == ErrorKind.MISSING_REQUIRED_FIELD

    @pytest.mark.asyncio
    async def test_empty_model_answer_falls_back(self, fake_llm_factory):
        result = await DiagramGenerator(fake_llm_factory(["  "]), SETTINGS).build_file_diagram("x = 1")
        assert result.fallback
        assert result.type == "flowchart"
