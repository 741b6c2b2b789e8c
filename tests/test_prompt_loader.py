"""
프롬프트 로더 테스트.
"""
import logging

import pytest

from backend.prompts.loader import (
    clear_cache,
    get_parameters,
    get_system_prompt,
    list_prompts,
    load_prompt,
    render_prompt,
)


class TestPromptLoader:
    """프롬프트 로더 테스트."""

    def test_all_prompts_present(self):
        assert list_prompts() == [
            "architecture_detailed",
            "architecture_simple",
            "file_diagram",
            "package_descriptions",
        ]

    @pytest.mark.parametrize("name", ["architecture_simple", "architecture_detailed", "file_diagram", "package_descriptions"])
    def test_prompt_shape(self, name):
        prompt = load_prompt(name)

        assert prompt["name"] == name
        assert prompt["system_prompt"].strip()
        assert prompt["user_prompt_template"].strip()
        assert set(prompt["parameters"]) == {"temperature", "max_tokens"}

    def test_get_system_prompt(self):
        assert "Mermaid" in get_system_prompt("architecture_simple")
        assert "JSON" in get_system_prompt("package_descriptions")

    def test_get_parameters_is_a_copy(self):
        params = get_parameters("file_diagram")
        params["timeout"] = 1

        assert "timeout" not in get_parameters("file_diagram")

    def test_render_architecture(self):
        rendered = render_prompt("architecture_detailed", file_paths="src/index.ts\nsrc/api/client.ts")
        assert "src/api/client.ts" in rendered
        assert "{file_paths}" not in rendered

    def test_render_keeps_literal_json_example(self):
        rendered = render_prompt("package_descriptions", packages="react, axios")

        assert "Packages: react, axios" in rendered
        assert '{"react": ' in rendered

    def test_render_missing_variable(self, caplog):
        with caplog.at_level(logging.WARNING):
            rendered = render_prompt("file_diagram", content="x = 1")

        assert "[diagram_type]" in rendered
        assert "diagram_type" in caplog.text

    def test_unknown_prompt(self):
        with pytest.raises(FileNotFoundError):
            load_prompt("does_not_exist")

    def test_unknown_template_key(self):
        with pytest.raises(KeyError):
            render_prompt("file_diagram", template_key="context_template")

    def test_cache(self):
        first = load_prompt("file_diagram")
        assert load_prompt("file_diagram") is first

        clear_cache()
        assert load_prompt("file_diagram") is not first

    def test_preload_prompts(self):
        from backend.prompts import REQUIRED_PROMPTS, preload_prompts

        clear_cache()
        preload_prompts()

        assert sorted(REQUIRED_PROMPTS) == list_prompts()
        for name in REQUIRED_PROMPTS:
            assert load_prompt(name) is load_prompt(name)
