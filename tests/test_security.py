"""Input sanitizer tests."""

from __future__ import annotations

import pytest

from claude_code_bridge.errors import InputRejectedError
from claude_code_bridge.security import (
    MAX_AGENT_NAME_LENGTH,
    MAX_TEXT_LENGTH,
    DefaultInputSanitizer,
    NoopSanitizer,
)
from claude_code_bridge.types import Prompt


@pytest.fixture
def sanitizer() -> DefaultInputSanitizer:
    return DefaultInputSanitizer()


class TestDefaultInputSanitizer:
    @pytest.mark.parametrize(
        "text",
        [
            "plain question",
            "rm -rf / ; echo $(whoami) `id`",
            "multi\nline\tprompt",
            "ünïcödé 日本語",
        ],
    )
    def test_prompt_text_passes_unchanged(self, sanitizer: DefaultInputSanitizer, text: str):
        prompt = Prompt(text)
        assert sanitizer.sanitize(prompt) is prompt

    def test_text_length_limit(self, sanitizer: DefaultInputSanitizer):
        sanitizer.sanitize(Prompt("x" * MAX_TEXT_LENGTH))
        with pytest.raises(InputRejectedError) as exc_info:
            sanitizer.sanitize(Prompt("x" * (MAX_TEXT_LENGTH + 1)))
        assert exc_info.value.field == "text"

    def test_custom_length_limit(self):
        with pytest.raises(InputRejectedError):
            DefaultInputSanitizer(max_text_length=10).sanitize(Prompt("x" * 11))

    def test_nul_in_text(self, sanitizer: DefaultInputSanitizer):
        with pytest.raises(InputRejectedError) as exc_info:
            sanitizer.sanitize(Prompt("a\x00b"))
        assert "NUL" in exc_info.value.reason

    def test_nul_in_system_prompt(self, sanitizer: DefaultInputSanitizer):
        with pytest.raises(InputRejectedError) as exc_info:
            sanitizer.sanitize(Prompt("ok", system_prompt="bad\x00"))
        assert exc_info.value.field == "system_prompt"

    @pytest.mark.parametrize("name", ["$(id)", "`id`", "a`b", "x\x00y", "n" * (MAX_AGENT_NAME_LENGTH + 1)])
    def test_agent_name_rejected(self, sanitizer: DefaultInputSanitizer, name: str):
        with pytest.raises(InputRejectedError) as exc_info:
            sanitizer.sanitize(Prompt("ok", agent_name=name))
        assert exc_info.value.field == "agent_name"

    @pytest.mark.parametrize("name", ["reviewer", "code-review_v2", "my agent"])
    def test_agent_name_accepted(self, sanitizer: DefaultInputSanitizer, name: str):
        sanitizer.sanitize(Prompt("ok", agent_name=name))


class TestNoopSanitizer:
    def test_accepts_anything(self):
        prompt = Prompt("a\x00b", agent_name="$(id)")
        assert NoopSanitizer().sanitize(prompt) is prompt
