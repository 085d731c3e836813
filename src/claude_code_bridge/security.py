"""Prompt sanitizers applied before anything reaches the process."""

from __future__ import annotations

import re
from abc import ABC, abstractmethod

from .errors import InputRejectedError
from .types import Prompt

__all__ = [
    "DefaultInputSanitizer",
    "InputSanitizer",
    "MAX_AGENT_NAME_LENGTH",
    "MAX_TEXT_LENGTH",
    "NoopSanitizer",
]

MAX_TEXT_LENGTH = 256 * 1024
MAX_AGENT_NAME_LENGTH = 256

# $(...) and `...` command substitution
_SUBSTITUTION = re.compile(r"\$\([^)]*\)|`[^`]*`")


class InputSanitizer(ABC):
    """Validates (and may rewrite) a prompt, raising InputRejectedError."""

    @abstractmethod
    def sanitize(self, prompt: Prompt) -> Prompt:
        ...


class NoopSanitizer(InputSanitizer):
    """Accepts every prompt unchanged."""

    def sanitize(self, prompt: Prompt) -> Prompt:
        return prompt


class DefaultInputSanitizer(InputSanitizer):
    """Length and control-character checks.

    Prompt text travels over stdin, so its content is otherwise left alone.
    The agent name becomes an argument and is held to a stricter rule.
    """

    def __init__(self, max_text_length: int = MAX_TEXT_LENGTH) -> None:
        self.max_text_length = max_text_length

    def sanitize(self, prompt: Prompt) -> Prompt:
        self._check_text("text", prompt.text)
        if prompt.system_prompt is not None:
            self._check_text("system_prompt", prompt.system_prompt)
        if prompt.agent_name is not None:
            self._check_agent_name(prompt.agent_name)
        return prompt

    def _check_text(self, field: str, value: str) -> None:
        if len(value) > self.max_text_length:
            raise InputRejectedError(
                field, f"length {len(value)} exceeds {self.max_text_length}"
            )
        if "\x00" in value:
            raise InputRejectedError(field, "contains a NUL character")

    @staticmethod
    def _check_agent_name(name: str) -> None:
        if len(name) > MAX_AGENT_NAME_LENGTH:
            raise InputRejectedError("agent_name", f"longer than {MAX_AGENT_NAME_LENGTH} characters")
        if "\x00" in name:
            raise InputRejectedError("agent_name", "contains a NUL character")
        if "`" in name or _SUBSTITUTION.search(name):
            raise InputRejectedError("agent_name", "contains shell command substitution")
