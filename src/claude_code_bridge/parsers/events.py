"""Typed events and responses produced from claude output.

Design:
1. StreamEvent is one parsed output line, sequenced by the parser
2. ClaudeResponse is a tagged union with exactly three variants, told
   apart by the ``kind`` field
3. Models are frozen; callers get values, not shared state
"""

from __future__ import annotations

import time
from enum import Enum
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

__all__ = [
    "ClaudeResponse",
    "ErrorResponse",
    "EventType",
    "StreamEvent",
    "StreamResponse",
    "TextResponse",
    "response_content",
]


class EventType(str, Enum):
    """Event vocabulary after mapping the raw ``type`` field."""

    SYSTEM = "system"
    ASSISTANT = "assistant"
    USER = "user"
    RESULT = "result"
    TOOL_USE = "tool_use"
    TOOL_RESULT = "tool_result"
    ERROR = "error"
    COMPLETE = "complete"


class StreamEvent(BaseModel):
    """One unit of agent output.

    Attributes:
        type: Mapped event type
        content: Event text (may be empty)
        timestamp: Capture time, Unix seconds
        sequence: Position within its invocation, starting at 1
        tool_name: Tool name for tool events
        tool_input: Tool input re-serialized as JSON text
    """

    model_config = ConfigDict(frozen=True)

    type: EventType
    content: str = ""
    timestamp: float = Field(default_factory=time.time)
    sequence: int
    tool_name: str | None = None
    tool_input: str | None = None

    @property
    def is_text(self) -> bool:
        """True for events whose content counts toward the response text."""
        return self.type in (EventType.ASSISTANT, EventType.RESULT)


class ResponseBase(BaseModel):
    model_config = ConfigDict(frozen=True)

    content: str = ""
    timestamp: float = Field(default_factory=time.time)
    duration_sec: float = 0.0

    @property
    def is_error(self) -> bool:
        return False


class TextResponse(ResponseBase):
    """Single content blob; output produced no events."""

    kind: Literal["text"] = "text"


class StreamResponse(ResponseBase):
    """Ordered events plus their aggregated text."""

    kind: Literal["stream"] = "stream"
    events: tuple[StreamEvent, ...] = ()


class ErrorResponse(ResponseBase):
    """Agent-side failure, only for non-zero exit codes.

    Attributes:
        error_code: Machine-readable error class
        raw_output: Full stdout of the run
        exit_code: Process exit code (never 0)
    """

    kind: Literal["error"] = "error"
    error_code: str = "CLI_ERROR"
    raw_output: str = ""
    exit_code: int

    @field_validator("exit_code")
    @classmethod
    def _non_zero(cls, value: int) -> int:
        if value == 0:
            raise ValueError("ErrorResponse requires a non-zero exit code")
        return value

    @property
    def is_error(self) -> bool:
        return True


ClaudeResponse = TextResponse | StreamResponse | ErrorResponse


def response_content(response: ClaudeResponse) -> str:
    """Display text for any response variant."""
    if isinstance(response, ErrorResponse):
        return f"[{response.error_code}] {response.content}"
    if isinstance(response, StreamResponse):
        return response.content
    if isinstance(response, TextResponse):
        return response.content
    raise TypeError(f"Unknown response variant: {type(response).__name__}")
