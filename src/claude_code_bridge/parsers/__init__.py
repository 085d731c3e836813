"""Parsing claude output into typed events and responses."""

from .events import (
    ClaudeResponse,
    ErrorResponse,
    EventType,
    StreamEvent,
    StreamResponse,
    TextResponse,
    response_content,
)
from .stream import StreamParser, map_event_type

__all__ = [
    "ClaudeResponse",
    "ErrorResponse",
    "EventType",
    "StreamEvent",
    "StreamParser",
    "StreamResponse",
    "TextResponse",
    "map_event_type",
    "response_content",
]
