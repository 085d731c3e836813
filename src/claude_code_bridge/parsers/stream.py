"""Tolerant parser for claude's line-oriented output.

Each line is either a single JSON object or plain text. Nothing a caller
feeds in is dropped except blank lines: malformed JSON and non-object
JSON fall back to a plain assistant event carrying the raw line.

The parser owns the sequence counter, so use one instance per invocation.
"""

from __future__ import annotations

import itertools
import json
import logging
from collections.abc import AsyncIterable, AsyncIterator, Iterable, Iterator
from typing import Any

from .events import (
    ClaudeResponse,
    ErrorResponse,
    EventType,
    StreamEvent,
    StreamResponse,
    TextResponse,
)

__all__ = ["StreamParser", "map_event_type"]

logger = logging.getLogger(__name__)

_TYPE_MAP: dict[str, EventType] = {
    "system": EventType.SYSTEM,
    "assistant": EventType.ASSISTANT,
    "text": EventType.ASSISTANT,
    "user": EventType.USER,
    "result": EventType.RESULT,
    "tool_use": EventType.TOOL_USE,
    "tool_result": EventType.TOOL_RESULT,
    "error": EventType.ERROR,
    "message_stop": EventType.COMPLETE,
    "complete": EventType.COMPLETE,
}

UNKNOWN_ERROR = "Unknown error"


def map_event_type(value: Any) -> EventType:
    """Map a raw ``type`` value; unknown or missing types become assistant."""
    if not isinstance(value, str):
        return EventType.ASSISTANT
    return _TYPE_MAP.get(value.strip().lower(), EventType.ASSISTANT)


def _message_text(message: Any) -> str:
    """Text of a ``message`` field: a string, or an API message object."""
    if isinstance(message, str):
        return message
    if not isinstance(message, dict):
        return ""
    blocks = message.get("content")
    if isinstance(blocks, str):
        return blocks
    if not isinstance(blocks, list):
        return ""
    return "".join(
        block.get("text", "")
        for block in blocks
        if isinstance(block, dict) and block.get("type") == "text" and isinstance(block.get("text"), str)
    )


class StreamParser:
    """Converts output lines into sequenced StreamEvents.

    Example:
        parser = StreamParser()
        response = parser.parse_batch(stdout, exit_code)

        parser = StreamParser()
        for event in parser.parse_stream(lines):
            print(event.sequence, event.type, event.content)
    """

    def __init__(self) -> None:
        self._sequence = itertools.count(1)

    def parse_line(self, line: str) -> StreamEvent | None:
        """Parse one line. Returns None only for blank lines."""
        text = line.strip()
        if not text:
            return None

        if text.startswith("{"):
            try:
                data = json.loads(text)
            except (ValueError, RecursionError) as e:
                logger.debug(f"Undecodable JSON line, keeping as text: {type(e).__name__}")
            else:
                if isinstance(data, dict):
                    return self._from_json(data)
                logger.debug(f"JSON line is not an object ({type(data).__name__}), keeping as text")

        return self._event(EventType.ASSISTANT, text)

    def parse_stream(self, lines: Iterable[str]) -> Iterator[StreamEvent]:
        """Lazily parse a sequence of lines, skipping blanks."""
        for line in lines:
            event = self.parse_line(line)
            if event is not None:
                yield event

    async def aparse_stream(self, lines: AsyncIterable[str]) -> AsyncIterator[StreamEvent]:
        """Async counterpart of parse_stream."""
        async for line in lines:
            event = self.parse_line(line)
            if event is not None:
                yield event

    def parse_batch(self, output: str, exit_code: int) -> ClaudeResponse:
        """Parse the complete output of a finished process.

        Args:
            output: Captured stdout
            exit_code: Process exit code

        Returns:
            ErrorResponse for non-zero exit, TextResponse when there were no
            events, StreamResponse otherwise
        """
        events = list(self.parse_stream(output.split("\n")))
        content = "".join(e.content for e in events if e.is_text).strip()

        if exit_code != 0:
            error_text = next((e.content for e in events if e.type is EventType.ERROR), "")
            return ErrorResponse(
                content=error_text or content or UNKNOWN_ERROR,
                raw_output=output,
                exit_code=exit_code,
            )

        if not events:
            return TextResponse(content=output.strip())

        return StreamResponse(content=content, events=tuple(events))

    def _from_json(self, data: dict[str, Any]) -> StreamEvent:
        event_type = map_event_type(data.get("type"))

        content = data.get("content")
        if not isinstance(content, str):
            content = _message_text(data.get("message"))

        name = data.get("name")
        tool_input = data.get("input")
        return self._event(
            event_type,
            content,
            tool_name=name if isinstance(name, str) else None,
            tool_input=(
                json.dumps(tool_input, ensure_ascii=False, separators=(",", ":"))
                if tool_input is not None
                else None
            ),
        )

    def _event(self, event_type: EventType, content: str, **extra: Any) -> StreamEvent:
        return StreamEvent(type=event_type, content=content, sequence=next(self._sequence), **extra)
