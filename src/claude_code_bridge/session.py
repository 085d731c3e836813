"""Multi-turn conversation state layered over a ClaudeClient."""

from __future__ import annotations

import asyncio
import logging
import threading
import uuid
from typing import TYPE_CHECKING

from .client import as_prompt
from .errors import ClientClosedError
from .parsers import ClaudeResponse
from .types import Prompt, PromptOptions

if TYPE_CHECKING:
    from .client import ClaudeClient, PromptLike

__all__ = ["ClaudeSession"]

logger = logging.getLogger(__name__)


class ClaudeSession:
    """Keeps response history and a system prompt across sends.

    Every outgoing prompt that has no system prompt of its own gets the
    session's. History is append-only until clear_history() or close();
    reads return a copy.

    Example:
        session = client.create_session(system_prompt="Answer in one line.")
        await session.send("What does this repo do?")
        await session.send("Which module is the entry point?")
        for response in session.history:
            print(response.content)
    """

    def __init__(self, client: ClaudeClient, system_prompt: str | None = None) -> None:
        self.session_id = str(uuid.uuid4())
        self._client = client
        self._system_prompt = system_prompt
        self._history: list[ClaudeResponse] = []
        self._lock = threading.Lock()
        self._closed = False
        logger.debug(f"Session {self.session_id} created")

    @property
    def system_prompt(self) -> str | None:
        return self._system_prompt

    @system_prompt.setter
    def system_prompt(self, value: str | None) -> None:
        self._system_prompt = value

    def set_system_prompt(self, value: str | None) -> None:
        self.system_prompt = value

    @property
    def history(self) -> list[ClaudeResponse]:
        with self._lock:
            return list(self._history)

    @property
    def closed(self) -> bool:
        return self._closed

    def clear_history(self) -> None:
        with self._lock:
            self._history.clear()

    def _prompt_for(self, message: PromptLike) -> Prompt:
        if self._closed:
            raise ClientClosedError("Session is closed")
        if isinstance(message, Prompt):
            if message.system_prompt is None and self._system_prompt is not None:
                return message.with_system_prompt(self._system_prompt)
            return message
        return as_prompt(message).with_system_prompt(self._system_prompt)

    def _record(self, response: ClaudeResponse) -> ClaudeResponse:
        with self._lock:
            # A send that was in flight when close() ran is not recorded
            if not self._closed:
                self._history.append(response)
        return response

    async def send(self, message: PromptLike, options: PromptOptions | None = None) -> ClaudeResponse:
        """Send one turn and record the response."""
        response = await self._client.execute(self._prompt_for(message), options)
        return self._record(response)

    def send_async(
        self, message: PromptLike, options: PromptOptions | None = None
    ) -> asyncio.Task[ClaudeResponse]:
        self._prompt_for(message)
        return asyncio.create_task(self.send(message, options))

    def send_sync(self, message: PromptLike, options: PromptOptions | None = None) -> ClaudeResponse:
        response = self._client.execute_sync(self._prompt_for(message), options)
        return self._record(response)

    def close(self) -> None:
        """Close the session and drop its history; the client stays open."""
        self._closed = True
        self.clear_history()
        logger.debug(f"Session {self.session_id} closed")

    def __repr__(self) -> str:
        return f"ClaudeSession(id={self.session_id}, turns={len(self._history)})"
