"""In-process stand-in for ClaudeClient, for testing host applications.

MockClaudeClient mirrors the ClaudeClient surface but answers from a
MockResponseProvider instead of spawning claude. Requests are recorded so
tests can assert on what would have been sent.

Example:
    provider = RulesBasedMockProvider("I don't know")
    provider.when_contains("weather", "Sunny")
    client = MockClaudeClient(provider)

    response = await client.execute("What's the weather?")
    assert response.content == "Sunny"
    assert provider.recorded_requests[0].prompt.text == "What's the weather?"
"""

from __future__ import annotations

import asyncio
import re
import threading
import time
from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

import anyio

from .client import as_prompt
from .errors import ClientClosedError
from .parsers import ClaudeResponse, EventType, StreamEvent, TextResponse
from .types import Prompt, PromptOptions

if TYPE_CHECKING:
    from .client import ClaudeClient, PromptLike
    from .session import ClaudeSession

__all__ = [
    "MockClaudeClient",
    "MockEventStream",
    "MockResponseProvider",
    "RecordedRequest",
    "RulesBasedMockProvider",
    "StaticMockProvider",
]

MOCK_VERSION = "mock-1.0.0"


@dataclass(frozen=True)
class RecordedRequest:
    prompt: Prompt
    options: PromptOptions
    timestamp: float = field(default_factory=time.time)


class MockResponseProvider(ABC):
    """Source of canned responses; records every request it sees."""

    def __init__(self) -> None:
        self._recorded: list[RecordedRequest] = []
        self._lock = threading.Lock()

    @abstractmethod
    def response_for(self, prompt: Prompt, options: PromptOptions) -> ClaudeResponse:
        ...

    def events_for(self, prompt: Prompt, options: PromptOptions) -> list[StreamEvent]:
        """Events for stream(); one RESULT event carrying the response content."""
        response = self.response_for(prompt, options)
        return [StreamEvent(type=EventType.RESULT, content=response.content, sequence=1)]

    def record(self, prompt: Prompt, options: PromptOptions) -> None:
        with self._lock:
            self._recorded.append(RecordedRequest(prompt, options))

    @property
    def recorded_requests(self) -> list[RecordedRequest]:
        with self._lock:
            return list(self._recorded)

    def reset(self) -> None:
        with self._lock:
            self._recorded.clear()


class StaticMockProvider(MockResponseProvider):
    """Answers every prompt with the same text."""

    def __init__(self, text: str = "Mock response from Claude") -> None:
        super().__init__()
        self.text = text

    def response_for(self, prompt: Prompt, options: PromptOptions) -> ClaudeResponse:
        return TextResponse(content=self.text)


@dataclass(frozen=True)
class _Rule:
    matches: Callable[[Prompt], bool]
    respond: Callable[[Prompt], str]


class RulesBasedMockProvider(MockResponseProvider):
    """First matching rule wins; otherwise the default text.

    Rules are chainable:

        provider = (
            RulesBasedMockProvider()
            .when_contains("hello", "Hi!")
            .when_matches(r"\\bsum\\b", lambda p: "42")
        )
    """

    def __init__(self, default: str = "Default mock response") -> None:
        super().__init__()
        self.default = default
        self._rules: list[_Rule] = []

    @staticmethod
    def _responder(response: str | Callable[[Prompt], str]) -> Callable[[Prompt], str]:
        if callable(response):
            return response
        return lambda _prompt: response

    def when(
        self, predicate: Callable[[Prompt], bool], response: str | Callable[[Prompt], str]
    ) -> RulesBasedMockProvider:
        self._rules.append(_Rule(predicate, self._responder(response)))
        return self

    def when_contains(self, substring: str, response: str | Callable[[Prompt], str]) -> RulesBasedMockProvider:
        return self.when(lambda p: substring in p.text, response)

    def when_matches(self, pattern: str, response: str | Callable[[Prompt], str]) -> RulesBasedMockProvider:
        compiled = re.compile(pattern)
        return self.when(lambda p: compiled.search(p.text) is not None, response)

    def clear_rules(self) -> None:
        self._rules.clear()

    def response_for(self, prompt: Prompt, options: PromptOptions) -> ClaudeResponse:
        for rule in self._rules:
            if rule.matches(prompt):
                return TextResponse(content=rule.respond(prompt))
        return TextResponse(content=self.default)


class MockEventStream:
    """Async context manager and iterator over canned events."""

    def __init__(self, events: list[StreamEvent], delay: float = 0.0) -> None:
        self._events = list(events)
        self._delay = delay
        self._cancelled = False
        self.exit_code: int | None = None

    async def __aenter__(self) -> MockEventStream:
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        self.cancel()

    def cancel(self) -> None:
        self._cancelled = True

    def __aiter__(self) -> MockEventStream:
        return self

    async def __anext__(self) -> StreamEvent:
        if self._delay:
            await anyio.sleep(self._delay)
        if self._cancelled or not self._events:
            self.exit_code = 0
            raise StopAsyncIteration
        return self._events.pop(0)


class MockClaudeClient:
    """Drop-in ClaudeClient replacement backed by a response provider.

    Args:
        provider: Where responses come from
        delegate: Real client used when mock_enabled is False
        mock_enabled: Answer from the provider (True) or the delegate (False)
        delay: Seconds to sleep before each answer
    """

    def __init__(
        self,
        provider: MockResponseProvider | None = None,
        *,
        delegate: ClaudeClient | None = None,
        mock_enabled: bool = True,
        delay: float = 0.0,
    ) -> None:
        self.provider = provider or StaticMockProvider()
        self.delegate = delegate
        self.mock_enabled = mock_enabled
        self.delay = delay
        self._closed = False

    @property
    def recorded_requests(self) -> list[RecordedRequest]:
        return self.provider.recorded_requests

    def reset(self) -> None:
        self.provider.reset()

    def _require_delegate(self) -> ClaudeClient:
        if self.delegate is None:
            raise RuntimeError("Mock mode disabled but no delegate client provided")
        return self.delegate

    def _request(self, prompt: PromptLike, options: PromptOptions | None) -> tuple[Prompt, PromptOptions]:
        if self._closed:
            raise ClientClosedError("Client is closed")
        prompt = as_prompt(prompt)
        options = options or PromptOptions()
        self.provider.record(prompt, options)
        return prompt, options

    async def execute(self, prompt: PromptLike, options: PromptOptions | None = None) -> ClaudeResponse:
        if not self.mock_enabled:
            return await self._require_delegate().execute(prompt, options)
        prompt, options = self._request(prompt, options)
        if self.delay:
            await anyio.sleep(self.delay)
        return self.provider.response_for(prompt, options)

    def execute_async(
        self, prompt: PromptLike, options: PromptOptions | None = None
    ) -> asyncio.Task[ClaudeResponse]:
        return asyncio.create_task(self.execute(prompt, options))

    def execute_sync(self, prompt: PromptLike, options: PromptOptions | None = None) -> ClaudeResponse:
        if not self.mock_enabled:
            return self._require_delegate().execute_sync(prompt, options)
        prompt, options = self._request(prompt, options)
        if self.delay:
            time.sleep(self.delay)
        return self.provider.response_for(prompt, options)

    def stream(self, prompt: PromptLike, options: PromptOptions | None = None) -> Any:
        if not self.mock_enabled:
            return self._require_delegate().stream(prompt, options)
        prompt, options = self._request(prompt, options)
        return MockEventStream(self.provider.events_for(prompt, options), self.delay)

    def create_session(self, system_prompt: str | None = None) -> ClaudeSession:
        from .session import ClaudeSession

        if not self.mock_enabled:
            return self._require_delegate().create_session(system_prompt)
        if self._closed:
            raise ClientClosedError("Client is closed")
        return ClaudeSession(self, system_prompt)  # type: ignore[arg-type]

    async def is_available(self) -> bool:
        if self.mock_enabled:
            return True
        return self.delegate is not None and await self.delegate.is_available()

    async def get_version(self) -> str:
        if self.mock_enabled:
            return MOCK_VERSION
        return await self.delegate.get_version() if self.delegate is not None else "unknown"

    def close(self) -> None:
        self._closed = True
        if self.delegate is not None:
            self.delegate.close()

    async def __aenter__(self) -> MockClaudeClient:
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        self.close()
