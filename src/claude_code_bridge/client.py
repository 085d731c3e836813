"""ClaudeClient: the public entry point.

Composes resolution, command building, the concurrency gate, the process
supervisor and the parser into four invocation modes:

- ``await client.execute(prompt)``: run to completion, parse the output
- ``client.execute_async(prompt)``: the same, scheduled as an asyncio.Task
- ``client.execute_sync(prompt)``: blocking call for non-async code
- ``async with client.stream(prompt) as events``: live StreamEvents

Example:
    async with ClaudeClient() as client:
        response = await client.execute("List the TODOs in this repo")
        print(response.content)

        async with client.stream(Prompt("Refactor utils.py")) as events:
            async for event in events:
                print(event.type, event.content)
"""

from __future__ import annotations

import asyncio
import concurrent.futures
import logging
import threading
import time
from pathlib import Path
from typing import TYPE_CHECKING, Any

import anyio
from anyio.from_thread import BlockingPortal, start_blocking_portal

from .command import CommandBuilder
from .config import Config, get_config
from .errors import (
    ClaudeBridgeError,
    ClaudeExecutionError,
    ClaudeInterruptedError,
    ClaudeTimeoutError,
    ClientClosedError,
    InputRejectedError,
)
from .gate import ConcurrencyGate
from .parsers import ClaudeResponse, StreamEvent, StreamParser
from .resolvers import ResolverChain, resolve_binary
from .runtime import ProcessSpec, ProcessSupervisor, ProcessTerminator
from .security import DefaultInputSanitizer, InputSanitizer
from .types import ExecutionOutcome, ExecutionResult, Prompt, PromptOptions

if TYPE_CHECKING:
    from .session import ClaudeSession

__all__ = ["ClaudeClient", "EventStream", "PromptLike"]

logger = logging.getLogger(__name__)

PromptLike = Prompt | str

# Bound on the --version probe
VERSION_TIMEOUT = 10.0

# Events buffered between the process and a slow consumer
STREAM_BUFFER_SIZE = 256


def as_prompt(prompt: PromptLike) -> Prompt:
    """Wrap plain text in a Prompt. Blank text raises InputRejectedError."""
    if isinstance(prompt, Prompt):
        return prompt
    try:
        return Prompt(prompt)
    except ValueError as e:
        raise InputRejectedError("text", "blank") from e


def _outcome_error(result: ExecutionResult, timeout: float | None) -> ClaudeBridgeError | None:
    """Typed error for a run that did not complete, None otherwise."""
    if result.outcome is ExecutionOutcome.TIMEOUT:
        return ClaudeTimeoutError(timeout)
    if result.outcome is ExecutionOutcome.FAILED:
        return ClaudeExecutionError(result.exit_code, result.stderr)
    return None


class EventStream:
    """Live, cancellable sequence of StreamEvents for one invocation.

    The process starts when the context is entered. Leaving the context
    early, or calling cancel(), kills the process rather than just
    dropping events. Errors (timeout, spawn failure, non-zero exit) are
    raised from the iterator after the last event has been delivered.

    Attributes:
        exit_code: Process exit code once iteration has finished
    """

    def __init__(
        self,
        spec: ProcessSpec,
        timeout: float | None,
        gate: ConcurrencyGate,
        supervisor: ProcessSupervisor,
        buffer_size: int = STREAM_BUFFER_SIZE,
    ) -> None:
        self._spec = spec
        self._timeout = timeout
        self._gate = gate
        self._supervisor = supervisor
        self._buffer_size = buffer_size
        self._task_group: anyio.abc.TaskGroup | None = None
        self._send: anyio.abc.ObjectSendStream[StreamEvent] | None = None
        self._receive: anyio.abc.ObjectReceiveStream[StreamEvent] | None = None
        self._error: ClaudeBridgeError | None = None
        self.exit_code: int | None = None

    async def __aenter__(self) -> EventStream:
        if self._task_group is not None:
            raise RuntimeError("EventStream can only be entered once")
        self._send, self._receive = anyio.create_memory_object_stream(self._buffer_size)
        self._task_group = anyio.create_task_group()
        await self._task_group.__aenter__()
        self._task_group.start_soon(self._produce)
        return self

    async def __aexit__(self, exc_type: Any, exc: BaseException | None, tb: Any) -> bool | None:
        self.cancel()
        try:
            if exc is not None and not isinstance(exc, anyio.get_cancelled_exc_class()):
                # The producer handles its own errors; the body's error
                # propagates as is instead of inside an exception group.
                await self._task_group.__aexit__(None, None, None)
                return None
            # Swallows our own cancel(), re-raises an outer cancellation
            return await self._task_group.__aexit__(exc_type, exc, tb)
        finally:
            self._receive.close()

    def cancel(self) -> None:
        """Stop the invocation and kill its process."""
        if self._task_group is not None:
            self._task_group.cancel_scope.cancel()

    def __aiter__(self) -> EventStream:
        return self

    async def __anext__(self) -> StreamEvent:
        if self._receive is None:
            raise RuntimeError("Enter the stream with 'async with' before iterating")
        try:
            return await self._receive.receive()
        except (anyio.EndOfStream, anyio.ClosedResourceError):
            if self._error is not None:
                error, self._error = self._error, None
                raise error from None
            raise StopAsyncIteration

    async def _produce(self) -> None:
        parser = StreamParser()

        async def on_line(line: str) -> None:
            event = parser.parse_line(line)
            if event is not None:
                await self._send.send(event)

        async with self._send:
            try:
                async with self._gate.slot():
                    result = await self._supervisor.run_streaming(self._spec, self._timeout, on_line)
            except Exception as e:
                logger.warning(f"Streaming invocation failed: {e!r}")
                self._error = ClaudeExecutionError(-1, f"Error: {e}")
                return

            self.exit_code = result.exit_code
            self._error = _outcome_error(result, self._timeout)
            if self._error is None and result.exit_code != 0:
                logger.warning(f"claude exited with {result.exit_code}: {result.stderr.strip()[:500]}")
                self._error = ClaudeExecutionError(result.exit_code, result.stderr)


class ClaudeClient:
    """Runs claude as a library call.

    The binary is resolved once, at construction, and never changes. A
    client is either open or closed; close() is one-way and every later
    call raises ClientClosedError.

    The concurrency gate binds to the event loop that first waits on it:
    drive a client from async code or through execute_sync, not both.

    Args:
        config: Process-wide defaults (None = load from environment)
        binary_path: Explicit executable, bypasses config and resolvers
        resolver_chain: Chain used when no path is configured
        supervisor: Process supervisor (None = built from config.grace_period)
        sanitizer: Prompt sanitizer (None = DefaultInputSanitizer)
    """

    def __init__(
        self,
        config: Config | None = None,
        *,
        binary_path: str | Path | None = None,
        resolver_chain: ResolverChain | None = None,
        supervisor: ProcessSupervisor | None = None,
        sanitizer: InputSanitizer | None = None,
    ) -> None:
        self.config = config or get_config()
        if binary_path is not None:
            self._binary_path = Path(binary_path)
        else:
            self._binary_path = resolve_binary(self.config, resolver_chain)
        self._builder = CommandBuilder(self._binary_path)
        self._supervisor = supervisor or ProcessSupervisor(
            ProcessTerminator(grace_period=self.config.grace_period)
        )
        self._sanitizer = sanitizer or DefaultInputSanitizer()
        self._gate = ConcurrencyGate(self.config.concurrency_limit)

        self._closed = False
        self._lock = threading.Lock()
        self._portal_cm: Any = None
        self._portal: BlockingPortal | None = None

        logger.debug(f"ClaudeClient ready binary={self._binary_path} {self.config!r}")

    @property
    def binary_path(self) -> Path:
        return self._binary_path

    @property
    def gate(self) -> ConcurrencyGate:
        return self._gate

    @property
    def closed(self) -> bool:
        return self._closed

    def resolve_options(self, options: PromptOptions | None = None) -> PromptOptions:
        """Overlay call options on the configured defaults."""
        options = options or PromptOptions()
        overrides: dict[str, Any] = {}
        if options.timeout is None:
            overrides["timeout"] = self.config.default_timeout
        if options.skip_permissions is None:
            overrides["skip_permissions"] = self.config.skip_permissions
        return options.merged(**overrides) if overrides else options

    def _prepare(self, prompt: PromptLike, options: PromptOptions | None) -> tuple[ProcessSpec, PromptOptions]:
        self._ensure_open()
        prompt = self._sanitizer.sanitize(as_prompt(prompt))
        effective = self.resolve_options(options)
        command = self._builder.build(prompt, effective)
        spec = ProcessSpec(
            argv=command.argv,
            cwd=prompt.working_directory or Path.cwd(),
            input_payload=command.input_payload,
        )
        return spec, effective

    async def execute(self, prompt: PromptLike, options: PromptOptions | None = None) -> ClaudeResponse:
        """Run claude to completion and parse its output.

        Returns:
            TextResponse, StreamResponse, or ErrorResponse for a non-zero exit

        Raises:
            ClaudeTimeoutError: The process outlived its timeout
            ClaudeExecutionError: The process could not be run
            InputRejectedError: The sanitizer refused the prompt
            ClientClosedError: The client is closed
        """
        spec, effective = self._prepare(prompt, options)
        started = time.monotonic()

        async with self._gate.slot():
            result = await self._supervisor.run(spec, effective.timeout)

        error = _outcome_error(result, effective.timeout)
        if error is not None:
            raise error
        if result.exit_code != 0:
            logger.warning(f"claude exited with {result.exit_code}: {result.stderr.strip()[:500]}")

        response = StreamParser().parse_batch(result.stdout, result.exit_code)
        return response.model_copy(update={"duration_sec": time.monotonic() - started})

    def execute_async(
        self, prompt: PromptLike, options: PromptOptions | None = None
    ) -> asyncio.Task[ClaudeResponse]:
        """Schedule execute() on the running loop and return its Task."""
        self._ensure_open()
        return asyncio.create_task(self.execute(prompt, options))

    def execute_sync(self, prompt: PromptLike, options: PromptOptions | None = None) -> ClaudeResponse:
        """Blocking execute() for code that is not running an event loop.

        Raises:
            ClaudeInterruptedError: The call was cancelled while waiting
        """
        portal = self._blocking_portal()
        future = portal.start_task_soon(self.execute, prompt, options)
        try:
            return future.result()
        except KeyboardInterrupt:
            # Cancelling the task kills the process before we unwind
            future.cancel()
            raise
        except concurrent.futures.CancelledError as e:
            raise ClaudeInterruptedError("claude call was cancelled while waiting") from e

    def stream(self, prompt: PromptLike, options: PromptOptions | None = None) -> EventStream:
        """Live event stream; enter it with ``async with``."""
        spec, effective = self._prepare(prompt, options)
        return EventStream(spec, effective.timeout, self._gate, self._supervisor)

    def create_session(self, system_prompt: str | None = None) -> ClaudeSession:
        from .session import ClaudeSession

        self._ensure_open()
        return ClaudeSession(self, system_prompt)

    async def _probe_version(self) -> ExecutionResult:
        command = self._builder.build_bare("--version")
        spec = ProcessSpec(argv=command.argv, cwd=Path.cwd())
        return await self._supervisor.run(spec, VERSION_TIMEOUT)

    async def is_available(self) -> bool:
        """True if ``claude --version`` succeeds within the probe timeout."""
        self._ensure_open()
        try:
            result = await self._probe_version()
        except Exception as e:
            logger.debug(f"Availability probe failed: {e!r}")
            return False
        return result.success

    async def get_version(self) -> str:
        """Output of ``claude --version``, or "unknown"."""
        self._ensure_open()
        try:
            result = await self._probe_version()
        except Exception as e:
            logger.debug(f"Version probe failed: {e!r}")
            return "unknown"
        if not result.success:
            return "unknown"
        return result.stdout.strip() or "unknown"

    def _blocking_portal(self) -> BlockingPortal:
        with self._lock:
            self._ensure_open()
            if self._portal is None:
                self._portal_cm = start_blocking_portal()
                self._portal = self._portal_cm.__enter__()
            return self._portal

    def _ensure_open(self) -> None:
        if self._closed:
            raise ClientClosedError("Client is closed")

    def close(self) -> None:
        """Close the client. Idempotent; in-flight calls run to completion."""
        with self._lock:
            if self._closed:
                return
            self._closed = True
            portal_cm, self._portal_cm, self._portal = self._portal_cm, None, None
        if portal_cm is not None:
            portal_cm.__exit__(None, None, None)
        logger.debug("ClaudeClient closed")

    def __enter__(self) -> ClaudeClient:
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    async def __aenter__(self) -> ClaudeClient:
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        self.close()

    def __repr__(self) -> str:
        state = "closed" if self._closed else "open"
        return f"ClaudeClient(binary={self._binary_path}, {state}, {self._gate!r})"
