"""Process supervisor: spawn, feed, drain and reap under one deadline.

claude-code-bridge runtime module

This module provides:
- Subprocess isolation (new session on POSIX, new process group on Windows)
- Prompt delivery over stdin on its own task
- Concurrent stdout/stderr draining so neither pipe can stall the other
- A single deadline covering write + read + wait, starting at spawn
- Termination of the process tree on every exit path

The stdout drain either buffers (run) or hands each line to a callback
(run_streaming). All three pipe tasks are children of one anyio task group,
so a failure in any of them cancels the rest.
"""

from __future__ import annotations

import asyncio
import logging
import subprocess
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import anyio

from ..types import ExecutionOutcome, ExecutionResult
from .terminator import IS_WINDOWS, ProcessTerminator

__all__ = [
    "LineCallback",
    "ProcessSpec",
    "ProcessSupervisor",
]

logger = logging.getLogger(__name__)

LineCallback = Callable[[str], Awaitable[None]]

# StreamReader line limit; a single stream-json event can be large
MAX_LINE_BYTES = 8 * 1024 * 1024

# Cap on stderr kept while streaming
STDERR_BUFFER_BYTES = 4 * 1024 * 1024

READ_CHUNK = 4096


@dataclass(frozen=True)
class ProcessSpec:
    """Specification for a subprocess to run.

    Attributes:
        argv: Command line arguments (first element is the executable)
        cwd: Working directory for the process
        env: Environment variables (None = inherit parent)
        input_payload: Text written to stdin, which is then closed
    """

    argv: list[str]
    cwd: Path
    env: Mapping[str, str] | None = None
    input_payload: str | None = None


class _TailBuffer:
    """Keeps the last ``limit`` bytes written to it."""

    def __init__(self, limit: int | None = None) -> None:
        self.limit = limit
        self._chunks: list[bytes] = []
        self._size = 0

    def append(self, chunk: bytes) -> None:
        self._chunks.append(chunk)
        self._size += len(chunk)
        if self.limit is None:
            return
        while self._size > self.limit and len(self._chunks) > 1:
            self._size -= len(self._chunks.pop(0))

    def text(self) -> str:
        data = b"".join(self._chunks)
        if self.limit is not None and len(data) > self.limit:
            data = data[-self.limit:]
        return data.decode("utf-8", errors="replace")


@dataclass
class ProcessSupervisor:
    """Runs one external process to completion, timeout or failure.

    Example:
        supervisor = ProcessSupervisor()
        spec = ProcessSpec(
            argv=["claude", "--output-format", "stream-json", "--verbose", "-p", "-"],
            cwd=Path("/workspace"),
            input_payload="Summarize README.md",
        )
        result = await supervisor.run(spec, timeout=120)
    """

    terminator: ProcessTerminator = field(default_factory=ProcessTerminator)

    async def run(self, spec: ProcessSpec, timeout: float | None) -> ExecutionResult:
        """Run to completion and capture stdout/stderr.

        Args:
            spec: Process specification
            timeout: Seconds from spawn until the process is terminated (None = no limit)

        Returns:
            ExecutionResult; TIMEOUT and FAILED outcomes carry exit code -1
        """
        stdout = _TailBuffer()

        async def on_chunk(chunk: bytes) -> None:
            stdout.append(chunk)

        result = await self._supervise(spec, timeout, self._drain_chunks, on_chunk)
        if result.outcome is not ExecutionOutcome.COMPLETED:
            return result
        return ExecutionResult(result.exit_code, stdout.text(), result.stderr)

    async def run_streaming(
        self,
        spec: ProcessSpec,
        timeout: float | None,
        on_line: LineCallback,
    ) -> ExecutionResult:
        """Run while handing each stdout line to ``on_line``.

        Lines are decoded and stripped of their terminator. The returned
        result has empty stdout; exit_code is the final code, or -1 on
        timeout/failure.
        """

        async def on_raw_line(raw: bytes) -> None:
            await on_line(raw.decode("utf-8", errors="replace").rstrip("\r\n"))

        return await self._supervise(spec, timeout, self._drain_lines, on_raw_line)

    async def _supervise(
        self,
        spec: ProcessSpec,
        timeout: float | None,
        drain_stdout: Callable[[asyncio.StreamReader, Callable[[bytes], Awaitable[None]]], Awaitable[None]],
        on_stdout: Callable[[bytes], Awaitable[None]],
    ) -> ExecutionResult:
        process: asyncio.subprocess.Process | None = None
        stderr = _TailBuffer(STDERR_BUFFER_BYTES)

        async def on_stderr(chunk: bytes) -> None:
            stderr.append(chunk)

        try:
            # Deadline starts before spawn and covers write + read + wait
            with anyio.move_on_after(timeout) as deadline:
                # A child that exists must be bound to `process` before any cancel lands
                with anyio.CancelScope(shield=True):
                    process = await self._spawn(spec)

                async with anyio.create_task_group() as tg:
                    if spec.input_payload is not None and process.stdin is not None:
                        tg.start_soon(self._feed_stdin, process.stdin, spec.input_payload)
                    if process.stdout is not None:
                        tg.start_soon(drain_stdout, process.stdout, on_stdout)
                    if process.stderr is not None:
                        tg.start_soon(self._drain_chunks, process.stderr, on_stderr)

                await process.wait()

            if deadline.cancelled_caught:
                logger.warning(f"Process timed out after {timeout}s argv={spec.argv[0]}")
                await self.terminator.terminate(process)
                return ExecutionResult.timeout()

            logger.debug(
                f"Process completed pid={process.pid} returncode={process.returncode}"
            )
            return ExecutionResult(process.returncode, "", stderr.text())

        except Exception as e:
            logger.warning(f"Process failed argv={spec.argv[0]}: {e!r}")
            await self.terminator.terminate(process)
            return ExecutionResult.failed(f"Error: {e}")

        finally:
            # Cancellation and any path above that left the process running
            await self.terminator.terminate(process)

    async def _spawn(self, spec: ProcessSpec) -> asyncio.subprocess.Process:
        # DEVNULL rather than inheriting the host's stdin when there is no payload
        process = await asyncio.create_subprocess_exec(
            *spec.argv,
            stdin=asyncio.subprocess.PIPE if spec.input_payload is not None else asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            cwd=spec.cwd,
            limit=MAX_LINE_BYTES,
            **self._build_subprocess_kwargs(spec),
        )
        logger.debug(
            f"Started subprocess pid={process.pid} argv={spec.argv[0]} cwd={spec.cwd}"
        )
        return process

    @staticmethod
    def _build_subprocess_kwargs(spec: ProcessSpec) -> dict[str, Any]:
        kwargs: dict[str, Any] = {}
        if spec.env is not None:
            kwargs["env"] = dict(spec.env)
        if IS_WINDOWS:
            kwargs["creationflags"] = subprocess.CREATE_NEW_PROCESS_GROUP
        else:
            kwargs["start_new_session"] = True
        return kwargs

    @staticmethod
    async def _feed_stdin(stdin: asyncio.StreamWriter, payload: str) -> None:
        """Write the payload and close stdin; a process that already exited is fine."""
        try:
            stdin.write(payload.encode("utf-8"))
            await stdin.drain()
        except (BrokenPipeError, ConnectionResetError) as e:
            logger.debug(f"stdin closed before payload was written: {e!r}")
        finally:
            try:
                stdin.close()
                await stdin.wait_closed()
            except (BrokenPipeError, ConnectionResetError):
                pass

    @staticmethod
    async def _drain_chunks(
        reader: asyncio.StreamReader,
        on_chunk: Callable[[bytes], Awaitable[None]],
    ) -> None:
        while True:
            chunk = await reader.read(READ_CHUNK)
            if not chunk:
                break
            await on_chunk(chunk)

    @staticmethod
    async def _drain_lines(
        reader: asyncio.StreamReader,
        on_line: Callable[[bytes], Awaitable[None]],
    ) -> None:
        async for line in reader:
            await on_line(line)
