"""Value types shared by the builder, supervisor and client.

Defines the request (Prompt, PromptOptions), the materialized invocation
(Command) and the raw outcome of one process run (ExecutionResult).
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum
from pathlib import Path
from typing import Any

__all__ = [
    "Command",
    "ExecutionOutcome",
    "ExecutionResult",
    "LOCAL_FAILURE_EXIT_CODE",
    "OutputFormat",
    "Prompt",
    "PromptOptions",
]

# Exit code reserved for runs that never completed (timeout, spawn failure)
LOCAL_FAILURE_EXIT_CODE = -1

TIMEOUT_MESSAGE = "Timeout: Process did not exit"


class OutputFormat(str, Enum):
    """Values accepted by claude --output-format."""

    TEXT = "text"
    JSON = "json"
    STREAM_JSON = "stream-json"


@dataclass(frozen=True)
class Prompt:
    """One request to the agent.

    Attributes:
        text: Prompt body, delivered over stdin (must not be blank)
        system_prompt: Replaces the agent's default system prompt
        context_files: Extra directories/files exposed with --add-dir
        working_directory: cwd for the process (None = current directory)
        agent_name: Named agent to run with --agent
    """

    text: str
    system_prompt: str | None = None
    context_files: tuple[Path, ...] = ()
    working_directory: Path | None = None
    agent_name: str | None = None

    def __post_init__(self) -> None:
        """Validate text and normalize paths."""
        if not isinstance(self.text, str) or not self.text.strip():
            raise ValueError("Prompt text must not be blank")
        object.__setattr__(
            self,
            "context_files",
            tuple(Path(p) if isinstance(p, str) else p for p in self.context_files),
        )
        if isinstance(self.working_directory, str):
            object.__setattr__(self, "working_directory", Path(self.working_directory))

    def with_system_prompt(self, system_prompt: str | None) -> Prompt:
        return replace(self, system_prompt=system_prompt)


@dataclass(frozen=True)
class PromptOptions:
    """Per-call execution policy.

    None on timeout or skip_permissions means "use the configured default";
    the client resolves them before building the command.

    Attributes:
        timeout: Seconds before the process is terminated
        output_format: --output-format value
        model: --model value
        skip_permissions: Pass --dangerously-skip-permissions
        print_mode: Pass --print (positional build mode only)
        max_tokens: Token budget for external collaborators, not sent to the CLI
        max_turns: --max-turns value
        allowed_tools: One --allowedTools pair per entry
        disallowed_tools: One --disallowedTools pair per entry
    """

    timeout: float | None = None
    output_format: OutputFormat = OutputFormat.STREAM_JSON
    model: str | None = None
    skip_permissions: bool | None = None
    print_mode: bool = False
    max_tokens: int | None = None
    max_turns: int | None = None
    allowed_tools: tuple[str, ...] = ()
    disallowed_tools: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        if isinstance(self.output_format, str):
            object.__setattr__(self, "output_format", OutputFormat(self.output_format))
        object.__setattr__(self, "allowed_tools", tuple(self.allowed_tools))
        object.__setattr__(self, "disallowed_tools", tuple(self.disallowed_tools))
        if self.timeout is not None and self.timeout <= 0:
            raise ValueError(f"timeout must be positive, got {self.timeout}")

    def merged(self, **overrides: Any) -> PromptOptions:
        return replace(self, **overrides)


@dataclass(frozen=True)
class Command:
    """A fully materialized invocation.

    Attributes:
        args: Argument vector, first element is the executable
        input_payload: Text to write to stdin (None = no stdin)
    """

    args: tuple[str, ...]
    input_payload: str | None = None

    @property
    def argv(self) -> list[str]:
        return list(self.args)


class ExecutionOutcome(str, Enum):
    """How a process run ended."""

    COMPLETED = "completed"
    TIMEOUT = "timeout"
    FAILED = "failed"


@dataclass(frozen=True)
class ExecutionResult:
    """Outcome of one process run.

    exit_code is LOCAL_FAILURE_EXIT_CODE whenever outcome is not COMPLETED.
    """

    exit_code: int
    stdout: str = ""
    stderr: str = ""
    outcome: ExecutionOutcome = ExecutionOutcome.COMPLETED

    @property
    def success(self) -> bool:
        return self.outcome is ExecutionOutcome.COMPLETED and self.exit_code == 0

    @property
    def timed_out(self) -> bool:
        return self.outcome is ExecutionOutcome.TIMEOUT

    @classmethod
    def timeout(cls) -> ExecutionResult:
        return cls(LOCAL_FAILURE_EXIT_CODE, "", TIMEOUT_MESSAGE, ExecutionOutcome.TIMEOUT)

    @classmethod
    def failed(cls, message: str) -> ExecutionResult:
        return cls(LOCAL_FAILURE_EXIT_CODE, "", message, ExecutionOutcome.FAILED)
