"""claude-code-bridge: drive the claude CLI as an async Python library.

Environment variables:
    CCB_BINARY_PATH: Explicit claude executable (default: auto-resolve)
    CCB_TIMEOUT: Default timeout in seconds (default 300)
    CCB_CONCURRENCY: Max concurrent processes per client (default 4)
    CCB_SKIP_PERMISSIONS: Pass --dangerously-skip-permissions by default
    CCB_GRACE_PERIOD: Seconds between SIGTERM and SIGKILL (default 5)

Usage:
    from claude_code_bridge import ClaudeClient

    async with ClaudeClient() as client:
        response = await client.execute("Explain this repository")
"""

__version__ = "0.1.0"

from .client import ClaudeClient, EventStream
from .command import CommandBuilder
from .config import Config, get_config, load_config, reload_config
from .errors import (
    BinaryNotFoundError,
    ClaudeBridgeError,
    ClaudeExecutionError,
    ClaudeInterruptedError,
    ClaudeTimeoutError,
    ClientClosedError,
    InputRejectedError,
)
from .gate import ConcurrencyGate
from .parsers import (
    ClaudeResponse,
    ErrorResponse,
    EventType,
    StreamEvent,
    StreamParser,
    StreamResponse,
    TextResponse,
    response_content,
)
from .resolvers import ResolverChain, resolve_binary
from .session import ClaudeSession
from .types import (
    Command,
    ExecutionOutcome,
    ExecutionResult,
    OutputFormat,
    Prompt,
    PromptOptions,
)

__all__ = [
    "__version__",
    "BinaryNotFoundError",
    "ClaudeBridgeError",
    "ClaudeClient",
    "ClaudeExecutionError",
    "ClaudeInterruptedError",
    "ClaudeResponse",
    "ClaudeSession",
    "ClaudeTimeoutError",
    "ClientClosedError",
    "Command",
    "CommandBuilder",
    "ConcurrencyGate",
    "Config",
    "ErrorResponse",
    "EventStream",
    "EventType",
    "ExecutionOutcome",
    "ExecutionResult",
    "InputRejectedError",
    "OutputFormat",
    "Prompt",
    "PromptOptions",
    "ResolverChain",
    "StreamEvent",
    "StreamParser",
    "StreamResponse",
    "TextResponse",
    "get_config",
    "load_config",
    "reload_config",
    "resolve_binary",
    "response_content",
]
