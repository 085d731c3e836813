"""Exception types raised across the public API.

Every public entry point either returns a ClaudeResponse or raises one of
these. Async cancellation is left to propagate as asyncio.CancelledError.
"""

from __future__ import annotations

__all__ = [
    "BinaryNotFoundError",
    "ClaudeBridgeError",
    "ClaudeExecutionError",
    "ClaudeInterruptedError",
    "ClaudeTimeoutError",
    "ClientClosedError",
    "InputRejectedError",
]


class ClaudeBridgeError(Exception):
    """Base class for claude-code-bridge errors."""
    pass


class BinaryNotFoundError(ClaudeBridgeError):
    """No resolver could locate the claude executable.

    Attributes:
        searched: Names of the resolvers that were tried
    """

    def __init__(self, searched: list[str]) -> None:
        self.searched = list(searched)
        if self.searched:
            detail = ", ".join(self.searched)
            message = f"claude executable not found (tried: {detail})"
        else:
            message = "claude executable not found (no applicable resolver)"
        super().__init__(message)


class ClaudeTimeoutError(ClaudeBridgeError):
    """The process did not exit within its timeout.

    Attributes:
        timeout: The timeout in seconds that elapsed
    """

    def __init__(self, timeout: float | None) -> None:
        self.timeout = timeout
        super().__init__(f"claude did not finish within {timeout}s")


class ClaudeExecutionError(ClaudeBridgeError):
    """The process failed to run or exited non-zero.

    Attributes:
        exit_code: Process exit code, -1 when it never ran to completion
        output: Captured output for diagnostics
    """

    def __init__(self, exit_code: int, output: str) -> None:
        self.exit_code = exit_code
        self.output = output
        super().__init__(f"[exit {exit_code}] {output.strip() or 'no output'}")


class ClaudeInterruptedError(ClaudeBridgeError):
    """A blocking call was cancelled while waiting."""
    pass


class ClientClosedError(ClaudeBridgeError):
    """An operation was attempted on a closed client or session."""
    pass


class InputRejectedError(ClaudeBridgeError):
    """The sanitizer refused a prompt before it reached the process.

    Attributes:
        field: The prompt field that was rejected
        reason: Why it was rejected
    """

    def __init__(self, field: str, reason: str) -> None:
        self.field = field
        self.reason = reason
        super().__init__(f"{field} rejected: {reason}")
