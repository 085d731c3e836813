"""Binary resolver base class."""

from __future__ import annotations

import os
import subprocess
import sys
from abc import ABC, abstractmethod
from pathlib import Path

__all__ = ["BinaryResolver", "BINARY_NAME", "IS_WINDOWS", "is_executable", "run_helper"]

IS_WINDOWS = sys.platform == "win32"

BINARY_NAME = "claude"

# Seconds a helper process (npm --version, npm root -g) may run
HELPER_TIMEOUT = 10.0


class BinaryResolver(ABC):
    """Locates the claude executable one way.

    Resolvers never raise on failure; they return None so the chain can
    move on to the next one.
    """

    name: str = "resolver"
    priority: int = 0

    def is_applicable(self) -> bool:
        """Cheap precondition, e.g. "is npm installed"."""
        return True

    @abstractmethod
    def resolve(self) -> Path | None:
        """Return the executable path, or None if not found."""
        ...

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r}, priority={self.priority})"


def is_executable(path: Path) -> bool:
    """True if path is a regular file the current user may execute."""
    try:
        return path.is_file() and os.access(path, os.X_OK)
    except OSError:
        return False


def run_helper(argv: list[str], timeout: float = HELPER_TIMEOUT) -> str | None:
    """Run a short-lived helper and return its stripped stdout.

    Returns None on non-zero exit, timeout or spawn failure.
    """
    try:
        completed = subprocess.run(
            argv,
            stdin=subprocess.DEVNULL,
            capture_output=True,
            text=True,
            timeout=timeout,
        )
    except (OSError, subprocess.SubprocessError):
        return None
    if completed.returncode != 0:
        return None
    return completed.stdout.strip()
