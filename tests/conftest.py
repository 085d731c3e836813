"""Pytest configuration and fixtures."""

from __future__ import annotations

import asyncio
import os
import sys
import time
from collections.abc import Awaitable, Callable
from pathlib import Path

import pytest

# Project root
PROJECT_ROOT = Path(__file__).parent.parent

# Add src to the Python path
SRC_DIR = PROJECT_ROOT / "src"
if str(SRC_DIR) not in sys.path:
    sys.path.insert(0, str(SRC_DIR))

FIXTURES_DIR = Path(__file__).parent / "fixtures"
FAKE_CLAUDE = FIXTURES_DIR / "fake_claude.py"

IS_WINDOWS = sys.platform == "win32"

FAKE_ENV_VARS = (
    "FAKE_CLAUDE_MODE",
    "FAKE_CLAUDE_DURATION",
    "FAKE_CLAUDE_IGNORE_TERM",
    "FAKE_CLAUDE_CHILDREN",
    "FAKE_CLAUDE_PIDFILE",
    "FAKE_CLAUDE_EXIT_CODE",
    "FAKE_CLAUDE_LINES",
)


@pytest.fixture(autouse=True)
def _clean_fake_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Every test starts with the fake CLI in its default mode."""
    for name in FAKE_ENV_VARS:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def temp_workspace(tmp_path: Path) -> Path:
    """Create temporary workspace directory."""
    workspace = tmp_path / "workspace"
    workspace.mkdir()
    return workspace


@pytest.fixture
def fake_claude(tmp_path: Path) -> Path:
    """Executable shim named ``claude`` that runs tests/fixtures/fake_claude.py."""
    if IS_WINDOWS:
        pytest.skip("fake claude shim requires a POSIX shell")
    shim = tmp_path / "bin" / "claude"
    shim.parent.mkdir()
    shim.write_text(f'#!/bin/sh\nexec "{sys.executable}" "{FAKE_CLAUDE}" "$@"\n', encoding="utf-8")
    shim.chmod(0o755)
    return shim


def _pid_running(pid: int) -> bool:
    try:
        os.kill(pid, 0)
    except ProcessLookupError:
        return False
    except PermissionError:
        return True
    # Unreaped zombies still accept signal 0
    try:
        stat = Path(f"/proc/{pid}/stat").read_text()
    except OSError:
        return True
    return stat[stat.rfind(")") + 2:].split()[0] not in ("Z", "X")


@pytest.fixture
def pid_running() -> Callable[[int], bool]:
    """True while a pid belongs to a live (non-zombie) process."""
    return _pid_running


@pytest.fixture
def read_pidfile() -> Callable[..., Awaitable[list[int]]]:
    """Wait (asynchronously) for the fake CLI's pidfile and return its pids."""

    async def read(path: Path, timeout: float = 10.0) -> list[int]:
        deadline = time.monotonic() + timeout
        while time.monotonic() < deadline:
            if path.exists():
                return [int(p) for p in path.read_text().split()]
            await asyncio.sleep(0.05)
        raise AssertionError(f"pidfile {path} not written within {timeout}s")

    return read
