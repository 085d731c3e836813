"""Resolver for a global npm install of @anthropic-ai/claude-code."""

from __future__ import annotations

import logging
import os
from pathlib import Path

from .base import BINARY_NAME, IS_WINDOWS, BinaryResolver, is_executable, run_helper

__all__ = ["NpmBinaryResolver"]

logger = logging.getLogger(__name__)

WINDOWS_EXTENSIONS = (".cmd", ".exe", ".bat", "")

PACKAGE_ENTRYPOINT = Path("@anthropic-ai") / "claude-code" / "cli.js"


class NpmBinaryResolver(BinaryResolver):
    """Ask npm for its global root and look for the claude shim next to it."""

    name = "npm-global"
    priority = 100

    def __init__(self, npm_command: str | None = None) -> None:
        self.npm_command = npm_command or ("npm.cmd" if IS_WINDOWS else "npm")

    def is_applicable(self) -> bool:
        return run_helper([self.npm_command, "--version"]) is not None

    def resolve(self) -> Path | None:
        output = run_helper([self.npm_command, "root", "-g"])
        if not output:
            return None

        root = Path(output.splitlines()[-1].strip())
        logger.debug(f"npm global root: {root}")

        for candidate in self._candidates(root):
            if is_executable(candidate):
                return candidate

        # Some installs only ship the JS entrypoint
        entrypoint = root / PACKAGE_ENTRYPOINT
        if entrypoint.is_file():
            return entrypoint
        return None

    def _candidates(self, root: Path) -> list[Path]:
        # <prefix>/lib/node_modules -> <prefix>/bin on POSIX
        directories = [root.parent.parent / "bin", root.parent / "bin", root / ".bin"]
        if not IS_WINDOWS:
            return [d / BINARY_NAME for d in directories]

        # <prefix>\node_modules -> <prefix>\claude.cmd on Windows
        directories.insert(0, root.parent)
        for var in ("APPDATA", "LOCALAPPDATA"):
            base = os.environ.get(var)
            if base:
                directories.append(Path(base) / "npm")
        return [d / f"{BINARY_NAME}{ext}" for d in directories for ext in WINDOWS_EXTENSIONS]
