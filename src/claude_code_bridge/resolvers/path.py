"""Resolvers that search PATH and well-known install directories."""

from __future__ import annotations

import os
import shutil
from pathlib import Path

from .base import BINARY_NAME, IS_WINDOWS, BinaryResolver, is_executable

__all__ = ["CommonLocationsResolver", "PathBinaryResolver"]

POSIX_LOCATIONS = (
    "/usr/local/bin",
    "/usr/bin",
    "/opt/homebrew/bin",
    "/usr/local/Homebrew/bin",
    "/home/linuxbrew/.linuxbrew/bin",
)

HOME_LOCATIONS = (
    ".local/bin",
    ".npm-global/bin",
    "node_modules/.bin",
    ".nvm/versions/node/default/bin",
    ".volta/bin",
    ".asdf/shims",
    ".fnm/aliases/default/bin",
)

WINDOWS_EXTENSIONS = (".cmd", ".exe", ".bat", "")


class PathBinaryResolver(BinaryResolver):
    """Search the directories on PATH."""

    name = "PATH"
    priority = 50

    def __init__(self, search_path: str | None = None) -> None:
        self.search_path = search_path

    def resolve(self) -> Path | None:
        found = shutil.which(BINARY_NAME, path=self.search_path)
        return Path(found) if found else None


class CommonLocationsResolver(BinaryResolver):
    """Check install directories that are often missing from PATH."""

    name = "common-locations"
    priority = 10

    def __init__(self, home: Path | None = None, extra_dirs: list[Path] | None = None) -> None:
        self.home = home
        self.extra_dirs = list(extra_dirs or [])

    def directories(self) -> list[Path]:
        home = self.home or Path.home()
        dirs = list(self.extra_dirs)
        if IS_WINDOWS:
            for var, suffix in (
                ("APPDATA", "npm"),
                ("LOCALAPPDATA", "Programs/claude"),
                ("ProgramFiles", "claude"),
            ):
                base = os.environ.get(var)
                if base:
                    dirs.append(Path(base) / suffix)
        else:
            dirs.extend(Path(p) for p in POSIX_LOCATIONS)
        dirs.extend(home / p for p in HOME_LOCATIONS)
        return dirs

    def resolve(self) -> Path | None:
        names = [f"{BINARY_NAME}{ext}" for ext in WINDOWS_EXTENSIONS] if IS_WINDOWS else [BINARY_NAME]
        for directory in self.directories():
            for name in names:
                candidate = directory / name
                if is_executable(candidate):
                    return candidate
        return None
