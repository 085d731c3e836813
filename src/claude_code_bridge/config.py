"""Environment-driven configuration for claude-code-bridge.

Environment variables:
    CCB_BINARY_PATH: Explicit path to the claude executable
        - unset = locate it with the resolver chain (npm global, PATH, common dirs)

    CCB_TIMEOUT: Default per-call timeout in seconds
        - default 300
        - applied when PromptOptions.timeout is None

    CCB_CONCURRENCY: Maximum concurrent claude processes per client
        - default 4, values below 1 are clamped to 1

    CCB_SKIP_PERMISSIONS: Pass --dangerously-skip-permissions by default
        - true/1/yes = on
        - false/0/no = off (default)
        - a call can still opt out with PromptOptions(skip_permissions=False)

    CCB_GRACE_PERIOD: Seconds to wait after SIGTERM before SIGKILL
        - default 5

    CCB_LOG_DEBUG: Debug logging for the diagnostic command line
        - true/1/yes = log to a temp file at DEBUG level
        - false/0/no = log to stderr (default)
"""

from __future__ import annotations

import os
import tempfile
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path

__all__ = [
    "Config",
    "DEFAULT_CONCURRENCY",
    "DEFAULT_GRACE_PERIOD",
    "DEFAULT_TIMEOUT",
    "get_config",
    "load_config",
    "reload_config",
]

DEFAULT_TIMEOUT = 300.0
DEFAULT_CONCURRENCY = 4
DEFAULT_GRACE_PERIOD = 5.0


def _parse_bool(value: str | None, default: bool = False) -> bool:
    """Parse a boolean environment variable."""
    if value is None:
        return default
    return value.lower() in ("true", "1", "yes", "on")


def _parse_float(value: str | None, default: float) -> float:
    """Parse a positive float, falling back to the default on bad input."""
    if not value:
        return default
    try:
        parsed = float(value)
    except ValueError:
        return default
    return parsed if parsed > 0 else default


def _parse_int(value: str | None, default: int) -> int:
    if not value:
        return default
    try:
        return max(1, int(value))
    except ValueError:
        return default


@dataclass
class Config:
    """Process-wide defaults.

    Attributes:
        binary_path: Explicit claude executable, skips resolution when set
        default_timeout: Timeout in seconds for calls that don't set one
        concurrency_limit: Maximum in-flight processes per client
        skip_permissions: Default for --dangerously-skip-permissions
        grace_period: Seconds between SIGTERM and SIGKILL
        log_debug: Diagnostic CLI logs to a temp file
        log_file: Log file path (set automatically when log_debug=True)
    """

    binary_path: str | None = None
    default_timeout: float = DEFAULT_TIMEOUT
    concurrency_limit: int = DEFAULT_CONCURRENCY
    skip_permissions: bool = False
    grace_period: float = DEFAULT_GRACE_PERIOD
    log_debug: bool = False
    log_file: str | None = None

    def __repr__(self) -> str:
        return (
            f"Config(binary_path={self.binary_path or 'auto'}, "
            f"default_timeout={self.default_timeout}, "
            f"concurrency_limit={self.concurrency_limit}, "
            f"skip_permissions={self.skip_permissions}, "
            f"grace_period={self.grace_period}, "
            f"log_debug={self.log_debug}, "
            f"log_file={self.log_file})"
        )


def _generate_log_file_path() -> str:
    """Build a timestamped log file path under the system temp dir."""
    log_dir = Path(tempfile.gettempdir()) / "claude-code-bridge"
    log_dir.mkdir(parents=True, exist_ok=True)

    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    log_file = log_dir / f"ccb_debug_{timestamp}.log"

    return str(log_file.resolve())


def load_config() -> Config:
    """Load configuration from environment variables."""
    log_debug = _parse_bool(os.environ.get("CCB_LOG_DEBUG"), default=False)
    log_file = _generate_log_file_path() if log_debug else None

    return Config(
        binary_path=os.environ.get("CCB_BINARY_PATH") or None,
        default_timeout=_parse_float(os.environ.get("CCB_TIMEOUT"), DEFAULT_TIMEOUT),
        concurrency_limit=_parse_int(os.environ.get("CCB_CONCURRENCY"), DEFAULT_CONCURRENCY),
        skip_permissions=_parse_bool(os.environ.get("CCB_SKIP_PERMISSIONS"), default=False),
        grace_period=_parse_float(os.environ.get("CCB_GRACE_PERIOD"), DEFAULT_GRACE_PERIOD),
        log_debug=log_debug,
        log_file=log_file,
    )


# Lazily loaded global instance
_config: Config | None = None


def get_config() -> Config:
    """Return the global configuration, loading it on first use."""
    global _config
    if _config is None:
        _config = load_config()
    return _config


def reload_config() -> Config:
    """Reload the global configuration from the environment."""
    global _config
    _config = load_config()
    return _config
