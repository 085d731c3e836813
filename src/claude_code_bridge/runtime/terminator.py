"""Graceful-then-forced termination of a process and its descendants.

Termination strategy:
1. SIGTERM every descendant (deepest first), then the process group
2. Wait up to grace_period for the main process to exit
3. If still running, SIGKILL descendants, then the group and main process
4. Wait up to kill_timeout for the kill to land

Cancellation while waiting skips straight to step 3. On Windows the
graceful signal is CTRL_BREAK_EVENT (the process was started with
CREATE_NEW_PROCESS_GROUP) and descendants are not enumerated.
"""

from __future__ import annotations

import asyncio
import logging
import os
import signal
import sys
from dataclasses import dataclass
from pathlib import Path

__all__ = [
    "DEFAULT_GRACE_PERIOD",
    "DEFAULT_KILL_TIMEOUT",
    "IS_WINDOWS",
    "ProcessTerminator",
    "list_descendants",
]

logger = logging.getLogger(__name__)

IS_WINDOWS = sys.platform == "win32"

DEFAULT_GRACE_PERIOD = 5.0  # seconds to wait after SIGTERM
DEFAULT_KILL_TIMEOUT = 1.0  # seconds to wait after SIGKILL

_PROC_ROOT = Path("/proc")


def _read_parent_map() -> dict[int, list[int]]:
    """Map each pid to its direct children by scanning /proc/<pid>/stat."""
    children: dict[int, list[int]] = {}
    for entry in _PROC_ROOT.iterdir():
        if not entry.name.isdigit():
            continue
        try:
            stat = (entry / "stat").read_text()
        except OSError:
            # Exited between iterdir() and read
            continue
        # comm may contain spaces and parens; fields resume after the last ')'
        fields = stat[stat.rfind(")") + 2:].split()
        if len(fields) < 2:
            continue
        children.setdefault(int(fields[1]), []).append(int(entry.name))
    return children


def list_descendants(pid: int) -> list[int]:
    """Return all descendant pids of ``pid``, deepest first.

    Returns an empty list where /proc is unavailable (macOS, Windows); the
    process-group signal still reaches descendants that kept the group.
    """
    if IS_WINDOWS or not _PROC_ROOT.is_dir():
        return []
    try:
        children = _read_parent_map()
    except OSError as e:
        logger.debug(f"Cannot enumerate descendants of pid={pid}: {e}")
        return []

    found: list[int] = []
    queue = [pid]
    while queue:
        current = queue.pop(0)
        for child in children.get(current, []):
            if child not in found and child != pid:
                found.append(child)
                queue.append(child)
    found.reverse()
    return found


@dataclass
class ProcessTerminator:
    """Stops a subprocess without leaving orphans behind.

    Example:
        terminator = ProcessTerminator(grace_period=2.0)
        await terminator.terminate(process)
    """

    grace_period: float = DEFAULT_GRACE_PERIOD
    kill_timeout: float = DEFAULT_KILL_TIMEOUT

    async def terminate(
        self,
        process: asyncio.subprocess.Process | None,
        grace_period: float | None = None,
    ) -> None:
        """Terminate ``process`` and its descendants.

        No-op for None or an already exited process. Never raises, except
        to re-raise cancellation after the forced kill has been sent.

        Args:
            process: The subprocess to stop
            grace_period: Override for self.grace_period
        """
        if process is None or process.returncode is not None:
            return

        grace = self.grace_period if grace_period is None else grace_period
        pid = process.pid
        descendants = list_descendants(pid)
        logger.debug(f"Terminating pid={pid} descendants={descendants} grace={grace}s")

        try:
            self._signal_descendants(descendants, signal.SIGTERM)
            self._graceful(process)

            try:
                await asyncio.wait_for(process.wait(), timeout=grace)
                logger.debug(f"Process exited gracefully pid={pid} returncode={process.returncode}")
                # Reap stragglers that stayed in the group after the leader left
                self._kill_group(pid)
                return
            except asyncio.TimeoutError:
                pass

            logger.warning(f"Process pid={pid} ignored termination for {grace}s, killing")
            self._force(process, descendants)

            try:
                await asyncio.wait_for(process.wait(), timeout=self.kill_timeout)
                logger.debug(f"Process killed pid={pid} returncode={process.returncode}")
            except asyncio.TimeoutError:
                logger.warning(f"Process did not exit after kill pid={pid}")

        except asyncio.CancelledError:
            logger.debug(f"Termination of pid={pid} cancelled, forcing kill")
            self._force(process, descendants)
            raise
        except ProcessLookupError:
            logger.debug(f"Process already exited pid={pid}")
        except Exception as e:
            logger.warning(f"Error terminating pid={pid}: {e}")

    def _force(self, process: asyncio.subprocess.Process, descendants: list[int]) -> None:
        # Pick up children spawned during the grace period
        late = [p for p in list_descendants(process.pid) if p not in descendants]
        self._signal_descendants(late + descendants, self._kill_signal())
        if IS_WINDOWS:
            self._kill_process(process)
            return
        if not self._kill_group(process.pid):
            self._kill_process(process)

    @staticmethod
    def _kill_signal() -> int:
        return signal.SIGTERM if IS_WINDOWS else signal.SIGKILL

    @staticmethod
    def _signal_descendants(pids: list[int], sig: int) -> None:
        for child in pids:
            try:
                os.kill(child, sig)
            except (ProcessLookupError, PermissionError):
                pass
            except OSError as e:
                logger.debug(f"Failed to signal descendant pid={child}: {e}")

    @staticmethod
    def _owned_group(pid: int) -> int | None:
        """Process group of ``pid`` if it is not our own group."""
        try:
            pgid = os.getpgid(pid)
        except (ProcessLookupError, PermissionError):
            return None
        return None if pgid == os.getpgrp() else pgid

    def _graceful(self, process: asyncio.subprocess.Process) -> None:
        if IS_WINDOWS:
            try:
                os.kill(process.pid, signal.CTRL_BREAK_EVENT)
                logger.debug(f"Sent CTRL_BREAK_EVENT to pid={process.pid}")
            except OSError as e:
                logger.debug(f"CTRL_BREAK_EVENT failed, falling back: {e}")
                process.terminate()
            return

        pgid = self._owned_group(process.pid)
        if pgid is not None:
            try:
                os.killpg(pgid, signal.SIGTERM)
                logger.debug(f"Sent SIGTERM to process group pgid={pgid}")
                return
            except ProcessLookupError:
                return
            except OSError as e:
                logger.debug(f"killpg failed, falling back to terminate: {e}")
        process.terminate()

    def _kill_group(self, pid: int) -> bool:
        """SIGKILL the process group led by ``pid``. True if a signal was sent."""
        if IS_WINDOWS:
            return False
        try:
            os.killpg(pid, signal.SIGKILL)
        except ProcessLookupError:
            return False
        except OSError as e:
            logger.debug(f"killpg pgid={pid} failed: {e}")
            return False
        logger.debug(f"Sent SIGKILL to process group pgid={pid}")
        return True

    @staticmethod
    def _kill_process(process: asyncio.subprocess.Process) -> None:
        try:
            process.kill()
        except ProcessLookupError:
            pass
