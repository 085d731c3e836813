"""Bound on simultaneously running claude processes."""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import anyio

__all__ = ["ConcurrencyGate"]

logger = logging.getLogger(__name__)


class ConcurrencyGate:
    """Counting gate around every process invocation.

    Waiters are admitted in FIFO order. Waiting is cancellable: a cancelled
    acquire raises the cancellation and takes no slot.

    Example:
        gate = ConcurrencyGate(4)
        async with gate.slot():
            await supervisor.run(spec, timeout)
    """

    def __init__(self, limit: int) -> None:
        if limit < 1:
            raise ValueError(f"concurrency limit must be >= 1, got {limit}")
        self.limit = limit
        self._semaphore = anyio.Semaphore(limit)
        self._in_flight = 0
        self._peak = 0

    @property
    def in_flight(self) -> int:
        return self._in_flight

    @property
    def peak(self) -> int:
        """Highest in_flight value observed."""
        return self._peak

    @property
    def available(self) -> int:
        return self.limit - self._in_flight

    async def acquire(self) -> None:
        if self._in_flight >= self.limit:
            logger.debug(f"Concurrency gate full ({self.limit}), waiting")
        await self._semaphore.acquire()
        self._in_flight += 1
        self._peak = max(self._peak, self._in_flight)

    def release(self) -> None:
        self._in_flight -= 1
        self._semaphore.release()

    @asynccontextmanager
    async def slot(self) -> AsyncIterator[None]:
        await self.acquire()
        try:
            yield
        finally:
            self.release()

    def __repr__(self) -> str:
        return f"ConcurrencyGate(limit={self.limit}, in_flight={self._in_flight})"
