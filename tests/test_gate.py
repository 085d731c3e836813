"""ConcurrencyGate tests."""

from __future__ import annotations

import asyncio

import anyio
import pytest

from claude_code_bridge.gate import ConcurrencyGate


class TestConcurrencyGate:
    """Bounding, fairness and cancellation."""

    def test_invalid_limit(self):
        with pytest.raises(ValueError):
            ConcurrencyGate(0)

    @pytest.mark.asyncio
    async def test_never_exceeds_limit_under_load(self):
        gate = ConcurrencyGate(3)
        observed: list[int] = []

        async def worker() -> None:
            async with gate.slot():
                observed.append(gate.in_flight)
                await asyncio.sleep(0.01)

        await asyncio.gather(*(worker() for _ in range(50)))

        assert max(observed) <= 3
        assert gate.peak == 3
        assert gate.in_flight == 0
        assert gate.available == 3

    @pytest.mark.asyncio
    async def test_fifo_admission(self):
        gate = ConcurrencyGate(1)
        order: list[int] = []

        await gate.acquire()

        async def waiter(n: int) -> None:
            async with gate.slot():
                order.append(n)

        tasks = []
        for n in range(5):
            tasks.append(asyncio.create_task(waiter(n)))
            await asyncio.sleep(0)  # enqueue in creation order

        gate.release()
        await asyncio.gather(*tasks)
        assert order == [0, 1, 2, 3, 4]

    @pytest.mark.asyncio
    async def test_acquire_is_cancellable(self):
        gate = ConcurrencyGate(1)
        await gate.acquire()

        with anyio.move_on_after(0.1) as scope:
            await gate.acquire()

        assert scope.cancelled_caught
        assert gate.in_flight == 1

        gate.release()
        assert gate.in_flight == 0
        # The cancelled waiter did not take the freed slot
        with anyio.fail_after(1):
            async with gate.slot():
                assert gate.in_flight == 1

    @pytest.mark.asyncio
    async def test_slot_released_on_error(self):
        gate = ConcurrencyGate(1)

        with pytest.raises(RuntimeError):
            async with gate.slot():
                raise RuntimeError("boom")

        assert gate.in_flight == 0
        assert gate.available == 1
