"""Tests for the thread offload helpers and the settle barrier."""

import asyncio
import threading

from hackmud_sync.core.async_utils import (
    gather_settled,
    init_semaphore,
    run_sync,
)


async def test_run_sync_offloads_to_thread():
    main_thread = threading.get_ident()

    result = await run_sync(threading.get_ident)

    assert result != main_thread


async def test_run_sync_passes_arguments():
    assert await run_sync(max, 3, 7, key=None) == 7


async def test_semaphore_bounds_parallelism():
    init_semaphore(2)
    lock = threading.Lock()
    active = 0
    peak = 0

    def _work():
        nonlocal active, peak
        with lock:
            active += 1
            peak = max(peak, active)
        threading.Event().wait(0.02)
        with lock:
            active -= 1

    await asyncio.gather(*(run_sync(_work) for _ in range(6)))

    assert peak <= 2


async def test_gather_settled_keeps_order_and_errors():
    async def ok(value):
        await asyncio.sleep(0.01 * (3 - value))
        return value

    async def fail():
        raise ValueError("boom")

    results = await gather_settled([ok(1), fail(), ok(2)])

    assert results[0] == 1
    assert isinstance(results[1], ValueError)
    assert results[2] == 2


async def test_gather_settled_waits_for_slow_siblings():
    finished = []

    async def slow():
        await asyncio.sleep(0.05)
        finished.append("slow")

    async def fail():
        raise RuntimeError("fast failure")

    await gather_settled([slow(), fail()])

    assert finished == ["slow"]


async def test_gather_settled_empty():
    assert await gather_settled([]) == []
