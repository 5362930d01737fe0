"""Tests for async bridging utilities."""

import threading
import time

import pytest

from md_notion_sync.core.async_utils import gather_limited, map_limited, run_sync


class TestRunSync:
    async def test_returns_result(self):
        assert await run_sync(lambda a, b=0: a + b, 1, b=2) == 3

    async def test_runs_in_worker_thread(self):
        main = threading.get_ident()
        assert await run_sync(threading.get_ident) != main

    async def test_propagates_exception(self):
        def boom():
            raise RuntimeError("fail")

        with pytest.raises(RuntimeError, match="fail"):
            await run_sync(boom)


class TestGatherLimited:
    async def test_preserves_order(self):
        async def value(n):
            return n

        assert await gather_limited([value(i) for i in range(5)]) == [0, 1, 2, 3, 4]

    async def test_empty(self):
        assert await gather_limited([]) == []


class TestMapLimited:
    async def test_preserves_order(self):
        def slow_square(n):
            time.sleep(0.01 * (5 - n))
            return n * n

        assert await map_limited(slow_square, range(5), 5) == [0, 1, 4, 9, 16]

    async def test_respects_cap(self):
        lock = threading.Lock()
        active = 0
        peak = 0

        def work(_):
            nonlocal active, peak
            with lock:
                active += 1
                peak = max(peak, active)
            time.sleep(0.02)
            with lock:
                active -= 1

        await map_limited(work, range(8), 2)

        assert peak <= 2

    async def test_non_positive_cap_treated_as_one(self):
        assert await map_limited(str, [1, 2], 0) == ["1", "2"]
