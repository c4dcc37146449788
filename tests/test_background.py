import asyncio

import pytest

from cdn_gateway.background import PeriodicSweeper


class TestPeriodicSweeper:
    @pytest.mark.asyncio
    async def test_runs_callback_periodically(self):
        calls = []
        sweeper = PeriodicSweeper("test", 0.01, lambda: calls.append(1))

        await sweeper.start()
        assert sweeper.running
        await asyncio.sleep(0.1)
        await sweeper.stop()

        assert len(calls) >= 2
        assert not sweeper.running

    @pytest.mark.asyncio
    async def test_async_callback(self):
        calls = []

        async def callback():
            calls.append(1)
            return 3

        sweeper = PeriodicSweeper("async", 60, callback)
        await sweeper.run_once()

        assert calls == [1]

    @pytest.mark.asyncio
    async def test_failure_is_logged_and_sweeping_continues(self, caplog):
        calls = []

        def callback():
            calls.append(1)
            raise RuntimeError("boom")

        sweeper = PeriodicSweeper("failing", 0.01, callback)
        await sweeper.start()
        await asyncio.sleep(0.1)
        await sweeper.stop()

        assert len(calls) >= 2
        assert "Sweeper 'failing' failed: boom" in caplog.text

    @pytest.mark.asyncio
    async def test_stop_without_start(self):
        sweeper = PeriodicSweeper("idle", 1, lambda: None)
        await sweeper.stop()
        assert not sweeper.running
