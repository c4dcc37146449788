"""Periodic background sweeps (session expiry, rate-limit windows)."""

import asyncio
import inspect
from typing import Awaitable, Callable, Optional, Union

from .logger import logger

SweepCallback = Callable[[], Union[int, None, Awaitable[Union[int, None]]]]


class PeriodicSweeper:
    """Runs a cleanup callback every ``interval`` seconds on the event loop."""

    def __init__(self, name: str, interval: float, callback: SweepCallback):
        self.name = name
        self.interval = interval
        self.callback = callback
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.create_task(self._loop(), name=f"sweeper:{self.name}")
        logger.info(f"Sweeper '{self.name}' started (every {self.interval}s)")

    async def stop(self) -> None:
        if self._task is None:
            return

        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info(f"Sweeper '{self.name}' stopped")

    async def run_once(self) -> None:
        try:
            result = self.callback()
            if inspect.isawaitable(result):
                await result
        except Exception as e:
            # Keep sweeping; a failed pass is retried on the next tick
            logger.error(f"Sweeper '{self.name}' failed: {e}", exc_info=True)

    async def _loop(self) -> None:
        while True:
            await asyncio.sleep(self.interval)
            await self.run_once()
