"""
Fixed-interval REST poller with an in-flight guard
"""
import asyncio
from typing import Awaitable, Callable, Optional

import structlog

from perpfeed.core.resilience import CancelToken

logger = structlog.get_logger(__name__)


class Poller:
    """
    Calls `tick()` every `interval_s` seconds.

    A tick that comes due while the previous one is still running is
    skipped and counted in `skipped_ticks`. Tick failures are logged and
    never stop the schedule.
    """

    def __init__(
        self,
        interval_s: float,
        tick: Callable[[], Awaitable[None]],
        token: Optional[CancelToken] = None,
        name: str = "poller",
    ):
        if interval_s <= 0:
            raise ValueError("interval_s must be positive")
        self.interval_s = interval_s
        self.tick = tick
        self.token = token or CancelToken(name)
        self.name = name

        self.in_flight = False
        self.skipped_ticks = 0
        self.tick_count = 0
        self.failure_count = 0
        self._loop_task: Optional[asyncio.Task] = None
        self._tick_task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._loop_task is not None and not self._loop_task.done()

    def start(self) -> None:
        if not self.running and not self.token.cancelled:
            self._loop_task = asyncio.create_task(self._loop(), name=f"{self.name}-loop")

    async def _loop(self) -> None:
        while not self.token.cancelled:
            await asyncio.sleep(self.interval_s)
            if self.token.cancelled:
                break
            self.fire()

    def fire(self) -> bool:
        """Schedule one tick now unless one is already in flight"""
        if self.token.cancelled:
            return False
        if self.in_flight:
            self.skipped_ticks += 1
            logger.debug("poll_tick_skipped", poller=self.name, skipped=self.skipped_ticks)
            return False
        self.in_flight = True
        self._tick_task = asyncio.create_task(self._run_tick(), name=f"{self.name}-tick")
        return True

    async def _run_tick(self) -> None:
        try:
            await self.tick()
            self.tick_count += 1
        except asyncio.CancelledError:
            raise
        except Exception as e:
            self.failure_count += 1
            logger.warning("poll_tick_failed", poller=self.name, error=str(e)[:200])
        finally:
            self.in_flight = False

    async def wait_idle(self) -> None:
        """Wait for the in-flight tick, if any"""
        task = self._tick_task
        if task is not None and not task.done():
            await asyncio.gather(task, return_exceptions=True)

    async def close(self) -> None:
        self.token.cancel()
        for task in (self._loop_task, self._tick_task):
            if task is not None and not task.done():
                task.cancel()
                await asyncio.gather(task, return_exceptions=True)
        self._loop_task = None
        self._tick_task = None
