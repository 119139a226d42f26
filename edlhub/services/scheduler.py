"""
Periodic background tasks bound to the application event loop.
"""

import asyncio
import logging
from typing import Callable, Optional

logger = logging.getLogger("edlhub.scheduler")


class PeriodicTask:
    """
    Runs a blocking job in a worker thread every `interval` seconds.

    A failing run is logged and retried on the next tick; it never stops the
    loop. stop() lets a run in progress finish before the task exits.
    """

    def __init__(self, name: str, interval: float, job: Callable[[], object], run_immediately: bool = True):
        self.name = name
        self.interval = max(0.01, float(interval))
        self.job = job
        self.run_immediately = run_immediately
        self.runs = 0
        self.failures = 0
        self._stop: Optional[asyncio.Event] = None
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> asyncio.Task:
        # Bind async primitives to the *active* event loop
        self._stop = asyncio.Event()
        self._task = asyncio.create_task(self._loop(), name=self.name)
        logger.info("%s started (interval=%ss)", self.name, self.interval)
        return self._task

    async def stop(self) -> None:
        if self._task is None:
            return
        self._stop.set()
        await self._task
        self._task = None
        logger.info("%s stopped after %d runs (%d failed)", self.name, self.runs, self.failures)

    async def run_once(self):
        try:
            return await asyncio.to_thread(self.job)
        except Exception:
            self.failures += 1
            logger.exception("%s run failed; retrying next tick", self.name)
            return None
        finally:
            self.runs += 1

    async def _loop(self) -> None:
        if not self.run_immediately and await self._wait_or_stop():
            return
        while not self._stop.is_set():
            await self.run_once()
            if await self._wait_or_stop():
                return

    async def _wait_or_stop(self) -> bool:
        """Sleep one interval; True if stop was requested meanwhile."""
        try:
            await asyncio.wait_for(self._stop.wait(), timeout=self.interval)
            return True
        except asyncio.TimeoutError:
            return False
