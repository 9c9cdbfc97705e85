"""Cancellable periodic tasks on the running event loop."""

import asyncio
import logging
from typing import Awaitable, Callable, Optional

# Configure logging
logger = logging.getLogger(__name__)


class PeriodicTask:
    """Runs an async callback every ``interval`` seconds until cancelled.

    ``start`` returns the task itself as the handle; ``cancel`` stops the loop
    and waits for it to finish so no callback runs after it returns.
    """

    def __init__(
        self,
        interval: float,
        callback: Callable[[], Awaitable[None]],
        name: str = "periodic-task",
    ):
        if interval <= 0:
            raise ValueError("interval must be positive")
        self.interval = interval
        self.name = name
        self._callback = callback
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> "PeriodicTask":
        if self.running:
            return self
        self._task = asyncio.get_running_loop().create_task(self._run(), name=self.name)
        logger.debug(f"Started {self.name} every {self.interval}s")
        return self

    async def cancel(self) -> None:
        task, self._task = self._task, None
        if task is None or task.done():
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        logger.debug(f"Cancelled {self.name}")

    async def _run(self) -> None:
        loop = asyncio.get_running_loop()
        while True:
            started = loop.time()
            try:
                await self._callback()
            except asyncio.CancelledError:
                raise
            except Exception:
                logger.exception(f"{self.name} iteration failed")
            # Callback run time counts against the interval
            elapsed = loop.time() - started
            await asyncio.sleep(max(0.0, self.interval - elapsed))
