"""
Cancellable periodic jobs.

A job runs its action every interval while its gate says there is
something to do, and stops cleanly when its owner is torn down.
"""

import asyncio
import inspect
import logging
from typing import Awaitable, Callable, Optional

from crudzaso.errors import CrudzasoError

logger = logging.getLogger(__name__)


class PeriodicJob:
    """
    Run an async action on a fixed interval.

    Args:
        name: Label used in log messages
        action: Coroutine function to run
        interval_seconds: Delay between runs
        should_run: Optional gate (sync or async); a falsy result skips the run
    """

    def __init__(
        self,
        name: str,
        action: Callable[[], Awaitable],
        interval_seconds: float,
        should_run: Optional[Callable] = None,
    ):
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be positive")
        self.name = name
        self.action = action
        self.interval_seconds = interval_seconds
        self.should_run = should_run
        self.runs = 0
        self.skipped = 0
        self.failures = 0
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> "PeriodicJob":
        """Schedule the loop on the running event loop."""
        if not self.running:
            self._task = asyncio.get_running_loop().create_task(self._loop())
            logger.debug(f"Started job {self.name} every {self.interval_seconds}s")
        return self

    async def stop(self) -> None:
        """Cancel the loop and wait for it to finish."""
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.debug(f"Stopped job {self.name}")

    async def _loop(self) -> None:
        while True:
            await asyncio.sleep(self.interval_seconds)
            await self.run_once()

    async def _gate_open(self) -> bool:
        if self.should_run is None:
            return True
        result = self.should_run()
        if inspect.isawaitable(result):
            result = await result
        return bool(result)

    async def run_once(self) -> bool:
        """
        Run the action once if the gate allows it.

        Returns:
            True if the action ran and succeeded
        """
        if not await self._gate_open():
            self.skipped += 1
            return False

        try:
            await self.action()
        except CrudzasoError as e:
            self.failures += 1
            logger.warning(f"Job {self.name} failed: {e.message}")
            return False
        except Exception:
            self.failures += 1
            logger.exception(f"Job {self.name} raised an unexpected error")
            return False

        self.runs += 1
        return True
