"""
Refresh Scheduler
Cancellable repeating asyncio task with a single-flight guard
"""

import asyncio
import logging
from typing import Awaitable, Callable, Optional

from exceptions import BackendUnavailableError


logger = logging.getLogger(__name__)


RefreshCallback = Callable[[], Awaitable[object]]


class RefreshScheduler:
    """
    Runs ``refresh`` every ``interval_seconds``.

    A tick is skipped while the previous one is still running. After a
    BackendUnavailableError the next delay doubles per consecutive failure,
    capped at ``max_backoff_seconds``, and resets on the next success.

    Usage:
        async with RefreshScheduler(poll, interval_seconds=30) as scheduler:
            ...
    """

    def __init__(
        self,
        refresh: RefreshCallback,
        interval_seconds: float = 30.0,
        max_backoff_seconds: float = 300.0,
        name: str = "refresh"
    ):
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be positive")
        self.refresh = refresh
        self.interval_seconds = interval_seconds
        self.max_backoff_seconds = max(max_backoff_seconds, interval_seconds)
        self.name = name
        self.consecutive_failures = 0
        self.ticks_run = 0
        self.ticks_skipped = 0
        self._in_flight = False
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def in_flight(self) -> bool:
        return self._in_flight

    def next_delay(self) -> float:
        if self.consecutive_failures == 0:
            return self.interval_seconds
        delay = self.interval_seconds * (2 ** self.consecutive_failures)
        return min(delay, self.max_backoff_seconds)

    async def tick(self) -> bool:
        """
        Run one refresh cycle unless one is already running.

        Returns:
            True if the refresh ran, False if it was skipped
        """
        if self._in_flight:
            self.ticks_skipped += 1
            logger.debug(f"[{self.name}] previous refresh still running, skipping tick")
            return False

        self._in_flight = True
        try:
            await self.refresh()
            self.consecutive_failures = 0
        except BackendUnavailableError as e:
            self.consecutive_failures += 1
            logger.warning(
                f"[{self.name}] refresh failed ({self.consecutive_failures} in a row), "
                f"retrying in {self.next_delay():.0f}s: {e}"
            )
        finally:
            self._in_flight = False
            self.ticks_run += 1
        return True

    async def _run(self) -> None:
        while True:
            try:
                await self.tick()
            except asyncio.CancelledError:
                raise
            except Exception:
                # keep the timer alive; the next tick gets a fresh attempt
                self.consecutive_failures += 1
                logger.exception(f"[{self.name}] unexpected error during refresh")
            await asyncio.sleep(self.next_delay())

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.get_running_loop().create_task(self._run(), name=self.name)
        logger.info(f"[{self.name}] started, interval {self.interval_seconds}s")

    async def stop(self) -> None:
        """Cancel the pending timer; an in-flight refresh is cancelled with it"""
        task, self._task = self._task, None
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        logger.info(f"[{self.name}] stopped")

    async def __aenter__(self) -> "RefreshScheduler":
        self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.stop()
