"""Background refresh loop and change detection."""

import asyncio
from collections.abc import Awaitable, Callable
from datetime import datetime
from typing import Any

import structlog

logger = structlog.get_logger(__name__)


class ChangeDetector:
    """Tracks the composedAt token of the last published config."""

    def __init__(self) -> None:
        self.last_composed_at: str | None = None

    def has_changed(self, composed_at: str) -> bool:
        return self.last_composed_at is None or composed_at != self.last_composed_at

    def record(self, composed_at: str) -> None:
        """Remember composed_at; call only once its snapshot is published."""
        self.last_composed_at = composed_at


class RefreshLoop:
    """Runs a refresh cycle on a fixed period until stopped.

    Failed cycles are logged and the loop keeps going. Consecutive failures
    stretch the delay exponentially up to max_backoff_seconds; the first
    success restores the fixed period.
    """

    def __init__(
        self,
        cycle: Callable[[], Awaitable[Any]],
        interval_seconds: float = 5.0,
        max_backoff_seconds: float = 60.0,
    ) -> None:
        """Initialize refresh loop.

        Args:
            cycle: Coroutine function performing one refresh
            interval_seconds: Delay between cycles on the happy path
            max_backoff_seconds: Upper bound of the delay after failures
        """
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be positive")

        self.cycle = cycle
        self.interval_seconds = interval_seconds
        self.max_backoff_seconds = max(max_backoff_seconds, interval_seconds)
        self.running = False
        self.cycle_count = 0
        self.consecutive_failures = 0
        self.last_error: Exception | None = None
        self._task: asyncio.Task | None = None

    def next_delay(self) -> float:
        if self.consecutive_failures == 0:
            return self.interval_seconds
        delay = self.interval_seconds * 2 ** (self.consecutive_failures - 1)
        return min(delay, self.max_backoff_seconds)

    async def run_once(self) -> bool:
        """Run one cycle.

        Returns:
            True if the cycle succeeded
        """
        self.cycle_count += 1
        try:
            await self.cycle()
        except Exception as e:
            self.consecutive_failures += 1
            self.last_error = e
            logger.error(
                "Config refresh failed",
                error=str(e),
                error_type=type(e).__name__,
                consecutive_failures=self.consecutive_failures,
                next_delay_seconds=self.next_delay(),
            )
            return False

        if self.consecutive_failures:
            logger.info(
                "Config refresh recovered",
                failed_cycles=self.consecutive_failures,
            )
        self.consecutive_failures = 0
        self.last_error = None
        return True

    async def run_forever(self) -> None:
        """Sleep, refresh, repeat until stop() is called."""
        logger.info("Starting config refresh loop", interval=self.interval_seconds)
        self.running = True
        start_time = datetime.now()

        try:
            while self.running:
                await asyncio.sleep(self.next_delay())
                await self.run_once()
        except asyncio.CancelledError:
            logger.info("Config refresh loop cancelled")
        finally:
            self.running = False
            uptime = (datetime.now() - start_time).total_seconds()
            logger.info(
                "Config refresh loop stopped",
                cycles=self.cycle_count,
                uptime_seconds=uptime,
            )

    def start(self) -> asyncio.Task:
        """Schedule run_forever() on the running event loop."""
        if self._task is not None and not self._task.done():
            return self._task
        self.running = True
        self._task = asyncio.create_task(
            self.run_forever(), name="config-discovery-refresh"
        )
        return self._task

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def stop(self) -> None:
        """Cancel the loop and wait for it to finish."""
        self.running = False
        task, self._task = self._task, None
        if task is None or task.done():
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
