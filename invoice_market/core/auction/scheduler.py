"""
SweepScheduler - periodic expiry sweep for an AuctionEngine.

Runs engine.sweep(clock()) every `interval` seconds as an asyncio task,
independent of whatever serves requests. Each tick runs in a worker
thread, where the engine lock serializes it against concurrent bids and
manual finalization without stalling the event loop.
"""

import asyncio
from typing import List, Optional

from invoice_market.core.auction.engine import AuctionEngine, SweepReport
from invoice_market.core.clock import Clock
from invoice_market.utils.logger import get_logger

logger = get_logger("scheduler")


class SweepScheduler:
    """
    Fixed-interval sweep driver.

    Args:
        engine: Engine to sweep
        interval: Seconds between ticks (defaults to engine.config.sweep_interval)
        clock: Time source passed to sweep (defaults to the engine clock)
    """

    def __init__(
        self,
        engine: AuctionEngine,
        interval: Optional[float] = None,
        clock: Optional[Clock] = None,
    ):
        self.engine = engine
        self.interval = interval if interval is not None else engine.config.sweep_interval
        if self.interval <= 0:
            raise ValueError(f"interval must be > 0, got {self.interval}")
        self.clock = clock or engine.clock

        self._task: Optional[asyncio.Task] = None
        self._running = False
        self.ticks = 0
        self.last_report: Optional[SweepReport] = None
        self.reports: List[SweepReport] = []  # ticks that changed something

    @property
    def running(self) -> bool:
        return self._running

    def tick(self) -> SweepReport:
        """Run one sweep now."""
        report = self.engine.sweep(self.clock())
        self.ticks += 1
        self.last_report = report
        if report.changed or report.failed:
            self.reports.append(report)
        return report

    async def start(self) -> None:
        """Start ticking on the running event loop."""
        if self._running:
            return
        self._running = True
        self._task = asyncio.create_task(self._sweep_loop())
        logger.info(f"Sweep scheduler started: interval={self.interval}s")

    async def stop(self) -> None:
        """Stop ticking and wait for the loop to exit."""
        self._running = False
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        logger.info(f"Sweep scheduler stopped after {self.ticks} ticks")

    async def run_for(self, duration: float) -> List[SweepReport]:
        """Tick for `duration` seconds, returning the reports that changed something."""
        first = len(self.reports)
        await self.start()
        try:
            await asyncio.sleep(duration)
        finally:
            await self.stop()
        return self.reports[first:]

    async def _sweep_loop(self) -> None:
        """Sweep every interval until stopped."""
        while self._running:
            await asyncio.sleep(self.interval)
            try:
                # off the loop thread: tick may wait on the engine lock
                await asyncio.to_thread(self.tick)
            except Exception as e:
                logger.error(f"Sweep tick failed: {e!r}")
