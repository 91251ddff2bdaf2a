"""Boundary-aligned check loop with cooperative shutdown."""

import asyncio
import logging
import signal
from datetime import datetime, timedelta
from typing import Awaitable, Callable

from .alerts import CheckContext, check_prices
from .config import CHECK_INTERVAL_MINUTES
from .slot_clock import next_boundary, seconds_until, utcnow
from .timezones import timezone_name

logger = logging.getLogger(__name__)

CheckFunc = Callable[[CheckContext], Awaitable[object]]


class Scheduler:
    """
    Runs one check at startup, one at the next :01/:31 UTC boundary,
    then every ``interval``. All waits end early when stop() is called.
    """

    def __init__(
        self,
        context: CheckContext,
        check: CheckFunc = check_prices,
        interval: timedelta = timedelta(minutes=CHECK_INTERVAL_MINUTES),
        clock: Callable[[], datetime] = utcnow,
    ):
        self.context = context
        self.check = check
        self.interval = interval
        self.clock = clock
        self._stop = asyncio.Event()

    @property
    def stopping(self) -> bool:
        return self._stop.is_set()

    def stop(self) -> None:
        """Request shutdown; safe to call more than once."""
        if not self._stop.is_set():
            logger.info("Shutdown requested")
        self._stop.set()

    def install_signal_handlers(self) -> None:
        """Route SIGINT/SIGTERM to stop()."""
        loop = asyncio.get_running_loop()

        def handle_signal(signum: int) -> None:
            logger.info(f"Received {signal.Signals(signum).name}, shutting down")
            self.stop()

        for signum in (signal.SIGINT, signal.SIGTERM):
            try:
                loop.add_signal_handler(signum, handle_signal, signum)
            except NotImplementedError:
                # Windows event loops have no add_signal_handler
                signal.signal(
                    signum,
                    lambda s, _frame: loop.call_soon_threadsafe(handle_signal, s),
                )

    async def _wait(self, seconds: float) -> bool:
        """Sleep up to ``seconds``. Returns False if shutdown interrupted the wait."""
        try:
            await asyncio.wait_for(self._stop.wait(), timeout=max(0.0, seconds))
        except asyncio.TimeoutError:
            return True
        return False

    async def _run_check(self) -> None:
        try:
            await self.check(self.context)
        except Exception as e:
            logger.error(f"Price check failed: {e}", exc_info=True)

    async def run(self) -> None:
        """Run until stop() is called."""
        tz = self.context.config.timezone

        logger.info("Running initial price check...")
        await self._run_check()
        if self.stopping:
            return

        now = self.clock()
        target = next_boundary(now)
        wait = seconds_until(target, now)
        logger.info(
            f"Next check at {target.astimezone(tz).strftime('%H:%M')} ({timezone_name(tz)}) "
            f"(in {timedelta(seconds=int(wait))})"
        )
        if not await self._wait(wait):
            return

        loop = asyncio.get_running_loop()
        period = self.interval.total_seconds()
        next_tick = loop.time() + period
        await self._run_check()

        while not self.stopping:
            now_mono = loop.time()
            # Ticks missed while a check overran are dropped, not queued
            while next_tick <= now_mono:
                next_tick += period
            if not await self._wait(next_tick - now_mono):
                return
            next_tick += period
            await self._run_check()
