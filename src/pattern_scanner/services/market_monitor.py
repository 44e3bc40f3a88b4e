"""Background cadences: fast price refresh and slow full re-analysis."""

import asyncio
import logging
from typing import Callable, Optional

from pattern_scanner.config import Settings, get_settings
from pattern_scanner.models.patterns import InstrumentAnalysis, ResultSetChanged
from pattern_scanner.services.binance_fetcher import BinanceFetcher
from pattern_scanner.services.pattern_scanner import PatternScanner

logger = logging.getLogger(__name__)


class MarketMonitor:
    """Drives the scanner from live Binance data on two fixed intervals."""

    def __init__(
        self,
        scanner: PatternScanner,
        fetcher: BinanceFetcher,
        settings: Optional[Settings] = None,
    ):
        self.scanner = scanner
        self.fetcher = fetcher
        self.settings = settings or get_settings()
        self._tasks: list[asyncio.Task] = []

    def refresh_prices(self) -> ResultSetChanged:
        symbols = self.scanner.registry.symbols()
        ticks = self.fetcher.fetch_price_ticks(symbols)
        event = self.scanner.apply_ticks(ticks)
        logger.debug(f"Price refresh: {len(event.updated)} of {len(symbols)} tracked symbols updated")
        return event

    def full_refresh(self) -> tuple[list[InstrumentAnalysis], Optional[ResultSetChanged]]:
        """Re-analyze tracked symbols and newly discovered ones in a single pass."""
        discovered = {t.symbol: t for t in self.fetcher.discover()}
        symbols = self.scanner.registry.symbols()
        symbols += [s for s in discovered if s not in symbols]

        logger.info(f"Re-analyzing {len(symbols)} symbols ({len(discovered)} discovered)")
        instruments = [self.fetcher.fetch_instrument(s, discovered.get(s)) for s in symbols]
        return self.scanner.run_full_analysis(instruments)

    async def _run_every(self, interval: float, fn: Callable, name: str):
        loop = asyncio.get_running_loop()
        while True:
            await asyncio.sleep(interval)
            try:
                await loop.run_in_executor(None, fn)
            except Exception as e:
                logger.error(f"{name} failed: {e}")

    async def start(self):
        """Run an initial scan, then schedule both cadences."""
        loop = asyncio.get_running_loop()
        try:
            await loop.run_in_executor(None, self.full_refresh)
        except Exception as e:
            logger.error(f"Initial scan failed: {e}")

        self._tasks = [
            asyncio.create_task(self._run_every(self.settings.price_refresh_seconds, self.refresh_prices, "Price refresh")),
            asyncio.create_task(self._run_every(self.settings.reanalysis_seconds, self.full_refresh, "Re-analysis")),
        ]
        logger.info(
            f"Market monitor started (prices every {self.settings.price_refresh_seconds}s, "
            f"re-analysis every {self.settings.reanalysis_seconds}s)"
        )

    async def stop(self):
        for task in self._tasks:
            task.cancel()
        await asyncio.gather(*self._tasks, return_exceptions=True)
        self._tasks = []
