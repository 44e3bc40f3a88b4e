"""Per-instrument analysis and registry updates.

Detection is pure and runs in a thread pool, one instrument per task.
A failure on one symbol is logged and reported for that symbol only.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Optional

from pattern_scanner.models.market_data import InstrumentCandles, InstrumentTicker, PriceTick
from pattern_scanner.models.patterns import (
    InstrumentAnalysis, DetectionResult, ResultSetChanged,
)
from pattern_scanner.services.candle_series import CandleSeries, MalformedCandleError, DEFAULT_WINDOW
from pattern_scanner.services.catalog import get_catalog_entry
from pattern_scanner.services.pattern_detector import PatternDetector
from pattern_scanner.services.registry import InstrumentRegistry

logger = logging.getLogger(__name__)


def analyze_instrument(
    symbol: str,
    bars: list[dict],
    ticker: Optional[InstrumentTicker] = None,
    window: int = DEFAULT_WINDOW,
) -> InstrumentAnalysis:
    """Run every matcher on one instrument and keep the strongest match.

    Malformed candles reject the instrument for this pass; an empty candle
    list (failed acquisition) is simply too short to match anything.
    """
    try:
        series = CandleSeries.from_bars(bars, window=window)
    except MalformedCandleError as e:
        logger.warning(f"Rejecting {symbol}: {e}")
        return InstrumentAnalysis(symbol=symbol, ticker=ticker, error=str(e))

    match = PatternDetector(series).select_best()
    if match is not None:
        logger.info(f"{symbol}: {match.pattern_type.value} (confidence {match.confidence:.3f})")

    return InstrumentAnalysis(symbol=symbol, candles=list(series.candles), match=match, ticker=ticker)


def to_detection_result(analysis: InstrumentAnalysis) -> DetectionResult:
    match = analysis.match
    return DetectionResult(
        symbol=analysis.symbol,
        pattern_detected=match is not None,
        match=match,
        catalog=get_catalog_entry(match.pattern_type) if match is not None else None,
        error=analysis.error,
    )


class PatternScanner:
    """Runs detection over batches of instruments and feeds the registry."""

    def __init__(self, registry: InstrumentRegistry, max_workers: int = 4, window: int = DEFAULT_WINDOW):
        self.registry = registry
        self.window = window
        self._pool = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="pattern-analysis")

    def analyze_batch(self, instruments: list[InstrumentCandles]) -> list[InstrumentAnalysis]:
        """Analyze instruments concurrently; results keep the input order."""
        futures = [
            (item, self._pool.submit(analyze_instrument, item.symbol, item.candles, item.ticker, self.window))
            for item in instruments
        ]

        results: list[InstrumentAnalysis] = []
        for item, future in futures:
            try:
                results.append(future.result())
            except Exception as e:
                logger.error(f"Analysis failed for {item.symbol}: {e}")
                results.append(InstrumentAnalysis(symbol=item.symbol, ticker=item.ticker, error=str(e)))

        return results

    def run_full_analysis(
        self, instruments: list[InstrumentCandles],
    ) -> tuple[list[InstrumentAnalysis], Optional[ResultSetChanged]]:
        """Analyze a batch as one registry pass.

        The change event is None when a newer pass started before this one
        finished; the stale results are then not applied.
        """
        token = self.registry.begin_pass()
        analyses = self.analyze_batch(instruments)
        event = self.registry.commit_pass(token, analyses)
        return analyses, event

    def apply_ticks(self, ticks: list[PriceTick]) -> ResultSetChanged:
        return self.registry.apply_ticks(ticks)

    def shutdown(self):
        self._pool.shutdown(wait=False)
