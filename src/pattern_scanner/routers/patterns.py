"""Pattern detection and tracking API endpoints."""

from fastapi import APIRouter, HTTPException, Query
import logging
import asyncio

from pattern_scanner.config import get_settings
from pattern_scanner.models.patterns import (
    PatternCatalogEntry, TrackedInstrument,
    DetectRequest, DetectResponse, ScanResponse,
    TicksRequest, TicksResponse, RefreshResponse,
)
from pattern_scanner.services.binance_fetcher import BinanceFetcher
from pattern_scanner.services.catalog import PATTERN_CATALOG
from pattern_scanner.services.market_monitor import MarketMonitor
from pattern_scanner.services.notifier import BreakoutNotifier
from pattern_scanner.services.pattern_scanner import PatternScanner, to_detection_result
from pattern_scanner.services.registry import InstrumentRegistry

router = APIRouter()
logger = logging.getLogger(__name__)

settings = get_settings()
registry = InstrumentRegistry(quote_asset=settings.quote_asset)
notifier = BreakoutNotifier()
registry.subscribe(notifier)
scanner = PatternScanner(registry, max_workers=settings.analysis_workers, window=settings.candle_limit)
fetcher = BinanceFetcher(settings)
monitor = MarketMonitor(scanner, fetcher, settings)


def _without_candles(instrument: TrackedInstrument) -> TrackedInstrument:
    return instrument.model_copy(update={"candles": []})


@router.get("/catalog", response_model=list[PatternCatalogEntry])
async def get_catalog():
    """Reference metadata for every detectable pattern."""
    return list(PATTERN_CATALOG.values())


@router.post("/detect", response_model=DetectResponse)
async def detect_patterns(request: DetectRequest):
    """Stateless detection: strongest pattern per instrument, registry untouched."""
    analyses = await asyncio.get_event_loop().run_in_executor(
        None, lambda: scanner.analyze_batch(request.instruments)
    )
    results = [to_detection_result(a) for a in analyses]
    return DetectResponse(
        results=results,
        total_instruments=len(results),
        detected=sum(1 for r in results if r.pattern_detected),
    )


@router.post("/scan", response_model=ScanResponse)
async def scan_instruments(request: DetectRequest):
    """Full re-analysis pass: tracks new matches and evicts symbols that no longer match."""
    analyses, event = await asyncio.get_event_loop().run_in_executor(
        None, lambda: scanner.run_full_analysis(request.instruments)
    )

    return ScanResponse(
        results=[to_detection_result(a) for a in analyses],
        evicted=event.evicted if event else [],
        tracked=len(registry),
        stale=event is None,
    )


@router.post("/ticks", response_model=TicksResponse)
async def apply_price_ticks(request: TicksRequest):
    """Apply latest prices to tracked instruments."""
    event = scanner.apply_ticks(request.ticks)
    updated = set(event.updated)
    return TicksResponse(
        updated=event.updated,
        ignored=[t.symbol for t in request.ticks if t.symbol not in updated],
    )


@router.get("/tracked", response_model=list[TrackedInstrument])
async def list_tracked(include_candles: bool = Query(default=False)):
    instruments = registry.snapshot()
    if include_candles:
        return instruments
    return [_without_candles(i) for i in instruments]


@router.get("/tracked/{symbol}", response_model=TrackedInstrument)
async def get_tracked(symbol: str, include_candles: bool = Query(default=False)):
    instrument = registry.get(symbol.upper())
    if instrument is None:
        raise HTTPException(status_code=404, detail=f"{symbol} is not tracked")
    return instrument if include_candles else _without_candles(instrument)


@router.post("/refresh", response_model=RefreshResponse)
async def refresh_from_market():
    """Re-analyze tracked and newly discovered Binance symbols."""
    try:
        analyses, event = await asyncio.get_event_loop().run_in_executor(None, monitor.full_refresh)
        return RefreshResponse(
            scanned=len(analyses),
            detected=sum(1 for a in analyses if a.match is not None),
            evicted=event.evicted if event else [],
        )
    except Exception as e:
        logger.error(f"Market refresh error: {e}")
        return RefreshResponse(scanned=0, detected=0, evicted=[], error=str(e))
