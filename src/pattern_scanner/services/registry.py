"""
Registry of instruments that currently show a chart pattern.

The registry owns every TrackedInstrument. Writes for a symbol are serialized
by a per-symbol lock shared by the price-refresh and full re-analysis paths;
readers get deep copies. Full re-analysis passes are numbered so that the
output of a superseded pass is dropped instead of merged.
"""

import threading
import logging
from typing import Callable, Optional

from pattern_scanner.models.market_data import PriceTick
from pattern_scanner.models.patterns import (
    InstrumentAnalysis, TrackedInstrument, ResultSetChanged,
)
from pattern_scanner.services.breakout import apply_price_move
from pattern_scanner.services.catalog import get_catalog_entry

logger = logging.getLogger(__name__)

Subscriber = Callable[[ResultSetChanged], None]


def display_name(symbol: str, quote_asset: str = "USDT") -> str:
    """Base asset of a trading pair, e.g. BTCUSDT -> BTC."""
    if quote_asset and symbol.endswith(quote_asset) and len(symbol) > len(quote_asset):
        return symbol[: -len(quote_asset)]
    return symbol


class InstrumentRegistry:
    """Tracked instruments keyed by symbol."""

    def __init__(self, quote_asset: str = "USDT"):
        self.quote_asset = quote_asset
        self._instruments: dict[str, TrackedInstrument] = {}
        self._symbol_locks: dict[str, threading.Lock] = {}
        self._lock = threading.Lock()  # membership, lock table and pass generation
        self._generation = 0
        self._subscribers: list[Subscriber] = []

    # ---------- Observers ----------
    def subscribe(self, callback: Subscriber):
        self._subscribers.append(callback)

    def unsubscribe(self, callback: Subscriber):
        if callback in self._subscribers:
            self._subscribers.remove(callback)

    def _emit(self, event: ResultSetChanged):
        for callback in list(self._subscribers):
            try:
                callback(event)
            except Exception as e:
                logger.error(f"Registry subscriber {callback!r} failed: {e}")

    # ---------- Reads ----------
    def _tracked_lock(self, symbol: str) -> Optional[threading.Lock]:
        """Lock of a tracked symbol, or None. Never creates a lock."""
        with self._lock:
            if symbol not in self._instruments:
                return None
            return self._symbol_locks.get(symbol)

    def _is_live(self, symbol: str, lock: threading.Lock) -> bool:
        # An eviction may have retired `lock` while we waited on it
        return self._symbol_locks.get(symbol) is lock and symbol in self._instruments

    def get(self, symbol: str) -> Optional[TrackedInstrument]:
        lock = self._tracked_lock(symbol)
        if lock is None:
            return None
        with lock:
            if not self._is_live(symbol, lock):
                return None
            return self._instruments[symbol].model_copy(deep=True)

    def symbols(self) -> list[str]:
        with self._lock:
            return list(self._instruments.keys())

    def snapshot(self) -> list[TrackedInstrument]:
        return [record for record in (self.get(s) for s in self.symbols()) if record is not None]

    def __len__(self) -> int:
        with self._lock:
            return len(self._instruments)

    def __contains__(self, symbol: str) -> bool:
        with self._lock:
            return symbol in self._instruments

    # ---------- Full re-analysis ----------
    def begin_pass(self) -> int:
        """Start a full re-analysis pass; any earlier unfinished pass becomes stale."""
        with self._lock:
            self._generation += 1
            return self._generation

    def is_current(self, token: int) -> bool:
        with self._lock:
            return token == self._generation

    def commit_pass(self, token: int, analyses: list[InstrumentAnalysis]) -> Optional[ResultSetChanged]:
        """Apply a pass's results. Returns None when the pass was superseded.

        Instruments with a match are created or have candles and match replaced;
        previously tracked instruments analyzed without a match are evicted.
        Instruments absent from `analyses` are left untouched.
        """
        added: list[str] = []
        updated: list[str] = []
        evicted: list[str] = []

        with self._lock:
            if token != self._generation:
                logger.info(f"Discarding stale analysis pass {token} (current {self._generation})")
                return None

            for analysis in analyses:
                symbol = analysis.symbol
                if analysis.match is None and symbol not in self._instruments:
                    continue

                lock = self._symbol_locks.setdefault(symbol, threading.Lock())
                with lock:
                    existing = self._instruments.get(symbol)

                    if analysis.match is None:
                        del self._instruments[symbol]
                        del self._symbol_locks[symbol]
                        evicted.append(symbol)
                        continue

                    if existing is not None:
                        self._instruments[symbol] = existing.model_copy(update={
                            "candles": list(analysis.candles),
                            "current_match": analysis.match,
                        })
                        updated.append(symbol)
                        continue

                    ticker = analysis.ticker
                    last_candle = analysis.candles[-1] if analysis.candles else None
                    self._instruments[symbol] = TrackedInstrument(
                        symbol=symbol,
                        name=display_name(symbol, self.quote_asset),
                        candles=list(analysis.candles),
                        current_match=analysis.match,
                        last_price=ticker.last_price if ticker else (last_candle.close if last_candle else 0.0),
                        last_update_timestamp=last_candle.timestamp if last_candle else 0,
                        price_change_percent=ticker.price_change_percent if ticker else None,
                        volume=ticker.volume if ticker else None,
                        quote_volume=ticker.quote_volume if ticker else None,
                    )
                    added.append(symbol)

        logger.info(
            f"Analysis pass {token} committed: {len(added)} added, {len(updated)} updated, {len(evicted)} evicted"
        )
        event = ResultSetChanged(added=added, updated=updated, evicted=evicted, instruments=self.snapshot())
        self._emit(event)
        return event

    # ---------- Price refresh ----------
    def apply_ticks(self, ticks: list[PriceTick]) -> ResultSetChanged:
        """Update prices and neckline breakout state for tracked symbols.

        Ticks for symbols that are not tracked are ignored.
        """
        updated: list[str] = []

        for tick in ticks:
            lock = self._tracked_lock(tick.symbol)
            if lock is None:
                continue

            with lock:
                if not self._is_live(tick.symbol, lock):
                    continue
                record = self._instruments[tick.symbol]

                match = record.current_match
                if match is not None:
                    direction = get_catalog_entry(match.pattern_type).direction
                    match = apply_price_move(match, direction, record.last_price, tick.price)
                    if match.breakout_status != record.current_match.breakout_status:
                        logger.info(
                            f"{tick.symbol} {match.pattern_type.value}: "
                            f"{record.current_match.breakout_status.value} -> {match.breakout_status.value}"
                        )

                changes = {
                    "last_price": tick.price,
                    "last_update_timestamp": tick.timestamp,
                    "current_match": match,
                }
                for field in ("price_change_percent", "volume", "quote_volume"):
                    value = getattr(tick, field)
                    if value is not None:
                        changes[field] = value

                self._instruments[tick.symbol] = record.model_copy(update=changes)
                updated.append(tick.symbol)

        event = ResultSetChanged(updated=updated, instruments=self.snapshot())
        if updated:
            self._emit(event)
        return event
