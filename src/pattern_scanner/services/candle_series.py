"""Normalized OHLCV series for a single instrument."""

import numpy as np
import pandas as pd
import logging

from pattern_scanner.models.market_data import Candle

logger = logging.getLogger(__name__)

CANDLE_FIELDS = ("timestamp", "open", "high", "low", "close", "volume")
DEFAULT_WINDOW = 200


class MalformedCandleError(ValueError):
    """A candle is missing a required field or carries a non-numeric value."""


class CandleSeries:
    """Immutable window of the most recent candles, with numpy views for the matchers."""

    def __init__(self, candles: list[Candle], window: int = DEFAULT_WINDOW):
        self.candles: tuple[Candle, ...] = tuple(candles[-window:]) if window else tuple(candles)
        self.timestamps = np.array([c.timestamp for c in self.candles], dtype=np.int64)
        self.open = np.array([c.open for c in self.candles], dtype=float)
        self.high = np.array([c.high for c in self.candles], dtype=float)
        self.low = np.array([c.low for c in self.candles], dtype=float)
        self.close = np.array([c.close for c in self.candles], dtype=float)
        self.volume = np.array([c.volume for c in self.candles], dtype=float)
        self.n = len(self.candles)

    def __len__(self) -> int:
        return self.n

    @classmethod
    def from_bars(cls, bars: list[dict], window: int = DEFAULT_WINDOW) -> "CandleSeries":
        """Build a series from raw candle dicts, oldest first.

        Raises:
            MalformedCandleError: a candle lacks a field or has a non-numeric / NaN value.
        """
        if not bars:
            return cls([], window=window)

        df = pd.DataFrame(bars)
        df.columns = [str(c).lower() for c in df.columns]
        missing = set(CANDLE_FIELDS) - set(df.columns)
        if missing:
            raise MalformedCandleError(f"Missing candle fields: {sorted(missing)}")

        df = df[list(CANDLE_FIELDS)]
        try:
            df = df.apply(pd.to_numeric, errors="raise")
        except (TypeError, ValueError) as e:
            raise MalformedCandleError(f"Non-numeric candle value: {e}") from e

        bad_rows = df.index[df.isnull().any(axis=1)].tolist()
        if bad_rows:
            raise MalformedCandleError(f"Candles with missing values at positions {bad_rows[:5]}")

        candles = [
            Candle(
                timestamp=int(row.timestamp),
                open=float(row.open),
                high=float(row.high),
                low=float(row.low),
                close=float(row.close),
                volume=float(row.volume),
            )
            for row in df.itertuples(index=False)
        ]
        return cls(candles, window=window)

    def tail(self, count: int) -> "CandleSeries":
        return CandleSeries(list(self.candles[-count:]), window=count)

    @property
    def last_close(self) -> float:
        return float(self.close[-1])
