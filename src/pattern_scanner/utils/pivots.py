"""Local extremum (pivot) detection over a candle series."""

import numpy as np
from scipy.signal import argrelextrema
from typing import Optional

from pattern_scanner.models.patterns import ExtremumPoint
from pattern_scanner.services.candle_series import CandleSeries


def _strict_pivots(values: np.ndarray, timestamps: np.ndarray, period: int, comparator) -> list[ExtremumPoint]:
    n = len(values)
    if period < 1 or n < 2 * period + 1:
        return []

    # argrelextrema clips the window at the edges; pivots need a full window on both sides
    idx = argrelextrema(values, comparator, order=period)[0]
    idx = idx[(idx >= period) & (idx < n - period)]

    return [
        ExtremumPoint(index=int(i), price=float(values[i]), timestamp=int(timestamps[i]))
        for i in idx
    ]


def find_local_lows(series: CandleSeries, period: int = 5) -> list[ExtremumPoint]:
    """Lows strictly below every other low within `period` candles on each side."""
    return _strict_pivots(series.low, series.timestamps, period, np.less)


def find_local_highs(series: CandleSeries, period: int = 5) -> list[ExtremumPoint]:
    """Highs strictly above every other high within `period` candles on each side."""
    return _strict_pivots(series.high, series.timestamps, period, np.greater)


def find_highest_between(series: CandleSeries, start: int, end: int) -> Optional[ExtremumPoint]:
    """Highest high in the inclusive index range [start, end]."""
    start = max(start, 0)
    end = min(end, series.n - 1)
    if start > end:
        return None
    i = start + int(np.argmax(series.high[start:end + 1]))
    return ExtremumPoint(index=i, price=float(series.high[i]), timestamp=int(series.timestamps[i]))


def find_lowest_between(series: CandleSeries, start: int, end: int, field: str = "low") -> Optional[ExtremumPoint]:
    """Lowest value of `field` ("low" or "close") in the inclusive index range [start, end]."""
    values = getattr(series, field)
    start = max(start, 0)
    end = min(end, series.n - 1)
    if start > end:
        return None
    i = start + int(np.argmin(values[start:end + 1]))
    return ExtremumPoint(index=i, price=float(values[i]), timestamp=int(series.timestamps[i]))
