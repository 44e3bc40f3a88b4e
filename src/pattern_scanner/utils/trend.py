"""Least-squares trend estimation for pivot sequences."""

import numpy as np
from typing import Sequence


def calculate_trend(values: Sequence[float]) -> float:
    """Slope of `values` against their 0-based index, as a fraction of the first value."""
    if len(values) < 2:
        return 0.0
    first = float(values[0])
    if first == 0:
        return 0.0
    slope = np.polyfit(np.arange(len(values), dtype=float), np.asarray(values, dtype=float), 1)[0]
    return float(slope) / first


def calculate_trend_line(values: Sequence[float]) -> float:
    """Project the last value one normalized-trend step forward."""
    if len(values) == 0:
        return 0.0
    if len(values) < 2:
        return float(values[0])
    last = float(values[-1])
    return last + calculate_trend(values) * last
