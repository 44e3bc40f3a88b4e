"""Heuristic confidence scores for detected formations.

Scores are weighted sums of normalized terms, clamped to a per-type ceiling.
They estimate match quality, not a probability.
"""

import numpy as np

from pattern_scanner.models.patterns import ExtremumPoint
from pattern_scanner.services.candle_series import CandleSeries

REVERSAL_CONFIDENCE_CAP = 0.95
TRIANGLE_CONFIDENCE_CAP = 0.9


def volume_signal(series: CandleSeries, start: int, end: int) -> float:
    """1.0 when the last 5 candles trade above the pattern-span average volume, else 0.5."""
    span = series.volume[start:end + 1]
    recent = series.volume[-5:]
    if len(span) == 0 or len(recent) == 0:
        return 0.5
    return 1.0 if float(np.mean(recent)) > float(np.mean(span)) else 0.5


def double_bottom_confidence(
    first_low: ExtremumPoint,
    second_low: ExtremumPoint,
    middle_high: ExtremumPoint,
    series: CandleSeries,
) -> float:
    confidence = 0.5

    # Closer lows score higher
    price_diff = abs(first_low.price - second_low.price) / first_low.price
    confidence += (0.03 - price_diff) * 10

    # Neckline prominence above the lower trough
    base = min(first_low.price, second_low.price)
    middle_strength = (middle_high.price - base) / base
    confidence += min(middle_strength * 2, 0.3)

    confidence += volume_signal(series, first_low.index, second_low.index) * 0.2

    return min(confidence, REVERSAL_CONFIDENCE_CAP)


def head_shoulders_confidence(
    left_shoulder: ExtremumPoint,
    head: ExtremumPoint,
    right_shoulder: ExtremumPoint,
) -> float:
    confidence = 0.6

    shoulder_symmetry = 1 - abs(left_shoulder.price - right_shoulder.price) / left_shoulder.price
    confidence += shoulder_symmetry * 0.2

    head_prominence = (head.price - max(left_shoulder.price, right_shoulder.price)) / head.price
    confidence += min(head_prominence * 3, 0.2)

    return min(confidence, REVERSAL_CONFIDENCE_CAP)


def triangle_confidence(
    highs: list[ExtremumPoint],
    lows: list[ExtremumPoint],
    resistance: float,
    support: float,
) -> float:
    confidence = 0.5

    # Touch points on both lines
    confidence += min((len(highs) + len(lows)) * 0.05, 0.3)

    # Tighter convergence relative to the first swing high scores higher
    convergence = (resistance - support) / highs[0].price
    confidence += min((0.1 - convergence) * 2, 0.2)

    return min(confidence, TRIANGLE_CONFIDENCE_CAP)
