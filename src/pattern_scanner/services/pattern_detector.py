"""
Chart pattern detection using pivot-point identification and geometric rule validation.

Detects: Double Bottom, Head & Shoulders, Ascending/Descending/Symmetrical Triangle.
Each matcher scans pivots in index order and reports the first qualifying
formation; it does not search for a globally best one.
"""

import numpy as np
import logging
from typing import Callable, Optional

from pattern_scanner.models.patterns import (
    PatternType, PatternMatch, KeyLevels, BreakoutStatus, SignalStrength, SignalDirection,
)
from pattern_scanner.services.candle_series import CandleSeries
from pattern_scanner.services.confidence import (
    double_bottom_confidence, head_shoulders_confidence, triangle_confidence,
)
from pattern_scanner.utils.pivots import (
    find_local_lows, find_local_highs, find_highest_between, find_lowest_between,
)
from pattern_scanner.utils.trend import calculate_trend, calculate_trend_line

logger = logging.getLogger(__name__)

DOUBLE_BOTTOM_MIN_CANDLES = 50
DOUBLE_BOTTOM_PIVOT_PERIOD = 10
HEAD_SHOULDERS_MIN_CANDLES = 60
HEAD_SHOULDERS_PIVOT_PERIOD = 8
TRIANGLE_WINDOW = 40
TRIANGLE_PIVOT_PERIOD = 5
TRIANGLE_MIN_PIVOTS = 3

FIB_EXTENSION = 0.618

# Evaluated in order, first match wins. The three rules cannot hold together.
TRIANGLE_RULES: tuple[tuple[PatternType, Callable[[float, float], bool]], ...] = (
    (PatternType.ASCENDING_TRIANGLE, lambda high_trend, low_trend: abs(high_trend) < 0.001 and low_trend > 0.002),
    (PatternType.DESCENDING_TRIANGLE, lambda high_trend, low_trend: abs(low_trend) < 0.001 and high_trend < -0.002),
    (PatternType.SYMMETRICAL_TRIANGLE, lambda high_trend, low_trend: high_trend < -0.001 and low_trend > 0.001),
)


def classify_triangle(high_trend: float, low_trend: float) -> Optional[PatternType]:
    """Map the normalized trends of swing highs and lows to a triangle type."""
    for pattern_type, rule in TRIANGLE_RULES:
        if rule(high_trend, low_trend):
            return pattern_type
    return None


def check_triangle_breakout(
    current_price: float,
    resistance: float,
    support: float,
    pattern_type: PatternType,
) -> tuple[BreakoutStatus, SignalStrength, Optional[SignalDirection]]:
    """Breakout state of a triangle, with a 2%-of-range confirmation band."""
    threshold = (resistance - support) * 0.02

    if pattern_type == PatternType.ASCENDING_TRIANGLE:
        if current_price > resistance + threshold:
            return BreakoutStatus.CONFIRMED, SignalStrength.STRONG, SignalDirection.BULLISH
        if current_price > resistance:
            return BreakoutStatus.LIKELY, SignalStrength.MODERATE, SignalDirection.BULLISH
    elif pattern_type == PatternType.DESCENDING_TRIANGLE:
        if current_price < support - threshold:
            return BreakoutStatus.CONFIRMED, SignalStrength.STRONG, SignalDirection.BEARISH
        if current_price < support:
            return BreakoutStatus.LIKELY, SignalStrength.MODERATE, SignalDirection.BEARISH
    elif pattern_type == PatternType.SYMMETRICAL_TRIANGLE:
        if current_price > resistance + threshold:
            return BreakoutStatus.CONFIRMED, SignalStrength.STRONG, SignalDirection.BULLISH
        if current_price < support - threshold:
            return BreakoutStatus.CONFIRMED, SignalStrength.STRONG, SignalDirection.BEARISH
        if current_price > resistance:
            return BreakoutStatus.LIKELY, SignalStrength.MODERATE, SignalDirection.BULLISH
        if current_price < support:
            return BreakoutStatus.LIKELY, SignalStrength.MODERATE, SignalDirection.BEARISH

    return BreakoutStatus.PENDING, SignalStrength.WEAK, None


class PatternDetector:
    """Detects chart patterns in one instrument's candle series."""

    def __init__(self, series: CandleSeries):
        self.series = series

    def _current_price(self) -> float:
        return self.series.last_close

    # ---------- Double Bottom ----------
    def detect_double_bottom(self) -> Optional[PatternMatch]:
        """Two troughs at similar levels with a clear peak between them."""
        if self.series.n < DOUBLE_BOTTOM_MIN_CANDLES:
            return None

        lows = find_local_lows(self.series, DOUBLE_BOTTOM_PIVOT_PERIOD)

        for i, first_low in enumerate(lows[:-1]):
            for second_low in lows[i + 1:]:
                price_diff = abs(first_low.price - second_low.price) / first_low.price
                if price_diff >= 0.03:
                    continue

                distance = second_low.index - first_low.index
                if not 15 < distance < 80:
                    continue

                middle_high = find_highest_between(self.series, first_low.index + 1, second_low.index - 1)
                if middle_high is None or middle_high.price <= first_low.price * 1.05:
                    continue

                neckline = middle_high.price
                base = min(first_low.price, second_low.price)
                height = neckline - base
                confirmed = self._current_price() > neckline

                logger.debug(
                    f"Double bottom: lows at {first_low.index}/{second_low.index}, neckline {neckline}"
                )
                return PatternMatch(
                    pattern_type=PatternType.DOUBLE_BOTTOM,
                    confidence=double_bottom_confidence(first_low, second_low, middle_high, self.series),
                    key_levels=KeyLevels(neckline=neckline),
                    target1=neckline + height * FIB_EXTENSION,
                    target2=neckline + height,
                    stop_loss=base * 0.98,
                    breakout_status=BreakoutStatus.CONFIRMED if confirmed else BreakoutStatus.PENDING,
                    signal_strength=SignalStrength.STRONG if confirmed else SignalStrength.MODERATE,
                )

        return None

    # ---------- Head & Shoulders ----------
    def detect_head_and_shoulders(self) -> Optional[PatternMatch]:
        """Three consecutive peaks: middle highest, shoulders at similar heights."""
        if self.series.n < HEAD_SHOULDERS_MIN_CANDLES:
            return None

        highs = find_local_highs(self.series, HEAD_SHOULDERS_PIVOT_PERIOD)

        for left_shoulder, head, right_shoulder in zip(highs, highs[1:], highs[2:]):
            if head.price <= left_shoulder.price or head.price <= right_shoulder.price:
                continue

            if abs(left_shoulder.price - right_shoulder.price) / left_shoulder.price >= 0.05:
                continue

            if head.price <= left_shoulder.price * 1.03:
                continue

            left_trough = find_lowest_between(self.series, left_shoulder.index, head.index, field="close")
            right_trough = find_lowest_between(self.series, head.index, right_shoulder.index, field="close")
            if left_trough is None or right_trough is None:
                continue

            neckline = (left_trough.price + right_trough.price) / 2
            height = head.price - neckline
            confirmed = self._current_price() < neckline

            logger.debug(
                f"Head and shoulders: peaks at {left_shoulder.index}/{head.index}/{right_shoulder.index}, "
                f"neckline {neckline}"
            )
            return PatternMatch(
                pattern_type=PatternType.HEAD_AND_SHOULDERS,
                confidence=head_shoulders_confidence(left_shoulder, head, right_shoulder),
                key_levels=KeyLevels(neckline=neckline),
                target1=neckline - height * FIB_EXTENSION,
                target2=neckline - height,
                stop_loss=head.price * 1.02,
                breakout_status=BreakoutStatus.CONFIRMED if confirmed else BreakoutStatus.PENDING,
                signal_strength=SignalStrength.STRONG if confirmed else SignalStrength.MODERATE,
            )

        return None

    # ---------- Triangle Patterns ----------
    def detect_triangle(self) -> Optional[PatternMatch]:
        """Ascending, descending or symmetrical triangle over the most recent candles."""
        if self.series.n < TRIANGLE_WINDOW:
            return None

        recent = self.series.tail(TRIANGLE_WINDOW)
        highs = find_local_highs(recent, TRIANGLE_PIVOT_PERIOD)
        lows = find_local_lows(recent, TRIANGLE_PIVOT_PERIOD)
        if len(highs) < TRIANGLE_MIN_PIVOTS or len(lows) < TRIANGLE_MIN_PIVOTS:
            return None

        high_prices = [h.price for h in highs]
        low_prices = [l.price for l in lows]
        high_trend = calculate_trend(high_prices)
        low_trend = calculate_trend(low_prices)

        pattern_type = classify_triangle(high_trend, low_trend)
        if pattern_type is None:
            return None

        if pattern_type == PatternType.ASCENDING_TRIANGLE:
            resistance = float(np.mean(high_prices))
            support = calculate_trend_line(low_prices)
        elif pattern_type == PatternType.DESCENDING_TRIANGLE:
            support = float(np.mean(low_prices))
            resistance = calculate_trend_line(high_prices)
        else:
            resistance = calculate_trend_line(high_prices)
            support = calculate_trend_line(low_prices)

        confidence = triangle_confidence(highs, lows, resistance, support)
        if confidence <= 0:
            logger.debug(f"{pattern_type.value}: non-positive confidence {confidence:.3f}, discarded")
            return None

        status, strength, breakout_direction = check_triangle_breakout(
            recent.last_close, resistance, support, pattern_type,
        )

        price_range = resistance - support
        bullish = pattern_type == PatternType.ASCENDING_TRIANGLE or (
            pattern_type == PatternType.SYMMETRICAL_TRIANGLE and breakout_direction == SignalDirection.BULLISH
        )
        if bullish:
            target1 = resistance + price_range * FIB_EXTENSION
            target2 = resistance + price_range
            stop_loss = support * 0.98
        else:
            target1 = support - price_range * FIB_EXTENSION
            target2 = support - price_range
            stop_loss = resistance * 1.02

        logger.debug(
            f"{pattern_type.value}: high trend {high_trend:.5f}, low trend {low_trend:.5f}, "
            f"resistance {resistance}, support {support}"
        )
        return PatternMatch(
            pattern_type=pattern_type,
            confidence=confidence,
            key_levels=KeyLevels(support=support, resistance=resistance),
            target1=target1,
            target2=target2,
            stop_loss=stop_loss,
            breakout_status=status,
            signal_strength=strength,
            breakout_direction=breakout_direction,
        )

    # ---------- Selection ----------
    def detect_all(self) -> list[PatternMatch]:
        """Run every matcher in evaluation order and return those that fired."""
        matchers = (
            ("double-bottom", self.detect_double_bottom),
            ("head-shoulders", self.detect_head_and_shoulders),
            ("triangle", self.detect_triangle),
        )

        results: list[PatternMatch] = []
        for name, fn in matchers:
            try:
                match = fn()
                if match is not None:
                    results.append(match)
            except Exception as e:
                logger.error(f"Error detecting {name}: {e}")

        return results

    def select_best(self) -> Optional[PatternMatch]:
        """Highest-confidence match; ties go to the matcher evaluated first."""
        best: Optional[PatternMatch] = None
        for match in self.detect_all():
            if best is None or match.confidence > best.confidence:
                best = match
        return best
