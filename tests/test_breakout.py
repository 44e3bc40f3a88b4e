"""Unit tests for incremental breakout-status transitions."""

import pytest

from pattern_scanner.models.patterns import (
    PatternMatch, PatternType, KeyLevels, BreakoutStatus, SignalStrength, SignalDirection,
)
from pattern_scanner.services.breakout import next_breakout_state, apply_price_move


def _neckline_match(pattern_type=PatternType.DOUBLE_BOTTOM, neckline=110.0, **kwargs) -> PatternMatch:
    return PatternMatch(
        pattern_type=pattern_type,
        confidence=0.8,
        key_levels=KeyLevels(neckline=neckline),
        target1=116.18,
        target2=120.0,
        stop_loss=98.0,
        **kwargs,
    )


class TestBullishNeckline:
    @pytest.mark.parametrize("old_price", [100.0, 109.99, 110.0])
    def test_crossing_is_confirmed_new(self, old_price):
        status, strength = next_breakout_state(_neckline_match(), SignalDirection.BULLISH, old_price, 110.5)
        assert status == BreakoutStatus.CONFIRMED_NEW
        assert strength == SignalStrength.VERY_STRONG

    def test_second_tick_above_decays_to_confirmed(self):
        match = apply_price_move(_neckline_match(), SignalDirection.BULLISH, 109.0, 111.0)
        assert match.breakout_status == BreakoutStatus.CONFIRMED_NEW

        match = apply_price_move(match, SignalDirection.BULLISH, 111.0, 112.0)
        assert match.breakout_status == BreakoutStatus.CONFIRMED
        assert match.signal_strength == SignalStrength.STRONG

    def test_below_neckline_leaves_state_unchanged(self):
        match = _neckline_match()
        assert next_breakout_state(match, SignalDirection.BULLISH, 105.0, 108.0) == (
            BreakoutStatus.PENDING, SignalStrength.MODERATE,
        )

    def test_unchanged_move_returns_same_object(self):
        match = _neckline_match()
        assert apply_price_move(match, SignalDirection.BULLISH, 100.0, 101.0) is match


class TestBearishNeckline:
    def test_crossing_down_is_confirmed_new(self):
        match = _neckline_match(PatternType.HEAD_AND_SHOULDERS, neckline=100.0)
        status, strength = next_breakout_state(match, SignalDirection.BEARISH, 100.0, 99.0)
        assert (status, strength) == (BreakoutStatus.CONFIRMED_NEW, SignalStrength.VERY_STRONG)

    def test_staying_below_is_confirmed(self):
        match = _neckline_match(PatternType.HEAD_AND_SHOULDERS, neckline=100.0)
        status, _ = next_breakout_state(match, SignalDirection.BEARISH, 98.0, 97.0)
        assert status == BreakoutStatus.CONFIRMED


class TestWithoutNeckline:
    def test_triangle_is_not_updated_incrementally(self):
        match = PatternMatch(
            pattern_type=PatternType.ASCENDING_TRIANGLE,
            confidence=0.8,
            key_levels=KeyLevels(support=100.0, resistance=110.0),
            target1=116.0,
            target2=120.0,
            stop_loss=98.0,
            breakout_status=BreakoutStatus.PENDING,
            signal_strength=SignalStrength.WEAK,
        )
        assert next_breakout_state(match, SignalDirection.BULLISH, 105.0, 130.0) == (
            BreakoutStatus.PENDING, SignalStrength.WEAK,
        )
