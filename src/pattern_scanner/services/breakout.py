"""Incremental breakout-status transitions driven by price ticks."""

from pattern_scanner.models.patterns import (
    PatternMatch, BreakoutStatus, SignalStrength, SignalDirection,
)


def next_breakout_state(
    match: PatternMatch,
    direction: SignalDirection,
    old_price: float,
    new_price: float,
) -> tuple[BreakoutStatus, SignalStrength]:
    """Derive the breakout state after a move from `old_price` to `new_price`.

    Only neckline formations are updated here; triangles keep their state
    until the next full re-analysis. A fresh crossing yields CONFIRMED_NEW,
    which decays to CONFIRMED while price stays past the neckline.
    """
    unchanged = (match.breakout_status, match.signal_strength)
    neckline = match.key_levels.neckline
    if neckline is None:
        return unchanged

    if direction == SignalDirection.BULLISH:
        if new_price > neckline and old_price <= neckline:
            return BreakoutStatus.CONFIRMED_NEW, SignalStrength.VERY_STRONG
        if new_price > neckline:
            return BreakoutStatus.CONFIRMED, SignalStrength.STRONG
    elif direction == SignalDirection.BEARISH:
        if new_price < neckline and old_price >= neckline:
            return BreakoutStatus.CONFIRMED_NEW, SignalStrength.VERY_STRONG
        if new_price < neckline:
            return BreakoutStatus.CONFIRMED, SignalStrength.STRONG

    return unchanged


def apply_price_move(
    match: PatternMatch,
    direction: SignalDirection,
    old_price: float,
    new_price: float,
) -> PatternMatch:
    """Copy of `match` carrying the breakout state after the price move."""
    status, strength = next_breakout_state(match, direction, old_price, new_price)
    if status == match.breakout_status and strength == match.signal_strength:
        return match
    return match.model_copy(update={"breakout_status": status, "signal_strength": strength})
