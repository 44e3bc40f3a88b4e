"""Static reference metadata for each detectable formation."""

from types import MappingProxyType

from pattern_scanner.models.patterns import (
    PatternType, PatternCatalogEntry, SignalDirection, FormationKind,
)

PATTERN_CATALOG = MappingProxyType({
    PatternType.DOUBLE_BOTTOM: PatternCatalogEntry(
        pattern_type=PatternType.DOUBLE_BOTTOM,
        name="Double Bottom",
        level="beginner",
        description=(
            "Bullish reversal formed after a downtrend: two roughly equal lows "
            "separated by a peak that defines the neckline."
        ),
        direction=SignalDirection.BULLISH,
        kind=FormationKind.REVERSAL,
    ),
    PatternType.HEAD_AND_SHOULDERS: PatternCatalogEntry(
        pattern_type=PatternType.HEAD_AND_SHOULDERS,
        name="Head and Shoulders",
        level="beginner",
        description="Bearish reversal made of three peaks, the middle one higher than the two shoulders.",
        direction=SignalDirection.BEARISH,
        kind=FormationKind.REVERSAL,
    ),
    PatternType.ASCENDING_TRIANGLE: PatternCatalogEntry(
        pattern_type=PatternType.ASCENDING_TRIANGLE,
        name="Ascending Triangle",
        level="beginner",
        description="Bullish formation with flat resistance and a rising support line.",
        direction=SignalDirection.BULLISH,
        kind=FormationKind.CONTINUATION,
    ),
    PatternType.DESCENDING_TRIANGLE: PatternCatalogEntry(
        pattern_type=PatternType.DESCENDING_TRIANGLE,
        name="Descending Triangle",
        level="beginner",
        description="Bearish formation with flat support and a falling resistance line.",
        direction=SignalDirection.BEARISH,
        kind=FormationKind.CONTINUATION,
    ),
    PatternType.SYMMETRICAL_TRIANGLE: PatternCatalogEntry(
        pattern_type=PatternType.SYMMETRICAL_TRIANGLE,
        name="Symmetrical Triangle",
        level="beginner",
        description="Continuation formation bounded by two converging trend lines.",
        direction=SignalDirection.NEUTRAL,
        kind=FormationKind.CONTINUATION,
    ),
})


def get_catalog_entry(pattern_type: PatternType) -> PatternCatalogEntry:
    return PATTERN_CATALOG[pattern_type]
