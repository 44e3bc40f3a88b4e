from pydantic import BaseModel, Field
from typing import Optional
from enum import Enum

from pattern_scanner.models.market_data import Candle, InstrumentCandles, InstrumentTicker, PriceTick


class PatternType(str, Enum):
    DOUBLE_BOTTOM = "double-bottom"
    HEAD_AND_SHOULDERS = "head-shoulders"
    ASCENDING_TRIANGLE = "ascending-triangle"
    DESCENDING_TRIANGLE = "descending-triangle"
    SYMMETRICAL_TRIANGLE = "symmetrical-triangle"


class SignalDirection(str, Enum):
    BULLISH = "bullish"
    BEARISH = "bearish"
    NEUTRAL = "neutral"


class FormationKind(str, Enum):
    REVERSAL = "reversal"
    CONTINUATION = "continuation"


class BreakoutStatus(str, Enum):
    PENDING = "pending"
    LIKELY = "likely"
    CONFIRMED = "confirmed"
    CONFIRMED_NEW = "confirmed-new"


class SignalStrength(str, Enum):
    WEAK = "weak"
    MODERATE = "moderate"
    STRONG = "strong"
    VERY_STRONG = "very-strong"


class ExtremumPoint(BaseModel):
    index: int
    price: float
    timestamp: int


class KeyLevels(BaseModel):
    neckline: Optional[float] = None
    support: Optional[float] = None
    resistance: Optional[float] = None


class PatternMatch(BaseModel):
    pattern_type: PatternType
    confidence: float = Field(gt=0, le=0.95)
    key_levels: KeyLevels
    target1: float
    target2: float
    stop_loss: float
    breakout_status: BreakoutStatus = BreakoutStatus.PENDING
    signal_strength: SignalStrength = SignalStrength.MODERATE
    breakout_direction: Optional[SignalDirection] = None


class PatternCatalogEntry(BaseModel):
    pattern_type: PatternType
    name: str
    level: str
    description: str
    direction: SignalDirection
    kind: FormationKind

    model_config = {"frozen": True}


class TrackedInstrument(BaseModel):
    symbol: str
    name: str
    candles: list[Candle]
    current_match: Optional[PatternMatch] = None
    last_price: float
    last_update_timestamp: int
    price_change_percent: Optional[float] = None
    volume: Optional[float] = None
    quote_volume: Optional[float] = None


class DetectionResult(BaseModel):
    symbol: str
    pattern_detected: bool
    match: Optional[PatternMatch] = None
    catalog: Optional[PatternCatalogEntry] = None
    error: Optional[str] = None


class ResultSetChanged(BaseModel):
    """Emitted by the registry after a committed analysis pass or tick batch."""
    added: list[str] = []
    updated: list[str] = []
    evicted: list[str] = []
    instruments: list[TrackedInstrument] = []


class DetectRequest(BaseModel):
    instruments: list[InstrumentCandles]


class DetectResponse(BaseModel):
    results: list[DetectionResult]
    total_instruments: int
    detected: int


class ScanResponse(BaseModel):
    results: list[DetectionResult]
    evicted: list[str]
    tracked: int
    stale: bool = False


class TicksRequest(BaseModel):
    ticks: list[PriceTick]


class TicksResponse(BaseModel):
    updated: list[str]
    ignored: list[str]


class RefreshResponse(BaseModel):
    scanned: int
    detected: int
    evicted: list[str]
    error: Optional[str] = None


class InstrumentAnalysis(BaseModel):
    """Outcome of one instrument's detection run, ready to commit to the registry."""
    symbol: str
    candles: list[Candle] = []
    match: Optional[PatternMatch] = None
    ticker: Optional[InstrumentTicker] = None
    error: Optional[str] = None
