from pydantic import BaseModel, Field
from typing import Optional


class Candle(BaseModel):
    timestamp: int  # epoch milliseconds, candle open time
    open: float
    high: float
    low: float
    close: float
    volume: float

    model_config = {"frozen": True}


class InstrumentTicker(BaseModel):
    """24h ticker snapshot supplied by the instrument discovery source."""
    symbol: str
    last_price: float
    price_change_percent: float = 0.0
    volume: float = 0.0
    quote_volume: float = 0.0


class PriceTick(BaseModel):
    symbol: str
    price: float
    timestamp: int
    price_change_percent: Optional[float] = None
    volume: Optional[float] = None
    quote_volume: Optional[float] = None


class InstrumentCandles(BaseModel):
    symbol: str
    candles: list[dict] = Field(default_factory=list, description="OHLCV candles as dicts, oldest first")
    ticker: Optional[InstrumentTicker] = None
