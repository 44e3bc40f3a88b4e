"""Binance spot market data: 24h tickers, instrument selection and kline history."""

import requests
import logging
from typing import Optional

from pattern_scanner.config import Settings, get_settings
from pattern_scanner.models.market_data import InstrumentTicker, InstrumentCandles, PriceTick
from pattern_scanner.utils.rate_limiter import RequestWeightLimiter

logger = logging.getLogger(__name__)

TICKER_24H_ALL_WEIGHT = 80


def klines_weight(limit: int) -> int:
    if limit <= 100:
        return 1
    if limit <= 500:
        return 2
    if limit <= 1000:
        return 5
    return 10


class BinanceFetcher:
    """Wrapper around the Binance public REST API with rate limiting and error handling.

    Network and parsing failures never raise: tickers come back empty and a
    symbol's candle history comes back as an empty list.
    """

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or get_settings()
        self.base_url = self.settings.binance_base_url.rstrip("/")
        self.timeout = self.settings.binance_request_timeout_seconds
        self.limiter = RequestWeightLimiter(self.settings.binance_max_requests_per_minute)

    def _get(self, path: str, weight: int, params: Optional[dict] = None):
        if not self.limiter.acquire(weight):
            raise requests.exceptions.RetryError(f"Request weight budget exhausted for {path}")
        response = requests.get(f"{self.base_url}{path}", params=params, timeout=self.timeout)
        if response.status_code == 429:
            logger.warning("Binance rate limit hit")
        response.raise_for_status()
        return response.json()

    def fetch_tickers(self) -> list[InstrumentTicker]:
        """24h ticker statistics for every listed symbol."""
        try:
            data = self._get("/ticker/24hr", TICKER_24H_ALL_WEIGHT)
        except requests.exceptions.RequestException as e:
            logger.error(f"Binance ticker request failed: {e}")
            return []
        except ValueError as e:
            logger.error(f"Binance ticker response not valid JSON: {e}")
            return []

        tickers: list[InstrumentTicker] = []
        for coin in data:
            try:
                tickers.append(InstrumentTicker(
                    symbol=coin["symbol"],
                    last_price=float(coin["lastPrice"]),
                    price_change_percent=float(coin.get("priceChangePercent", 0)),
                    volume=float(coin.get("volume", 0)),
                    quote_volume=float(coin.get("quoteVolume", 0)),
                ))
            except (KeyError, TypeError, ValueError) as e:
                logger.debug(f"Skipping malformed ticker entry {coin!r}: {e}")

        logger.info(f"Fetched {len(tickers)} Binance tickers")
        return tickers

    def select_instruments(self, tickers: list[InstrumentTicker]) -> list[InstrumentTicker]:
        """Quote-asset pairs with enough liquidity, excluding stablecoin bases."""
        quote = self.settings.quote_asset
        stablecoins = self.settings.stablecoins

        selected = [
            t for t in tickers
            if t.symbol.endswith(quote)
            and not any(t.symbol.startswith(stable) for stable in stablecoins)
            and t.quote_volume > self.settings.min_quote_volume
        ]
        return selected[: self.settings.max_symbols]

    def discover(self) -> list[InstrumentTicker]:
        return self.select_instruments(self.fetch_tickers())

    def fetch_candles(self, symbol: str) -> list[dict]:
        """Most recent klines for a symbol as candle dicts, oldest first."""
        limit = self.settings.candle_limit
        params = {"symbol": symbol, "interval": self.settings.candle_interval, "limit": limit}

        try:
            rows = self._get("/klines", klines_weight(limit), params=params)
            candles = [
                {
                    "timestamp": int(row[0]),
                    "open": float(row[1]),
                    "high": float(row[2]),
                    "low": float(row[3]),
                    "close": float(row[4]),
                    "volume": float(row[5]),
                }
                for row in rows
            ]
        except requests.exceptions.RequestException as e:
            logger.error(f"Binance klines request failed for {symbol}: {e}")
            return []
        except (IndexError, TypeError, ValueError) as e:
            logger.error(f"Binance klines parsing error for {symbol}: {e}")
            return []

        logger.debug(f"Fetched {len(candles)} candles for {symbol}")
        return candles

    def fetch_instrument(self, symbol: str, ticker: Optional[InstrumentTicker] = None) -> InstrumentCandles:
        return InstrumentCandles(symbol=symbol, candles=self.fetch_candles(symbol), ticker=ticker)

    def fetch_price_ticks(self, symbols: list[str]) -> list[PriceTick]:
        """Latest price snapshot for the given symbols."""
        wanted = set(symbols)
        if not wanted:
            return []

        try:
            data = self._get("/ticker/24hr", TICKER_24H_ALL_WEIGHT)
        except (requests.exceptions.RequestException, ValueError) as e:
            logger.error(f"Binance price refresh failed: {e}")
            return []

        ticks: list[PriceTick] = []
        for coin in data:
            if coin.get("symbol") not in wanted:
                continue
            try:
                ticks.append(PriceTick(
                    symbol=coin["symbol"],
                    price=float(coin["lastPrice"]),
                    timestamp=int(coin.get("closeTime", 0)),
                    price_change_percent=float(coin.get("priceChangePercent", 0)),
                    volume=float(coin.get("volume", 0)),
                    quote_volume=float(coin.get("quoteVolume", 0)),
                ))
            except (KeyError, TypeError, ValueError) as e:
                logger.debug(f"Skipping malformed ticker entry for {coin.get('symbol')}: {e}")

        return ticks
