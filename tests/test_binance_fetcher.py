"""Tests for the Binance fetcher: instrument selection, kline parsing and failure handling."""

import pytest
import requests
from unittest.mock import patch, MagicMock

from pattern_scanner.config import Settings
from pattern_scanner.models.market_data import InstrumentTicker
from pattern_scanner.services.binance_fetcher import BinanceFetcher, klines_weight
from pattern_scanner.utils.rate_limiter import RequestWeightLimiter


def _response(payload, status_code: int = 200) -> MagicMock:
    response = MagicMock()
    response.status_code = status_code
    response.json.return_value = payload
    if status_code >= 400:
        response.raise_for_status.side_effect = requests.exceptions.HTTPError(f"{status_code} error")
    return response


def _ticker_row(symbol: str, quote_volume: float, last_price: str = "1.5") -> dict:
    return {
        "symbol": symbol,
        "lastPrice": last_price,
        "priceChangePercent": "2.10",
        "volume": "1000",
        "quoteVolume": str(quote_volume),
        "closeTime": 1_700_000_000_000,
    }


@pytest.fixture
def fetcher():
    return BinanceFetcher(Settings(max_symbols=3))


class TestSelection:
    def test_filters_quote_asset_stablecoins_and_liquidity(self, fetcher):
        tickers = [
            InstrumentTicker(symbol="BTCUSDT", last_price=1, quote_volume=9e8),
            InstrumentTicker(symbol="ETHBTC", last_price=1, quote_volume=9e8),
            InstrumentTicker(symbol="USDCUSDT", last_price=1, quote_volume=9e8),
            InstrumentTicker(symbol="TINYUSDT", last_price=1, quote_volume=5e6),
            InstrumentTicker(symbol="SOLUSDT", last_price=1, quote_volume=6e6),
        ]
        assert [t.symbol for t in fetcher.select_instruments(tickers)] == ["BTCUSDT", "SOLUSDT"]

    def test_caps_number_of_symbols(self, fetcher):
        tickers = [InstrumentTicker(symbol=f"C{i}USDT", last_price=1, quote_volume=1e7) for i in range(10)]
        assert len(fetcher.select_instruments(tickers)) == 3


class TestTickers:
    @patch("pattern_scanner.services.binance_fetcher.requests.get")
    def test_parses_and_skips_malformed_entries(self, mock_get, fetcher):
        mock_get.return_value = _response([
            _ticker_row("BTCUSDT", 9e8, last_price="65000.1"),
            {"symbol": "BROKENUSDT"},
            _ticker_row("ETHUSDT", 4e8),
        ])

        tickers = fetcher.fetch_tickers()

        assert [t.symbol for t in tickers] == ["BTCUSDT", "ETHUSDT"]
        assert tickers[0].last_price == 65000.1
        assert tickers[0].price_change_percent == 2.1
        assert mock_get.call_args.kwargs["timeout"] == fetcher.timeout

    @patch("pattern_scanner.services.binance_fetcher.requests.get")
    def test_network_failure_returns_empty(self, mock_get, fetcher):
        mock_get.side_effect = requests.exceptions.ConnectionError("unreachable")
        assert fetcher.fetch_tickers() == []
        assert fetcher.discover() == []

    @patch("pattern_scanner.services.binance_fetcher.requests.get")
    def test_price_ticks_only_for_requested_symbols(self, mock_get, fetcher):
        mock_get.return_value = _response([_ticker_row("BTCUSDT", 9e8, "101.0"), _ticker_row("ETHUSDT", 4e8)])

        ticks = fetcher.fetch_price_ticks(["BTCUSDT"])

        assert len(ticks) == 1
        assert ticks[0].price == 101.0
        assert ticks[0].timestamp == 1_700_000_000_000

    def test_no_symbols_makes_no_request(self, fetcher):
        with patch("pattern_scanner.services.binance_fetcher.requests.get") as mock_get:
            assert fetcher.fetch_price_ticks([]) == []
            mock_get.assert_not_called()


class TestKlines:
    @patch("pattern_scanner.services.binance_fetcher.requests.get")
    def test_rows_become_candles(self, mock_get, fetcher):
        mock_get.return_value = _response([
            [1_700_000_000_000, "100.0", "102.0", "99.5", "101.0", "12.5", 1_700_003_599_999, "1262.5", 10],
            [1_700_003_600_000, "101.0", "103.0", "100.5", "102.5", "8.0", 1_700_007_199_999, "820.0", 7],
        ])

        candles = fetcher.fetch_candles("BTCUSDT")

        assert candles[0] == {
            "timestamp": 1_700_000_000_000, "open": 100.0, "high": 102.0,
            "low": 99.5, "close": 101.0, "volume": 12.5,
        }
        assert len(candles) == 2
        params = mock_get.call_args.kwargs["params"]
        assert params == {"symbol": "BTCUSDT", "interval": "1h", "limit": 200}

    @patch("pattern_scanner.services.binance_fetcher.requests.get")
    def test_http_error_returns_empty_history(self, mock_get, fetcher):
        mock_get.return_value = _response({"code": -1121, "msg": "Invalid symbol."}, status_code=400)
        assert fetcher.fetch_candles("NOPEUSDT") == []

    @patch("pattern_scanner.services.binance_fetcher.requests.get")
    def test_truncated_rows_return_empty_history(self, mock_get, fetcher):
        mock_get.return_value = _response([[1_700_000_000_000, "100.0"]])
        instrument = fetcher.fetch_instrument("BTCUSDT")
        assert instrument.candles == []

    @pytest.mark.parametrize("limit,weight", [(50, 1), (200, 2), (1000, 5), (1500, 10)])
    def test_klines_weight(self, limit, weight):
        assert klines_weight(limit) == weight


class TestRequestWeightLimiter:
    def test_spends_available_weight(self):
        limiter = RequestWeightLimiter(600)
        assert limiter.acquire(80)
        assert limiter.available == pytest.approx(520, abs=1.0)

    def test_times_out_when_budget_is_spent(self):
        limiter = RequestWeightLimiter(60)
        assert limiter.acquire(60)
        assert limiter.acquire(30, timeout=0.05) is False

    def test_rejects_weight_above_budget(self):
        with pytest.raises(ValueError):
            RequestWeightLimiter(10).acquire(11)
