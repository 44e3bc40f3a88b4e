from pydantic_settings import BaseSettings
from functools import lru_cache


class Settings(BaseSettings):
    """Application settings loaded from environment variables or .env file."""

    # General
    app_name: str = "Pattern Scanner Service"
    debug: bool = False

    # Binance
    binance_base_url: str = "https://api.binance.com/api/v3"
    binance_request_timeout_seconds: float = 10.0
    binance_max_requests_per_minute: int = 600

    # Instrument selection
    quote_asset: str = "USDT"
    stablecoins: list[str] = ["USDT", "USDC", "BUSD", "DAI", "TUSD", "PAX", "USDP"]
    min_quote_volume: float = 5_000_000.0
    max_symbols: int = 40

    # Candle history
    candle_interval: str = "1h"
    candle_limit: int = 200

    # Analysis
    analysis_workers: int = 4

    # Monitor cadence
    monitor_enabled: bool = False
    price_refresh_seconds: float = 30.0
    reanalysis_seconds: float = 300.0

    model_config = {"env_file": ".env", "env_prefix": "PS_"}


@lru_cache()
def get_settings() -> Settings:
    return Settings()
