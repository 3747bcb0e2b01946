"""Application configuration."""

from functools import lru_cache
from typing import Literal

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from core.history import TIMEFRAME_SECONDS


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Tracked matrix
    symbols: list[str] = ["BTC/USDT", "ETH/USDT", "SOL/USDT", "BNB/USDT", "XRP/USDT"]
    timeframes: list[str] = ["1m", "5m", "15m", "30m", "1h", "4h", "1d"]

    # Scheduler
    calculation_interval_seconds: float = 240.0
    run_on_start: bool = True

    # Regime
    regime_ttl_seconds: float = 900.0
    regime_timeframe: str = "1h"
    weight_regime_symbol: str | None = None  # regime applied to weight updates, default first symbol

    # Price history
    history_mode: Literal["accumulated", "synthetic"] = "accumulated"
    insufficient_history_policy: Literal["neutral", "skip"] = "neutral"
    min_history_points: int = 35  # MACD slow + signal period
    history_max_points: int = 200
    synthetic_history_points: int = 100

    # Caches
    signal_cache_max_entries: int = 5000

    # Price data provider (CoinGecko-compatible)
    price_api_url: str = "https://api.coingecko.com/api/v3"
    price_api_key: str = ""
    price_api_timeout: float = 10.0

    # Server
    host: str = "0.0.0.0"
    port: int = 8000
    debug: bool = False

    @model_validator(mode="after")
    def _validate(self):
        if self.calculation_interval_seconds <= 0:
            raise ValueError("calculation_interval_seconds must be positive")
        if self.min_history_points > self.history_max_points:
            raise ValueError(
                f"min_history_points ({self.min_history_points}) exceeds "
                f"history_max_points ({self.history_max_points})"
            )
        unknown = [
            tf for tf in [*self.timeframes, self.regime_timeframe] if tf not in TIMEFRAME_SECONDS
        ]
        if unknown:
            raise ValueError(f"unknown timeframes: {unknown}")
        if not self.symbols or not self.timeframes:
            raise ValueError("symbols and timeframes must not be empty")
        if self.weight_regime_symbol is not None and self.weight_regime_symbol not in self.symbols:
            raise ValueError(
                f"weight_regime_symbol '{self.weight_regime_symbol}' is not a tracked symbol"
            )
        return self


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
