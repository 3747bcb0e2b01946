"""Technical indicators (pure math, no I/O)."""

from core.indicators.indicators import (
    AdxResult,
    BollingerResult,
    MacdResult,
    adx,
    atr,
    bollinger_bands,
    ema,
    ema_series,
    macd,
    rsi,
    sma,
    true_range,
    volume_ratio,
    vwap,
)
from core.indicators.registry import (
    compute_readings,
    get_indicator,
    list_indicators,
    register_indicator,
)

__all__ = [
    "AdxResult",
    "BollingerResult",
    "MacdResult",
    "adx",
    "atr",
    "bollinger_bands",
    "ema",
    "ema_series",
    "macd",
    "rsi",
    "sma",
    "true_range",
    "volume_ratio",
    "vwap",
    "compute_readings",
    "get_indicator",
    "list_indicators",
    "register_indicator",
]
