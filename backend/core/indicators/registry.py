"""Indicator registry keyed by IndicatorKind.

Each computer turns a price window into one IndicatorReading. Consumers
iterate the registry instead of listing indicators at the call site.

Usage:
    @register_indicator(IndicatorKind.RSI)
    def compute_rsi(window, config):
        ...

    readings = compute_readings(window, config)
"""

from __future__ import annotations

import logging
from typing import Callable

from core.indicators import indicators as ind
from core.models.config import IndicatorConfig
from core.models.indicator import (
    IndicatorKind,
    IndicatorReading,
    IndicatorSignal,
    SignalStrength,
)
from core.models.price import PriceWindow

logger = logging.getLogger(__name__)

IndicatorComputer = Callable[[PriceWindow, IndicatorConfig], IndicatorReading]

# Global registry: kind -> computer
_REGISTRY: dict[IndicatorKind, IndicatorComputer] = {}


def register_indicator(kind: IndicatorKind):
    """Decorator to register an indicator computer for a kind.

    Raises:
        ValueError: If a computer is already registered for the kind.
    """

    def decorator(func: IndicatorComputer) -> IndicatorComputer:
        if kind in _REGISTRY:
            raise ValueError(
                f"Indicator '{kind.value}' is already registered by {_REGISTRY[kind].__name__}"
            )
        _REGISTRY[kind] = func
        logger.debug("Registered indicator: %s -> %s", kind.value, func.__name__)
        return func

    return decorator


def get_indicator(kind: IndicatorKind) -> IndicatorComputer:
    """Get the computer registered for a kind.

    Raises:
        KeyError: If nothing is registered under the kind.
    """
    func = _REGISTRY.get(kind)
    if func is None:
        available = ", ".join(k.value for k in list_indicators()) or "(none)"
        raise KeyError(f"Unknown indicator '{kind}'. Available: {available}")
    return func


def list_indicators() -> list[IndicatorKind]:
    """Registered kinds in declaration order of IndicatorKind."""
    return [k for k in IndicatorKind if k in _REGISTRY]


def compute_readings(
    window: PriceWindow,
    config: IndicatorConfig | None = None,
) -> dict[IndicatorKind, IndicatorReading]:
    """Run every registered indicator over the window."""
    config = config or IndicatorConfig()
    return {kind: _REGISTRY[kind](window, config) for kind in list_indicators()}


# =============================================================================
# Classification helpers
# =============================================================================

def _direction(value: float, reference: float) -> IndicatorSignal:
    if value > reference:
        return IndicatorSignal.BUY
    if value < reference:
        return IndicatorSignal.SELL
    return IndicatorSignal.NEUTRAL


def classify_rsi(value: float) -> tuple[IndicatorSignal, SignalStrength]:
    if value > 70:
        signal = IndicatorSignal.OVERBOUGHT
    elif value < 30:
        signal = IndicatorSignal.OVERSOLD
    elif value > 55:
        signal = IndicatorSignal.BUY
    elif value < 45:
        signal = IndicatorSignal.SELL
    else:
        signal = IndicatorSignal.NEUTRAL

    if value > 80 or value < 20:
        strength = SignalStrength.STRONG
    elif value > 70 or value < 30:
        strength = SignalStrength.MODERATE
    else:
        strength = SignalStrength.WEAK
    return signal, strength


def classify_ema(price: float, ema_value: float) -> tuple[IndicatorSignal, SignalStrength]:
    """Trend-following: price above its EMA is bullish."""
    signal = _direction(price, ema_value)
    deviation = abs(price - ema_value) / ema_value * 100 if ema_value else 0.0
    strength = SignalStrength.STRONG if deviation > 2.0 else SignalStrength.MODERATE
    return signal, strength


def classify_macd(result: ind.MacdResult) -> tuple[IndicatorSignal, SignalStrength]:
    if result.macd > result.signal and result.histogram > 0:
        signal = IndicatorSignal.BUY
    elif result.macd < result.signal and result.histogram < 0:
        signal = IndicatorSignal.SELL
    else:
        signal = IndicatorSignal.NEUTRAL

    hist = abs(result.histogram)
    base = abs(result.macd)
    if hist > base * 0.10:
        strength = SignalStrength.STRONG
    elif hist > base * 0.02:
        strength = SignalStrength.MODERATE
    else:
        strength = SignalStrength.WEAK
    return signal, strength


def classify_adx(result: ind.AdxResult) -> tuple[IndicatorSignal, SignalStrength]:
    signal = _direction(result.di_plus, result.di_minus)
    if result.adx > 25:
        strength = SignalStrength.STRONG
    elif result.adx > 20:
        strength = SignalStrength.MODERATE
    else:
        strength = SignalStrength.WEAK
    return signal, strength


def classify_bollinger(
    price: float, bands: ind.BollingerResult
) -> tuple[IndicatorSignal, SignalStrength]:
    if bands.upper == bands.lower:
        return IndicatorSignal.NEUTRAL, SignalStrength.WEAK

    if bands.position > 0.8:
        signal = IndicatorSignal.OVERBOUGHT
    elif bands.position < 0.2:
        signal = IndicatorSignal.OVERSOLD
    else:
        signal = _direction(price, bands.middle)

    edge = abs(bands.position - 0.5)
    if edge > 0.45:
        strength = SignalStrength.STRONG
    elif edge > 0.3:
        strength = SignalStrength.MODERATE
    else:
        strength = SignalStrength.WEAK
    return signal, strength


def classify_vwap(
    price: float, vwap_value: float, total_volume: float
) -> tuple[IndicatorSignal, SignalStrength]:
    if total_volume <= 0 or vwap_value <= 0:
        return IndicatorSignal.NEUTRAL, SignalStrength.WEAK

    signal = IndicatorSignal.BUY if price > vwap_value else IndicatorSignal.SELL
    deviation = abs(price - vwap_value) / vwap_value * 100
    strength = SignalStrength.STRONG if deviation > 1.5 else SignalStrength.MODERATE
    return signal, strength


# =============================================================================
# Registered computers
# =============================================================================

@register_indicator(IndicatorKind.RSI)
def compute_rsi(window: PriceWindow, config: IndicatorConfig) -> IndicatorReading:
    value = ind.rsi(window.closes(), config.rsi_period)
    signal, strength = classify_rsi(value)
    return IndicatorReading(IndicatorKind.RSI, value, signal, strength)


@register_indicator(IndicatorKind.EMA)
def compute_ema(window: PriceWindow, config: IndicatorConfig) -> IndicatorReading:
    closes = window.closes()
    value = ind.ema(closes, config.ema_period)
    price = closes[-1] if closes else 0.0
    signal, strength = classify_ema(price, value)
    return IndicatorReading(
        IndicatorKind.EMA, value, signal, strength, {"period": config.ema_period}
    )


@register_indicator(IndicatorKind.MACD)
def compute_macd(window: PriceWindow, config: IndicatorConfig) -> IndicatorReading:
    result = ind.macd(
        window.closes(), config.macd_fast, config.macd_slow, config.macd_signal
    )
    signal, strength = classify_macd(result)
    return IndicatorReading(
        IndicatorKind.MACD,
        result.macd,
        signal,
        strength,
        {"signal_line": result.signal, "histogram": result.histogram},
    )


@register_indicator(IndicatorKind.ADX)
def compute_adx(window: PriceWindow, config: IndicatorConfig) -> IndicatorReading:
    result = ind.adx(window.highs(), window.lows(), window.closes(), config.adx_period)
    signal, strength = classify_adx(result)
    return IndicatorReading(
        IndicatorKind.ADX,
        result.adx,
        signal,
        strength,
        {"di_plus": result.di_plus, "di_minus": result.di_minus},
    )


@register_indicator(IndicatorKind.BOLLINGER)
def compute_bollinger(window: PriceWindow, config: IndicatorConfig) -> IndicatorReading:
    closes = window.closes()
    bands = ind.bollinger_bands(closes, config.bollinger_period, config.bollinger_std_mult)
    price = closes[-1] if closes else 0.0
    signal, strength = classify_bollinger(price, bands)
    return IndicatorReading(
        IndicatorKind.BOLLINGER,
        bands.position,
        signal,
        strength,
        {
            "upper": bands.upper,
            "middle": bands.middle,
            "lower": bands.lower,
            "width": bands.width,
        },
    )


@register_indicator(IndicatorKind.VWAP)
def compute_vwap(window: PriceWindow, config: IndicatorConfig) -> IndicatorReading:
    closes = window.closes()
    volumes = window.volumes()
    value = ind.vwap(window.highs(), window.lows(), closes, volumes)
    price = closes[-1] if closes else 0.0
    signal, strength = classify_vwap(price, value, sum(volumes))
    return IndicatorReading(
        IndicatorKind.VWAP,
        value,
        signal,
        strength,
        {"volume_ratio": ind.volume_ratio(volumes, config.volume_period)},
    )
