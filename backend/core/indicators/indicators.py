"""Technical indicators for signal generation.

Pure NumPy implementations operating on oldest-first float sequences.

Every indicator has a minimum window length. Below it the function returns
a documented neutral default instead of raising, so a short history never
breaks a calculation pass:

- rsi: 50.0 when fewer than period + 1 closes
- ema: last value (0.0 for empty input) when fewer than period values
- macd: (0, 0, 0) when fewer than slow closes
- adx: ADX 25, DI+ 50, DI- 50 when fewer than period + 1 candles
- bollinger_bands: all bands at the last close, position 0.5, when fewer
  than period closes
- vwap: last close when total volume is zero (0.0 for empty input)
- volume_ratio: 1.0 when fewer than period volumes or zero average
"""

from dataclasses import dataclass
from typing import Sequence

import numpy as np


RSI_NEUTRAL = 50.0
ADX_DEFAULT = 25.0
DI_DEFAULT = 50.0
BOLLINGER_NEUTRAL_POSITION = 0.5


@dataclass(slots=True, frozen=True)
class MacdResult:
    macd: float
    signal: float
    histogram: float


@dataclass(slots=True, frozen=True)
class AdxResult:
    adx: float
    di_plus: float
    di_minus: float


@dataclass(slots=True, frozen=True)
class BollingerResult:
    upper: float
    middle: float
    lower: float
    width: float  # (upper - lower) / middle, percent
    position: float  # where the last close sits between the bands, in [0, 1]


def _as_array(values: Sequence[float]) -> np.ndarray:
    return np.asarray(values, dtype=np.float64)


# =============================================================================
# Moving averages
# =============================================================================

def ema_series(values: Sequence[float], period: int) -> np.ndarray:
    """
    Calculate the full EMA series.

    multiplier = 2 / (period + 1), seeded with the first value:
    ema[0] = values[0]; ema[i] = values[i] * mult + ema[i-1] * (1 - mult)

    Args:
        values: Sequence of values, oldest first
        period: EMA period

    Returns:
        Array of EMA values (same length as input)
    """
    arr = _as_array(values)
    result = np.empty_like(arr)
    if arr.size == 0:
        return result

    multiplier = 2.0 / (period + 1)
    result[0] = arr[0]
    for i in range(1, arr.size):
        result[i] = arr[i] * multiplier + result[i - 1] * (1 - multiplier)
    return result


def ema(values: Sequence[float], period: int) -> float:
    """Latest EMA value, or the last value when the window is short."""
    if len(values) == 0:
        return 0.0
    if len(values) < period:
        return float(values[-1])
    return float(ema_series(values, period)[-1])


def sma(values: Sequence[float], period: int) -> float:
    """Simple moving average of the last `period` values (last value when short)."""
    if len(values) == 0:
        return 0.0
    if len(values) < period:
        return float(values[-1])
    return float(np.mean(_as_array(values)[-period:]))


# =============================================================================
# Oscillators
# =============================================================================

def rsi(closes: Sequence[float], period: int = 14) -> float:
    """
    Calculate RSI with Wilder's smoothing.

    The initial average gain/loss is the mean of the first `period` deltas;
    each later delta is folded in with
    avg = (avg * (period - 1) + current) / period.

    Returns:
        RSI in [0, 100]; 100 when there are no losses; 50 when fewer than
        period + 1 closes are available.
    """
    if len(closes) < period + 1:
        return RSI_NEUTRAL

    deltas = np.diff(_as_array(closes))
    gains = np.where(deltas > 0, deltas, 0.0)
    losses = np.where(deltas < 0, -deltas, 0.0)

    avg_gain = float(np.mean(gains[:period]))
    avg_loss = float(np.mean(losses[:period]))

    for i in range(period, deltas.size):
        avg_gain = (avg_gain * (period - 1) + gains[i]) / period
        avg_loss = (avg_loss * (period - 1) + losses[i]) / period

    if avg_loss == 0:
        return 100.0
    rs = avg_gain / avg_loss
    return 100.0 - 100.0 / (1.0 + rs)


def macd(
    closes: Sequence[float],
    fast: int = 12,
    slow: int = 26,
    signal: int = 9,
) -> MacdResult:
    """
    Calculate MACD.

    macd = EMA(fast) - EMA(slow); signal line = EMA of the macd series
    (starting at the first bar where the slow EMA is defined);
    histogram = macd - signal line.
    """
    if len(closes) < slow:
        return MacdResult(0.0, 0.0, 0.0)

    macd_line = ema_series(closes, fast) - ema_series(closes, slow)
    history = macd_line[slow - 1 :]
    signal_line = float(ema_series(history, signal)[-1])
    current = float(macd_line[-1])
    return MacdResult(current, signal_line, current - signal_line)


# =============================================================================
# Trend strength / volatility
# =============================================================================

def true_range(
    highs: Sequence[float],
    lows: Sequence[float],
    closes: Sequence[float],
) -> np.ndarray:
    """
    Calculate True Range.

    TR = max(high - low, abs(high - prev_close), abs(low - prev_close))
    The first bar has no previous close and uses high - low.
    """
    h = _as_array(highs)
    l = _as_array(lows)
    c = _as_array(closes)
    if h.size == 0:
        return h

    tr = h - l
    if h.size > 1:
        prev_close = c[:-1]
        tr[1:] = np.maximum.reduce(
            [h[1:] - l[1:], np.abs(h[1:] - prev_close), np.abs(l[1:] - prev_close)]
        )
    return tr


def atr(
    highs: Sequence[float],
    lows: Sequence[float],
    closes: Sequence[float],
    period: int = 14,
) -> float:
    """
    Latest Average True Range using Wilder's smoothing (RMA).

    Returns 0.0 when fewer than `period` candles are available.
    """
    tr = true_range(highs, lows, closes)
    if tr.size < period:
        return 0.0

    value = float(np.mean(tr[:period]))
    alpha = 1.0 / period
    for i in range(period, tr.size):
        value = alpha * tr[i] + (1 - alpha) * value
    return value


def adx(
    highs: Sequence[float],
    lows: Sequence[float],
    closes: Sequence[float],
    period: int = 14,
) -> AdxResult:
    """
    Calculate DI+/DI- and an ADX approximation.

    True range and directional movement are summed over the first `period`
    steps and then decayed with smoothed = smoothed - smoothed / period + new.
    DI = smoothed DM / smoothed TR * 100 and DX = |DI+ - DI-| / (DI+ + DI-) * 100.

    Note: the returned ADX is the current DX, not a Wilder-smoothed average
    of DX. This is a deliberate simplification.
    """
    n = len(closes)
    if n < period + 1:
        return AdxResult(ADX_DEFAULT, DI_DEFAULT, DI_DEFAULT)

    h = _as_array(highs)
    l = _as_array(lows)

    tr = true_range(highs, lows, closes)[1:]
    up_move = h[1:] - h[:-1]
    down_move = l[:-1] - l[1:]
    dm_plus = np.where((up_move > down_move) & (up_move > 0), up_move, 0.0)
    dm_minus = np.where((down_move > up_move) & (down_move > 0), down_move, 0.0)

    smoothed_tr = float(np.sum(tr[:period]))
    smoothed_plus = float(np.sum(dm_plus[:period]))
    smoothed_minus = float(np.sum(dm_minus[:period]))

    for i in range(period, tr.size):
        smoothed_tr = smoothed_tr - smoothed_tr / period + tr[i]
        smoothed_plus = smoothed_plus - smoothed_plus / period + dm_plus[i]
        smoothed_minus = smoothed_minus - smoothed_minus / period + dm_minus[i]

    if smoothed_tr == 0:
        return AdxResult(0.0, 0.0, 0.0)

    di_plus = smoothed_plus / smoothed_tr * 100
    di_minus = smoothed_minus / smoothed_tr * 100
    di_sum = di_plus + di_minus
    dx = abs(di_plus - di_minus) / di_sum * 100 if di_sum != 0 else 0.0
    return AdxResult(dx, di_plus, di_minus)


def bollinger_bands(
    closes: Sequence[float],
    period: int = 20,
    std_mult: float = 2.0,
) -> BollingerResult:
    """
    Calculate Bollinger Bands for the last `period` closes.

    middle = SMA(period); band width = population std dev * std_mult;
    position = clamp((price - lower) / (upper - lower), 0, 1).
    A zero-variance window (upper == lower) gives position 0.5.
    """
    if len(closes) == 0:
        return BollingerResult(0.0, 0.0, 0.0, 0.0, BOLLINGER_NEUTRAL_POSITION)

    price = float(closes[-1])
    if len(closes) < period:
        return BollingerResult(price, price, price, 0.0, BOLLINGER_NEUTRAL_POSITION)

    window = _as_array(closes)[-period:]
    middle = float(np.mean(window))
    band = float(np.std(window)) * std_mult
    upper = middle + band
    lower = middle - band

    if upper == lower:
        position = BOLLINGER_NEUTRAL_POSITION
    else:
        position = min(1.0, max(0.0, (price - lower) / (upper - lower)))

    width = (upper - lower) / middle * 100 if middle != 0 else 0.0
    return BollingerResult(upper, middle, lower, width, position)


# =============================================================================
# Volume
# =============================================================================

def vwap(
    highs: Sequence[float],
    lows: Sequence[float],
    closes: Sequence[float],
    volumes: Sequence[float],
) -> float:
    """
    Calculate Volume Weighted Average Price over the whole window.

    VWAP = sum(typical_price * volume) / sum(volume), with
    typical_price = (high + low + close) / 3.
    """
    if len(closes) == 0:
        return 0.0

    vol = _as_array(volumes)
    total_volume = float(np.sum(vol))
    if total_volume <= 0:
        return float(closes[-1])

    typical = (_as_array(highs) + _as_array(lows) + _as_array(closes)) / 3
    return float(np.sum(typical * vol) / total_volume)


def volume_ratio(volumes: Sequence[float], period: int = 20) -> float:
    """Current volume relative to the trailing `period` average."""
    if len(volumes) < period:
        return 1.0
    avg = float(np.mean(_as_array(volumes)[-period:]))
    if avg <= 0:
        return 1.0
    return float(volumes[-1]) / avg
