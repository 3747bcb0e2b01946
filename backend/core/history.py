"""Price history helpers: timeframe arithmetic, candle folding, synthesis.

Two ways to obtain a price window for a (symbol, timeframe):

- accumulated: each polled quote is folded into the candle for its
  timeframe period (period start aligned to the timeframe boundary)
- synthetic: a deterministic approximation built from the current quote
  alone. The close path drifts linearly from the implied 24h-ago price
  to the current price with a fixed sinusoidal wobble sized by |change24h|.
  There is no randomness; the same quote and timestamp always give the
  same window.
"""

import math

from core.models.price import PricePoint, PriceQuote, PriceWindow

# Timeframe to seconds mapping
TIMEFRAME_SECONDS = {
    "1m": 60,
    "3m": 180,
    "5m": 300,
    "15m": 900,
    "30m": 1800,
    "1h": 3600,
    "4h": 14400,
    "1d": 86400,
    "3d": 259200,
    "1w": 604800,
    "1M": 2592000,  # 30 days
}

_DAY_SECONDS = 86400
_WOBBLE_PERIOD = 9  # bars per wobble cycle
_WOBBLE_SHARE = 0.15  # wobble amplitude as a share of the 24h move
_MIN_SPREAD = 0.001  # high/low half-spread as a fraction of close


def timeframe_seconds(timeframe: str) -> int:
    """Length of one candle in seconds.

    Raises:
        ValueError: If the timeframe is unknown.
    """
    try:
        return TIMEFRAME_SECONDS[timeframe]
    except KeyError:
        raise ValueError(
            f"Unknown timeframe '{timeframe}'. Available: {', '.join(TIMEFRAME_SECONDS)}"
        ) from None


def period_start(timestamp: float, timeframe: str) -> float:
    """Start of the timeframe period containing the timestamp."""
    seconds = timeframe_seconds(timeframe)
    return float((int(timestamp) // seconds) * seconds)


def fold_quote(window: PriceWindow, quote: PriceQuote, timestamp: float) -> PricePoint:
    """Fold a quote into the candle of its period and return that candle.

    A quote in the current period updates high/low/close of the last
    candle; a quote in a new period opens a new candle. Quotes older than
    the last candle are ignored.

    Candle volume is the latest quote's rolling 24h volume, not volume
    traded within the period: a ticker provides nothing finer. Adjacent
    candles therefore carry near-equal volumes, and the VWAP volume ratio
    over an accumulated window stays close to 1.
    """
    start = period_start(timestamp, window.timeframe)
    last = window.points[-1] if window.points else None

    if last is not None and start < last.timestamp:
        return last

    if last is not None and start == last.timestamp:
        candle = PricePoint(
            timestamp=start,
            open=last.open,
            high=max(last.high, quote.price),
            low=min(last.low, quote.price),
            close=quote.price,
            volume=quote.volume24h,
        )
    else:
        candle = PricePoint(
            timestamp=start,
            open=quote.price,
            high=quote.price,
            low=quote.price,
            close=quote.price,
            volume=quote.volume24h,
        )

    window.add(candle)
    return candle


def synthesize_window(
    quote: PriceQuote,
    timeframe: str,
    as_of: float,
    points: int = 100,
    max_size: int = 200,
) -> PriceWindow:
    """
    Build a deterministic price window from a single quote.

    Args:
        quote: Current quote (price and 24h change)
        timeframe: Timeframe of the window
        as_of: Unix timestamp of the last candle's period
        points: Number of candles to generate
        max_size: Window capacity

    Returns:
        PriceWindow flagged synthetic, last close equal to quote.price
    """
    seconds = timeframe_seconds(timeframe)
    last_start = period_start(as_of, timeframe)

    price = quote.price
    change = quote.change24h / 100
    price_24h_ago = price / (1 + change) if change > -1 else price
    bars_per_day = _DAY_SECONDS / seconds
    drift = (price - price_24h_ago) / bars_per_day

    amplitude = abs(price - price_24h_ago) * _WOBBLE_SHARE
    spread = max(_MIN_SPREAD, abs(change) / 10)
    volume = quote.volume24h / bars_per_day if quote.volume24h > 0 else 0.0
    floor = price * 0.01

    window = PriceWindow(quote.symbol, timeframe, max_size=max_size, synthetic=True)
    prev_close = None
    for i in range(points):
        bars_back = points - 1 - i
        wobble = amplitude * math.sin(2 * math.pi * bars_back / _WOBBLE_PERIOD)
        close = max(floor, price - drift * bars_back + wobble)
        open_ = prev_close if prev_close is not None else close
        window.add(
            PricePoint(
                timestamp=last_start - bars_back * seconds,
                open=open_,
                high=max(open_, close) * (1 + spread),
                low=min(open_, close) * (1 - spread),
                close=close,
                volume=volume,
            )
        )
        prev_close = close
    return window
