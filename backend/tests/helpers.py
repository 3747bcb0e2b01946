"""Shared builders for tests."""

from datetime import datetime, timezone

from core.models import Direction, PricePoint, PriceQuote, PriceWindow, Signal

T0 = datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)


def make_window(
    closes,
    symbol="BTC/USDT",
    timeframe="1h",
    spread=0.5,
    volume=1000.0,
    start=1_700_000_000.0,
    step=3600.0,
):
    """Window with high/low at close +/- spread and constant volume."""
    window = PriceWindow(symbol, timeframe, max_size=max(200, len(closes)))
    for i, close in enumerate(closes):
        window.add(
            PricePoint(
                timestamp=start + i * step,
                open=close,
                high=close + spread,
                low=close - spread,
                close=close,
                volume=volume,
            )
        )
    return window


def rising_closes(n=30, start=100.0):
    return [start + i for i in range(n)]


def falling_closes(n=30, start=129.0):
    return [start - i for i in range(n)]


def quote(symbol="BTC/USDT", price=50000.0, change24h=2.5, volume24h=1_000_000.0):
    return PriceQuote(symbol=symbol, price=price, change24h=change24h, volume24h=volume24h)


def make_signal(direction=Direction.LONG, entry=100.0, sl=95.0, tp=110.0, **kwargs):
    """Signal with sensible defaults; keyword overrides go straight to the model."""
    fields = {
        "symbol": "BTC/USDT",
        "timeframe": "1h",
        "confidence": 70.0,
        "timestamp": T0,
        **kwargs,
    }
    return Signal(
        direction=direction,
        entry_price=entry,
        stop_loss=sl,
        take_profit=tp,
        **fields,
    )
