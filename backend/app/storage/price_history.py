"""Accumulated price history per (symbol, timeframe).

Every polled quote is folded into the candle of its timeframe period, so
windows fill with genuine observations over time. A pair becomes eligible
for signal generation once its window holds `min_points` candles.
"""

from __future__ import annotations

from core.history import fold_quote
from core.models import PriceQuote, PriceWindow


class PriceHistoryStore:
    """Bounded candle windows keyed by (symbol, timeframe)."""

    def __init__(self, min_points: int = 35, max_points: int = 200):
        if min_points > max_points:
            raise ValueError(f"min_points ({min_points}) exceeds max_points ({max_points})")
        self.min_points = min_points
        self.max_points = max_points
        self._windows: dict[tuple[str, str], PriceWindow] = {}

    def window(self, symbol: str, timeframe: str) -> PriceWindow:
        key = (symbol, timeframe)
        window = self._windows.get(key)
        if window is None:
            window = PriceWindow(symbol, timeframe, max_size=self.max_points)
            self._windows[key] = window
        return window

    def record(self, quote: PriceQuote, timeframes: list[str], timestamp: float) -> None:
        """Fold one quote into the windows of every timeframe."""
        for timeframe in timeframes:
            fold_quote(self.window(quote.symbol, timeframe), quote, timestamp)

    def is_ready(self, symbol: str, timeframe: str) -> bool:
        return self.count(symbol, timeframe) >= self.min_points

    def count(self, symbol: str, timeframe: str) -> int:
        window = self._windows.get((symbol, timeframe))
        return 0 if window is None else len(window)

    def get_stats(self) -> dict:
        ready = sum(1 for w in self._windows.values() if len(w) >= self.min_points)
        return {"windows": len(self._windows), "ready": ready, "min_points": self.min_points}
