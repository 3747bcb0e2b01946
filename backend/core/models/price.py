"""Price data models.

PricePoint is the hot-path candle type (dataclass, floats, Unix timestamps).
PriceWindow is the rolling, oldest-first sequence the indicators read.
"""

import math
from dataclasses import dataclass, field


@dataclass(slots=True, frozen=True)
class PricePoint:
    """One OHLCV candle.

    Uses float for all numeric values and Unix timestamp for time.
    """

    timestamp: float  # Unix timestamp in seconds (candle open)
    open: float
    high: float
    low: float
    close: float
    volume: float = 0.0


@dataclass(slots=True, frozen=True)
class PriceQuote:
    """Current price and derived fields for one symbol, as returned by a
    price data provider batch call."""

    symbol: str
    price: float
    change24h: float = 0.0  # percent
    market_cap: float = 0.0
    volume24h: float = 0.0

    @property
    def is_valid(self) -> bool:
        """A quote is usable when its price is a finite positive number."""
        return (
            isinstance(self.price, (int, float))
            and math.isfinite(self.price)
            and self.price > 0
            and math.isfinite(self.change24h)
        )


@dataclass
class PriceWindow:
    """Rolling window of candles for one symbol/timeframe, oldest first."""

    symbol: str
    timeframe: str
    points: list[PricePoint] = field(default_factory=list)
    max_size: int = 200
    synthetic: bool = False

    def add(self, point: PricePoint) -> None:
        """Append a candle, replacing the last one if it has the same timestamp."""
        if self.points and point.timestamp <= self.points[-1].timestamp:
            if point.timestamp == self.points[-1].timestamp:
                self.points[-1] = point
            return

        self.points.append(point)
        if len(self.points) > self.max_size:
            self.points = self.points[-self.max_size :]

    def closes(self) -> list[float]:
        return [p.close for p in self.points]

    def highs(self) -> list[float]:
        return [p.high for p in self.points]

    def lows(self) -> list[float]:
        return [p.low for p in self.points]

    def volumes(self) -> list[float]:
        return [p.volume for p in self.points]

    @property
    def last_close(self) -> float | None:
        if not self.points:
            return None
        return self.points[-1].close

    def __len__(self) -> int:
        return len(self.points)
