"""Indicator reading models and the indicator tag set."""

from dataclasses import dataclass, field
from enum import Enum


class IndicatorKind(str, Enum):
    """Indicators known to the engine. Also the keys of the weight vector."""

    RSI = "RSI"
    EMA = "EMA"
    MACD = "MACD"
    ADX = "ADX"
    BOLLINGER = "BOLLINGER"
    VWAP = "VWAP"


class IndicatorCategory(str, Enum):
    """Coarse indicator families used for regime multipliers."""

    TREND = "trend"
    MOMENTUM = "momentum"
    VOLATILITY = "volatility"
    VOLUME = "volume"


INDICATOR_CATEGORIES: dict[IndicatorKind, IndicatorCategory] = {
    IndicatorKind.EMA: IndicatorCategory.TREND,
    IndicatorKind.MACD: IndicatorCategory.TREND,
    IndicatorKind.ADX: IndicatorCategory.TREND,
    IndicatorKind.RSI: IndicatorCategory.MOMENTUM,
    IndicatorKind.BOLLINGER: IndicatorCategory.VOLATILITY,
    IndicatorKind.VWAP: IndicatorCategory.VOLUME,
}


class IndicatorSignal(str, Enum):
    BUY = "BUY"
    SELL = "SELL"
    NEUTRAL = "NEUTRAL"
    OVERBOUGHT = "OVERBOUGHT"
    OVERSOLD = "OVERSOLD"

    @property
    def bias(self) -> int:
        """Directional vote: +1 bullish, -1 bearish, 0 none.

        Oscillator extremes are read as mean reversion: OVERSOLD votes
        bullish, OVERBOUGHT votes bearish.
        """
        if self in (IndicatorSignal.BUY, IndicatorSignal.OVERSOLD):
            return 1
        if self in (IndicatorSignal.SELL, IndicatorSignal.OVERBOUGHT):
            return -1
        return 0


class SignalStrength(str, Enum):
    WEAK = "WEAK"
    MODERATE = "MODERATE"
    STRONG = "STRONG"

    @property
    def factor(self) -> float:
        """Magnitude used when fusing readings."""
        return _STRENGTH_FACTORS[self]


_STRENGTH_FACTORS = {
    SignalStrength.WEAK: 0.4,
    SignalStrength.MODERATE: 0.7,
    SignalStrength.STRONG: 1.0,
}


@dataclass(slots=True, frozen=True)
class IndicatorReading:
    """One indicator's output for the latest bar.

    Produced fresh each cycle; never persisted.
    """

    kind: IndicatorKind
    value: float
    signal: IndicatorSignal
    strength: SignalStrength
    metadata: dict = field(default_factory=dict)

    @property
    def name(self) -> str:
        return self.kind.value

    @property
    def category(self) -> IndicatorCategory:
        return INDICATOR_CATEGORIES[self.kind]

    @property
    def bias(self) -> int:
        return self.signal.bias

    @property
    def magnitude(self) -> float:
        """Signed vote scaled by strength, in [-1, 1]."""
        return self.signal.bias * self.strength.factor

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "value": self.value,
            "signal": self.signal.value,
            "strength": self.strength.value,
            **({"metadata": dict(self.metadata)} if self.metadata else {}),
        }
