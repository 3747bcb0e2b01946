"""Market regime model."""

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from core.models.indicator import IndicatorCategory


class RegimeType(str, Enum):
    """Coarse classification of current price action."""

    BULL_TREND = "BULL_TREND"
    BEAR_TREND = "BEAR_TREND"
    SIDEWAYS = "SIDEWAYS"
    HIGH_VOLATILITY = "HIGH_VOLATILITY"
    LOW_VOLATILITY = "LOW_VOLATILITY"


class MarketRegime(BaseModel):
    """Detected regime for one symbol.

    Recomputed on its own TTL, independent of the signal cadence, and served
    from cache in between.
    """

    model_config = ConfigDict(frozen=True)

    type: RegimeType
    confidence: float = Field(ge=0, le=100)
    trend_strength: float = 0.0  # |mean multi-period return|, percent
    volatility_level: float = 0.0  # ATR / price, percent
    trend_consistency: float = 0.0  # fraction of periods agreeing with dominant sign
    regime_multipliers: dict[IndicatorCategory, float] = Field(default_factory=dict)
    reasoning: list[str] = Field(default_factory=list)
    computed_at: float = 0.0  # Unix timestamp

    @property
    def bias(self) -> int:
        """Direction the regime favors: +1 bull, -1 bear, 0 none."""
        if self.type == RegimeType.BULL_TREND:
            return 1
        if self.type == RegimeType.BEAR_TREND:
            return -1
        return 0

    def multiplier_for(self, category: IndicatorCategory) -> float:
        return self.regime_multipliers.get(category, 1.0)
