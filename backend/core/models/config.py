"""Algorithm tuning models.

Defaults are the production values; every threshold the pipeline compares
against lives here rather than as a literal at the call site.
"""

from __future__ import annotations

from pydantic import BaseModel, Field, model_validator

from core.models.indicator import IndicatorCategory, IndicatorKind
from core.models.regime import RegimeType


class IndicatorConfig(BaseModel):
    """Indicator periods."""

    rsi_period: int = Field(default=14, ge=2)
    ema_period: int = Field(default=21, ge=2)
    macd_fast: int = Field(default=12, ge=2)
    macd_slow: int = Field(default=26, ge=3)
    macd_signal: int = Field(default=9, ge=2)
    adx_period: int = Field(default=14, ge=2)
    bollinger_period: int = Field(default=20, ge=2)
    bollinger_std_mult: float = Field(default=2.0, gt=0)
    volume_period: int = Field(default=20, ge=2)

    @model_validator(mode="after")
    def _validate(self):
        if self.macd_fast >= self.macd_slow:
            raise ValueError(
                f"macd_fast ({self.macd_fast}) must be below macd_slow ({self.macd_slow})"
            )
        return self

    @property
    def max_period(self) -> int:
        """Points needed for every indicator to leave its neutral default."""
        return max(
            self.rsi_period + 1,
            self.ema_period,
            self.macd_slow,
            self.adx_period + 1,
            self.bollinger_period,
            self.volume_period,
        )


# Category multipliers per regime: trend indicators up in trends,
# oscillators up when ranging, band indicators up when volatile.
DEFAULT_REGIME_MULTIPLIERS: dict[RegimeType, dict[IndicatorCategory, float]] = {
    RegimeType.BULL_TREND: {
        IndicatorCategory.TREND: 1.2,
        IndicatorCategory.MOMENTUM: 0.85,
        IndicatorCategory.VOLATILITY: 1.0,
        IndicatorCategory.VOLUME: 1.1,
    },
    RegimeType.BEAR_TREND: {
        IndicatorCategory.TREND: 1.2,
        IndicatorCategory.MOMENTUM: 0.85,
        IndicatorCategory.VOLATILITY: 1.1,
        IndicatorCategory.VOLUME: 1.1,
    },
    RegimeType.SIDEWAYS: {
        IndicatorCategory.TREND: 0.8,
        IndicatorCategory.MOMENTUM: 1.3,
        IndicatorCategory.VOLATILITY: 1.2,
        IndicatorCategory.VOLUME: 1.0,
    },
    RegimeType.HIGH_VOLATILITY: {
        IndicatorCategory.TREND: 0.9,
        IndicatorCategory.MOMENTUM: 1.1,
        IndicatorCategory.VOLATILITY: 1.4,
        IndicatorCategory.VOLUME: 1.2,
    },
    RegimeType.LOW_VOLATILITY: {
        IndicatorCategory.TREND: 1.1,
        IndicatorCategory.MOMENTUM: 0.9,
        IndicatorCategory.VOLATILITY: 0.8,
        IndicatorCategory.VOLUME: 1.0,
    },
}


class RegimeConfig(BaseModel):
    """Regime classification thresholds.

    Return periods are in bars of the reference series. On 1h candles the
    defaults cover 1h / 4h / 24h / 7d.
    """

    return_periods: list[int] = [1, 4, 24, 168]
    min_periods: int = 2
    atr_period: int = 14
    high_volatility_pct: float = 4.0  # ATR / price, percent
    low_volatility_pct: float = 0.15
    trend_threshold_pct: float = 1.0  # |mean return| needed for a trend
    trend_consistency_threshold: float = 0.75
    default_confidence: float = 30.0
    multipliers: dict[RegimeType, dict[IndicatorCategory, float]] = Field(
        default_factory=lambda: {k: dict(v) for k, v in DEFAULT_REGIME_MULTIPLIERS.items()}
    )

    @model_validator(mode="after")
    def _validate(self):
        if self.low_volatility_pct >= self.high_volatility_pct:
            raise ValueError("low_volatility_pct must be below high_volatility_pct")
        if not self.return_periods or any(p < 1 for p in self.return_periods):
            raise ValueError("return_periods must be positive bar counts")
        return self


DEFAULT_PRIOR_WEIGHTS: dict[IndicatorKind, float] = {
    IndicatorKind.MACD: 0.24,
    IndicatorKind.EMA: 0.22,
    IndicatorKind.ADX: 0.18,
    IndicatorKind.RSI: 0.16,
    IndicatorKind.BOLLINGER: 0.12,
    IndicatorKind.VWAP: 0.08,
}


class WeightConfig(BaseModel):
    """Adaptive weight manager parameters."""

    priors: dict[IndicatorKind, float] = Field(
        default_factory=lambda: dict(DEFAULT_PRIOR_WEIGHTS)
    )
    min_weight: float = 0.02
    max_weight: float = 0.35
    learning_rate: float = 0.10
    lookback: int = 100  # resolved records kept per symbol
    min_records: int = 20
    contribution_threshold: float = 0.1

    @model_validator(mode="after")
    def _validate(self):
        n = len(self.priors)
        if n == 0:
            raise ValueError("priors must name at least one indicator")
        if not (0 <= self.min_weight < self.max_weight <= 1):
            raise ValueError("need 0 <= min_weight < max_weight <= 1")
        if n * self.min_weight > 1 or n * self.max_weight < 1:
            raise ValueError(
                f"bounds [{self.min_weight}, {self.max_weight}] cannot hold "
                f"{n} weights summing to 1"
            )
        if any(w < 0 for w in self.priors.values()):
            raise ValueError("prior weights must be non-negative")
        return self


class ConfluenceConfig(BaseModel):
    """Confluence component weights and direction/confidence rules."""

    indicator_consensus_weight: float = 0.35
    pattern_strength_weight: float = 0.25
    volume_confirmation_weight: float = 0.20
    regime_alignment_weight: float = 0.12
    historical_accuracy_weight: float = 0.08

    direction_threshold: float = 10.0  # |raw score| needed for LONG/SHORT
    confidence_floor: float = 25.0
    confidence_ceiling: float = 95.0
    confidence_base: float = 50.0

    # Minimum |sub-score| for a component to earn a reasoning line
    material_threshold: float = 0.05
    high_volatility_penalty: float = 0.3

    @model_validator(mode="after")
    def _validate(self):
        total = sum(self.component_weights.values())
        if abs(total - 1.0) > 1e-6:
            raise ValueError(f"confluence component weights must sum to 1, got {total}")
        if not (0 <= self.confidence_floor <= self.confidence_base <= self.confidence_ceiling <= 100):
            raise ValueError("need 0 <= floor <= base <= ceiling <= 100")
        return self

    @property
    def component_weights(self) -> dict[str, float]:
        return {
            "indicator_consensus": self.indicator_consensus_weight,
            "pattern_strength": self.pattern_strength_weight,
            "volume_confirmation": self.volume_confirmation_weight,
            "regime_alignment": self.regime_alignment_weight,
            "historical_accuracy": self.historical_accuracy_weight,
        }


DEFAULT_TIMEFRAME_RISK_MULTIPLIERS: dict[str, float] = {
    "1m": 0.6,
    "5m": 0.8,
    "15m": 1.0,
    "30m": 1.2,
    "1h": 1.4,
    "4h": 1.8,
    "1d": 2.2,
    "3d": 2.8,
    "1w": 3.5,
    "1M": 4.0,
}


class RiskConfig(BaseModel):
    """Entry/exit derivation.

    stop_pct = max(stop_floor_pct, |change24h| * risk_factor) * timeframe multiplier,
    capped at max_stop_pct; target_pct = stop_pct * risk_reward_ratio.
    """

    stop_floor_pct: float = Field(default=0.015, gt=0)
    risk_factor: float = Field(default=0.002, ge=0)  # per percent of 24h change
    risk_reward_ratio: float = Field(default=2.0, gt=0)
    max_stop_pct: float = Field(default=0.25, gt=0, lt=1)
    timeframe_multipliers: dict[str, float] = Field(
        default_factory=lambda: dict(DEFAULT_TIMEFRAME_RISK_MULTIPLIERS)
    )

    @model_validator(mode="after")
    def _validate(self):
        if self.max_stop_pct * self.risk_reward_ratio >= 1:
            raise ValueError(
                "max_stop_pct * risk_reward_ratio must stay below 1 "
                "so SHORT targets remain positive"
            )
        return self

    def timeframe_multiplier(self, timeframe: str) -> float:
        return self.timeframe_multipliers.get(timeframe, 1.0)
