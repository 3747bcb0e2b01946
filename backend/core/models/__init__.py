"""Domain models (pure data, no I/O)."""

from core.models.price import PricePoint, PriceQuote, PriceWindow
from core.models.indicator import (
    INDICATOR_CATEGORIES,
    IndicatorCategory,
    IndicatorKind,
    IndicatorReading,
    IndicatorSignal,
    SignalStrength,
)
from core.models.regime import MarketRegime, RegimeType
from core.models.signal import (
    ConfluenceResult,
    Direction,
    PerformanceOutcome,
    Signal,
    SignalPerformanceRecord,
)
from core.models.pattern import PatternSignal
from core.models.config import (
    ConfluenceConfig,
    IndicatorConfig,
    RegimeConfig,
    RiskConfig,
    WeightConfig,
)

__all__ = [
    "PricePoint",
    "PriceQuote",
    "PriceWindow",
    "INDICATOR_CATEGORIES",
    "IndicatorCategory",
    "IndicatorKind",
    "IndicatorReading",
    "IndicatorSignal",
    "SignalStrength",
    "MarketRegime",
    "RegimeType",
    "ConfluenceResult",
    "Direction",
    "PerformanceOutcome",
    "Signal",
    "SignalPerformanceRecord",
    "PatternSignal",
    "ConfluenceConfig",
    "IndicatorConfig",
    "RegimeConfig",
    "RiskConfig",
    "WeightConfig",
]
