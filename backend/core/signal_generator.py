"""Signal generator: one price window in, one Signal out.

This module is pure business logic with no I/O dependencies. Regime,
weights, patterns and success rates are passed in by the caller, so the
same inputs always produce the same Signal (including its id, which is
derived from the caller's `as_of` timestamp).
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Mapping, Sequence

from core.confluence import ConfluenceEngine
from core.indicators.registry import compute_readings
from core.levels import compute_levels
from core.models import (
    ConfluenceConfig,
    ConfluenceResult,
    Direction,
    IndicatorConfig,
    IndicatorKind,
    IndicatorReading,
    MarketRegime,
    PatternSignal,
    PriceQuote,
    PriceWindow,
    RiskConfig,
    Signal,
)

logger = logging.getLogger(__name__)

INSUFFICIENT_HISTORY_REASON = "insufficient history"
SYNTHETIC_HISTORY_REASON = (
    "synthetic history: window approximated from the current quote, not real candles"
)


@dataclass
class SignalInputs:
    """Everything besides the price window that a signal depends on."""

    quote: PriceQuote
    weights: Mapping[IndicatorKind, float]
    regime: MarketRegime | None = None
    patterns: Sequence[PatternSignal] = ()
    success_rates: Mapping[IndicatorKind, float] = field(default_factory=dict)


class SignalGenerator:
    """Compute a Signal from a price window and the shared inputs."""

    def __init__(
        self,
        indicator_config: IndicatorConfig | None = None,
        confluence_config: ConfluenceConfig | None = None,
        risk_config: RiskConfig | None = None,
    ):
        self.indicator_config = indicator_config or IndicatorConfig()
        self.risk_config = risk_config or RiskConfig()
        self.engine = ConfluenceEngine(confluence_config)

    def readings(self, window: PriceWindow) -> dict[IndicatorKind, IndicatorReading]:
        return compute_readings(window, self.indicator_config)

    def generate(
        self,
        window: PriceWindow,
        inputs: SignalInputs,
        as_of: datetime,
    ) -> Signal:
        """
        Run indicators and confluence over the window and build the Signal.

        Args:
            window: Price window for (symbol, timeframe), oldest first
            inputs: Quote, weight snapshot, regime, patterns, success rates
            as_of: Timestamp of the calculation pass

        Returns:
            Signal with entry at the quote price and levels for LONG/SHORT
        """
        readings = self.readings(window)
        result = self.engine.analyze(
            readings,
            inputs.weights,
            regime=inputs.regime,
            patterns=inputs.patterns,
            success_rates=inputs.success_rates,
        )
        return self.build_signal(window, inputs, readings, result, as_of)

    def build_signal(
        self,
        window: PriceWindow,
        inputs: SignalInputs,
        readings: Mapping[IndicatorKind, IndicatorReading],
        result: ConfluenceResult,
        as_of: datetime,
    ) -> Signal:
        entry = inputs.quote.price
        stop_loss, take_profit = compute_levels(
            result.direction,
            entry,
            inputs.quote.change24h,
            window.timeframe,
            self.risk_config,
        )

        reasoning = list(result.reasoning)
        if window.synthetic:
            reasoning.append(SYNTHETIC_HISTORY_REASON)

        return Signal(
            symbol=window.symbol,
            timeframe=window.timeframe,
            direction=result.direction,
            confidence=result.confidence,
            entry_price=entry,
            stop_loss=stop_loss,
            take_profit=take_profit,
            timestamp=as_of,
            raw_score=result.raw_score,
            regime=inputs.regime.type if inputs.regime else None,
            synthetic_history=window.synthetic,
            indicator_snapshot={kind.value: r.to_dict() for kind, r in readings.items()},
            indicator_contributions=dict(result.indicator_contributions),
            component_breakdown=dict(result.component_breakdown),
            reasoning=reasoning,
        )

    def neutral_signal(
        self,
        symbol: str,
        timeframe: str,
        quote: PriceQuote,
        as_of: datetime,
        reason: str = INSUFFICIENT_HISTORY_REASON,
        detail: str | None = None,
    ) -> Signal:
        """NEUTRAL placeholder signal at base confidence with no levels."""
        reasoning = [reason] if detail is None else [reason, detail]
        return Signal(
            symbol=symbol,
            timeframe=timeframe,
            direction=Direction.NEUTRAL,
            confidence=self.engine.config.confidence_base,
            entry_price=quote.price,
            timestamp=as_of,
            reasoning=reasoning,
        )
