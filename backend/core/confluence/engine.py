"""Confluence analysis engine.

Fuses five signed sub-scores in [-1, 1] (positive = bullish) into one
raw score:

    raw = 100 * sum(component_weight * sub_score)

| component             | weight | source                                   |
|-----------------------|--------|------------------------------------------|
| indicator_consensus   | 0.35   | readings weighted by the weight vector   |
| pattern_strength      | 0.25   | external pattern signals                 |
| volume_confirmation   | 0.20   | VWAP side scaled by relative volume      |
| regime_alignment      | 0.12   | regime bias, or a penalty when volatile  |
| historical_accuracy   | 0.08   | success rates of the agreeing indicators |

The first three components decide a candidate direction, which the last
two are measured against. The engine is deterministic: the same readings,
weights, regime, patterns and success rates always give the same result.
"""

from __future__ import annotations

import logging
from typing import Mapping, Sequence

import numpy as np

from core.models.config import ConfluenceConfig
from core.models.indicator import IndicatorKind, IndicatorReading
from core.models.pattern import PatternSignal
from core.models.regime import MarketRegime, RegimeType
from core.models.signal import ConfluenceResult, Direction

logger = logging.getLogger(__name__)

NEUTRAL_SUCCESS_RATE = 0.5


def volume_factor(ratio: float) -> float:
    """How much relative volume confirms the VWAP side."""
    if ratio > 1.5:
        return 1.0
    if ratio > 1.2:
        return 0.8
    if ratio > 1.0:
        return 0.6
    return 0.3


def _side(score: float) -> str:
    if score > 0:
        return "bullish"
    if score < 0:
        return "bearish"
    return "flat"


class ConfluenceEngine:
    """Score indicator readings and external inputs into a directional result."""

    def __init__(self, config: ConfluenceConfig | None = None):
        self.config = config or ConfluenceConfig()

    # ------------------------------------------------------------------
    # Components
    # ------------------------------------------------------------------

    @staticmethod
    def indicator_consensus(
        readings: Mapping[IndicatorKind, IndicatorReading],
        weights: Mapping[IndicatorKind, float],
        regime: MarketRegime | None = None,
    ) -> float:
        """Weighted mean of reading magnitudes, scaled by regime category multipliers."""
        numerator = 0.0
        denominator = 0.0
        for kind in IndicatorKind:
            reading = readings.get(kind)
            if reading is None:
                continue
            weight = weights.get(kind, 0.0)
            if regime is not None:
                weight *= regime.multiplier_for(reading.category)
            numerator += weight * reading.magnitude
            denominator += weight
        if denominator <= 0:
            return 0.0
        return numerator / denominator

    @staticmethod
    def pattern_strength(patterns: Sequence[PatternSignal]) -> float:
        if not patterns:
            return 0.0
        return float(np.mean([p.score for p in patterns]))

    @staticmethod
    def volume_confirmation(readings: Mapping[IndicatorKind, IndicatorReading]) -> float:
        """VWAP side scaled by relative volume.

        On accumulated history each candle holds the rolling 24h volume, so
        the ratio hovers near 1 and this component mostly carries the
        0.3 floor of `volume_factor`. Surges register only when the 24h
        figure itself jumps.
        """
        reading = readings.get(IndicatorKind.VWAP)
        if reading is None or reading.bias == 0:
            return 0.0
        ratio = reading.metadata.get("volume_ratio", 1.0)
        return reading.bias * volume_factor(ratio)

    def regime_alignment(self, regime: MarketRegime | None, candidate: Direction) -> float:
        if regime is None:
            return 0.0
        if regime.bias != 0:
            return regime.bias * regime.confidence / 100
        if regime.type == RegimeType.HIGH_VOLATILITY:
            return -candidate.value * self.config.high_volatility_penalty
        return 0.0

    @staticmethod
    def historical_accuracy(
        readings: Mapping[IndicatorKind, IndicatorReading],
        success_rates: Mapping[IndicatorKind, float],
        candidate: Direction,
    ) -> float:
        """Signed edge of the indicators voting with the candidate direction."""
        if candidate == Direction.NEUTRAL:
            return 0.0
        rates = [
            success_rates.get(kind, NEUTRAL_SUCCESS_RATE)
            for kind in IndicatorKind
            if kind in readings and readings[kind].bias == candidate.value
        ]
        if not rates:
            return 0.0
        return candidate.value * (float(np.mean(rates)) - NEUTRAL_SUCCESS_RATE) * 2

    # ------------------------------------------------------------------
    # Fusion
    # ------------------------------------------------------------------

    def direction_for(self, raw_score: float) -> Direction:
        if raw_score > self.config.direction_threshold:
            return Direction.LONG
        if raw_score < -self.config.direction_threshold:
            return Direction.SHORT
        return Direction.NEUTRAL

    def confidence_for(self, direction: Direction, raw_score: float) -> float:
        """Aligned confidence: grows with |raw| in the chosen direction."""
        cfg = self.config
        if direction == Direction.NEUTRAL:
            return cfg.confidence_base
        return min(cfg.confidence_ceiling, max(cfg.confidence_floor, cfg.confidence_base + abs(raw_score)))

    def analyze(
        self,
        readings: Mapping[IndicatorKind, IndicatorReading],
        weights: Mapping[IndicatorKind, float],
        regime: MarketRegime | None = None,
        patterns: Sequence[PatternSignal] = (),
        success_rates: Mapping[IndicatorKind, float] | None = None,
    ) -> ConfluenceResult:
        """Fuse all components into one ConfluenceResult.

        Args:
            readings: Indicator readings for the latest bar
            weights: Weight vector snapshot
            regime: Detected regime, None when unknown
            patterns: External pattern signals, possibly empty
            success_rates: Per-indicator success rates from the weight manager

        Returns:
            ConfluenceResult with direction, raw score, confidence,
            per-component breakdown and reasoning
        """
        cfg = self.config
        success_rates = success_rates or {}

        consensus = self.indicator_consensus(readings, weights, regime)
        pattern = self.pattern_strength(patterns)
        volume = self.volume_confirmation(readings)

        candidate = Direction.from_sign(
            cfg.indicator_consensus_weight * consensus
            + cfg.pattern_strength_weight * pattern
            + cfg.volume_confirmation_weight * volume
        )
        regime_score = self.regime_alignment(regime, candidate)
        history = self.historical_accuracy(readings, success_rates, candidate)

        breakdown = {
            "indicator_consensus": consensus,
            "pattern_strength": pattern,
            "volume_confirmation": volume,
            "regime_alignment": regime_score,
            "historical_accuracy": history,
        }
        raw_score = 100 * sum(
            cfg.component_weights[name] * score for name, score in breakdown.items()
        )
        direction = self.direction_for(raw_score)
        confidence = self.confidence_for(direction, raw_score)

        reasoning = self._reasoning(breakdown, readings, patterns, regime, success_rates)
        reasoning.append(
            f"raw score {raw_score:+.1f} -> {direction.name} at {confidence:.0f}% confidence"
        )

        return ConfluenceResult(
            direction=direction,
            raw_score=raw_score,
            confidence=confidence,
            component_breakdown=breakdown,
            reasoning=reasoning,
            candidate_direction=candidate,
            indicator_contributions={
                kind: readings[kind].magnitude for kind in IndicatorKind if kind in readings
            },
        )

    def _reasoning(
        self,
        breakdown: Mapping[str, float],
        readings: Mapping[IndicatorKind, IndicatorReading],
        patterns: Sequence[PatternSignal],
        regime: MarketRegime | None,
        success_rates: Mapping[IndicatorKind, float],
    ) -> list[str]:
        threshold = self.config.material_threshold
        lines: list[str] = []

        score = breakdown["indicator_consensus"]
        if abs(score) >= threshold:
            votes = ", ".join(
                f"{r.name} {r.signal.value} {r.strength.value}"
                for kind in IndicatorKind
                if (r := readings.get(kind)) is not None and r.bias != 0
            )
            lines.append(f"indicator consensus {_side(score)} ({score:+.2f}): {votes}")

        score = breakdown["pattern_strength"]
        if abs(score) >= threshold:
            names = ", ".join(f"{p.type} {p.direction.name} {p.confidence:.0f}%" for p in patterns)
            lines.append(f"patterns {_side(score)} ({score:+.2f}): {names}")

        score = breakdown["volume_confirmation"]
        if abs(score) >= threshold:
            vwap = readings[IndicatorKind.VWAP]
            ratio = vwap.metadata.get("volume_ratio", 1.0)
            lines.append(
                f"price {'above' if vwap.bias > 0 else 'below'} VWAP {vwap.value:.6g} "
                f"on {ratio:.2f}x volume ({score:+.2f})"
            )

        score = breakdown["regime_alignment"]
        if abs(score) >= threshold and regime is not None:
            if regime.type == RegimeType.HIGH_VOLATILITY:
                lines.append(f"high volatility regime penalty ({score:+.2f})")
            else:
                lines.append(
                    f"{regime.type.value} regime at {regime.confidence:.0f}% favors "
                    f"{_side(score)} ({score:+.2f})"
                )

        score = breakdown["historical_accuracy"]
        if abs(score) >= threshold:
            rated = ", ".join(
                f"{kind.value} {rate:.0%}" for kind, rate in sorted(success_rates.items())
            )
            lines.append(f"historical accuracy {_side(score)} ({score:+.2f}): {rated}")

        return lines
