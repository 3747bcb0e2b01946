"""Adaptive weight manager.

Owns the per-indicator weight vector used by the confluence engine.
Resolved performance records are kept in a bounded window per symbol
(FIFO, oldest dropped first). Each update derives a
success rate per indicator from the window and recomputes the vector:

    weight = prior + learning_rate * (success_rate - 0.5)
    weight *= regime category multiplier
    project onto {sum = 1, min_weight <= w <= max_weight}

The vector is published as a read-only mapping and swapped in one
assignment, so readers see either the old or the new vector.
"""

from __future__ import annotations

import logging
import threading
from collections import deque
from types import MappingProxyType
from typing import Iterable, Mapping

import numpy as np

from core.errors import WeightBoundsViolation
from core.models.config import WeightConfig
from core.models.indicator import INDICATOR_CATEGORIES, IndicatorKind
from core.models.regime import MarketRegime
from core.models.signal import PerformanceOutcome, SignalPerformanceRecord

logger = logging.getLogger(__name__)

_BISECT_ITERATIONS = 100
_SUM_TOLERANCE = 1e-9


def project_to_bounds(
    raw: Mapping[IndicatorKind, float],
    min_weight: float,
    max_weight: float,
) -> tuple[dict[IndicatorKind, float], bool]:
    """Normalize weights to sum to 1 with every weight inside the bounds.

    Clamps and redistributes: finds the common scale t at which
    sum(clip(raw * t, min_weight, max_weight)) == 1, so weights that hit
    a bound are pinned there and the rest share the remainder in
    proportion to their raw values.

    Scaling cannot lift zero weights off the floor, so when the scaled
    weights still miss a unit sum (too few nonzero entries to absorb it
    below max_weight) a common shift s is bisected instead:
    sum(clip(normalized + s, min_weight, max_weight)) == 1.

    Returns:
        Tuple of (weights, clamped) where clamped is True if any weight
        had to be pinned at a bound
    """
    keys = list(raw.keys())
    values = np.maximum(np.asarray([raw[k] for k in keys], dtype=np.float64), 0.0)
    total = float(values.sum())
    if total <= 0:
        uniform = 1.0 / len(keys)
        return {k: uniform for k in keys}, False

    normalized = values / total
    clamped = bool(np.any(normalized < min_weight) or np.any(normalized > max_weight))
    if not clamped:
        return {k: float(v) for k, v in zip(keys, normalized)}, False

    positive = normalized[normalized > 0]
    low, high = 0.0, max_weight / float(positive.min())
    for _ in range(_BISECT_ITERATIONS):
        mid = (low + high) / 2
        if np.clip(normalized * mid, min_weight, max_weight).sum() < 1.0:
            low = mid
        else:
            high = mid

    projected = np.clip(normalized * high, min_weight, max_weight)
    if abs(float(projected.sum()) - 1.0) > _SUM_TOLERANCE:
        low, high = -1.0, max_weight
        for _ in range(_BISECT_ITERATIONS):
            mid = (low + high) / 2
            if np.clip(normalized + mid, min_weight, max_weight).sum() < 1.0:
                low = mid
            else:
                high = mid
        projected = np.clip(normalized + high, min_weight, max_weight)
    return {k: float(v) for k, v in zip(keys, projected)}, True


class AdaptiveWeightManager:
    """Maintain the indicator weight vector from realized signal outcomes."""

    def __init__(self, config: WeightConfig | None = None):
        self.config = config or WeightConfig()
        self._lock = threading.Lock()
        self._records: dict[str, deque[SignalPerformanceRecord]] = {}
        self._success_rates: dict[IndicatorKind, float] = {}
        self._sample_counts: dict[IndicatorKind, int] = {}
        self._update_count = 0
        self._weights: Mapping[IndicatorKind, float] = self._initial_weights()

    def _initial_weights(self) -> Mapping[IndicatorKind, float]:
        weights, _ = project_to_bounds(
            self.config.priors, self.config.min_weight, self.config.max_weight
        )
        return MappingProxyType(weights)

    # ------------------------------------------------------------------
    # Read side
    # ------------------------------------------------------------------

    def get_current_weights(self) -> Mapping[IndicatorKind, float]:
        """Immutable snapshot of the current weight vector."""
        return self._weights

    def get_success_rates(self) -> dict[IndicatorKind, float]:
        """Success rate per indicator from the last update (only indicators with samples)."""
        return dict(self._success_rates)

    def get_record_count(self, symbol: str | None = None) -> int:
        """Resolved records currently held, for one symbol or all."""
        if symbol is not None:
            return len(self._records.get(symbol, ()))
        return sum(len(buf) for buf in self._records.values())

    def get_stats(self) -> dict:
        return {
            "weights": {k.value: v for k, v in self._weights.items()},
            "success_rates": {k.value: v for k, v in self._success_rates.items()},
            "sample_counts": {k.value: v for k, v in self._sample_counts.items()},
            "records": self.get_record_count(),
            "symbols": len(self._records),
            "updates": self._update_count,
            "adaptive": self.get_record_count() >= self.config.min_records,
        }

    # ------------------------------------------------------------------
    # Write side
    # ------------------------------------------------------------------

    def update_from_performance(
        self,
        records: Iterable[SignalPerformanceRecord],
        regime: MarketRegime | None = None,
    ) -> Mapping[IndicatorKind, float]:
        """Fold resolved records into the lookback window and recompute weights.

        PENDING records and records already held are ignored. Until
        `min_records` resolved records are held, the priors stay in force.

        Args:
            records: Performance records, any outcome
            regime: Regime whose category multipliers scale the result;
                None applies no multiplier

        Returns:
            The weight snapshot in force after the update
        """
        with self._lock:
            added = self._ingest(records)
            held = self.get_record_count()
            if held < self.config.min_records:
                logger.debug(
                    "Weight update deferred: %d/%d resolved records (%d new)",
                    held,
                    self.config.min_records,
                    added,
                )
                return self._weights

            rates, counts = self._compute_success_rates()
            raw = self._raw_weights(rates, regime)
            weights, clamped = project_to_bounds(
                raw, self.config.min_weight, self.config.max_weight
            )
            if clamped:
                violation = WeightBoundsViolation(
                    f"weights clamped into [{self.config.min_weight}, {self.config.max_weight}]"
                )
                logger.warning("%s: raw=%s", violation, {k.value: round(v, 4) for k, v in raw.items()})

            self._success_rates = rates
            self._sample_counts = counts
            self._update_count += 1
            self._weights = MappingProxyType(weights)

        logger.info(
            "Weights updated from %d records (%d new)%s: %s",
            held,
            added,
            f" under {regime.type.value}" if regime else "",
            {k.value: round(v, 4) for k, v in weights.items()},
        )
        return self._weights

    def reset(self) -> None:
        """Drop all records and restore the prior weights."""
        with self._lock:
            self._records.clear()
            self._success_rates = {}
            self._sample_counts = {}
            self._update_count = 0
            self._weights = self._initial_weights()

    def _ingest(self, records: Iterable[SignalPerformanceRecord]) -> int:
        added = 0
        for record in records:
            if not record.is_resolved:
                continue
            buf = self._records.get(record.symbol)
            if buf is None:
                buf = deque(maxlen=self.config.lookback)
                self._records[record.symbol] = buf
            if any(r.signal_id == record.signal_id for r in buf):
                continue
            buf.append(record)
            added += 1
        return added

    def _compute_success_rates(
        self,
    ) -> tuple[dict[IndicatorKind, float], dict[IndicatorKind, int]]:
        successes: dict[IndicatorKind, int] = {}
        counts: dict[IndicatorKind, int] = {}
        threshold = self.config.contribution_threshold

        for buf in self._records.values():
            for record in buf:
                won = record.outcome == PerformanceOutcome.SUCCESS
                for kind, contribution in record.indicator_context.items():
                    if contribution < threshold:
                        continue
                    counts[kind] = counts.get(kind, 0) + 1
                    if won:
                        successes[kind] = successes.get(kind, 0) + 1

        rates = {kind: successes.get(kind, 0) / n for kind, n in counts.items()}
        return rates, counts

    def _raw_weights(
        self,
        rates: Mapping[IndicatorKind, float],
        regime: MarketRegime | None,
    ) -> dict[IndicatorKind, float]:
        raw: dict[IndicatorKind, float] = {}
        for kind, prior in self.config.priors.items():
            weight = prior
            if kind in rates:
                weight += self.config.learning_rate * (rates[kind] - 0.5)
            if regime is not None:
                weight *= regime.multiplier_for(INDICATOR_CATEGORIES[kind])
            raw[kind] = max(weight, 0.0)
        return raw
