"""Market regime detector.

Classifies the reference price series into one of five regimes from
multi-period returns and ATR-normalized volatility:

1. volatility above the high threshold -> HIGH_VOLATILITY
2. volatility below the low threshold -> LOW_VOLATILITY
3. consistent, large enough mean return -> BULL_TREND / BEAR_TREND
4. otherwise -> SIDEWAYS

The detector holds no state; caching across its TTL is done by the
service layer.
"""

from __future__ import annotations

import logging
from typing import Sequence

import numpy as np

from core.indicators.indicators import atr
from core.models.config import RegimeConfig
from core.models.price import PriceWindow
from core.models.regime import MarketRegime, RegimeType

logger = logging.getLogger(__name__)

MAX_CONFIDENCE = 95.0


def default_regime(config: RegimeConfig | None = None, computed_at: float = 0.0,
                   reason: str = "not enough history for regime detection") -> MarketRegime:
    """SIDEWAYS regime at the default confidence, used when nothing better is known."""
    config = config or RegimeConfig()
    return MarketRegime(
        type=RegimeType.SIDEWAYS,
        confidence=config.default_confidence,
        regime_multipliers=dict(config.multipliers[RegimeType.SIDEWAYS]),
        reasoning=[reason],
        computed_at=computed_at,
    )


class RegimeDetector:
    """Classify market regime from a reference price window."""

    def __init__(self, config: RegimeConfig | None = None):
        self.config = config or RegimeConfig()

    def period_returns(self, closes: Sequence[float]) -> dict[int, float]:
        """Percent return over each configured lookback that fits in the window."""
        returns: dict[int, float] = {}
        last = closes[-1] if closes else 0.0
        for period in self.config.return_periods:
            if len(closes) <= period:
                continue
            base = closes[-1 - period]
            if base <= 0:
                continue
            returns[period] = (last - base) / base * 100
        return returns

    @staticmethod
    def trend_consistency(returns: Sequence[float]) -> float:
        """Fraction of returns whose sign agrees with the sign of their mean."""
        if not returns:
            return 0.0
        dominant = np.sign(np.mean(returns))
        if dominant == 0:
            return 0.0
        agree = sum(1 for r in returns if np.sign(r) == dominant)
        return agree / len(returns)

    def volatility(self, window: PriceWindow) -> float | None:
        """ATR as a percent of the last close, None when the window is too short."""
        if len(window) < self.config.atr_period:
            return None
        price = window.last_close
        if not price:
            return None
        value = atr(window.highs(), window.lows(), window.closes(), self.config.atr_period)
        return value / price * 100

    def detect(self, window: PriceWindow, computed_at: float = 0.0) -> MarketRegime:
        """Classify the regime of a price window.

        Args:
            window: Reference price window, oldest first
            computed_at: Unix timestamp recorded on the result

        Returns:
            MarketRegime; the default SIDEWAYS regime when fewer than
            `min_periods` lookbacks fit in the window
        """
        cfg = self.config
        closes = window.closes()
        returns = self.period_returns(closes)

        if len(returns) < cfg.min_periods:
            return default_regime(cfg, computed_at)

        values = list(returns.values())
        mean_return = float(np.mean(values))
        consistency = self.trend_consistency(values)
        volatility = self.volatility(window)

        reasoning = [
            "returns " + ", ".join(f"{p}b {r:+.2f}%" for p, r in returns.items()),
            f"trend consistency {consistency:.2f}, mean return {mean_return:+.2f}%",
        ]
        if volatility is not None:
            reasoning.append(f"volatility {volatility:.2f}% (ATR/price)")

        regime_type, confidence = self._classify(mean_return, consistency, volatility)
        reasoning.append(f"classified {regime_type.value} at {confidence:.0f}% confidence")

        return MarketRegime(
            type=regime_type,
            confidence=confidence,
            trend_strength=abs(mean_return),
            volatility_level=volatility or 0.0,
            trend_consistency=consistency,
            regime_multipliers=dict(cfg.multipliers[regime_type]),
            reasoning=reasoning,
            computed_at=computed_at,
        )

    def _classify(
        self,
        mean_return: float,
        consistency: float,
        volatility: float | None,
    ) -> tuple[RegimeType, float]:
        cfg = self.config
        magnitude = abs(mean_return)

        if volatility is not None:
            if volatility > cfg.high_volatility_pct:
                confidence = 50 + (volatility / cfg.high_volatility_pct - 1) * 50
                return RegimeType.HIGH_VOLATILITY, min(MAX_CONFIDENCE, confidence)
            if volatility < cfg.low_volatility_pct:
                confidence = 50 + (1 - volatility / cfg.low_volatility_pct) * 45
                return RegimeType.LOW_VOLATILITY, min(MAX_CONFIDENCE, confidence)

        if (
            consistency >= cfg.trend_consistency_threshold
            and magnitude >= cfg.trend_threshold_pct
        ):
            regime_type = RegimeType.BULL_TREND if mean_return > 0 else RegimeType.BEAR_TREND
            confidence = (
                30
                + 40 * consistency
                + 25 * min(1.0, magnitude / (3 * cfg.trend_threshold_pct))
            )
            return regime_type, min(MAX_CONFIDENCE, confidence)

        confidence = 30 + 40 * (1 - min(1.0, magnitude / cfg.trend_threshold_pct))
        return RegimeType.SIDEWAYS, min(MAX_CONFIDENCE, confidence)
