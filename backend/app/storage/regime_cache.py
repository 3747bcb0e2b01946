"""Market regime cache.

Holds the last detected regime per symbol with a TTL. When a refresh fails
the previous regime keeps being served past its TTL.
"""

from __future__ import annotations

import logging
from typing import Callable

from app.storage.cache import BoundedCache, Clock
from core.errors import RegimeStaleError
from core.models import MarketRegime, RegimeConfig
from core.regime import default_regime

logger = logging.getLogger(__name__)

DEFAULT_REGIME_TTL = 900  # 15 minutes


class RegimeCache:
    """Per-symbol regime with TTL and stale fallback."""

    def __init__(
        self,
        ttl_seconds: float = DEFAULT_REGIME_TTL,
        max_entries: int = 1000,
        config: RegimeConfig | None = None,
        clock: Clock | None = None,
    ):
        kwargs = {"clock": clock} if clock is not None else {}
        self._store: BoundedCache[str, MarketRegime] = BoundedCache(
            max_entries=max_entries, ttl_seconds=ttl_seconds, name="regimes", **kwargs
        )
        self.config = config or RegimeConfig()
        self._stale_serves = 0

    def get(self, symbol: str) -> MarketRegime | None:
        """Last known regime, fresh or stale."""
        entry = self._store.get_entry(symbol, allow_stale=True)
        return None if entry is None else entry.value

    def is_fresh(self, symbol: str) -> bool:
        return self._store.get_entry(symbol) is not None

    def set(self, symbol: str, regime: MarketRegime) -> None:
        previous = self.get(symbol)
        self._store.set(symbol, regime)
        if previous is None or previous.type != regime.type:
            logger.info(
                "Regime %s: %s -> %s (%.0f%%)",
                symbol,
                previous.type.value if previous else "none",
                regime.type.value,
                regime.confidence,
            )

    def get_or_refresh(
        self,
        symbol: str,
        compute: Callable[[], MarketRegime],
        computed_at: float = 0.0,
    ) -> MarketRegime:
        """Serve a fresh cached regime, recomputing it once the TTL has passed.

        A failed recomputation keeps serving the previous regime; with no
        previous regime the default SIDEWAYS regime is returned (not cached).
        """
        entry = self._store.get_entry(symbol)
        if entry is not None:
            return entry.value

        try:
            regime = compute()
        except Exception as e:
            previous = self.get(symbol)
            self._stale_serves += 1
            logger.warning("%s", RegimeStaleError(f"regime refresh failed for {symbol}: {e}"))
            if previous is not None:
                return previous
            return default_regime(self.config, computed_at, reason="regime refresh failed")

        self.set(symbol, regime)
        return regime

    def invalidate(self, symbol: str | None = None) -> int:
        return self._store.invalidate(symbol)

    def get_stats(self) -> dict:
        return {**self._store.get_stats(), "stale_serves": self._stale_serves}
