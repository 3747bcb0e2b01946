"""In-process facade over the signal pipeline.

Wires settings, tracked symbols and collaborators into one object and
exposes the query/update operations used by the HTTP layer:

- get_signals(symbol=None, timeframe=None)
- get_current_weights()
- get_market_regime(symbol)
- update_weights_from_performance(records)
"""

import logging
from datetime import datetime, timezone
from typing import Iterable, Mapping

from app.clients.coingecko import CoinGeckoPriceProvider
from app.clients.providers import PatternSource, PriceDataProvider
from app.config import Settings
from app.services.performance_tracker import PerformanceTracker
from app.services.signal_scheduler import SchedulerConfig, SignalScheduler
from app.storage import PriceHistoryStore, RegimeCache, SignalCache
from app.tracking_config import TrackingConfig
from core.models import (
    ConfluenceConfig,
    IndicatorConfig,
    IndicatorKind,
    MarketRegime,
    PerformanceOutcome,
    RegimeConfig,
    RiskConfig,
    Signal,
    SignalPerformanceRecord,
    WeightConfig,
)
from core.regime import RegimeDetector, default_regime
from core.signal_generator import SignalGenerator
from core.weights import AdaptiveWeightManager

logger = logging.getLogger(__name__)


class SignalService:
    """Own the pipeline components and expose their operations."""

    def __init__(
        self,
        scheduler: SignalScheduler,
        performance_tracker: PerformanceTracker,
    ):
        self.scheduler = scheduler
        self.performance_tracker = performance_tracker

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        tracking: TrackingConfig | None = None,
        price_provider: PriceDataProvider | None = None,
        pattern_source: PatternSource | None = None,
        indicator_config: IndicatorConfig | None = None,
        regime_config: RegimeConfig | None = None,
        weight_config: WeightConfig | None = None,
        confluence_config: ConfluenceConfig | None = None,
        risk_config: RiskConfig | None = None,
    ) -> "SignalService":
        """Build the full pipeline from settings.

        Without an explicit price provider, symbols from settings are
        restricted to those with an enabled provider id in the tracking
        config (built-in defaults when none is given).
        """
        symbols = list(settings.symbols)
        if price_provider is None:
            tracking = (tracking or TrackingConfig()).restrict_to(symbols)
            symbols = tracking.enabled_symbols()
            price_provider = CoinGeckoPriceProvider(
                tracking.provider_ids(),
                base_url=settings.price_api_url,
                api_key=settings.price_api_key,
                timeout=settings.price_api_timeout,
            )

        weight_regime_symbol = settings.weight_regime_symbol
        if weight_regime_symbol is not None and weight_regime_symbol not in symbols:
            logger.warning(
                "Weight regime symbol %s has no price source, using %s",
                weight_regime_symbol,
                symbols[0] if symbols else None,
            )
            weight_regime_symbol = None

        regime_config = regime_config or RegimeConfig()
        performance_tracker = PerformanceTracker()
        scheduler = SignalScheduler(
            config=SchedulerConfig(
                symbols=symbols,
                timeframes=list(settings.timeframes),
                interval_seconds=settings.calculation_interval_seconds,
                run_on_start=settings.run_on_start,
                regime_timeframe=settings.regime_timeframe,
                history_mode=settings.history_mode,
                insufficient_history_policy=settings.insufficient_history_policy,
                synthetic_history_points=settings.synthetic_history_points,
                history_max_points=settings.history_max_points,
                weight_regime_symbol=weight_regime_symbol,
            ),
            price_provider=price_provider,
            signal_cache=SignalCache(max_entries=settings.signal_cache_max_entries),
            regime_cache=RegimeCache(
                ttl_seconds=settings.regime_ttl_seconds, config=regime_config
            ),
            weight_manager=AdaptiveWeightManager(weight_config),
            generator=SignalGenerator(indicator_config, confluence_config, risk_config),
            regime_detector=RegimeDetector(regime_config),
            history=PriceHistoryStore(
                min_points=settings.min_history_points,
                max_points=settings.history_max_points,
            ),
            pattern_source=pattern_source,
            performance_tracker=performance_tracker,
        )
        return cls(scheduler, performance_tracker)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start(self) -> None:
        await self.scheduler.start()

    async def stop(self) -> None:
        await self.scheduler.stop()
        close = getattr(self.scheduler.price_provider, "close", None)
        if close is not None:
            await close()

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    def get_signals(self, symbol: str | None = None, timeframe: str | None = None) -> list[Signal]:
        """Latest cached signals. Never waits on a pass in progress."""
        return self.scheduler.signal_cache.get_signals(symbol, timeframe)

    def get_current_weights(self) -> Mapping[IndicatorKind, float]:
        return self.scheduler.weight_manager.get_current_weights()

    def get_market_regime(self, symbol: str) -> MarketRegime:
        """Last detected regime for symbol, or the default SIDEWAYS regime."""
        regime = self.scheduler.regime_cache.get(symbol)
        if regime is None:
            return default_regime(self.scheduler.regime_cache.config)
        return regime

    def update_weights_from_performance(
        self, records: Iterable[SignalPerformanceRecord]
    ) -> Mapping[IndicatorKind, float]:
        return self.scheduler.weight_manager.update_from_performance(
            records, regime=self.scheduler.weight_regime()
        )

    async def report_outcome(
        self,
        signal_id: str,
        outcome: PerformanceOutcome,
        realized_return: float = 0.0,
        when: datetime | None = None,
    ) -> SignalPerformanceRecord | None:
        """Resolve a tracked signal from an external outcome report."""
        when = when or datetime.now(timezone.utc)
        return await self.performance_tracker.resolve(signal_id, outcome, realized_return, when)

    def get_status(self) -> dict:
        return {
            "scheduler": self.scheduler.get_status(),
            "signal_distribution": self.scheduler.signal_cache.distribution(),
            "weights": self.scheduler.weight_manager.get_stats(),
            "regimes": self.scheduler.regime_cache.get_stats(),
            "history": self.scheduler.history.get_stats(),
            "performance": self.performance_tracker.get_stats(),
        }
