"""Fixed-interval signal scheduler.

State machine: IDLE -> CALCULATING -> IDLE. A timer fires every
`interval_seconds`; a tick that fires while a pass is still CALCULATING is
skipped (not queued).

One pass:
1. batch-fetch quotes for every tracked symbol
2. per symbol: fold the quote into history, resolve pending outcomes,
   refresh the regime (cached on its own TTL)
3. per (symbol, timeframe): indicators -> confluence -> cache write
4. feed resolved outcomes to the adaptive weight manager

Failures stay local. A missing or invalid quote skips that symbol; an
exception for one pair is logged and leaves its cached signal untouched.
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Literal

from app.clients.providers import NullPatternSource, PatternSource, PriceDataProvider
from app.services.performance_tracker import PerformanceTracker
from app.storage.price_history import PriceHistoryStore
from app.storage.regime_cache import RegimeCache
from app.storage.signal_cache import SignalCache
from core.errors import CalculationError, DataUnavailableError, InsufficientHistoryError
from core.history import synthesize_window
from core.models import (
    IndicatorKind,
    MarketRegime,
    PatternSignal,
    PriceQuote,
    PriceWindow,
    Signal,
)
from core.regime import RegimeDetector
from core.signal_generator import SignalGenerator, SignalInputs
from core.weights import AdaptiveWeightManager

logger = logging.getLogger(__name__)


class SchedulerState(str, Enum):
    IDLE = "IDLE"
    CALCULATING = "CALCULATING"


@dataclass
class SchedulerConfig:
    """Scheduler knobs, usually built from Settings."""

    symbols: list[str]
    timeframes: list[str]
    interval_seconds: float = 240.0
    run_on_start: bool = True
    regime_timeframe: str = "1h"
    history_mode: Literal["accumulated", "synthetic"] = "accumulated"
    insufficient_history_policy: Literal["neutral", "skip"] = "neutral"
    synthetic_history_points: int = 100
    history_max_points: int = 200
    weight_regime_symbol: str | None = None  # regime applied to weight updates

    @property
    def history_timeframes(self) -> list[str]:
        """Timeframes to accumulate: the tracked ones plus the regime timeframe."""
        if self.regime_timeframe in self.timeframes:
            return list(self.timeframes)
        return [*self.timeframes, self.regime_timeframe]


@dataclass
class PassResult:
    """Summary of one calculation pass."""

    started_at: datetime
    duration: float = 0.0
    signals: int = 0
    failed_pairs: int = 0
    skipped_pairs: int = 0
    unavailable_symbols: list[str] = field(default_factory=list)
    failed_symbols: list[str] = field(default_factory=list)
    distribution: dict[str, int] = field(default_factory=dict)


class SignalScheduler:
    """Drive calculation passes over the (symbol x timeframe) matrix."""

    def __init__(
        self,
        config: SchedulerConfig,
        price_provider: PriceDataProvider,
        signal_cache: SignalCache,
        regime_cache: RegimeCache,
        weight_manager: AdaptiveWeightManager,
        generator: SignalGenerator | None = None,
        regime_detector: RegimeDetector | None = None,
        history: PriceHistoryStore | None = None,
        pattern_source: PatternSource | None = None,
        performance_tracker: PerformanceTracker | None = None,
    ):
        self.config = config
        self.price_provider = price_provider
        self.signal_cache = signal_cache
        self.regime_cache = regime_cache
        self.weight_manager = weight_manager
        self.generator = generator or SignalGenerator()
        self.regime_detector = regime_detector or RegimeDetector(regime_cache.config)
        self.history = history or PriceHistoryStore(max_points=config.history_max_points)
        self.pattern_source = pattern_source or NullPatternSource()
        self.performance_tracker = performance_tracker

        self._state = SchedulerState.IDLE
        self._running = False
        self._timer_task: asyncio.Task | None = None
        self._tick_tasks: set[asyncio.Task] = set()

        # Status
        self._passes = 0
        self._skipped_ticks = 0
        self._last_pass: PassResult | None = None
        self._next_pass_at: float | None = None

    @property
    def state(self) -> SchedulerState:
        return self._state

    @property
    def is_running(self) -> bool:
        return self._running

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start(self) -> None:
        """Start the timer. The first pass runs immediately when run_on_start is set."""
        if self._running:
            return
        self._running = True
        self._timer_task = asyncio.create_task(self._timer_loop())
        logger.info(
            "Scheduler started: %d symbols x %d timeframes every %.0fs (%s history)",
            len(self.config.symbols),
            len(self.config.timeframes),
            self.config.interval_seconds,
            self.config.history_mode,
        )

    async def stop(self) -> None:
        """Stop the timer and wait for an in-flight pass to finish."""
        self._running = False
        if self._timer_task:
            self._timer_task.cancel()
            try:
                await self._timer_task
            except asyncio.CancelledError:
                pass
            self._timer_task = None
        if self._tick_tasks:
            await asyncio.gather(*self._tick_tasks, return_exceptions=True)
        self._next_pass_at = None
        logger.info("Scheduler stopped after %d passes", self._passes)

    async def _timer_loop(self) -> None:
        if self.config.run_on_start:
            self._fire()
        while self._running:
            self._next_pass_at = time.time() + self.config.interval_seconds
            await asyncio.sleep(self.config.interval_seconds)
            self._fire()

    def _fire(self) -> None:
        # Ticks run as their own tasks so a slow pass cannot delay the timer
        task = asyncio.create_task(self.tick())
        self._tick_tasks.add(task)
        task.add_done_callback(self._tick_tasks.discard)

    # ------------------------------------------------------------------
    # Passes
    # ------------------------------------------------------------------

    async def tick(self, as_of: datetime | None = None) -> bool:
        """Run one pass unless a pass is already in progress.

        Args:
            as_of: Pass timestamp stamped on every signal (defaults to now, UTC)

        Returns:
            False if the tick was skipped because a pass is CALCULATING
        """
        if self._state == SchedulerState.CALCULATING:
            self._skipped_ticks += 1
            logger.warning("Tick skipped: previous pass still calculating")
            return False

        self._state = SchedulerState.CALCULATING
        try:
            result = await self.run_pass(as_of or datetime.now(timezone.utc))
            self._last_pass = result
            self._passes += 1
        except Exception:
            logger.exception("Calculation pass aborted")
        finally:
            self._state = SchedulerState.IDLE
        return True

    async def run_pass(self, as_of: datetime) -> PassResult:
        started = time.perf_counter()
        result = PassResult(started_at=as_of)
        cfg = self.config

        try:
            quotes = await self.price_provider.get_batch_prices(list(cfg.symbols))
        except Exception:
            logger.exception("Batch price fetch failed, keeping all cached signals")
            result.unavailable_symbols = list(cfg.symbols)
            result.duration = time.perf_counter() - started
            return result

        weights = self.weight_manager.get_current_weights()
        success_rates = self.weight_manager.get_success_rates()
        now_ts = as_of.timestamp()
        written: list[Signal] = []

        for symbol in cfg.symbols:
            try:
                quote = self._valid_quote(symbol, quotes)
            except DataUnavailableError as e:
                logger.warning("%s", e)
                result.unavailable_symbols.append(symbol)
                continue

            try:
                if cfg.history_mode == "accumulated":
                    self.history.record(quote, cfg.history_timeframes, now_ts)
                if self.performance_tracker is not None:
                    await self.performance_tracker.check_prices(quote, as_of)
                regime = self._regime_for(symbol, quote, now_ts)
            except Exception as e:
                result.failed_symbols.append(symbol)
                logger.exception("%s", CalculationError(f"{symbol}: {e}"))
                continue

            for timeframe in cfg.timeframes:
                try:
                    signal = await self._calculate_pair(
                        symbol, timeframe, quote, regime, weights, success_rates, as_of
                    )
                except Exception as e:
                    result.failed_pairs += 1
                    logger.exception("%s", CalculationError(f"{symbol} {timeframe}: {e}"))
                    continue

                if signal is None:
                    result.skipped_pairs += 1
                    continue
                self.signal_cache.put(signal)
                written.append(signal)
                if self.performance_tracker is not None:
                    try:
                        await self.performance_tracker.track(signal)
                    except Exception:
                        logger.exception("Outcome tracking failed for %s %s", symbol, timeframe)

        self._update_weights()

        result.signals = len(written)
        result.distribution = _distribution(written)
        result.duration = time.perf_counter() - started
        logger.info(
            "Pass complete in %.2fs: %d signals %s, %d failed, %d skipped, "
            "%d symbols unavailable, %d symbols failed",
            result.duration,
            result.signals,
            result.distribution,
            result.failed_pairs,
            result.skipped_pairs,
            len(result.unavailable_symbols),
            len(result.failed_symbols),
        )
        return result

    @staticmethod
    def _valid_quote(symbol: str, quotes: dict[str, PriceQuote]) -> PriceQuote:
        quote = quotes.get(symbol)
        if quote is None:
            raise DataUnavailableError(symbol, "missing from batch")
        if not quote.is_valid:
            raise DataUnavailableError(symbol, f"invalid price {quote.price!r}")
        return quote

    def _window(self, symbol: str, timeframe: str, quote: PriceQuote, now_ts: float) -> PriceWindow:
        """Price window for a pair.

        Raises:
            InsufficientHistoryError: If accumulated history is not ready yet.
        """
        cfg = self.config
        if cfg.history_mode == "synthetic":
            return synthesize_window(
                quote,
                timeframe,
                now_ts,
                points=cfg.synthetic_history_points,
                max_size=cfg.history_max_points,
            )
        if not self.history.is_ready(symbol, timeframe):
            raise InsufficientHistoryError(
                symbol, timeframe, self.history.count(symbol, timeframe), self.history.min_points
            )
        return self.history.window(symbol, timeframe)

    def _regime_for(self, symbol: str, quote: PriceQuote, now_ts: float) -> MarketRegime:
        def compute() -> MarketRegime:
            try:
                window = self._window(symbol, self.config.regime_timeframe, quote, now_ts)
            except InsufficientHistoryError:
                window = self.history.window(symbol, self.config.regime_timeframe)
            return self.regime_detector.detect(window, computed_at=now_ts)

        return self.regime_cache.get_or_refresh(symbol, compute, computed_at=now_ts)

    async def _patterns(self, symbol: str, timeframe: str) -> list[PatternSignal]:
        try:
            return list(await self.pattern_source.get_patterns(symbol, timeframe))
        except Exception as e:
            logger.warning("Pattern source failed for %s %s: %s", symbol, timeframe, e)
            return []

    async def _calculate_pair(
        self,
        symbol: str,
        timeframe: str,
        quote: PriceQuote,
        regime: MarketRegime,
        weights,
        success_rates: dict[IndicatorKind, float],
        as_of: datetime,
    ) -> Signal | None:
        now_ts = as_of.timestamp()
        try:
            window = self._window(symbol, timeframe, quote, now_ts)
        except InsufficientHistoryError as e:
            if self.config.insufficient_history_policy == "skip":
                logger.debug("%s", e)
                return None
            return self.generator.neutral_signal(symbol, timeframe, quote, as_of, detail=str(e))

        inputs = SignalInputs(
            quote=quote,
            weights=weights,
            regime=regime,
            patterns=await self._patterns(symbol, timeframe),
            success_rates=success_rates,
        )
        return self.generator.generate(window, inputs, as_of)

    def weight_regime(self) -> MarketRegime | None:
        """Regime whose multipliers apply to weight updates (the reference symbol's)."""
        symbol = self.config.weight_regime_symbol or (
            self.config.symbols[0] if self.config.symbols else None
        )
        return self.regime_cache.get(symbol) if symbol else None

    def _update_weights(self) -> None:
        if self.performance_tracker is None:
            return
        records = self.performance_tracker.drain_resolved()
        if not records:
            return
        try:
            self.weight_manager.update_from_performance(records, regime=self.weight_regime())
        except Exception:
            logger.exception("Weight update from %d records failed", len(records))

    # ------------------------------------------------------------------
    # Status
    # ------------------------------------------------------------------

    def get_status(self) -> dict:
        last = self._last_pass
        next_in = None
        if self._next_pass_at is not None:
            next_in = max(0.0, self._next_pass_at - time.time())
        return {
            "state": self._state.value,
            "running": self._running,
            "passes": self._passes,
            "skipped_ticks": self._skipped_ticks,
            "interval_seconds": self.config.interval_seconds,
            "next_pass_in_seconds": next_in,
            "symbols": len(self.config.symbols),
            "timeframes": len(self.config.timeframes),
            "cached_signals": len(self.signal_cache),
            "history_mode": self.config.history_mode,
            "last_pass": None
            if last is None
            else {
                "started_at": last.started_at.isoformat(),
                "duration_seconds": round(last.duration, 4),
                "signals": last.signals,
                "failed_pairs": last.failed_pairs,
                "skipped_pairs": last.skipped_pairs,
                "unavailable_symbols": list(last.unavailable_symbols),
                "failed_symbols": list(last.failed_symbols),
                "distribution": dict(last.distribution),
            },
        }


def _distribution(signals: list[Signal]) -> dict[str, int]:
    counts = {"LONG": 0, "SHORT": 0, "NEUTRAL": 0}
    for signal in signals:
        counts[signal.direction.name] += 1
    return counts
