"""Tests for SignalScheduler."""

import asyncio
import math
from datetime import timedelta
from unittest.mock import AsyncMock

import pytest

from app.services import PerformanceTracker, SchedulerConfig, SchedulerState, SignalScheduler
from app.storage import PriceHistoryStore, RegimeCache, SignalCache
from core.models import Direction, PerformanceOutcome, PriceQuote, WeightConfig
from core.signal_generator import INSUFFICIENT_HISTORY_REASON, SignalGenerator
from core.weights import AdaptiveWeightManager
from tests.helpers import T0, make_signal, quote

SYMBOLS = ["BTC/USDT", "ETH/USDT"]
TIMEFRAMES = ["1h", "4h"]


class FakeProvider:
    """Price provider returning fixed quotes for the requested symbols."""

    def __init__(self, quotes: dict[str, PriceQuote] | None = None):
        self.quotes = quotes if quotes is not None else {
            "BTC/USDT": quote("BTC/USDT", price=50000.0),
            "ETH/USDT": quote("ETH/USDT", price=3000.0, change24h=-3.0),
        }
        self.calls = 0

    async def get_batch_prices(self, symbols):
        self.calls += 1
        return {s: q for s, q in self.quotes.items() if s in symbols}


class BlockingProvider(FakeProvider):
    """Provider that holds every call until released."""

    def __init__(self):
        super().__init__()
        self.release = asyncio.Event()

    async def get_batch_prices(self, symbols):
        await self.release.wait()
        return await super().get_batch_prices(symbols)


def build(provider=None, history_mode="synthetic", **kwargs) -> SignalScheduler:
    config = SchedulerConfig(
        symbols=list(kwargs.pop("symbols", SYMBOLS)),
        timeframes=list(kwargs.pop("timeframes", TIMEFRAMES)),
        interval_seconds=kwargs.pop("interval_seconds", 3600),
        history_mode=history_mode,
        insufficient_history_policy=kwargs.pop("insufficient_history_policy", "neutral"),
        regime_timeframe=kwargs.pop("regime_timeframe", "1h"),
        weight_regime_symbol=kwargs.pop("weight_regime_symbol", None),
    )
    return SignalScheduler(
        config=config,
        price_provider=provider or FakeProvider(),
        signal_cache=kwargs.pop("signal_cache", SignalCache()),
        regime_cache=kwargs.pop("regime_cache", RegimeCache()),
        weight_manager=kwargs.pop("weight_manager", AdaptiveWeightManager()),
        **kwargs,
    )


class TestPass:
    """Tests for a single calculation pass."""

    @pytest.mark.asyncio
    async def test_fills_every_pair(self):
        scheduler = build()

        assert await scheduler.tick(T0) is True

        signals = scheduler.signal_cache.get_signals()
        assert {s.key for s in signals} == {(s, tf) for s in SYMBOLS for tf in TIMEFRAMES}
        assert all(s.timestamp == T0 for s in signals)
        assert all(s.synthetic_history for s in signals)
        assert scheduler.state == SchedulerState.IDLE

    @pytest.mark.asyncio
    async def test_regimes_cached_per_symbol(self):
        scheduler = build()
        await scheduler.tick(T0)

        assert scheduler.regime_cache.get("BTC/USDT") is not None
        assert scheduler.regime_cache.get("ETH/USDT") is not None
        assert scheduler.weight_regime() is scheduler.regime_cache.get("BTC/USDT")

    @pytest.mark.asyncio
    async def test_weight_regime_uses_configured_symbol(self):
        scheduler = build(weight_regime_symbol="ETH/USDT")
        await scheduler.tick(T0)

        assert scheduler.weight_regime() is scheduler.regime_cache.get("ETH/USDT")

    @pytest.mark.asyncio
    async def test_missing_symbol_keeps_previous_signal(self):
        provider = FakeProvider()
        scheduler = build(provider)
        await scheduler.tick(T0)
        eth_before = scheduler.signal_cache.get("ETH/USDT", "1h")

        del provider.quotes["ETH/USDT"]
        later = T0 + timedelta(minutes=4)
        await scheduler.tick(later)

        assert scheduler.signal_cache.get("ETH/USDT", "1h") is eth_before
        assert scheduler.signal_cache.get("BTC/USDT", "1h").timestamp == later
        assert scheduler.get_status()["last_pass"]["unavailable_symbols"] == ["ETH/USDT"]

    @pytest.mark.asyncio
    async def test_invalid_price_skipped(self):
        provider = FakeProvider({"BTC/USDT": quote(price=math.nan), "ETH/USDT": quote("ETH/USDT", price=-1.0)})
        scheduler = build(provider)

        await scheduler.tick(T0)

        assert len(scheduler.signal_cache) == 0

    @pytest.mark.asyncio
    async def test_batch_failure_keeps_cache(self):
        provider = FakeProvider()
        scheduler = build(provider)
        await scheduler.tick(T0)
        before = scheduler.signal_cache.snapshot()

        provider.get_batch_prices = AsyncMock(side_effect=ConnectionError("down"))
        assert await scheduler.tick(T0 + timedelta(minutes=4)) is True

        assert scheduler.signal_cache.snapshot() is before
        assert scheduler.get_status()["last_pass"]["unavailable_symbols"] == SYMBOLS

    @pytest.mark.asyncio
    async def test_pair_failure_is_isolated(self):
        class FailingGenerator(SignalGenerator):
            def generate(self, window, inputs, as_of):
                if window.timeframe == "4h":
                    raise RuntimeError("bad window")
                return super().generate(window, inputs, as_of)

        cache = SignalCache()
        stale = make_signal(symbol="BTC/USDT", timeframe="4h", entry=50000.0, sl=49000.0, tp=52000.0)
        cache.put(stale)
        scheduler = build(signal_cache=cache, generator=FailingGenerator())

        await scheduler.tick(T0)

        assert cache.get("BTC/USDT", "4h") is stale
        assert cache.get("BTC/USDT", "1h").timestamp == T0
        assert scheduler.get_status()["last_pass"]["failed_pairs"] == 2

    @pytest.mark.asyncio
    async def test_symbol_failure_is_isolated(self):
        class FailingTracker(PerformanceTracker):
            async def check_prices(self, quote, as_of):
                if quote.symbol == "ETH/USDT":
                    raise RuntimeError("tracker down")
                return await super().check_prices(quote, as_of)

        scheduler = build(performance_tracker=FailingTracker())

        assert await scheduler.tick(T0) is True

        assert {s.key for s in scheduler.signal_cache.get_signals()} == {
            ("BTC/USDT", tf) for tf in TIMEFRAMES
        }
        last_pass = scheduler.get_status()["last_pass"]
        assert last_pass["failed_symbols"] == ["ETH/USDT"]
        assert last_pass["signals"] == 2
        assert scheduler.state == SchedulerState.IDLE

    @pytest.mark.asyncio
    async def test_tracking_failure_keeps_signal(self):
        tracker = AsyncMock()
        tracker.track.side_effect = RuntimeError("tracker down")
        tracker.drain_resolved = lambda: []
        scheduler = build(performance_tracker=tracker)

        await scheduler.tick(T0)

        assert len(scheduler.signal_cache) == 4
        assert tracker.track.await_count == 4

    @pytest.mark.asyncio
    async def test_pattern_source_failure_ignored(self):
        patterns = AsyncMock()
        patterns.get_patterns.side_effect = TimeoutError("slow")
        scheduler = build(pattern_source=patterns)

        await scheduler.tick(T0)

        assert len(scheduler.signal_cache) == 4

    @pytest.mark.asyncio
    async def test_deterministic_for_same_inputs(self):
        first = build()
        second = build()

        await first.tick(T0)
        await second.tick(T0)

        assert dict(first.signal_cache.snapshot()) == dict(second.signal_cache.snapshot())


class TestAccumulatedHistory:
    """Tests for passes over accumulated price history."""

    @pytest.mark.asyncio
    async def test_neutral_until_ready(self):
        scheduler = build(
            history_mode="accumulated",
            timeframes=["1h"],
            history=PriceHistoryStore(min_points=3, max_points=50),
        )

        await scheduler.tick(T0)
        signal = scheduler.signal_cache.get("BTC/USDT", "1h")
        assert signal.direction == Direction.NEUTRAL
        assert signal.confidence == 50.0
        assert signal.reasoning[0] == INSUFFICIENT_HISTORY_REASON

        for hours in (1, 2):
            await scheduler.tick(T0 + timedelta(hours=hours))

        assert scheduler.history.count("BTC/USDT", "1h") == 3
        signal = scheduler.signal_cache.get("BTC/USDT", "1h")
        assert INSUFFICIENT_HISTORY_REASON not in signal.reasoning
        assert signal.synthetic_history is False

    @pytest.mark.asyncio
    async def test_skip_policy_leaves_cache_empty(self):
        scheduler = build(history_mode="accumulated", insufficient_history_policy="skip")

        await scheduler.tick(T0)

        assert len(scheduler.signal_cache) == 0
        assert scheduler.get_status()["last_pass"]["skipped_pairs"] == 4

    @pytest.mark.asyncio
    async def test_regime_timeframe_accumulated(self):
        scheduler = build(history_mode="accumulated", timeframes=["4h"])

        await scheduler.tick(T0)

        assert scheduler.history.count("BTC/USDT", "1h") == 1
        assert scheduler.history.count("BTC/USDT", "4h") == 1

    @pytest.mark.asyncio
    async def test_bad_regime_timeframe_does_not_stall_passes(self):
        scheduler = build(history_mode="accumulated", timeframes=["1h"], regime_timeframe="2h")

        assert await scheduler.tick(T0) is True

        status = scheduler.get_status()
        assert status["passes"] == 1
        assert status["last_pass"]["failed_symbols"] == SYMBOLS
        assert scheduler.state == SchedulerState.IDLE


class TestOverlap:
    """Ticks that fire while a pass is running."""

    @pytest.mark.asyncio
    async def test_tick_skipped_while_calculating(self):
        provider = BlockingProvider()
        scheduler = build(provider)

        first = asyncio.create_task(scheduler.tick(T0))
        await asyncio.sleep(0)
        assert scheduler.state == SchedulerState.CALCULATING

        assert await scheduler.tick(T0 + timedelta(minutes=4)) is False
        assert len(scheduler.signal_cache) == 0

        provider.release.set()
        assert await first is True
        assert scheduler.state == SchedulerState.IDLE
        assert all(s.timestamp == T0 for s in scheduler.signal_cache.get_signals())
        assert scheduler.get_status()["skipped_ticks"] == 1


class TestWeightFeedback:
    @pytest.mark.asyncio
    async def test_resolved_outcomes_feed_weights(self):
        tracker = PerformanceTracker()
        manager = AdaptiveWeightManager(WeightConfig(min_records=1))
        scheduler = build(performance_tracker=tracker, weight_manager=manager)

        signal = make_signal(symbol="SOL/USDT")
        await tracker.track(signal)
        await tracker.resolve(signal.id, PerformanceOutcome.SUCCESS, 0.1, T0)

        await scheduler.tick(T0)

        assert manager.get_record_count() == 1
        assert manager.get_stats()["updates"] == 1


class TestLifecycle:
    @pytest.mark.asyncio
    async def test_start_runs_first_pass_and_stop(self):
        provider = FakeProvider()
        scheduler = build(provider)

        await scheduler.start()
        assert scheduler.is_running
        await asyncio.sleep(0)
        await scheduler.stop()

        assert not scheduler.is_running
        assert provider.calls == 1
        assert scheduler.get_status()["passes"] == 1

    @pytest.mark.asyncio
    async def test_start_twice_is_noop(self):
        scheduler = build()

        await scheduler.start()
        task = scheduler._timer_task
        await scheduler.start()

        assert scheduler._timer_task is task
        await scheduler.stop()
