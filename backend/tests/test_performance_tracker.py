"""Tests for PerformanceTracker."""

from unittest.mock import AsyncMock

import pytest

from app.services.performance_tracker import (
    PerformanceTracker,
    realized_return,
    record_from_signal,
)
from core.models import Direction, IndicatorKind, PerformanceOutcome
from tests.helpers import T0, make_signal, quote


def short_signal(**kwargs):
    return make_signal(Direction.SHORT, sl=105.0, tp=90.0, **kwargs)


class TestRecordFromSignal:
    def test_context_aligned_to_direction(self):
        contributions = {IndicatorKind.EMA: -1.0, IndicatorKind.RSI: 0.7}
        record = record_from_signal(short_signal(indicator_contributions=contributions))

        assert record.indicator_context == {IndicatorKind.EMA: 1.0, IndicatorKind.RSI: -0.7}
        assert record.outcome == PerformanceOutcome.PENDING
        assert record.direction == Direction.SHORT

    def test_realized_return_signed(self):
        assert realized_return(make_signal(), 110.0) == pytest.approx(0.1)
        assert realized_return(short_signal(), 110.0) == pytest.approx(-0.1)


class TestPerformanceTracker:
    """Tests for PerformanceTracker."""

    @pytest.mark.asyncio
    async def test_neutral_not_tracked(self):
        tracker = PerformanceTracker()
        signal = make_signal(Direction.NEUTRAL, sl=None, tp=None, confidence=50.0)

        assert await tracker.track(signal) is None
        assert tracker.pending_count == 0

    @pytest.mark.asyncio
    async def test_duplicate_not_tracked_twice(self):
        tracker = PerformanceTracker()
        signal = make_signal()

        assert await tracker.track(signal) is not None
        assert await tracker.track(signal) is None
        assert tracker.pending_count == 1

    @pytest.mark.asyncio
    async def test_target_hit_resolves_success(self):
        tracker = PerformanceTracker()
        await tracker.track(make_signal())

        resolved = await tracker.check_prices(quote(price=111.0), T0)

        assert len(resolved) == 1
        assert resolved[0].outcome == PerformanceOutcome.SUCCESS
        assert resolved[0].realized_return == pytest.approx(0.11)
        assert resolved[0].resolved_at == T0
        assert tracker.pending_count == 0

    @pytest.mark.asyncio
    async def test_stop_hit_resolves_failure(self):
        tracker = PerformanceTracker()
        await tracker.track(short_signal())

        resolved = await tracker.check_prices(quote(price=106.0), T0)

        assert resolved[0].outcome == PerformanceOutcome.FAILURE

    @pytest.mark.asyncio
    async def test_other_symbols_untouched(self):
        tracker = PerformanceTracker()
        await tracker.track(make_signal())

        resolved = await tracker.check_prices(quote("ETH/USDT", price=200.0), T0)

        assert resolved == []
        assert tracker.pending_count == 1

    @pytest.mark.asyncio
    async def test_external_resolution(self):
        tracker = PerformanceTracker()
        signal = make_signal()
        await tracker.track(signal)

        record = await tracker.resolve(signal.id, PerformanceOutcome.FAILURE, -0.02, T0)

        assert record.outcome == PerformanceOutcome.FAILURE
        assert await tracker.resolve(signal.id, PerformanceOutcome.SUCCESS) is None

    @pytest.mark.asyncio
    async def test_resolve_to_pending_rejected(self):
        tracker = PerformanceTracker()
        with pytest.raises(ValueError):
            await tracker.resolve("x", PerformanceOutcome.PENDING)

    @pytest.mark.asyncio
    async def test_callbacks_notified(self):
        tracker = PerformanceTracker()
        callback = AsyncMock()
        failing = AsyncMock(side_effect=RuntimeError("boom"))
        tracker.on_outcome(failing)
        tracker.on_outcome(callback)
        tracker.on_outcome(callback)
        await tracker.track(make_signal())

        await tracker.check_prices(quote(price=111.0), T0)

        callback.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_drain_resolved(self):
        tracker = PerformanceTracker()
        await tracker.track(make_signal())
        await tracker.check_prices(quote(price=111.0), T0)

        assert len(tracker.drain_resolved()) == 1
        assert tracker.drain_resolved() == []
        assert tracker.get_stats()["outcomes"] == {"SUCCESS": 1, "FAILURE": 0}

    @pytest.mark.asyncio
    async def test_oldest_pending_dropped(self):
        tracker = PerformanceTracker(max_pending=2)
        for timeframe in ("1h", "4h", "1d"):
            await tracker.track(make_signal(timeframe=timeframe))

        assert tracker.pending_count == 2
        assert tracker.get_stats()["dropped"] == 1
