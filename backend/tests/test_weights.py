"""Tests for the adaptive weight manager."""

import pytest

from core.models import (
    IndicatorCategory,
    IndicatorKind,
    MarketRegime,
    PerformanceOutcome,
    RegimeType,
    SignalPerformanceRecord,
    WeightConfig,
)
from core.weights import AdaptiveWeightManager, project_to_bounds


def make_records(
    kind: IndicatorKind,
    total: int,
    successes: int,
    symbol: str = "BTC/USDT",
    contribution: float = 0.7,
    prefix: str = "",
) -> list[SignalPerformanceRecord]:
    prefix = prefix or kind.value
    return [
        SignalPerformanceRecord(
            signal_id=f"{prefix}-{i}",
            symbol=symbol,
            indicator_context={kind: contribution},
            outcome=PerformanceOutcome.SUCCESS if i < successes else PerformanceOutcome.FAILURE,
        )
        for i in range(total)
    ]


class TestProjectToBounds:
    def test_already_valid_vector_is_normalized(self):
        raw = {IndicatorKind.RSI: 0.5, IndicatorKind.EMA: 0.5}
        weights, clamped = project_to_bounds(raw, 0.1, 0.9)

        assert weights == pytest.approx({IndicatorKind.RSI: 0.5, IndicatorKind.EMA: 0.5})
        assert clamped is False

    def test_extreme_raw_values_clamped_and_redistributed(self):
        raw = {kind: 0.01 for kind in IndicatorKind}
        raw[IndicatorKind.MACD] = 10.0

        weights, clamped = project_to_bounds(raw, 0.02, 0.35)

        assert clamped is True
        assert sum(weights.values()) == pytest.approx(1.0)
        assert weights[IndicatorKind.MACD] == pytest.approx(0.35)
        for value in weights.values():
            assert 0.02 - 1e-9 <= value <= 0.35 + 1e-9

    def test_zero_vector_becomes_uniform(self):
        raw = {kind: 0.0 for kind in IndicatorKind}
        weights, _ = project_to_bounds(raw, 0.02, 0.35)

        assert all(v == pytest.approx(1 / 6) for v in weights.values())

    def test_zero_entries_lifted_off_the_floor(self):
        raw = {kind: 0.0 for kind in IndicatorKind}
        raw[IndicatorKind.MACD] = 0.5
        raw[IndicatorKind.EMA] = 0.5

        weights, clamped = project_to_bounds(raw, 0.02, 0.35)

        assert clamped is True
        assert sum(weights.values()) == pytest.approx(1.0)
        assert weights[IndicatorKind.MACD] == pytest.approx(0.35)
        assert weights[IndicatorKind.EMA] == pytest.approx(0.35)
        assert weights[IndicatorKind.RSI] == pytest.approx(0.075)
        for value in weights.values():
            assert 0.02 - 1e-9 <= value <= 0.35 + 1e-9


class TestAdaptiveWeightManager:
    """Tests for AdaptiveWeightManager."""

    def test_initial_weights_are_priors(self):
        manager = AdaptiveWeightManager()
        weights = manager.get_current_weights()

        assert weights[IndicatorKind.MACD] == pytest.approx(0.24)
        assert weights[IndicatorKind.VWAP] == pytest.approx(0.08)
        assert sum(weights.values()) == pytest.approx(1.0)

    def test_success_rates_shift_weights(self):
        """80% RSI success and 20% Bollinger success move the priors by +/-0.03."""
        manager = AdaptiveWeightManager()
        records = make_records(IndicatorKind.RSI, 50, 40) + make_records(
            IndicatorKind.BOLLINGER, 50, 10
        )

        weights = manager.update_from_performance(records)

        assert weights[IndicatorKind.RSI] == pytest.approx(0.19)
        assert weights[IndicatorKind.BOLLINGER] == pytest.approx(0.09)
        assert weights[IndicatorKind.MACD] == pytest.approx(0.24)
        assert sum(weights.values()) == pytest.approx(1.0)
        assert manager.get_success_rates() == pytest.approx(
            {IndicatorKind.RSI: 0.8, IndicatorKind.BOLLINGER: 0.2}
        )

    def test_weights_stay_in_bounds(self):
        config = WeightConfig(learning_rate=5.0, min_records=1)
        manager = AdaptiveWeightManager(config)

        weights = manager.update_from_performance(make_records(IndicatorKind.VWAP, 30, 30))

        assert sum(weights.values()) == pytest.approx(1.0)
        for value in weights.values():
            assert config.min_weight - 1e-9 <= value <= config.max_weight + 1e-9
        assert weights[IndicatorKind.VWAP] == pytest.approx(config.max_weight)

    def test_zero_priors_keep_unit_sum(self):
        priors = {kind: 0.0 for kind in IndicatorKind}
        priors[IndicatorKind.MACD] = 0.5
        priors[IndicatorKind.EMA] = 0.5
        config = WeightConfig(priors=priors, learning_rate=5.0, min_records=1)
        manager = AdaptiveWeightManager(config)
        assert sum(manager.get_current_weights().values()) == pytest.approx(1.0)

        weights = manager.update_from_performance(make_records(IndicatorKind.MACD, 30, 0))

        assert sum(weights.values()) == pytest.approx(1.0)
        assert weights[IndicatorKind.EMA] == pytest.approx(config.max_weight)
        for value in weights.values():
            assert config.min_weight - 1e-9 <= value <= config.max_weight + 1e-9

    def test_clamp_logs_warning(self, caplog):
        manager = AdaptiveWeightManager(WeightConfig(learning_rate=5.0, min_records=1))

        with caplog.at_level("WARNING"):
            manager.update_from_performance(make_records(IndicatorKind.VWAP, 30, 30))

        assert "clamped" in caplog.text

    def test_pending_records_ignored(self):
        manager = AdaptiveWeightManager(WeightConfig(min_records=1))
        pending = SignalPerformanceRecord(
            signal_id="p", symbol="BTC/USDT", indicator_context={IndicatorKind.RSI: 1.0}
        )

        weights = manager.update_from_performance([pending])

        assert manager.get_record_count() == 0
        assert weights[IndicatorKind.RSI] == pytest.approx(0.16)

    def test_below_min_records_keeps_priors(self):
        manager = AdaptiveWeightManager()
        before = manager.get_current_weights()

        after = manager.update_from_performance(make_records(IndicatorKind.RSI, 10, 10))

        assert after is before
        assert manager.get_record_count() == 10
        assert manager.get_stats()["adaptive"] is False

    def test_weak_contributions_do_not_participate(self):
        manager = AdaptiveWeightManager(WeightConfig(min_records=1))
        records = make_records(IndicatorKind.RSI, 30, 30, contribution=0.05)
        records += make_records(IndicatorKind.EMA, 30, 0, contribution=-0.7)

        manager.update_from_performance(records)

        assert manager.get_success_rates() == {}

    def test_duplicate_records_ignored(self):
        manager = AdaptiveWeightManager()
        records = make_records(IndicatorKind.RSI, 25, 20)

        manager.update_from_performance(records)
        manager.update_from_performance(records)

        assert manager.get_record_count() == 25

    def test_lookback_is_per_symbol(self):
        manager = AdaptiveWeightManager(WeightConfig(lookback=10, min_records=1))
        manager.update_from_performance(make_records(IndicatorKind.RSI, 15, 15, symbol="BTC/USDT"))
        manager.update_from_performance(make_records(IndicatorKind.RSI, 5, 0, symbol="ETH/USDT"))

        assert manager.get_record_count("BTC/USDT") == 10
        assert manager.get_record_count("ETH/USDT") == 5
        assert manager.get_record_count() == 15

    def test_snapshot_is_immutable(self):
        manager = AdaptiveWeightManager()
        weights = manager.get_current_weights()

        with pytest.raises(TypeError):
            weights[IndicatorKind.RSI] = 0.5  # type: ignore[index]

    def test_old_snapshot_unchanged_after_update(self):
        manager = AdaptiveWeightManager()
        before = manager.get_current_weights()

        manager.update_from_performance(make_records(IndicatorKind.RSI, 50, 50))

        assert before[IndicatorKind.RSI] == pytest.approx(0.16)
        assert manager.get_current_weights()[IndicatorKind.RSI] > 0.16

    def test_regime_multipliers_applied(self):
        manager = AdaptiveWeightManager(WeightConfig(min_records=1))
        regime = MarketRegime(
            type=RegimeType.SIDEWAYS,
            confidence=60.0,
            regime_multipliers={
                IndicatorCategory.TREND: 0.5,
                IndicatorCategory.MOMENTUM: 2.0,
            },
        )

        neutral = AdaptiveWeightManager(WeightConfig(min_records=1)).update_from_performance(
            make_records(IndicatorKind.VWAP, 2, 1)
        )
        weights = manager.update_from_performance(make_records(IndicatorKind.VWAP, 2, 1), regime)

        assert weights[IndicatorKind.RSI] > neutral[IndicatorKind.RSI]
        assert weights[IndicatorKind.MACD] < neutral[IndicatorKind.MACD]
        assert sum(weights.values()) == pytest.approx(1.0)

    def test_reset_restores_priors(self):
        manager = AdaptiveWeightManager()
        manager.update_from_performance(make_records(IndicatorKind.RSI, 50, 50))

        manager.reset()

        assert manager.get_record_count() == 0
        assert manager.get_current_weights()[IndicatorKind.RSI] == pytest.approx(0.16)


class TestWeightConfig:
    def test_infeasible_bounds_rejected(self):
        with pytest.raises(ValueError):
            WeightConfig(min_weight=0.2, max_weight=0.35)

    def test_negative_prior_rejected(self):
        priors = {kind: 0.2 for kind in IndicatorKind}
        priors[IndicatorKind.RSI] = -0.1
        with pytest.raises(ValueError):
            WeightConfig(priors=priors)
