"""Tests for price history folding and synthesis."""

import pytest

from app.storage import PriceHistoryStore
from core.history import fold_quote, period_start, synthesize_window, timeframe_seconds
from core.indicators import compute_readings
from core.models import IndicatorKind, PriceWindow
from tests.helpers import quote

HOUR = 1_700_006_400.0  # aligned to 4h, so to every shorter timeframe too


class TestTimeframes:
    def test_seconds(self):
        assert timeframe_seconds("1h") == 3600
        assert timeframe_seconds("1d") == 86400

    def test_unknown_timeframe(self):
        with pytest.raises(ValueError, match="Unknown timeframe"):
            timeframe_seconds("7m")

    def test_period_start_aligns(self):
        assert period_start(HOUR + 1799, "1h") == HOUR
        assert period_start(HOUR + 1799, "15m") == HOUR + 900


class TestFoldQuote:
    """Tests for fold_quote."""

    def test_first_quote_opens_candle(self):
        window = PriceWindow("BTC/USDT", "1h")
        candle = fold_quote(window, quote(price=100.0), HOUR + 10)

        assert candle.timestamp == HOUR
        assert candle.open == candle.close == 100.0
        assert len(window) == 1

    def test_same_period_updates_candle(self):
        window = PriceWindow("BTC/USDT", "1h")
        fold_quote(window, quote(price=100.0), HOUR + 10)
        fold_quote(window, quote(price=105.0), HOUR + 600)
        candle = fold_quote(window, quote(price=98.0), HOUR + 1200)

        assert len(window) == 1
        assert candle.open == 100.0
        assert candle.high == 105.0
        assert candle.low == 98.0
        assert candle.close == 98.0

    def test_new_period_opens_new_candle(self):
        window = PriceWindow("BTC/USDT", "1h")
        fold_quote(window, quote(price=100.0), HOUR)
        fold_quote(window, quote(price=101.0), HOUR + 3600)

        assert len(window) == 2
        assert window.closes() == [100.0, 101.0]

    def test_late_quote_ignored(self):
        window = PriceWindow("BTC/USDT", "1h")
        fold_quote(window, quote(price=100.0), HOUR + 3600)
        fold_quote(window, quote(price=50.0), HOUR)

        assert window.closes() == [100.0]

    def test_period_boundaries_for_every_timeframe(self):
        for timeframe in ("1m", "5m", "15m", "1h", "4h"):
            window = PriceWindow("BTC/USDT", timeframe)
            fold_quote(window, quote(price=100.0), HOUR)
            fold_quote(window, quote(price=101.0), HOUR + timeframe_seconds(timeframe) - 1)
            fold_quote(window, quote(price=102.0), HOUR + timeframe_seconds(timeframe))

            assert window.closes() == [101.0, 102.0], timeframe

    def test_volume_is_latest_rolling_24h(self):
        window = PriceWindow("BTC/USDT", "1h")
        fold_quote(window, quote(volume24h=1_000_000.0), HOUR)
        candle = fold_quote(window, quote(volume24h=1_200_000.0), HOUR + 600)

        assert candle.volume == 1_200_000.0

    def test_accumulated_volume_ratio_near_one(self):
        window = PriceWindow("BTC/USDT", "1h")
        for i in range(25):
            fold_quote(window, quote(price=100.0 + i, volume24h=1_000_000.0 + i * 1_000), HOUR + i * 3600)

        ratio = compute_readings(window)[IndicatorKind.VWAP].metadata["volume_ratio"]

        assert ratio == pytest.approx(1.0, abs=0.02)


class TestSynthesizeWindow:
    """Tests for synthesize_window."""

    def test_last_close_is_quote_price(self):
        window = synthesize_window(quote(price=42000.0, change24h=3.0), "1h", HOUR)

        assert len(window) == 100
        assert window.last_close == pytest.approx(42000.0)
        assert window.synthetic is True
        assert window.points[-1].timestamp == HOUR

    def test_deterministic(self):
        q = quote(price=42000.0, change24h=-4.0)
        first = synthesize_window(q, "15m", HOUR)
        second = synthesize_window(q, "15m", HOUR)

        assert first.points == second.points

    def test_candles_well_formed(self):
        window = synthesize_window(quote(price=10.0, change24h=-12.0), "4h", HOUR, points=60)

        assert len(window) == 60
        for point in window.points:
            assert point.low <= min(point.open, point.close)
            assert point.high >= max(point.open, point.close)
            assert point.close > 0


class TestPriceHistoryStore:
    """Tests for PriceHistoryStore."""

    def test_ready_after_min_points(self):
        store = PriceHistoryStore(min_points=3, max_points=10)
        for i in range(3):
            assert not store.is_ready("BTC/USDT", "1h")
            store.record(quote(price=100.0 + i), ["1h", "4h"], HOUR + i * 3600)

        assert store.is_ready("BTC/USDT", "1h")
        assert store.count("BTC/USDT", "4h") == 1

    def test_window_bounded(self):
        store = PriceHistoryStore(min_points=2, max_points=5)
        for i in range(8):
            store.record(quote(price=100.0 + i), ["1h"], HOUR + i * 3600)

        assert store.count("BTC/USDT", "1h") == 5

    def test_stats_count_ready_windows(self):
        store = PriceHistoryStore(min_points=2, max_points=10)
        for i in range(2):
            store.record(quote(price=100.0 + i), ["1h", "4h"], HOUR + i * 3600)

        stats = store.get_stats()
        assert stats["windows"] == 2
        assert stats["ready"] == 1

    def test_invalid_bounds(self):
        with pytest.raises(ValueError):
            PriceHistoryStore(min_points=20, max_points=10)
