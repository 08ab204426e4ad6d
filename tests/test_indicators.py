"""Tests for technical indicators."""

import math
from datetime import datetime, timedelta, timezone

import numpy as np
import pytest

from market_core.indicators import (
    IndicatorCalculator,
    adx_proxy,
    anchored_vwap,
    atr,
    bollinger_bands,
    ema,
    fibonacci_levels,
    macd,
    pearson_correlation,
    rsi,
    rsi_latest,
    sma,
    stoch_rsi,
    true_range,
    volatility_trend_proxy,
    volume_profile,
)
from market_core.models.candle import Candle


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

BASE_TIME = datetime(2025, 1, 1, tzinfo=timezone.utc)


def make_candles(closes: list[float], volumes: list[float] | None = None) -> list[Candle]:
    """Build hourly candles with high = low = close."""
    volumes = volumes or [100.0] * len(closes)
    return [
        Candle(time=BASE_TIME + timedelta(hours=i), close=c, volume=v)
        for i, (c, v) in enumerate(zip(closes, volumes))
    ]


def rising(n: int, start: float = 100.0, pct: float = 0.01) -> list[float]:
    return [start * (1 + pct) ** i for i in range(n)]


def random_walk(n: int, seed: int = 42) -> list[float]:
    rng = np.random.default_rng(seed)
    return [float(v) for v in 100 * np.cumprod(1 + rng.normal(0, 0.01, n))]


class TestEMA:
    """Tests for EMA calculation."""

    def test_ema_basic(self):
        values = [float(i) for i in range(1, 11)]
        result = ema(values, 5)

        assert result[:4] == [None] * 4
        # Seeded with the SMA of the first 5 values
        assert result[4] == pytest.approx(3.0)
        # k = 2/6: 6 * 1/3 + 3 * 2/3
        assert result[5] == pytest.approx(4.0)

    def test_ema_definedness_boundary(self):
        result = ema(random_walk(30), 9)
        assert all(v is None for v in result[:8])
        assert all(v is not None for v in result[8:])

    def test_ema_insufficient_data(self):
        result = ema([100.0, 101.0, 102.0], 10)
        assert result == [None, None, None]


class TestSMA:
    def test_sma_basic(self):
        result = sma([float(i) for i in range(1, 11)], 3)

        assert result[0] is None
        assert result[1] is None
        assert result[2] == pytest.approx(2.0)
        assert result[3] == pytest.approx(3.0)


class TestRSI:
    """Tests for Wilder RSI."""

    def test_undefined_before_period(self):
        result = rsi(random_walk(40), 14)
        assert all(v is None for v in result[:14])
        assert all(v is not None for v in result[14:])

    def test_all_undefined_when_too_short(self):
        assert rsi([100.0] * 14, 14) == [None] * 14

    def test_range(self):
        values = [v for v in rsi(random_walk(300), 14) if v is not None]
        assert values
        assert all(0.0 <= v <= 100.0 for v in values)

    def test_monotone_rise_reaches_100(self):
        result = rsi(rising(40), 14)
        assert result[-1] == pytest.approx(100.0)
        assert all(v <= 100.0 for v in result if v is not None)

    def test_monotone_fall_is_zero(self):
        result = rsi(rising(40, pct=-0.01), 14)
        assert result[-1] == pytest.approx(0.0)

    def test_flat_series_has_no_losses(self):
        # Average loss of exactly 0 reads 100, never a division by zero
        assert rsi([50.0] * 20, 14)[-1] == 100.0

    def test_rsi_latest(self):
        prices = random_walk(50)
        assert rsi_latest(prices) == pytest.approx(rsi(prices)[-1])
        assert rsi_latest(prices[:14]) is None


class TestMACD:
    def test_alignment(self):
        prices = random_walk(60)
        line, signal, hist = macd(prices)

        assert len(line) == len(signal) == len(hist) == 60
        assert line[24] is None and line[25] is not None
        # Signal line is the EMA(9) of the defined MACD values
        assert signal[32] is None and signal[33] is not None
        assert hist[32] is None
        assert hist[40] == pytest.approx(line[40] - signal[40])

    def test_short_input(self):
        line, signal, hist = macd(random_walk(20))
        assert line == signal == hist == [None] * 20


class TestBollingerBands:
    def test_known_values(self):
        prices = [float(i) for i in range(1, 21)]
        upper, middle, lower = bollinger_bands(prices, 20, 2.0)

        assert upper[18] is None
        std = math.sqrt(sum((p - 10.5) ** 2 for p in prices) / 20)
        assert middle[19] == pytest.approx(10.5)
        assert upper[19] == pytest.approx(10.5 + 2 * std)
        assert lower[19] == pytest.approx(10.5 - 2 * std)

    def test_flat_series_collapses(self):
        upper, _, lower = bollinger_bands([100.0] * 25)
        assert upper[-1] == pytest.approx(100.0)
        assert lower[-1] == pytest.approx(100.0)


class TestATR:
    """Tests for True Range and ATR."""

    def test_true_range(self):
        result = true_range([10.0, 12.0], [8.0, 9.0], [9.0, 11.0])
        assert result == [2.0, 3.0]

    def test_atr_constant_range(self):
        highs = [102.0] * 20
        lows = [100.0] * 20
        closes = [101.0] * 20
        assert atr(highs, lows, closes, 14) == pytest.approx(2.0)

    def test_atr_insufficient_data(self):
        assert atr([102.0] * 14, [100.0] * 14, [101.0] * 14, 14) is None
        assert atr([102.0] * 15, [100.0] * 15, [101.0] * 15, 14) is not None

    def test_atr_flat_series_is_zero(self):
        flat = [100.0] * 60
        assert atr(flat, flat, flat) == 0.0


class TestStochRSI:
    def test_flat_rsi_window_is_midpoint(self):
        # Monotone rise: RSI is pinned at 100, so every window is flat
        result = stoch_rsi(rising(40))
        assert result.k == pytest.approx(50.0)
        assert result.d == pytest.approx(50.0)
        assert result.raw_k == pytest.approx(50.0)

    def test_minimum_samples(self):
        # period + 5 RSI samples need 2 * period + 5 prices
        assert stoch_rsi(random_walk(32)) is None
        assert stoch_rsi(random_walk(33)) is not None

    def test_range(self):
        result = stoch_rsi(random_walk(200))
        assert 0.0 <= result.k <= 100.0
        assert 0.0 <= result.d <= 100.0
        assert 0.0 <= result.raw_k <= 100.0


class TestVolatilityTrendProxy:
    def test_insufficient_data(self):
        closes = [100.0] * 27
        assert volatility_trend_proxy(closes, closes, closes) is None

    def test_zero_last_close(self):
        closes = [100.0] * 27 + [0.0]
        assert volatility_trend_proxy(closes, closes, closes) is None

    def test_clamped_low(self):
        closes = [100.0] * 30
        assert volatility_trend_proxy(closes, closes, closes) == 10.0

    def test_clamped_high(self):
        closes = [100.0 if i % 2 else 110.0 for i in range(29)] + [100.0]
        assert volatility_trend_proxy(closes, closes, closes) == 60.0

    def test_alias(self):
        assert adx_proxy is volatility_trend_proxy


class TestVolumeProfile:
    def test_empty(self):
        profile = volume_profile([], [])
        assert profile.poc == 0.0
        assert profile.bins == []

    def test_zero_range_single_bin(self):
        profile = volume_profile([50.0] * 10, [2.0] * 10)
        assert len(profile.bins) == 1
        assert profile.poc == 50.0
        assert profile.bins[0].volume == pytest.approx(20.0)

    def test_value_area_expands_toward_heavier_side(self):
        profile = volume_profile([1.0, 2.0, 3.0, 4.0, 5.0], [2.0, 3.0, 6.0, 3.0, 2.0], bins=5)

        assert profile.poc == pytest.approx(2.6)
        # Tie expands downward first, then the heavier upper bin
        assert profile.value_area_low == pytest.approx(1.8)
        assert profile.value_area_high == pytest.approx(3.4)

    def test_max_price_lands_in_last_bin(self):
        profile = volume_profile([10.0, 10.0, 10.0, 20.0, 30.0], [5.0, 5.0, 5.0, 1.0, 1.0], bins=4)
        assert [b.volume for b in profile.bins] == [15.0, 0.0, 1.0, 1.0]
        assert profile.poc == pytest.approx(10.0)

    def test_value_area_contains_poc(self):
        prices = random_walk(200)
        volumes = [abs(v - 100) + 1 for v in random_walk(200, seed=3)]
        profile = volume_profile(prices, volumes)
        assert profile.value_area_low <= profile.poc <= profile.value_area_high


class TestFibonacci:
    def test_levels(self):
        levels = fibonacci_levels([100.0, 200.0])
        assert levels.low == 100.0
        assert levels.high == 200.0
        assert levels.fib_500 == pytest.approx(150.0)
        assert levels.fib_618 == pytest.approx(138.2)
        assert levels.fib_236 == pytest.approx(176.4)

    def test_lookback(self):
        levels = fibonacci_levels([1000.0, 100.0, 200.0], lookback=2)
        assert levels.high == 200.0

    def test_empty(self):
        assert fibonacci_levels([]) is None


class TestAnchoredVWAP:
    def test_from_start(self):
        candles = make_candles([10.0, 20.0, 30.0], [1.0, 1.0, 2.0])
        assert anchored_vwap(candles) == pytest.approx([10.0, 15.0, 22.5])

    def test_from_anchor(self):
        candles = make_candles([10.0, 20.0, 30.0], [1.0, 1.0, 2.0])
        result = anchored_vwap(candles, anchor_index=1)
        assert result[0] is None
        assert result[1:] == pytest.approx([20.0, 80.0 / 3])

    def test_zero_volume_uses_close(self):
        candles = make_candles([10.0, 20.0], [0.0, 0.0])
        assert anchored_vwap(candles) == [10.0, 20.0]

    def test_invalid_anchor(self):
        candles = make_candles([10.0, 20.0, 30.0])
        assert anchored_vwap(candles, anchor_index=5) == [None, None, None]
        assert anchored_vwap(candles, anchor_index=-1) == [None, None, None]


class TestPearsonCorrelation:
    def test_perfect_correlation(self):
        a = [float(i) for i in range(20)]
        assert pearson_correlation(a, [2 * v + 1 for v in a]) == pytest.approx(1.0)
        assert pearson_correlation(a, [-v for v in a]) == pytest.approx(-1.0)

    def test_overlapping_suffix(self):
        a = [float(i) for i in range(30)]
        b = [float(i) for i in range(10, 30)]
        assert pearson_correlation(a, b) == pytest.approx(1.0)

    def test_degenerate(self):
        assert pearson_correlation([1.0] * 9, [2.0] * 9) == 0.0
        assert pearson_correlation([1.0] * 20, [float(i) for i in range(20)]) == 0.0


class TestIndicatorCalculator:
    def test_chart_points_aligned(self):
        candles = make_candles(random_walk(60))
        points = IndicatorCalculator().chart_points(candles)

        assert len(points) == 60
        assert points[0].rsi is None
        assert points[0].upper_band is None
        assert points[-1].rsi is not None
        assert points[-1].histogram is not None
        assert points[-1].price == candles[-1].close

    def test_calculate_latest(self):
        calc = IndicatorCalculator()
        assert calc.calculate_latest(make_candles(random_walk(20))) is None

        latest = calc.calculate_latest(make_candles(random_walk(40)))
        assert set(latest) == {"rsi", "macd_line", "signal_line", "histogram", "upper_band", "lower_band"}
        assert all(v is not None for v in latest.values())
