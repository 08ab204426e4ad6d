"""Tests for market structure analysis."""

import pytest

from market_core.models.analysis import Trend
from market_core.structure import analyze_market_structure, cluster_levels, find_swings


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def rising(n: int, pct: float = 0.01) -> list[float]:
    return [100.0 * (1 + pct) ** i for i in range(n)]


# Higher highs and higher lows
ZIGZAG_UP = [10.0, 12.0, 11.0, 13.0, 12.0, 14.0, 13.0, 15.0, 14.0, 16.0, 15.5]

# Lower highs and lower lows
ZIGZAG_DOWN = [20.0, 18.0, 19.0, 17.0, 18.0, 16.0, 17.0, 15.0, 16.0, 14.0, 13.5]


class TestFindSwings:
    def test_pivots(self):
        highs, lows = find_swings(ZIGZAG_UP)
        assert highs == [12.0, 13.0, 14.0, 15.0, 16.0]
        assert lows == [11.0, 12.0, 13.0, 14.0]

    def test_monotone_series_has_no_swings(self):
        assert find_swings(rising(30)) == ([], [])


class TestClusterLevels:
    def test_merges_within_tolerance_of_mean(self):
        result = cluster_levels([110.0, 101.5, 100.0, 101.0])
        assert result == pytest.approx([(100.0 + 101.0 + 101.5) / 3, 110.0])

    def test_empty(self):
        assert cluster_levels([]) == []


class TestAnalyzeMarketStructure:
    """Tests for trend classification and S/R levels."""

    def test_insufficient_data(self):
        structure = analyze_market_structure([100.0] * 9)
        assert structure.trend == Trend.RANGING
        assert structure.supports == []
        assert structure.resistances == []

    def test_flat_series_is_ranging(self):
        structure = analyze_market_structure([100.0] * 60)
        assert structure.trend == Trend.RANGING
        assert structure.supports == []
        assert structure.resistances == []

    def test_monotone_rise_falls_back_to_uptrend(self):
        assert analyze_market_structure(rising(60)).trend == Trend.UPTREND

    def test_monotone_fall_falls_back_to_downtrend(self):
        assert analyze_market_structure(rising(60, pct=-0.01)).trend == Trend.DOWNTREND

    def test_small_drift_is_ranging(self):
        # +3% from first to last stays inside the 5% band
        prices = [100.0 + 0.1 * i for i in range(31)]
        assert analyze_market_structure(prices).trend == Trend.RANGING

    def test_higher_highs_and_lows(self):
        structure = analyze_market_structure(ZIGZAG_UP)
        assert structure.trend == Trend.UPTREND
        assert structure.resistances == [14.0, 15.0, 16.0]
        assert structure.supports == [11.0, 12.0, 13.0]

    def test_lower_highs_and_lows(self):
        assert analyze_market_structure(ZIGZAG_DOWN).trend == Trend.DOWNTREND

    def test_break_of_structure_flips_downtrend(self):
        # Close above the last swing high (16) overrides LH + LL
        prices = ZIGZAG_DOWN[:-1] + [19.0]
        assert analyze_market_structure(prices).trend == Trend.UPTREND

    def test_break_of_structure_flips_uptrend(self):
        # Close below the last swing low (14) overrides HH + HL
        prices = ZIGZAG_UP[:-1] + [13.0]
        assert analyze_market_structure(prices).trend == Trend.DOWNTREND

    def test_levels_are_capped(self):
        prices = []
        for i in range(10):
            base = 100.0 * 1.05 ** i
            prices.extend([base, base * 1.03, base * 1.01])
        structure = analyze_market_structure(prices)
        assert len(structure.resistances) <= 3
        assert len(structure.supports) <= 3
        assert structure.resistances == sorted(structure.resistances)
