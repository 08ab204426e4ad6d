"""Tests for price/RSI divergence detection."""

from market_core.divergence import detect_divergence, find_peaks
from market_core.indicators import rsi
from market_core.models.analysis import DivergenceStrength, DivergenceType


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

# Peaks at 12 and 22 (22 higher), troughs at 6, 16 and 26
WAVE = [
    10.0, 10.5, 11.0, 10.5, 10.0, 9.5, 9.0, 9.5, 10.0, 10.5,
    11.0, 11.5, 12.0, 11.5, 11.0, 10.5, 10.0, 10.5, 11.0, 11.5,
    12.0, 12.5, 13.0, 12.5, 12.0, 11.5, 11.0, 11.5, 12.0, 12.5,
]


def make_oscillator(n: int, **points: float) -> list[float]:
    """Flat oscillator at 50 with overrides given as ``i<index>=value``."""
    osc = [50.0] * n
    for key, value in points.items():
        osc[int(key[1:])] = value
    return osc


class TestFindPeaks:
    def test_peaks_and_troughs(self):
        assert find_peaks(WAVE, "high") == [12, 22]
        assert find_peaks(WAVE, "low") == [6, 16, 26]

    def test_ignores_edges(self):
        # The peak at index 2 is too close to the start
        assert 2 not in find_peaks(WAVE, "high")


class TestDetectDivergence:
    """Tests for regular divergence detection."""

    def test_bearish(self):
        osc = make_oscillator(30, i12=70.0, i22=60.0)
        result = detect_divergence(WAVE, osc)
        assert result.type == DivergenceType.BEARISH
        assert result.strength == DivergenceStrength.STRONG

    def test_bullish(self):
        prices = [25.0 - p for p in WAVE]
        osc = make_oscillator(30, i12=30.0, i22=40.0)
        result = detect_divergence(prices, osc)
        assert result.type == DivergenceType.BULLISH
        assert result.strength == DivergenceStrength.STRONG

    def test_confirmed_move_is_not_divergence(self):
        # Oscillator makes the higher high along with price
        osc = make_oscillator(30, i12=60.0, i22=70.0)
        assert detect_divergence(WAVE, osc).type == DivergenceType.NONE

    def test_stale_extremes_ignored(self):
        prices = WAVE + [13.0 + 0.5 * i for i in range(20)]
        osc = make_oscillator(50, i12=70.0, i22=60.0)
        assert detect_divergence(prices, osc).type == DivergenceType.NONE

    def test_undefined_oscillator(self):
        assert detect_divergence(WAVE, [None] * 30).type == DivergenceType.NONE

    def test_short_input(self):
        assert detect_divergence(WAVE[:19], [50.0] * 19).type == DivergenceType.NONE

    def test_flat_series(self):
        prices = [100.0] * 60
        result = detect_divergence(prices, rsi(prices))
        assert result.type == DivergenceType.NONE
