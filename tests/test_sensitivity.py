"""Tests for scoring weight sensitivity analysis."""

from datetime import datetime, timedelta, timezone

import numpy as np
import pytest

from backtest.cancel import CancelToken
from backtest.sensitivity import FactorSensitivity, SensitivityAnalyzer, SensitivityResult
from market_core.models.candle import Candle
from market_core.models.config import ScoringWeights, StrategyConfig, StrategyMode


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

T0 = datetime(2025, 1, 1, tzinfo=timezone.utc)


def random_walk_candles(n: int, seed: int = 5) -> list[Candle]:
    rng = np.random.default_rng(seed)
    closes = 100 * np.cumprod(1 + rng.normal(0, 0.01, n))
    wicks = np.abs(rng.normal(0, 0.005, (n, 2)))
    return [
        Candle(
            time=T0 + timedelta(hours=i),
            close=float(c),
            high=float(c * (1 + wicks[i, 0])),
            low=float(c * (1 - wicks[i, 1])),
            volume=100.0,
        )
        for i, c in enumerate(closes)
    ]


class CountdownToken(CancelToken):
    def __init__(self, checks: int):
        super().__init__()
        self._checks = checks

    def is_cancelled(self) -> bool:
        self._checks -= 1
        return self._checks < 0


def make_factor(name: str, swing: float) -> FactorSensitivity:
    return FactorSensitivity(factor=name, win_rate_up=50.0, win_rate_down=50.0, swing=swing)


CONFIG = StrategyConfig(score_entry_min=55.0)


class TestSensitivityAnalyzer:
    """Tests for per-factor perturbation runs."""

    def test_all_factors_in_order(self):
        result = SensitivityAnalyzer(CONFIG).run(random_walk_candles(150))

        assert [f.factor for f in result.factors] == ScoringWeights.factor_names()
        assert result.perturbation == 0.2
        assert not result.cancelled

    def test_swing_is_largest_deviation(self):
        result = SensitivityAnalyzer(CONFIG).run(random_walk_candles(150))

        for f in result.factors:
            expected = max(
                abs(f.win_rate_up - result.baseline_win_rate),
                abs(f.win_rate_down - result.baseline_win_rate),
            )
            assert f.swing == pytest.approx(expected)
        assert result.most_sensitive.swing == max(f.swing for f in result.factors)

    def test_forces_score_mode(self):
        analyzer = SensitivityAnalyzer(StrategyConfig(mode=StrategyMode.MEAN_REVERSION))
        assert analyzer.config.mode == StrategyMode.SCORE_BASED

    def test_partial_on_cancel(self):
        result = SensitivityAnalyzer(CONFIG).run(random_walk_candles(150), cancel_token=CountdownToken(3))
        assert result.cancelled
        assert [f.factor for f in result.factors] == ScoringWeights.factor_names()[:3]

    def test_short_input(self):
        result = SensitivityAnalyzer(CONFIG).run(random_walk_candles(30))
        assert result.baseline_win_rate == 0.0
        assert all(f.swing == 0.0 for f in result.factors)


class TestMostSensitive:
    def test_tie_goes_to_first(self):
        result = SensitivityResult(factors=[make_factor("trend", 5.0), make_factor("divergence", 5.0)])
        assert result.most_sensitive.factor == "trend"

    def test_largest_swing(self):
        result = SensitivityResult(factors=[make_factor("trend", 1.0), make_factor("divergence", 5.0)])
        assert result.most_sensitive.factor == "divergence"

    def test_empty(self):
        assert SensitivityResult().most_sensitive is None
