"""Scoring weight sensitivity analysis.

Perturbs each scoring weight up and down independently and reruns the
score-based backtest, to show which factor the strategy's win rate
depends on most. Factor votes are computed once and reused by every
run, since only the weights change.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Sequence

from market_core.models.candle import Candle
from market_core.models.config import ScoringWeights, StrategyConfig, StrategyMode
from market_core.scoring import compute_factor_votes

from backtest.cancel import CancelToken
from backtest.engine import BacktestEngine

logger = logging.getLogger(__name__)

DEFAULT_PERTURBATION = 0.2


@dataclass
class FactorSensitivity:
    factor: str
    win_rate_up: float
    win_rate_down: float
    swing: float  # largest absolute deviation from the baseline win rate


@dataclass
class SensitivityResult:
    baseline_win_rate: float = 0.0
    perturbation: float = DEFAULT_PERTURBATION
    factors: list[FactorSensitivity] = field(default_factory=list)
    cancelled: bool = False

    @property
    def most_sensitive(self) -> FactorSensitivity | None:
        """Factor with the largest swing (first in weight order on ties)."""
        best: FactorSensitivity | None = None
        for factor in self.factors:
            if best is None or factor.swing > best.swing:
                best = factor
        return best


class SensitivityAnalyzer:
    """Measure win-rate sensitivity to each scoring weight."""

    def __init__(
        self,
        config: StrategyConfig | None = None,
        perturbation: float = DEFAULT_PERTURBATION,
    ):
        base = config or StrategyConfig()
        self.config = base.model_copy(update={"mode": StrategyMode.SCORE_BASED})
        self.perturbation = perturbation

    def run(
        self,
        candles: Sequence[Candle],
        cancel_token: CancelToken | None = None,
    ) -> SensitivityResult:
        """
        Run the baseline and both perturbations for every factor.

        Args:
            candles: Candle history, oldest first
            cancel_token: Checked between factors

        Returns:
            SensitivityResult (partial, with ``cancelled`` set, if cancelled)
        """
        votes = compute_factor_votes(candles, start=self.config.warmup_candles)
        baseline = BacktestEngine(self.config).run(candles, votes=votes)
        result = SensitivityResult(
            baseline_win_rate=baseline.win_rate,
            perturbation=self.perturbation,
        )

        for factor in ScoringWeights.factor_names():
            if cancel_token is not None and cancel_token.is_cancelled():
                logger.info(f"Sensitivity analysis cancelled after {len(result.factors)} factors")
                result.cancelled = True
                break

            up = self._win_rate(candles, votes, factor, 1 + self.perturbation)
            down = self._win_rate(candles, votes, factor, 1 - self.perturbation)
            swing = max(abs(up - baseline.win_rate), abs(down - baseline.win_rate))
            result.factors.append(
                FactorSensitivity(factor=factor, win_rate_up=up, win_rate_down=down, swing=swing)
            )
            logger.debug(f"{factor}: up {up:.1f}% down {down:.1f}% swing {swing:.1f}")

        top = result.most_sensitive
        if top is not None:
            logger.info(
                f"Sensitivity: baseline {baseline.win_rate:.1f}%, "
                f"most sensitive factor {top.factor} (swing {top.swing:.1f})"
            )
        return result

    def _win_rate(self, candles, votes, factor: str, multiplier: float) -> float:
        weights = self.config.weights.scaled(factor, multiplier)
        config = self.config.model_copy(update={"weights": weights})
        return BacktestEngine(config).run(candles, votes=votes).win_rate
