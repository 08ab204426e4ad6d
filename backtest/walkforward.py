"""Rolling walk-forward validation.

Slides a train/test window pair over the history and backtests both
halves with the same fixed strategy rules. The train run's ending
equity seeds the test run's capital; otherwise the two are independent.
Stability measures how closely out-of-sample win rates track
in-sample ones.

Parameters are not re-optimised on the train slice: this checks the
consistency of a fixed rule set, not an optimisation procedure.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Sequence

from market_core.models.candle import Candle
from market_core.models.config import StrategyConfig, WalkForwardConfig

from backtest.cancel import CancelToken
from backtest.engine import BacktestEngine
from backtest.stats import BacktestResult

logger = logging.getLogger(__name__)


@dataclass
class WindowResult:
    """Train/test pair for one walk-forward window."""

    start_index: int
    train: BacktestResult
    test: BacktestResult

    @property
    def stability(self) -> float:
        return max(0.0, 100.0 - abs(self.train.win_rate - self.test.win_rate))


@dataclass
class WalkForwardResult:
    windows: list[WindowResult] = field(default_factory=list)
    overall_stability: float = 0.0
    average_test_win_rate: float = 0.0
    cancelled: bool = False

    @property
    def pairs(self) -> list[tuple[BacktestResult, BacktestResult]]:
        return [(w.train, w.test) for w in self.windows]


def window_starts(n: int, train_size: int, test_size: int) -> list[int]:
    """Start offsets of every full train+test window in ``n`` candles."""
    return list(range(0, n - train_size - test_size + 1, test_size))


class WalkForwardValidator:
    """Run walk-forward validation for one strategy configuration."""

    def __init__(
        self,
        config: StrategyConfig | None = None,
        windows: WalkForwardConfig | None = None,
    ):
        self.config = config or StrategyConfig()
        self.windows = windows or WalkForwardConfig()

    def run(
        self,
        candles: Sequence[Candle],
        cancel_token: CancelToken | None = None,
    ) -> WalkForwardResult:
        """
        Run all windows.

        The test slice is preceded by ``warmup_candles`` candles of
        lookback so indicators are defined from its first candle; no
        position may open inside that lookback.

        Args:
            candles: Full candle history, oldest first
            cancel_token: Checked between windows

        Returns:
            WalkForwardResult (partial, with ``cancelled`` set, if cancelled)
        """
        train_size = self.windows.train_size
        test_size = self.windows.test_size
        warmup = self.config.warmup_candles
        starts = window_starts(len(candles), train_size, test_size)

        result = WalkForwardResult()
        train_engine = BacktestEngine(self.config)

        for n, start in enumerate(starts, 1):
            if cancel_token is not None and cancel_token.is_cancelled():
                logger.info(f"Walk-forward cancelled after {len(result.windows)}/{len(starts)} windows")
                result.cancelled = True
                break

            test_start = start + train_size
            test_end = test_start + test_size

            train = train_engine.run(candles[start:test_start])

            lookback_start = max(0, test_start - warmup)
            test_config = self.config.model_copy(update={"initial_capital": train.final_equity})
            test = BacktestEngine(test_config).run(
                candles[lookback_start:test_end],
                trade_start_index=test_start - lookback_start,
            )

            window = WindowResult(start_index=start, train=train, test=test)
            result.windows.append(window)
            logger.debug(
                f"Window {n}/{len(starts)} @ {start}: train {train.win_rate:.1f}% "
                f"test {test.win_rate:.1f}% stability {window.stability:.1f}"
            )

        if result.windows:
            count = len(result.windows)
            result.overall_stability = sum(w.stability for w in result.windows) / count
            result.average_test_win_rate = sum(w.test.win_rate for w in result.windows) / count

        logger.info(
            f"Walk-forward {self.config.mode.value}: {len(result.windows)} windows, "
            f"stability {result.overall_stability:.1f}, "
            f"avg test win rate {result.average_test_win_rate:.1f}%"
        )
        return result
