"""Statistics calculator for backtest results.

Computes trade counts, win rate, profit factor and realised drawdown
from a closed-trade log and its equity curve.

Conventions:
  - A trade with pnl > 0 is a win, anything else a loss
  - Win rate is a percentage (0 with no trades)
  - Profit factor = gross profit / gross loss, or gross profit when
    there is no loss at all
  - Drawdown is measured on the equity curve, which only moves when a
    trade closes (realised drawdown)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime

import numpy as np

from market_core.models.signal import Direction

logger = logging.getLogger(__name__)

EquityPoint = tuple[datetime, float]


@dataclass(frozen=True)
class TradeLog:
    """A closed simulated trade."""

    entry_time: datetime
    exit_time: datetime
    side: Direction
    entry_price: float
    exit_price: float
    pnl: float  # account currency
    pnl_percent: float  # price move in the trade's favour, in percent
    reason: str

    @property
    def is_win(self) -> bool:
        return self.pnl > 0


@dataclass
class BacktestResult:
    """Complete backtest results."""

    trades: list[TradeLog] = field(default_factory=list)
    equity_curve: list[EquityPoint] = field(default_factory=list)

    total_trades: int = 0
    wins: int = 0
    losses: int = 0
    win_rate: float = 0.0
    gross_profit: float = 0.0
    gross_loss: float = 0.0
    profit_factor: float = 0.0
    max_drawdown_percent: float = 0.0
    initial_capital: float = 0.0
    final_equity: float = 0.0

    @property
    def net_profit(self) -> float:
        return self.final_equity - self.initial_capital

    @property
    def return_percent(self) -> float:
        if self.initial_capital <= 0:
            return 0.0
        return self.net_profit / self.initial_capital * 100

    @classmethod
    def empty(cls, initial_capital: float) -> BacktestResult:
        """Zeroed result for inputs too short to trade."""
        return cls(initial_capital=initial_capital, final_equity=initial_capital)


class StatisticsCalculator:
    """Calculate backtest statistics."""

    def calculate(
        self,
        trades: list[TradeLog],
        equity_curve: list[EquityPoint],
        initial_capital: float,
    ) -> BacktestResult:
        result = BacktestResult(
            trades=list(trades),
            equity_curve=list(equity_curve),
            initial_capital=initial_capital,
            final_equity=equity_curve[-1][1] if equity_curve else initial_capital,
        )
        self._calc_overall(result)
        self._calc_drawdown(result)
        return result

    def _calc_overall(self, result: BacktestResult) -> None:
        result.total_trades = len(result.trades)
        result.wins = sum(1 for t in result.trades if t.is_win)
        result.losses = result.total_trades - result.wins

        if result.total_trades > 0:
            result.win_rate = result.wins / result.total_trades * 100

        result.gross_profit = sum(t.pnl for t in result.trades if t.pnl > 0)
        result.gross_loss = abs(sum(t.pnl for t in result.trades if t.pnl < 0))
        if result.gross_loss == 0:
            result.profit_factor = result.gross_profit
        else:
            result.profit_factor = result.gross_profit / result.gross_loss

    def _calc_drawdown(self, result: BacktestResult) -> None:
        if not result.equity_curve:
            return
        equity = np.array([e for _, e in result.equity_curve], dtype=np.float64)
        peaks = np.maximum.accumulate(equity)
        drawdowns = np.where(peaks > 0, (peaks - equity) / peaks * 100, 0.0)
        result.max_drawdown_percent = float(drawdowns.max())
